"""Alembic environment for the Theranote schema."""

import os

import sqlalchemy as sa
from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import make_url

from theranote import config as app_config
from theranote.models import Base

config = context.config
target_metadata = Base.metadata

# async driver used by the app -> sync driver for migrations
SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql+psycopg2",
}


def migration_url() -> str:
    """
    ALEMBIC_DB_URL, then DATABASE_URL, then the app's ASYNC_DATABASE_URL with
    its driver swapped, so a deployment only has to configure one URL.
    """
    explicit = os.getenv("ALEMBIC_DB_URL") or app_config.DATABASE_URL
    if explicit:
        return explicit
    url = make_url(app_config.ASYNC_DATABASE_URL)
    driver = SYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=driver).render_as_string(hide_password=False)


URL = migration_url()
config.set_main_option("sqlalchemy.url", URL.replace("%", "%%"))


def run_migrations_offline() -> None:
    context.configure(
        url=URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = sa.create_engine(URL, poolclass=pool.NullPool)

    with engine.begin() as connection:
        is_sqlite = connection.dialect.name == "sqlite"
        if connection.dialect.name == "postgresql":
            # created_at/updated_at are timezone-aware
            connection.execute(sa.text("SET TIME ZONE 'UTC'"))
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # sqlite cannot ALTER most constraints in place
            render_as_batch=is_sqlite,
            transaction_per_migration=True,
        )
        context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
