import json
import os

# must be set before theranote.db builds its engine
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import sqlalchemy as sa
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import Session as OrmSession
from sqlalchemy.pool import NullPool

from theranote import config
from theranote.db import Base, get_db
from theranote.main import app
from theranote.models import Therapist, Patient, Session, MedicalNote, new_internal_id
from theranote.services.identity_service import Principal

JWT_SECRET = "test-signing-secret"
IMPORT_KEY = "import-secret"


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "theranote_test.db"
    engine = sa.create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def session_factory(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db_path):
    """Insert ORM rows synchronously, committed before the test body runs."""
    engine = sa.create_engine(f"sqlite:///{db_path}")

    def _seed(*rows):
        with OrmSession(engine, expire_on_commit=False) as s:
            s.add_all(rows)
            s.commit()
        return rows

    yield _seed
    engine.dispose()


@pytest.fixture
def count_rows(db_path):
    engine = sa.create_engine(f"sqlite:///{db_path}")

    def _count(model) -> int:
        with engine.connect() as conn:
            return conn.execute(sa.select(sa.func.count()).select_from(model)).scalar_one()

    yield _count
    engine.dispose()


class World:
    """
    T1 is a migrated therapist (legacy id "t-1") with patient P1 and its sessions/note.
    T2 was created after the migration and only has an internal id.
    """

    def __init__(self):
        self.t1 = Therapist(
            id=new_internal_id(), legacy_id="t-1", linked_subject="user_t1",
            email="t1@clinic.test", full_name="Therapist One",
        )
        self.t2 = Therapist(
            id=new_internal_id(), linked_subject="user_t2",
            email="t2@clinic.test", full_name="Therapist Two",
        )
        self.p1 = Patient(
            id=new_internal_id(), legacy_id="P1", owner_ref="t-1", name="Alice",
            gender="female",
            emergency_contact=json.dumps({"name": "Bob", "phone": "555-0100", "relationship": "spouse"}),
            country_code=json.dumps({"code": "+1", "country": "US"}),
            medical_history=json.dumps({"allergies": ["penicillin"]}),
        )
        self.p2 = Patient(id=new_internal_id(), owner_ref=self.t2.id, name="Zed")
        self.s1 = Session(
            id=new_internal_id(), legacy_id="s-1", patient_ref="P1",
            scheduled_date="2026-03-01", duration=50, session_status="completed", payment_status="paid",
        )
        self.s2 = Session(
            id=new_internal_id(), legacy_id="s-2", patient_ref="P1",
            scheduled_date="2026-03-08", duration=50,
        )
        self.s3 = Session(id=new_internal_id(), patient_ref=self.p2.id, scheduled_date="2026-03-02")
        self.n1 = MedicalNote(
            id=new_internal_id(), legacy_id="n-1", patient_ref="P1",
            title="Intake", date="2026-02-20", description="First visit",
            content=json.dumps({"blocks": [{"type": "paragraph", "data": {"text": "Sleeps badly"}}]}),
        )

    @property
    def rows(self):
        return [self.t1, self.t2, self.p1, self.p2, self.s1, self.s2, self.s3, self.n1]


@pytest.fixture
def world(seed):
    w = World()
    seed(*w.rows)
    return w


@pytest.fixture
def principal_t1():
    return Principal(subject="user_t1", email="t1@clinic.test")


@pytest.fixture
def principal_t2():
    return Principal(subject="user_t2", email="t2@clinic.test")


# ---- HTTP ----

def make_token(subject: str, email: str | None = None, secret: str = JWT_SECRET) -> str:
    claims = {"sub": subject}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def auth_header():
    def _header(subject: str, email: str | None = None) -> dict:
        return {"Authorization": f"Bearer {make_token(subject, email)}"}
    return _header


@pytest.fixture
def idp_config(monkeypatch):
    monkeypatch.setattr(config, "IDP_JWT_KEY", JWT_SECRET)
    monkeypatch.setattr(config, "IDP_JWT_ALGORITHMS", ["HS256"])
    monkeypatch.setattr(config, "IDP_ISSUER", None)
    monkeypatch.setattr(config, "IDP_AUDIENCE", None)
    monkeypatch.setattr(config, "IMPORT_API_KEY", IMPORT_KEY)


@pytest.fixture
def client(session_factory, idp_config):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
