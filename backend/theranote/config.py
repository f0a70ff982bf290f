# backend/theranote/config.py
import os
from dotenv import load_dotenv

load_dotenv()

# DB
ASYNC_DATABASE_URL = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./theranote.db")
# Alembic runs with a sync driver
DATABASE_URL = os.getenv("DATABASE_URL")

# Identity provider (bearer JWT issued per request)
IDP_JWT_KEY = os.getenv("IDP_JWT_KEY", "")
IDP_JWT_ALGORITHMS = [a.strip() for a in os.getenv("IDP_JWT_ALGORITHMS", "RS256").split(",") if a.strip()]
IDP_ISSUER = os.getenv("IDP_ISSUER") or None
IDP_AUDIENCE = os.getenv("IDP_AUDIENCE") or None

# Bulk import / diagnostics
IMPORT_API_KEY = os.getenv("IMPORT_API_KEY", "")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
