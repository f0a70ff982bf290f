"""
Idempotent loader for rows dumped from the previous system.

Every row is matched against what is already stored (by legacy id, or by the
therapist/patient pair for link rows) and inserted only when absent. Existing
rows are never updated, so a partially imported batch can simply be re-run.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import select, DateTime, Integer, Float, String
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.models import Therapist, Patient, Session, MedicalNote, TherapistPatient, utcnow
from theranote.schemas import ImportResult
from theranote.services.embedded_json import coerce_stored

logger = logging.getLogger(__name__)


def strip_nulls(obj: Any) -> Any:
    """Drop null values at any depth; optional columns take absence, not null."""
    if isinstance(obj, list):
        return [strip_nulls(v) for v in obj]
    if isinstance(obj, dict):
        return {k: strip_nulls(v) for k, v in obj.items() if v is not None}
    return obj


_SHORT_OFFSET = re.compile(r"(:\d{2}(?:\.\d+)?[+-]\d{2})$")
_FRACTION = re.compile(r"\.(\d+)")

def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip().replace("Z", "+00:00")
        # "+00" -> "+00:00"
        text = _SHORT_OFFSET.sub(r"\1:00", text)
        # fromisoformat on 3.10 only takes 3 or 6 fraction digits
        text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ImportSpec:
    kind: str
    model: type
    # source key -> column
    renames: dict = field(default_factory=dict)
    json_fields: tuple = ()
    # link rows have no identifier, they are matched on this column pair
    pair_key: Optional[tuple] = None


THERAPISTS = ImportSpec(
    kind="therapists",
    model=Therapist,
    renames={"id": "legacy_id", "clerk_user_id": "linked_subject", "user_id": "legacy_user_id"},
    json_fields=("country_code", "emergency_contact", "calendar_info"),
)
PATIENTS = ImportSpec(
    kind="patients",
    model=Patient,
    renames={"id": "legacy_id", "therapist_id": "owner_ref"},
    json_fields=("emergency_contact", "medical_history", "country_code"),
)
SESSIONS = ImportSpec(
    kind="sessions",
    model=Session,
    renames={"id": "legacy_id", "patient_id": "patient_ref", "event_id": "event_ref"},
)
NOTES = ImportSpec(
    kind="notes",
    model=MedicalNote,
    renames={"id": "legacy_id", "patient_id": "patient_ref"},
    json_fields=("content",),
)
THERAPIST_PATIENTS = ImportSpec(
    kind="therapist_patients",
    model=TherapistPatient,
    renames={"therapist_id": "therapist_ref", "patient_id": "patient_ref"},
    pair_key=("therapist_ref", "patient_ref"),
)

SPECS = {s.kind: s for s in (THERAPISTS, PATIENTS, SESSIONS, NOTES, THERAPIST_PATIENTS)}


def _coerce(column, value: Any) -> Any:
    col_type = column.type
    if isinstance(col_type, DateTime):
        return parse_timestamp(value)
    if isinstance(col_type, Integer):
        return int(value)
    if isinstance(col_type, Float):
        return float(value)
    if isinstance(col_type, String) and not isinstance(value, str):
        return coerce_stored(value) if isinstance(value, (dict, list)) else str(value)
    return value


def map_row(spec: ImportSpec, row: dict[str, Any]) -> dict[str, Any]:
    """Translate one dumped row into column values for `spec.model`."""
    columns = spec.model.__table__.columns
    values: dict[str, Any] = {}
    for key, value in row.items():
        name = spec.renames.get(key, key)
        if name == "id" or name not in columns:
            logger.debug("%s import: dropping unknown field %r", spec.kind, key)
            continue
        if name in spec.json_fields:
            values[name] = coerce_stored(value)
        else:
            values[name] = _coerce(columns[name], value)

    now = utcnow()
    if "created_at" in columns:
        values.setdefault("created_at", now)
    if "updated_at" in columns:
        values.setdefault("updated_at", now)
    return values


async def _exists(db: AsyncSession, spec: ImportSpec, values: dict[str, Any]) -> bool:
    model = spec.model
    if spec.pair_key:
        a, b = spec.pair_key
        q = select(model.id).where(getattr(model, a) == values[a], getattr(model, b) == values[b])
    else:
        q = select(model.id).where(model.legacy_id == values["legacy_id"])
    return (await db.execute(q.limit(1))).first() is not None


def _identity_of(spec: ImportSpec, values: dict[str, Any]) -> Optional[str]:
    keys = spec.pair_key or ("legacy_id",)
    if any(not values.get(k) for k in keys):
        return None
    return "/".join(str(values[k]) for k in keys)


async def import_rows(db: AsyncSession, kind: str, rows: Iterable[dict[str, Any]]) -> ImportResult:
    spec = SPECS[kind]
    rows = strip_nulls(list(rows))
    imported = skipped = failed = 0

    for index, row in enumerate(rows):
        try:
            values = map_row(spec, row)
        except (TypeError, ValueError) as e:
            logger.warning("%s import: row %d unreadable: %s", kind, index, e)
            failed += 1
            continue

        identity = _identity_of(spec, values)
        if identity is None:
            logger.warning("%s import: row %d has no identifier, not imported", kind, index)
            failed += 1
            continue

        if await _exists(db, spec, values):
            skipped += 1
            continue

        try:
            async with db.begin_nested():
                db.add(spec.model(**values))
        except (DBAPIError, OverflowError) as e:
            # constraint violations and values the driver cannot bind
            logger.warning("%s import: row %s rejected: %s", kind, identity, getattr(e, "orig", e))
            failed += 1
            continue
        imported += 1

    await db.commit()
    logger.info(
        "%s import: received=%d imported=%d skipped=%d failed=%d",
        kind, len(rows), imported, skipped, failed,
    )
    return ImportResult(kind=kind, received=len(rows), imported=imported, skipped=skipped, failed=failed)


async def import_therapists(db: AsyncSession, rows) -> ImportResult:
    return await import_rows(db, "therapists", rows)

async def import_patients(db: AsyncSession, rows) -> ImportResult:
    return await import_rows(db, "patients", rows)

async def import_sessions(db: AsyncSession, rows) -> ImportResult:
    return await import_rows(db, "sessions", rows)

async def import_notes(db: AsyncSession, rows) -> ImportResult:
    return await import_rows(db, "notes", rows)

async def import_therapist_patients(db: AsyncSession, rows) -> ImportResult:
    return await import_rows(db, "therapist_patients", rows)
