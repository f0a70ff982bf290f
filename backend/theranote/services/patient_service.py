import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.models import Patient, Therapist, utcnow
from theranote.schemas import PatientPublic
from theranote.services.embedded_json import encode_field, read_field
from theranote.services.errors import Forbidden
from theranote.services.ownership import EntityKind, authorize, require, lookup_id

logger = logging.getLogger(__name__)

JSON_FIELDS = ("emergency_contact", "medical_history", "country_code")
GENDERS = ("male", "female", "other")


def to_public(patient: Patient) -> PatientPublic:
    return PatientPublic(
        id=patient.id,
        legacy_id=patient.legacy_id,
        ref=lookup_id(patient),
        owner_ref=patient.owner_ref,
        name=patient.name,
        date_of_birth=patient.date_of_birth,
        gender=patient.gender if patient.gender in GENDERS else None,
        national_id=patient.national_id,
        phone_number=patient.phone_number,
        email=patient.email,
        city=patient.city,
        occupation=patient.occupation,
        language=patient.language,
        height=patient.height,
        profile_img=patient.profile_img,
        emergency_contact=read_field(patient.emergency_contact, "emergency_contact"),
        medical_history=read_field(patient.medical_history, "medical_history"),
        country_code=read_field(patient.country_code, "country_code"),
        created_at=patient.created_at,
        updated_at=patient.updated_at,
    )


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in fields.items():
        values[key] = encode_field(value) if key in JSON_FIELDS else value
    return values


async def list_patients(db: AsyncSession, owner: Optional[Therapist]) -> list[PatientPublic]:
    if owner is None:
        return []
    q = (
        select(Patient)
        .where(Patient.owner_ref == lookup_id(owner))
        .order_by(Patient.name.asc(), Patient.created_at.asc())
    )
    patients = (await db.execute(q)).scalars().all()
    return [to_public(p) for p in patients]


async def get_patient(db: AsyncSession, owner: Optional[Therapist], ref: str) -> Optional[PatientPublic]:
    """None when the patient is missing or belongs to someone else."""
    decision = await authorize(db, owner, EntityKind.PATIENT, ref)
    if not decision.allowed:
        return None
    return to_public(decision.entity)


async def create_patient(db: AsyncSession, owner: Optional[Therapist], fields: dict[str, Any]) -> PatientPublic:
    if owner is None:
        raise Forbidden()
    now = utcnow()
    patient = Patient(
        owner_ref=lookup_id(owner),
        created_at=now,
        updated_at=now,
        **_to_columns(fields),
    )
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    logger.info("Created patient %s for therapist %s", patient.id, owner.id)
    return to_public(patient)


async def update_patient(
    db: AsyncSession, owner: Optional[Therapist], ref: str, updates: dict[str, Any]
) -> PatientPublic:
    allowed = require(await authorize(db, owner, EntityKind.PATIENT, ref), "Patient")
    patient: Patient = allowed.entity

    for key, value in _to_columns(updates).items():
        setattr(patient, key, value)
    patient.updated_at = utcnow()

    await db.commit()
    await db.refresh(patient)
    return to_public(patient)


async def delete_patient(db: AsyncSession, owner: Optional[Therapist], ref: str) -> None:
    """Deletes only the patient row. Sessions and notes pointing at it are left in place."""
    allowed = require(await authorize(db, owner, EntityKind.PATIENT, ref), "Patient")
    await db.delete(allowed.entity)
    await db.commit()
    logger.info("Deleted patient %s", allowed.entity.id)
