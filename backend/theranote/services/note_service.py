import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.models import MedicalNote, Therapist, utcnow
from theranote.schemas import NotePublic, NoteCreated, NoteUpdated, RemoveResult
from theranote.services.embedded_json import encode_field, read_field
from theranote.services.ownership import (
    EntityKind, authorize, require, lookup_id, reference_values
)

logger = logging.getLogger(__name__)

UPDATABLE = ("title", "description", "date", "content")


def to_public(note: MedicalNote) -> NotePublic:
    return NotePublic(
        id=note.id,
        legacy_id=note.legacy_id,
        ref=lookup_id(note),
        patient_ref=note.patient_ref,
        title=note.title,
        date=note.date,
        description=note.description,
        content=read_field(note.content, "note content"),
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


async def list_notes_by_patient(
    db: AsyncSession, owner: Optional[Therapist], patient_ref: str
) -> list[NotePublic]:
    decision = await authorize(db, owner, EntityKind.PATIENT, patient_ref)
    if not decision.allowed:
        return []

    q = (
        select(MedicalNote)
        .where(MedicalNote.patient_ref.in_(reference_values(decision.patient)))
        .order_by(MedicalNote.date.desc(), MedicalNote.created_at.desc())
    )
    notes = (await db.execute(q)).scalars().all()
    return [to_public(n) for n in notes]


async def get_note(db: AsyncSession, owner: Optional[Therapist], ref: str) -> Optional[NotePublic]:
    decision = await authorize(db, owner, EntityKind.NOTE, ref)
    if not decision.allowed:
        return None
    return to_public(decision.entity)


async def create_note(
    db: AsyncSession,
    owner: Optional[Therapist],
    patient_ref: str,
    title: str,
    date: str,
    content: Any = None,
    description: Optional[str] = None,
) -> NoteCreated:
    allowed = require(await authorize(db, owner, EntityKind.PATIENT, patient_ref), "Patient")

    now = utcnow()
    note = MedicalNote(
        patient_ref=lookup_id(allowed.patient),
        title=title,
        description=description,
        date=date,
        content=encode_field(content),
        created_at=now,
        updated_at=now,
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    logger.info("Created note %s for patient %s", note.id, note.patient_ref)
    return NoteCreated(id=note.id, ref=lookup_id(note))


async def update_note(
    db: AsyncSession, owner: Optional[Therapist], ref: str, updates: dict[str, Any]
) -> NoteUpdated:
    """Writes only the keys present in `updates`; everything else is left untouched."""
    allowed = require(await authorize(db, owner, EntityKind.NOTE, ref), "Note")
    note: MedicalNote = allowed.entity

    for key in UPDATABLE:
        if key not in updates:
            continue
        value = updates[key]
        setattr(note, key, encode_field(value) if key == "content" else value)
    note.updated_at = utcnow()

    await db.commit()
    return NoteUpdated(id=ref)


async def remove_note(db: AsyncSession, owner: Optional[Therapist], ref: str) -> RemoveResult:
    allowed = require(await authorize(db, owner, EntityKind.NOTE, ref), "Note")
    await db.delete(allowed.entity)
    await db.commit()
    return RemoveResult(success=True)
