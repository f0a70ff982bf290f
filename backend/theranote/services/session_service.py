"""
Read side of therapy sessions. Creating, rescheduling and cancelling sessions
belongs to the calendar integration, not to this service.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.models import Session, Therapist
from theranote.schemas import SessionPublic
from theranote.services.ownership import EntityKind, authorize, reference_values, lookup_id


def to_public(session: Session) -> SessionPublic:
    return SessionPublic.model_validate(session).model_copy(update={"ref": lookup_id(session)})


async def list_sessions_by_patient(
    db: AsyncSession, owner: Optional[Therapist], patient_ref: str
) -> list[SessionPublic]:
    decision = await authorize(db, owner, EntityKind.PATIENT, patient_ref)
    if not decision.allowed:
        return []

    q = (
        select(Session)
        .where(Session.patient_ref.in_(reference_values(decision.patient)))
        .order_by(Session.scheduled_date.desc(), Session.created_at.desc())
    )
    sessions = (await db.execute(q)).scalars().all()
    return [to_public(s) for s in sessions]


async def get_session(db: AsyncSession, owner: Optional[Therapist], ref: str) -> Optional[SessionPublic]:
    decision = await authorize(db, owner, EntityKind.SESSION, ref)
    if not decision.allowed:
        return None
    return to_public(decision.entity)
