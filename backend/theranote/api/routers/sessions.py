from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from theranote.db import get_db
from theranote.models import Therapist
from theranote.schemas import SessionPublic
from theranote.services import session_service
from theranote.services.identity_service import get_optional_owner

router = APIRouter(prefix="/sessions", tags=["sessions"])

# read-only: session writes come from the calendar integration


@router.get("/by-patient/{patient_id}", response_model=List[SessionPublic])
async def list_sessions_by_patient(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    """Sessions of one patient, most recent first. Empty unless the patient is yours."""
    return await session_service.list_sessions_by_patient(db, owner, patient_id)


@router.get("/{session_id}", response_model=Optional[SessionPublic])
async def get_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    return await session_service.get_session(db, owner, session_id)
