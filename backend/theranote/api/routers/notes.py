from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.db import get_db
from theranote.models import Therapist
from theranote.schemas import (
    NotePublic, NoteCreate, NoteUpdate, NoteCreated, NoteUpdated, RemoveResult
)
from theranote.services import note_service
from theranote.services.identity_service import get_owner, get_optional_owner

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("/by-patient/{patient_id}", response_model=List[NotePublic])
async def list_notes_by_patient(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    return await note_service.list_notes_by_patient(db, owner, patient_id)


@router.get("/{note_id}", response_model=Optional[NotePublic])
async def get_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    return await note_service.get_note(db, owner, note_id)


@router.post("", response_model=NoteCreated, status_code=status.HTTP_201_CREATED)
async def create_note(
    req: NoteCreate,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    return await note_service.create_note(
        db, owner,
        patient_ref=req.patient_id,
        title=req.title,
        date=req.date,
        content=req.content,
        description=req.description,
    )


@router.patch("/{note_id}", response_model=NoteUpdated)
async def update_note(
    note_id: str,
    req: NoteUpdate,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    return await note_service.update_note(db, owner, note_id, req.model_dump(exclude_unset=True))


@router.delete("/{note_id}", response_model=RemoveResult)
async def remove_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    return await note_service.remove_note(db, owner, note_id)
