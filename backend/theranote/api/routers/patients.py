from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.db import get_db
from theranote.models import Therapist
from theranote.schemas import PatientPublic, PatientCreate, PatientUpdateReq
from theranote.services import patient_service
from theranote.services.identity_service import get_owner, get_optional_owner

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=List[PatientPublic])
async def list_patients(
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    """Patients of the signed-in therapist. Empty when signed out or no profile exists."""
    return await patient_service.list_patients(db, owner)


@router.get("/{patient_id}", response_model=Optional[PatientPublic])
async def get_patient(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_optional_owner),
):
    # null for both "missing" and "not yours"
    return await patient_service.get_patient(db, owner, patient_id)


@router.post("", response_model=PatientPublic, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    return await patient_service.create_patient(db, owner, payload.model_dump(exclude_unset=True))


@router.patch("/{patient_id}", response_model=PatientPublic)
async def update_patient(
    patient_id: str,
    req: PatientUpdateReq,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    updates = req.updates.model_dump(exclude_unset=True)
    return await patient_service.update_patient(db, owner, patient_id, updates)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
    owner: Optional[Therapist] = Depends(get_owner),
):
    await patient_service.delete_patient(db, owner, patient_id)
