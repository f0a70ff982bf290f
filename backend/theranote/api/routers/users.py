from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.db import get_db
from theranote.schemas import TherapistPublic, EmailCheck
from theranote.services.identity_service import (
    Principal, get_principal, get_optional_principal, find_owner, resolve_owner,
    check_therapist_by_email, require_admin_key, to_public,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/sync", response_model=Optional[TherapistPublic])
async def sync_user(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """
    Called by the frontend right after sign-in. Links a migrated therapist
    record to the signed-in identity the first time; afterwards it only reads.
    Returns null while no therapist profile exists for this identity.
    """
    owner = await resolve_owner(db, principal)
    return to_public(owner) if owner else None


@router.get("/me", response_model=Optional[TherapistPublic])
async def get_current_user(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    # read-only, never links
    if principal is None:
        return None
    owner = await find_owner(db, principal)
    return to_public(owner) if owner else None


@router.get("/check-email", response_model=EmailCheck, dependencies=[Depends(require_admin_key)])
async def check_email(
    email: str = Query(..., min_length=3),
    db: AsyncSession = Depends(get_db),
):
    return await check_therapist_by_email(db, email)
