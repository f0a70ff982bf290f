from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.db import get_db
from theranote.schemas import ImportKind, ImportReq, ImportResult
from theranote.services.identity_service import require_admin_key
from theranote.services.import_service import import_rows

router = APIRouter(prefix="/migrations", tags=["migrations"], dependencies=[Depends(require_admin_key)])


@router.post("/import/{kind}", response_model=ImportResult)
async def import_data(
    kind: ImportKind,
    req: ImportReq,
    db: AsyncSession = Depends(get_db),
):
    """
    Load rows dumped from the previous system. Safe to re-run: rows whose
    legacy id (or therapist/patient pair) is already stored are skipped.
    """
    return await import_rows(db, kind, req.data)
