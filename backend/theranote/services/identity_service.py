import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from theranote import config
from theranote.db import get_db
from theranote.models import Therapist, utcnow
from theranote.schemas import TherapistPublic, EmailCheck
from theranote.services.embedded_json import read_field
from theranote.services.errors import Unauthenticated

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Identity asserted by the identity provider for one request."""
    subject: str
    email: Optional[str] = None


def decode_principal(token: str) -> Principal:
    """Verify the provider-issued bearer token and extract subject/email."""
    try:
        payload = jwt.decode(
            token,
            config.IDP_JWT_KEY,
            algorithms=config.IDP_JWT_ALGORITHMS,
            audience=config.IDP_AUDIENCE,
            issuer=config.IDP_ISSUER,
            options={"verify_aud": config.IDP_AUDIENCE is not None},
        )
    except JWTError as e:
        raise Unauthenticated("Could not validate credentials") from e

    subject = payload.get("sub")
    if not subject:
        raise Unauthenticated("Could not validate credentials")
    return Principal(subject=str(subject), email=payload.get("email"))


# ---- two-phase owner resolution ----

async def find_owner(db: AsyncSession, principal: Principal) -> Optional[Therapist]:
    """Pure read: the therapist already linked to this principal."""
    q = select(Therapist).where(Therapist.linked_subject == principal.subject).limit(1)
    return (await db.execute(q)).scalar_one_or_none()


async def find_linkable_owner(db: AsyncSession, principal: Principal) -> Optional[Therapist]:
    """Pure read: a migrated therapist with the principal's email and no link yet."""
    if not principal.email:
        return None
    q = (
        select(Therapist)
        .where(Therapist.email == principal.email, Therapist.linked_subject.is_(None))
        .order_by(Therapist.created_at.asc(), Therapist.id.asc())
        .limit(1)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def link_owner(db: AsyncSession, owner: Therapist, principal: Principal) -> Optional[Therapist]:
    """
    Link `owner` to `principal`. Idempotent: the write only applies while the
    record is unlinked, so an existing link is never overwritten. Returns the
    stored record when it ends up linked to this principal, None when another
    subject holds the link.
    """
    res = await db.execute(
        update(Therapist)
        .where(Therapist.id == owner.id, Therapist.linked_subject.is_(None))
        .values(linked_subject=principal.subject, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    stored = await db.get(Therapist, owner.id, populate_existing=True)
    if stored is None:
        return None
    if stored.linked_subject != principal.subject:
        logger.warning(
            "Therapist %s already linked to another subject, not linking %s", stored.id, principal.subject
        )
        return None

    if res.rowcount:
        logger.info("Linked migrated therapist %s to subject %s", stored.id, principal.subject)
    return stored


async def resolve_owner(db: AsyncSession, principal: Optional[Principal]) -> Optional[Therapist]:
    """
    Map a principal to its therapist record.
    None means no profile has been provisioned for this principal yet.
    """
    if principal is None:
        raise Unauthenticated()

    owner = await find_owner(db, principal)
    if owner is not None:
        return owner

    candidate = await find_linkable_owner(db, principal)
    if candidate is None:
        logger.info("No therapist profile for subject %s", principal.subject)
        return None
    return await link_owner(db, candidate, principal)


async def check_therapist_by_email(db: AsyncSession, email: str) -> EmailCheck:
    """Diagnostic for sign-in problems: does a therapist row exist for this email, and is it linked."""
    q = select(Therapist).where(Therapist.email == email).limit(1)
    therapist = (await db.execute(q)).scalar_one_or_none()
    if therapist is None:
        return EmailCheck(exists=False)
    return EmailCheck(
        exists=True,
        therapist_id=therapist.id,
        legacy_id=therapist.legacy_id,
        email=therapist.email,
        linked_subject=therapist.linked_subject,
    )


# ---- FastAPI dependencies ----

async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    """No Authorization header -> None. A header with a bad token is still a 401."""
    if credentials is None:
        return None
    return decode_principal(credentials.credentials)


async def get_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal


async def get_owner(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> Optional[Therapist]:
    return await resolve_owner(db, principal)


async def get_optional_owner(
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
) -> Optional[Therapist]:
    if principal is None:
        return None
    return await resolve_owner(db, principal)


def require_admin_key(x_import_key: Optional[str] = Header(None)) -> None:
    """Guard for import/diagnostic routes. Every request is refused while IMPORT_API_KEY is unset."""
    if not config.IMPORT_API_KEY or not x_import_key or not secrets.compare_digest(
        x_import_key, config.IMPORT_API_KEY
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid import key")


def to_public(therapist: Therapist) -> TherapistPublic:
    return TherapistPublic(
        id=therapist.id,
        legacy_id=therapist.legacy_id,
        ref=therapist.legacy_id or therapist.id,
        email=therapist.email,
        full_name=therapist.full_name,
        bio=therapist.bio,
        phone=therapist.phone,
        license_number=therapist.license_number,
        specialization=therapist.specialization,
        years_of_experience=therapist.years_of_experience,
        office_address=therapist.office_address,
        profile_image=therapist.profile_image,
        country_code=read_field(therapist.country_code, "country_code"),
        emergency_contact=read_field(therapist.emergency_contact, "emergency_contact"),
        calendar_info=read_field(therapist.calendar_info, "calendar_info"),
        subscription_plan=therapist.subscription_plan,
        subscription_status=therapist.subscription_status,
        patient_limit=therapist.patient_limit,
        created_at=therapist.created_at,
        updated_at=therapist.updated_at,
    )
