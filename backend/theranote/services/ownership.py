"""
Dual-identifier lookup and the ownership check shared by every handler.

Records migrated from the previous system are addressed by `legacy_id`, newer
ones only by their internal `id`. References between records (patient ->
therapist, session/note -> patient) may hold either value.

Ownership chain:
    Patient  -> owner_ref
    Session  -> patient_ref -> Patient -> owner_ref
    Note     -> patient_ref -> Patient -> owner_ref
"""
import enum
import re
from dataclasses import dataclass
from typing import Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from theranote.models import Therapist, Patient, Session, MedicalNote
from theranote.services.errors import NotFound, Forbidden

INTERNAL_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class EntityKind(enum.Enum):
    PATIENT = "patient"
    SESSION = "session"
    NOTE = "note"

    @property
    def model(self) -> Type:
        return _MODELS[self]

    @property
    def has_parent(self) -> bool:
        return self is not EntityKind.PATIENT


_MODELS = {
    EntityKind.PATIENT: Patient,
    EntityKind.SESSION: Session,
    EntityKind.NOTE: MedicalNote,
}


def lookup_id(record) -> str:
    """The identifier other records use to point at `record`: legacy id first."""
    return record.legacy_id or record.id


def reference_values(record) -> list[str]:
    """Every value a child reference to `record` may carry."""
    return [v for v in (record.legacy_id, record.id) if v]


@dataclass(frozen=True)
class EntityRef:
    """A reference that is either a legacy id or an internal id, resolved legacy-first."""
    value: str

    def is_internal_format(self) -> bool:
        return bool(INTERNAL_ID_RE.match(self.value))

    async def resolve(self, db: AsyncSession, kind: EntityKind):
        model = kind.model
        q = select(model).where(model.legacy_id == self.value).limit(1)
        found = (await db.execute(q)).scalar_one_or_none()
        if found is not None:
            return found

        # internal ids are only valid within their own table
        if not self.is_internal_format():
            return None
        found = await db.get(model, self.value)
        if found is not None and isinstance(found, model):
            return found
        return None


async def find_entity(db: AsyncSession, kind: EntityKind, ref: str):
    if not ref:
        return None
    return await EntityRef(ref).resolve(db, kind)


class DenialReason(enum.Enum):
    NO_OWNER = "no_owner"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Allowed:
    owner: Therapist
    entity: object
    patient: Patient

    allowed = True


@dataclass(frozen=True)
class Denied:
    reason: DenialReason

    allowed = False


Decision = Union[Allowed, Denied]


async def authorize(
    db: AsyncSession, owner: Optional[Therapist], kind: EntityKind, ref: str
) -> Decision:
    """Decide whether `owner` may access the `kind` entity addressed by `ref`."""
    if owner is None:
        return Denied(DenialReason.NO_OWNER)

    entity = await find_entity(db, kind, ref)
    if entity is None:
        return Denied(DenialReason.NOT_FOUND)

    if kind.has_parent:
        patient = await find_entity(db, EntityKind.PATIENT, entity.patient_ref)
        if patient is None:
            # broken chain
            return Denied(DenialReason.NOT_FOUND)
    else:
        patient = entity

    if patient.owner_ref != lookup_id(owner):
        return Denied(DenialReason.FORBIDDEN)
    return Allowed(owner=owner, entity=entity, patient=patient)


def require(decision: Decision, label: str = "Entity") -> Allowed:
    """Mutation handlers: turn a denial into the matching error."""
    if isinstance(decision, Allowed):
        return decision
    if decision.reason is DenialReason.NOT_FOUND:
        raise NotFound(f"{label} not found")
    raise Forbidden()
