from __future__ import annotations
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Gender = Literal["male", "female", "other"]
SessionStatus = Literal["scheduled", "completed", "cancelled", "rescheduled", "no_show"]
PaymentStatus = Literal["pending", "paid", "partially_paid", "refunded"]
ImportKind = Literal["therapists", "patients", "sessions", "notes", "therapist_patients"]


# --- therapist ---
class TherapistPublic(BaseModel):
    id: str
    legacy_id: Optional[str] = None
    ref: str  # identifier other records point at
    email: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    specialization: Optional[str] = None
    years_of_experience: Optional[int] = None
    office_address: Optional[str] = None
    profile_image: Optional[str] = None
    country_code: Any = None
    emergency_contact: Any = None
    calendar_info: Any = None
    subscription_plan: Optional[str] = None
    subscription_status: Optional[str] = None
    patient_limit: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class EmailCheck(BaseModel):
    exists: bool
    therapist_id: Optional[str] = None
    legacy_id: Optional[str] = None
    email: Optional[str] = None
    linked_subject: Optional[str] = None


# --- patient ---
class PatientFields(BaseModel):
    date_of_birth: Optional[str] = Field(None, description="yyyy-mm-dd")
    gender: Optional[str] = None
    national_id: Optional[int] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    occupation: Optional[str] = None
    language: Optional[str] = None
    height: Optional[str] = None
    profile_img: Optional[str] = None
    emergency_contact: Any = None
    medical_history: Any = None
    country_code: Any = None

class PatientCreate(PatientFields):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)

class PatientUpdate(PatientFields):
    """Partial update. Only fields present in the request body are written."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        # may be omitted, but a patient can never lose its name
        if v is None:
            raise ValueError("name cannot be null")
        return v

class PatientPublic(BaseModel):
    id: str
    legacy_id: Optional[str] = None
    ref: str
    owner_ref: str
    name: str
    date_of_birth: Optional[str] = None
    gender: Optional[Gender] = None
    national_id: Optional[int] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    occupation: Optional[str] = None
    language: Optional[str] = None
    height: Optional[str] = None
    profile_img: Optional[str] = None
    emergency_contact: Any = None
    medical_history: Any = None
    country_code: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PatientUpdateReq(BaseModel):
    updates: PatientUpdate


# --- session ---
class SessionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    legacy_id: Optional[str] = None
    ref: Optional[str] = None
    patient_ref: str
    scheduled_date: str
    duration: Optional[int] = None
    session_status: Optional[SessionStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_amount: Optional[float] = None
    notes: Optional[str] = None
    event_ref: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- medical notes ---
class NoteCreate(BaseModel):
    patient_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: str
    content: Any = None

class NoteUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    content: Any = None

class NotePublic(BaseModel):
    id: str
    legacy_id: Optional[str] = None
    ref: str
    patient_ref: str
    title: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    content: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class NoteCreated(BaseModel):
    id: str
    ref: str

class NoteUpdated(BaseModel):
    id: str

class RemoveResult(BaseModel):
    success: bool


# --- bulk import ---
class ImportReq(BaseModel):
    data: list[dict[str, Any]]

class ImportResult(BaseModel):
    kind: ImportKind
    received: int
    imported: int
    skipped: int
    failed: int = 0
