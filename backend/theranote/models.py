from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    BigInteger, String, Text, Integer, Float, DateTime, CheckConstraint, Index
)

from theranote.db import Base


def new_internal_id() -> str:
    """Storage-native identifier for rows created by this system."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Therapist(Base):
    """
    The owner record that all practice data is scoped to.
    `legacy_id` only exists for therapists migrated from the previous system,
    `linked_subject` is filled on the first successful sign-in.
    """
    __tablename__ = "therapists"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_internal_id)
    legacy_id: Mapped[Optional[str]] = mapped_column(String, unique=True, index=True, nullable=True)
    # identity provider subject
    linked_subject: Mapped[Optional[str]] = mapped_column(String, unique=True, index=True, nullable=True)
    # auth user id from the previous system, kept for migrated rows
    legacy_user_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String, index=True, nullable=True)

    full_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    license_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    specialization: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    years_of_experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    office_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # JSON text
    country_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    calendar_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    subscription_plan: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    subscription_status: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    subscription_expires_at: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    patient_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_provider: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_internal_id)
    legacy_id: Mapped[Optional[str]] = mapped_column(String, unique=True, index=True, nullable=True)
    # legacy_id or id of the owning therapist
    owner_ref: Mapped[str] = mapped_column(String, nullable=False)

    name: Mapped[str] = mapped_column(String, nullable=False)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String, nullable=True)  # yyyy-mm-dd
    gender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    national_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    occupation: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    height: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    profile_img: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # JSON text
    emergency_contact: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    medical_history: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_patients_owner_ref", "owner_ref"),
    )


class Session(Base):
    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint(
            "session_status in ('scheduled','completed','cancelled','rescheduled','no_show') "
            "or session_status is null",
            name="ck_sessions_session_status",
        ),
        CheckConstraint(
            "payment_status in ('pending','paid','partially_paid','refunded') "
            "or payment_status is null",
            name="ck_sessions_payment_status",
        ),
        Index("idx_sessions_patient_ref", "patient_ref"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_internal_id)
    legacy_id: Mapped[Optional[str]] = mapped_column(String, unique=True, index=True, nullable=True)
    patient_ref: Mapped[str] = mapped_column(String, nullable=False)

    scheduled_date: Mapped[str] = mapped_column(String, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    session_status: Mapped[Optional[str]] = mapped_column(String, default="scheduled", nullable=True)
    payment_status: Mapped[Optional[str]] = mapped_column(String, default="pending", nullable=True)
    payment_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # calendar event
    event_ref: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class MedicalNote(Base):
    __tablename__ = "medical_history_notes"
    __table_args__ = (
        Index("idx_notes_patient_ref", "patient_ref"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_internal_id)
    legacy_id: Mapped[Optional[str]] = mapped_column(String, unique=True, index=True, nullable=True)
    patient_ref: Mapped[str] = mapped_column(String, nullable=False)

    title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    date: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # rich-text editor document, JSON text
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class TherapistPatient(Base):
    """Therapist-patient link rows carried over by the bulk importer. Keyed by the pair only."""
    __tablename__ = "therapist_patients"
    __table_args__ = (
        Index("idx_therapist_patients_therapist", "therapist_ref"),
        Index("idx_therapist_patients_patient", "patient_ref"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_internal_id)
    therapist_ref: Mapped[str] = mapped_column(String, nullable=False)
    patient_ref: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
