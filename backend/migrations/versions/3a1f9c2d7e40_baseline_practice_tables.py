"""Baseline practice tables

Revision ID: 3a1f9c2d7e40
Revises:
Create Date: 2026-10-19 10:12:03.118204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a1f9c2d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'therapists',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('legacy_id', sa.String(), nullable=True),
        sa.Column('linked_subject', sa.String(), nullable=True),
        sa.Column('legacy_user_id', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('license_number', sa.String(), nullable=True),
        sa.Column('specialization', sa.String(), nullable=True),
        sa.Column('years_of_experience', sa.Integer(), nullable=True),
        sa.Column('office_address', sa.Text(), nullable=True),
        sa.Column('profile_image', sa.Text(), nullable=True),
        sa.Column('country_code', sa.Text(), nullable=True),
        sa.Column('emergency_contact', sa.Text(), nullable=True),
        sa.Column('calendar_info', sa.Text(), nullable=True),
        sa.Column('subscription_plan', sa.String(), nullable=True),
        sa.Column('subscription_status', sa.String(), nullable=True),
        sa.Column('subscription_expires_at', sa.String(), nullable=True),
        sa.Column('patient_limit', sa.Integer(), nullable=True),
        sa.Column('payment_provider', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_therapists_legacy_id', 'therapists', ['legacy_id'], unique=True)
    op.create_index('ix_therapists_linked_subject', 'therapists', ['linked_subject'], unique=True)
    op.create_index('ix_therapists_email', 'therapists', ['email'])

    op.create_table(
        'patients',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('legacy_id', sa.String(), nullable=True),
        sa.Column('owner_ref', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('date_of_birth', sa.String(), nullable=True),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('national_id', sa.BigInteger(), nullable=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('occupation', sa.String(), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('height', sa.String(), nullable=True),
        sa.Column('profile_img', sa.Text(), nullable=True),
        sa.Column('emergency_contact', sa.Text(), nullable=True),
        sa.Column('medical_history', sa.Text(), nullable=True),
        sa.Column('country_code', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_patients_legacy_id', 'patients', ['legacy_id'], unique=True)
    op.create_index('idx_patients_owner_ref', 'patients', ['owner_ref'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('legacy_id', sa.String(), nullable=True),
        sa.Column('patient_ref', sa.String(), nullable=False),
        sa.Column('scheduled_date', sa.String(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('session_status', sa.String(), nullable=True),
        sa.Column('payment_status', sa.String(), nullable=True),
        sa.Column('payment_amount', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('event_ref', sa.String(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "session_status in ('scheduled','completed','cancelled','rescheduled','no_show') "
            "or session_status is null",
            name='ck_sessions_session_status',
        ),
        sa.CheckConstraint(
            "payment_status in ('pending','paid','partially_paid','refunded') "
            "or payment_status is null",
            name='ck_sessions_payment_status',
        ),
    )
    op.create_index('ix_sessions_legacy_id', 'sessions', ['legacy_id'], unique=True)
    op.create_index('idx_sessions_patient_ref', 'sessions', ['patient_ref'])

    op.create_table(
        'medical_history_notes',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('legacy_id', sa.String(), nullable=True),
        sa.Column('patient_ref', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('date', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_medical_history_notes_legacy_id', 'medical_history_notes', ['legacy_id'], unique=True)
    op.create_index('idx_notes_patient_ref', 'medical_history_notes', ['patient_ref'])

    op.create_table(
        'therapist_patients',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('therapist_ref', sa.String(), nullable=False),
        sa.Column('patient_ref', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_therapist_patients_therapist', 'therapist_patients', ['therapist_ref'])
    op.create_index('idx_therapist_patients_patient', 'therapist_patients', ['patient_ref'])


def downgrade() -> None:
    op.drop_table('therapist_patients')
    op.drop_table('medical_history_notes')
    op.drop_table('sessions')
    op.drop_table('patients')
    op.drop_table('therapists')
