import json
from datetime import datetime, timezone

import pytest

from theranote.models import Patient, TherapistPatient, Therapist
from theranote.scripts import import_data
from theranote.services import import_service, patient_service
from theranote.services.identity_service import Principal, resolve_owner
from theranote.services.import_service import parse_timestamp, strip_nulls

PATIENT_ROWS = [
    {
        "id": "P10", "therapist_id": "t-1", "name": "Nora", "gender": "female",
        "emergency_contact": {"name": "Lee", "phone": "555-0199", "relationship": "sister"},
        "medical_history": None, "created_at": "2024-05-02T10:00:00+00",
    },
    {"id": "P11", "therapist_id": "t-1", "name": "Omar", "national_id": "123456789"},
]


def test_strip_nulls_at_any_depth():
    data = {"a": None, "b": {"c": None, "d": 1}, "e": [{"f": None}, 2]}
    assert strip_nulls(data) == {"b": {"d": 1}, "e": [{}, 2]}


@pytest.mark.parametrize("raw", [
    "2024-05-02T10:00:00Z",
    "2024-05-02T10:00:00+00",
    "2024-05-02T10:00:00+00:00",
    "2024-05-02 10:00:00",
])
def test_parse_timestamp_variants(raw):
    assert parse_timestamp(raw) == datetime(2024, 5, 2, 10, 0, tzinfo=timezone.utc)


def test_parse_timestamp_trimmed_fraction():
    assert parse_timestamp("2024-05-02T10:00:00.1234+00").microsecond == 123400
    assert parse_timestamp("2024-05-02T10:00:00.5Z").microsecond == 500000
    assert parse_timestamp("2024-05-02T10:00:00.123456789+00:00").microsecond == 123456


async def test_patient_import_is_idempotent(db, world, count_rows):
    before = count_rows(Patient)

    first = await import_service.import_patients(db, PATIENT_ROWS)
    assert (first.received, first.imported, first.skipped, first.failed) == (2, 2, 0, 0)
    assert count_rows(Patient) == before + 2

    second = await import_service.import_patients(db, PATIENT_ROWS)
    assert (second.imported, second.skipped) == (0, 2)
    assert count_rows(Patient) == before + 2


async def test_imported_patient_is_readable_by_owner(db, world):
    await import_service.import_patients(db, PATIENT_ROWS)

    nora = await patient_service.get_patient(db, world.t1, "P10")
    assert nora.owner_ref == "t-1"
    assert nora.emergency_contact["relationship"] == "sister"
    assert nora.medical_history is None
    assert nora.created_at.year == 2024

    omar = await patient_service.get_patient(db, world.t1, "P11")
    assert omar.national_id == 123456789


async def test_existing_rows_are_not_overwritten(db, world):
    result = await import_service.import_patients(db, [{"id": "P1", "therapist_id": "t-1", "name": "Changed"}])
    assert result.skipped == 1

    patient = await patient_service.get_patient(db, world.t1, "P1")
    assert patient.name == "Alice"


async def test_therapist_keys_are_renamed(db):
    rows = [{
        "id": "t-5", "user_id": "u-5", "clerk_user_id": "user_t5", "email": "t5@clinic.test",
        "full_name": "Therapist Five", "calendar_info": {"provider": "google"}, "unknown_column": 1,
    }]
    result = await import_service.import_therapists(db, rows)
    assert result.imported == 1

    owner = await resolve_owner(db, Principal(subject="user_t5"))
    assert owner.legacy_id == "t-5"
    assert owner.legacy_user_id == "u-5"
    assert owner.calendar_info == '{"provider": "google"}'


async def test_link_rows_are_deduplicated_by_pair(db, count_rows):
    rows = [
        {"therapist_id": "t-1", "patient_id": "P1"},
        {"therapist_id": "t-1", "patient_id": "P1"},
        {"therapist_id": "t-1", "patient_id": "P2"},
    ]
    first = await import_service.import_therapist_patients(db, rows)
    assert (first.imported, first.skipped) == (2, 1)

    second = await import_service.import_therapist_patients(db, rows)
    assert (second.imported, second.skipped) == (0, 3)
    assert count_rows(TherapistPatient) == 2


async def test_bad_rows_fail_without_stopping_the_batch(db, count_rows):
    rows = [
        {"therapist_id": "t-1", "name": "No Id"},
        {"id": "P20", "therapist_id": "t-1"},
        {"id": "P21", "therapist_id": "t-1", "name": "Fine"},
        {"id": "P22", "therapist_id": "t-1", "name": "Bad Date", "created_at": "not a date"},
    ]
    result = await import_service.import_patients(db, rows)
    assert (result.received, result.imported, result.skipped, result.failed) == (4, 1, 0, 3)
    assert count_rows(Patient) == 1


async def test_unstorable_value_fails_only_its_row(db, count_rows):
    rows = [
        {"id": "P30", "therapist_id": "t-1", "name": "First"},
        {"id": "P31", "therapist_id": "t-1", "name": "Huge", "national_id": "99999999999999999999999"},
        {"id": "P32", "therapist_id": "t-1", "name": "Last"},
    ]
    result = await import_service.import_patients(db, rows)
    assert (result.imported, result.failed) == (2, 1)
    assert count_rows(Patient) == 2

    again = await import_service.import_patients(db, rows)
    assert (again.imported, again.skipped, again.failed) == (0, 2, 1)


async def test_import_order_resolves_references(db):
    await import_service.import_therapists(db, [{"id": "t-7", "clerk_user_id": "user_t7", "email": "t7@clinic.test"}])
    await import_service.import_patients(db, [{"id": "P70", "therapist_id": "t-7", "name": "Pia"}])
    await import_service.import_sessions(db, [
        {"id": "s-70", "patient_id": "P70", "scheduled_date": "2026-01-05", "duration": "45",
         "session_status": "completed", "payment_status": "paid", "payment_amount": "80"},
    ])
    await import_service.import_notes(db, [
        {"id": "n-70", "patient_id": "P70", "title": "Intake", "date": "2026-01-05",
         "content": {"blocks": []}},
    ])

    owner = await resolve_owner(db, Principal(subject="user_t7"))
    patients = await patient_service.list_patients(db, owner)
    assert [p.ref for p in patients] == ["P70"]

    stored = await db.get(Therapist, owner.id)
    assert stored.linked_subject == "user_t7"


def test_cli_rejects_missing_directory(tmp_path):
    assert import_data.main([str(tmp_path / "nope")]) == 1


def test_cli_requires_row_arrays(tmp_path):
    path = tmp_path / "patients_rows.json"
    path.write_text(json.dumps({"id": "P1"}), encoding="utf-8")
    with pytest.raises(ValueError):
        import_data.load_rows(str(path))

    path.write_text(json.dumps(PATIENT_ROWS), encoding="utf-8")
    assert [r["id"] for r in import_data.load_rows(str(path))] == ["P10", "P11"]
