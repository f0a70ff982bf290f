from datetime import datetime, timezone

import pytest

from theranote.models import MedicalNote, Patient
from theranote.services import note_service
from theranote.services.errors import Forbidden, NotFound

DOC = {"time": 1700000000, "blocks": [{"type": "header", "data": {"text": "Plan", "level": 2}}]}


async def test_list_notes_for_own_patient(db, world):
    notes = await note_service.list_notes_by_patient(db, world.t1, "P1")
    assert [n.ref for n in notes] == ["n-1"]
    assert notes[0].content["blocks"][0]["data"]["text"] == "Sleeps badly"


async def test_list_notes_hidden_from_others(db, world):
    assert await note_service.list_notes_by_patient(db, world.t2, "P1") == []
    assert await note_service.list_notes_by_patient(db, None, "P1") == []


async def test_create_note(db, world):
    created = await note_service.create_note(
        db, world.t1, patient_ref=world.p1.id, title="Session 2", date="2026-03-08", content=DOC,
    )
    assert created.ref == created.id

    note = await note_service.get_note(db, world.t1, created.id)
    # stored against the patient's preferred identifier
    assert note.patient_ref == "P1"
    assert note.content == DOC
    assert note.description is None

    listed = await note_service.list_notes_by_patient(db, world.t1, "P1")
    assert [n.date for n in listed] == ["2026-03-08", "2026-02-20"]


async def test_create_note_checks_patient(db, world):
    with pytest.raises(Forbidden):
        await note_service.create_note(db, world.t2, patient_ref="P1", title="x", date="2026-01-01")
    with pytest.raises(NotFound):
        await note_service.create_note(db, world.t1, patient_ref="P404", title="x", date="2026-01-01")


async def test_partial_update_keeps_other_fields(db, seed, world):
    seed(MedicalNote(
        legacy_id="n-old", patient_ref="P1", title="Before", date="2025-12-01",
        description="kept", content='{"blocks": []}',
        created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
    ))

    result = await note_service.update_note(db, world.t1, "n-old", {"title": "X"})
    assert result.id == "n-old"

    note = await note_service.get_note(db, world.t1, "n-old")
    assert note.title == "X"
    assert note.description == "kept"
    assert note.date == "2025-12-01"
    assert note.content == {"blocks": []}
    assert note.updated_at.year > 2020


async def test_update_by_internal_id_of_legacy_note(db, world):
    await note_service.update_note(db, world.t1, world.n1.id, {"content": DOC, "description": None})
    note = await note_service.get_note(db, world.t1, "n-1")
    assert note.content == DOC
    assert note.description is None
    assert note.title == "Intake"


async def test_update_and_remove_by_other_owner(db, world):
    with pytest.raises(Forbidden):
        await note_service.update_note(db, world.t2, "n-1", {"title": "hijack"})
    with pytest.raises(Forbidden):
        await note_service.remove_note(db, world.t2, "n-1")
    with pytest.raises(NotFound):
        await note_service.remove_note(db, world.t1, "n-404")


async def test_remove_note(db, world):
    result = await note_service.remove_note(db, world.t1, "n-1")
    assert result.success
    assert await note_service.get_note(db, world.t1, "n-1") is None


async def test_note_of_deleted_patient_is_not_found(db, world):
    patient = await db.get(Patient, world.p1.id)
    await db.delete(patient)
    await db.commit()

    with pytest.raises(NotFound):
        await note_service.update_note(db, world.t1, "n-1", {"title": "late"})
    assert await note_service.get_note(db, world.t1, "n-1") is None
