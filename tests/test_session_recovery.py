"""
Payment confirmation recovery pipeline tests.
"""

import pytest

from teleconsult.application.services.intake_temp_store import base_key, intake_keys, selection_key
from teleconsult.application.services.session_recovery import (
    REASON_BASE_SESSION,
    REASON_PAYMENT_RECOVERY,
    RECOVERED_SUFFIX,
    map_diagnosis,
    map_symptoms,
)
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.enums import ConsultationType

from .conftest import new_id

SESSION_ID = "session_507f1f77bcf86cd799439011_1736922600000"

SYMPTOMS = {
    "primary_symptoms": ["Headache", "Nausea"],
    "duration": "2 days",
    "severity": "severe",
    "secondary_symptoms": [],
    "medical_history": {},
}
DIAGNOSIS = {"diagnosis": "Migraine", "confidence": 0.85, "is_fallback": False}


def _selection(patient_id, **overrides):
    data = {
        "patient_id": patient_id,
        "session_id": SESSION_ID,
        "symptoms": SYMPTOMS,
        "ai_diagnosis": DIAGNOSIS,
        "selected_consultation_type": "video",
        "payment_details": {"payment_id": "mock_pay_1"},
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_selection_entry_is_used_as_is(recovery, temp_store, patient_id):
    await temp_store.put(selection_key(SESSION_ID), _selection(patient_id))

    intake = await recovery.recover(SESSION_ID, patient_id)

    assert intake.is_recovered is False
    assert intake.recovery_reason is None
    assert intake.selected_consultation_type == ConsultationType.VIDEO
    diagnosis = intake.consultation_diagnosis()
    assert diagnosis["diagnosis"] == "Migraine"
    assert diagnosis["confidence"] == 0.85
    assert diagnosis["is_recovered"] is False


@pytest.mark.asyncio
async def test_selection_for_other_patient_falls_through_to_base(recovery, temp_store, patient_id):
    await temp_store.put(selection_key(SESSION_ID), _selection(new_id()))
    await temp_store.put(
        base_key(SESSION_ID),
        {"patient_id": patient_id, "session_id": SESSION_ID, "symptoms": SYMPTOMS, "ai_diagnosis": DIAGNOSIS},
    )

    intake = await recovery.recover(SESSION_ID, patient_id)

    assert intake.is_recovered is True
    assert intake.recovery_reason == REASON_BASE_SESSION
    assert intake.selected_consultation_type == ConsultationType.CHAT
    diagnosis = intake.consultation_diagnosis()
    assert diagnosis["diagnosis"] == "Migraine" + RECOVERED_SUFFIX
    assert diagnosis["confidence"] <= 0.3


@pytest.mark.asyncio
async def test_missing_entries_use_payment_recovery_defaults(recovery, temp_store, patient_id):
    await temp_store.put(selection_key(SESSION_ID), _selection(patient_id))
    await temp_store.put(base_key(SESSION_ID), {"patient_id": patient_id, "symptoms": SYMPTOMS})
    await temp_store.delete_many(intake_keys(SESSION_ID))

    intake = await recovery.recover(SESSION_ID, patient_id)

    assert intake.is_recovered is True
    assert intake.recovery_reason == REASON_PAYMENT_RECOVERY
    assert intake.selected_consultation_type == ConsultationType.CHAT
    diagnosis = intake.consultation_diagnosis()
    assert diagnosis["confidence"] <= 0.3
    assert diagnosis["diagnosis"].endswith(RECOVERED_SUFFIX)
    symptoms = intake.consultation_symptoms()
    assert symptoms["primary_symptom"] == "General consultation"
    assert symptoms["severity"] == 2


@pytest.mark.asyncio
async def test_base_entry_for_other_patient_is_ignored(recovery, temp_store, patient_id):
    await temp_store.put(base_key(SESSION_ID), {"patient_id": new_id(), "symptoms": SYMPTOMS})

    intake = await recovery.recover(SESSION_ID, patient_id)

    assert intake.recovery_reason == REASON_PAYMENT_RECOVERY


@pytest.mark.asyncio
async def test_cache_failure_degrades_to_defaults(recovery, temp_store, patient_id, monkeypatch):
    async def broken_get(key):
        raise CacheError("redis down")

    monkeypatch.setattr(temp_store, "get", broken_get)

    intake = await recovery.recover(SESSION_ID, patient_id)

    assert intake.is_recovered is True
    assert intake.recovery_reason == REASON_PAYMENT_RECOVERY


def test_map_symptoms_scores_severity():
    mapped = map_symptoms(SYMPTOMS)
    assert mapped["primary_symptom"] == "Headache"
    assert mapped["severity"] == 3
    assert map_symptoms({"severity": "mild"})["severity"] == 1
    assert map_symptoms({"severity": "weird"})["severity"] == 2


def test_map_diagnosis_replaces_out_of_range_confidence():
    mapped = map_diagnosis({"diagnosis": "Flu", "confidence": 7}, is_recovered=False)
    assert mapped["confidence"] == 0.5
    assert mapped["severity"] == "low"
