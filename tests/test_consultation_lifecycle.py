"""
Consultation lifecycle service tests: creation, transitions, activation,
conflict checks, stats and expiry.
"""

from datetime import timedelta

import pytest

from teleconsult.application.services.consultation_lifecycle import (
    DEACTIVATION_REASON,
    NewConsultation,
)
from teleconsult.core.config import ShiftSettings
from teleconsult.domain.enums import ConsultationStatus, ConsultationType, TransitionSource
from teleconsult.domain.errors import (
    ActiveConsultationExistsError,
    ConcurrentModificationError,
    ConsultationNotFoundError,
    InternalError,
    InvalidInputError,
    InvalidTransitionError,
    PatientMismatchError,
)

from .conftest import FIXED_NOW, new_id, seed_consultation

S = ConsultationStatus


def _active_count(repo, patient_id):
    return sum(1 for d in repo.docs.values() if d.patient_id == patient_id and d.counts_as_active)


@pytest.mark.asyncio
async def test_create_consultation_defaults(lifecycle, patient_id, audit):
    consultation = await lifecycle.create_consultation(
        NewConsultation(patient_id=patient_id, consultation_type=ConsultationType.VIDEO)
    )

    assert consultation.status == S.PAYMENT_CONFIRMED
    assert consultation.is_active is False
    # Noon in Asia/Kolkata with no shifts configured resolves to the morning fallback.
    assert consultation.doctor_id == ShiftSettings().morning_doctor_id
    assert consultation.expires_at == FIXED_NOW + timedelta(hours=24)
    assert len(consultation.status_history) == 1
    assert consultation.status_history[0].previous_status is None
    assert audit.events[-1]["action"] == "create"


@pytest.mark.asyncio
async def test_create_consultation_uses_explicit_doctor(lifecycle, patient_id, shift_repo):
    doctor_id = new_id()
    consultation = await lifecycle.create_consultation(
        NewConsultation(patient_id=patient_id, consultation_type=ConsultationType.CHAT, doctor_id=doctor_id)
    )
    assert consultation.doctor_id == doctor_id
    assert shift_repo.lookups == 0


@pytest.mark.asyncio
async def test_create_rejects_malformed_patient_id(lifecycle):
    with pytest.raises(InvalidInputError):
        await lifecycle.create_consultation(
            NewConsultation(patient_id="not-an-id", consultation_type=ConsultationType.CHAT)
        )


@pytest.mark.asyncio
async def test_create_conflicts_with_active_consultation(lifecycle, consultation_repo, patient_id):
    existing = await seed_consultation(consultation_repo, patient_id, S.IN_PROGRESS)

    with pytest.raises(ActiveConsultationExistsError) as exc_info:
        await lifecycle.create_consultation(
            NewConsultation(patient_id=patient_id, consultation_type=ConsultationType.CHAT)
        )
    assert exc_info.value.details["consultation_id"] == existing.consultation_id


@pytest.mark.asyncio
async def test_get_consultation_not_found(lifecycle):
    with pytest.raises(ConsultationNotFoundError):
        await lifecycle.get_consultation(new_id())


@pytest.mark.asyncio
async def test_get_consultation_rejects_malformed_id(lifecycle):
    with pytest.raises(InvalidInputError):
        await lifecycle.get_consultation("abc")


@pytest.mark.asyncio
async def test_update_status_appends_history(lifecycle, consultation_repo, patient_id):
    seeded = await seed_consultation(consultation_repo, patient_id, S.PAYMENT_CONFIRMED, is_active=False)

    updated = await lifecycle.update_consultation_status(
        seeded.consultation_id,
        S.CLINICAL_ASSESSMENT_PENDING,
        changed_by=patient_id,
        reason="Payment confirmed",
        source=TransitionSource.PATIENT,
        trigger="payment_confirmation",
    )

    assert updated.status == S.CLINICAL_ASSESSMENT_PENDING
    last = updated.status_history[-1]
    assert last.previous_status == S.PAYMENT_CONFIRMED
    assert last.source == TransitionSource.PATIENT
    assert last.trigger == "payment_confirmation"


@pytest.mark.asyncio
async def test_invalid_transition_leaves_record_untouched(lifecycle, consultation_repo, patient_id):
    seeded = await seed_consultation(consultation_repo, patient_id, S.PAYMENT_CONFIRMED, is_active=False)

    with pytest.raises(InvalidTransitionError):
        await lifecycle.update_consultation_status(seeded.consultation_id, S.COMPLETED, changed_by="doctor")

    stored = consultation_repo.docs[seeded.consultation_id]
    assert stored.status == S.PAYMENT_CONFIRMED
    assert stored.status_history == []


@pytest.mark.asyncio
async def test_terminal_status_releases_active_slot(lifecycle, consultation_repo, patient_id):
    seeded = await seed_consultation(consultation_repo, patient_id, S.IN_PROGRESS)
    assert await lifecycle.has_active_consultation(patient_id)

    await lifecycle.update_consultation_status(seeded.consultation_id, S.COMPLETED, changed_by="doctor")

    assert not await lifecycle.has_active_consultation(patient_id)


@pytest.mark.asyncio
async def test_stale_read_raises_concurrent_modification(lifecycle, consultation_repo, patient_id, monkeypatch):
    seeded = await seed_consultation(consultation_repo, patient_id, S.IN_PROGRESS)
    stale = await consultation_repo.find_by_id(seeded.consultation_id)
    consultation_repo.docs[seeded.consultation_id].status = S.ON_HOLD

    async def stale_find(consultation_id):
        return stale

    monkeypatch.setattr(consultation_repo, "find_by_id", stale_find)

    with pytest.raises(ConcurrentModificationError):
        await lifecycle.update_consultation_status(seeded.consultation_id, S.COMPLETED, changed_by="doctor")
    assert consultation_repo.docs[seeded.consultation_id].status == S.ON_HOLD


@pytest.mark.asyncio
async def test_activation_deactivates_every_other_active_consultation(lifecycle, consultation_repo, patient_id):
    others = [
        await seed_consultation(consultation_repo, patient_id, S.ACTIVE),
        await seed_consultation(consultation_repo, patient_id, S.IN_PROGRESS),
        await seed_consultation(consultation_repo, patient_id, S.DOCTOR_ASSIGNED),
    ]
    target = await seed_consultation(consultation_repo, patient_id, S.PAYMENT_CONFIRMED, is_active=False)
    unrelated = await seed_consultation(consultation_repo, new_id(), S.ACTIVE)

    activated = await lifecycle.activate_consultation(target.consultation_id, patient_id)

    assert activated.is_active is True
    assert activated.status == S.PAYMENT_CONFIRMED
    assert _active_count(consultation_repo, patient_id) == 1

    for other in others:
        stored = consultation_repo.docs[other.consultation_id]
        assert stored.status == S.CANCELLED
        assert stored.is_active is False
        entry = stored.status_history[-1]
        assert entry.reason == DEACTIVATION_REASON
        assert entry.previous_status == other.status

    deactivation_entries = [
        entry
        for doc in consultation_repo.docs.values()
        for entry in doc.status_history
        if entry.reason == DEACTIVATION_REASON
    ]
    assert len(deactivation_entries) == len(others)
    assert consultation_repo.docs[unrelated.consultation_id].is_active is True


@pytest.mark.asyncio
async def test_activation_rejects_other_patients_consultation(lifecycle, consultation_repo, patient_id):
    target = await seed_consultation(consultation_repo, patient_id, S.PAYMENT_CONFIRMED, is_active=False)
    with pytest.raises(PatientMismatchError):
        await lifecycle.activate_consultation(target.consultation_id, new_id())


@pytest.mark.asyncio
async def test_activation_rejects_terminal_consultation(lifecycle, consultation_repo, patient_id):
    target = await seed_consultation(consultation_repo, patient_id, S.COMPLETED, is_active=False)
    with pytest.raises(InvalidTransitionError):
        await lifecycle.activate_consultation(target.consultation_id, patient_id)


@pytest.mark.asyncio
async def test_failed_activation_leaves_no_active_consultation(lifecycle, consultation_repo, patient_id):
    await seed_consultation(consultation_repo, patient_id, S.ACTIVE)
    target = await seed_consultation(consultation_repo, patient_id, S.PAYMENT_CONFIRMED, is_active=False)
    consultation_repo.fail_mark_active = True

    with pytest.raises(InternalError):
        await lifecycle.activate_consultation(target.consultation_id, patient_id)

    assert _active_count(consultation_repo, patient_id) == 0


@pytest.mark.asyncio
async def test_conflict_check_and_stats(lifecycle, consultation_repo, patient_id):
    await seed_consultation(consultation_repo, patient_id, S.COMPLETED, is_active=False)
    await seed_consultation(consultation_repo, patient_id, S.CANCELLED, is_active=False)
    active = await seed_consultation(consultation_repo, patient_id, S.IN_PROGRESS)

    conflicts = await lifecycle.check_consultation_conflicts(patient_id)
    assert conflicts == {
        "has_conflict": True,
        "active_consultation_id": active.consultation_id,
        "active_status": "in_progress",
    }

    stats = await lifecycle.get_patient_consultation_stats(patient_id)
    assert stats["total"] == 3
    assert stats["completed"] == 1
    assert stats["cancelled"] == 1
    assert stats["expired"] == 0
    assert stats["by_status"]["in_progress"] == 1
    assert stats["active_consultation_id"] == active.consultation_id


@pytest.mark.asyncio
async def test_conflict_check_without_consultations(lifecycle, patient_id):
    conflicts = await lifecycle.check_consultation_conflicts(patient_id)
    assert conflicts["has_conflict"] is False
    assert conflicts["active_consultation_id"] is None


@pytest.mark.asyncio
async def test_expire_consultations_moves_overdue_records(lifecycle, consultation_repo, patient_id):
    overdue = await seed_consultation(
        consultation_repo, patient_id, S.IN_PROGRESS, created_at=FIXED_NOW - timedelta(hours=30)
    )
    finished = await seed_consultation(
        consultation_repo, patient_id, S.COMPLETED, is_active=False, created_at=FIXED_NOW - timedelta(hours=30)
    )
    fresh = await seed_consultation(consultation_repo, new_id(), S.ACTIVE)

    count = await lifecycle.expire_consultations()

    assert count == 1
    expired = consultation_repo.docs[overdue.consultation_id]
    assert expired.status == S.EXPIRED
    assert expired.is_active is False
    assert expired.expired_at == FIXED_NOW
    assert expired.status_history[-1].previous_status == S.IN_PROGRESS
    assert expired.status_history[-1].changed_by == "system"
    assert consultation_repo.docs[finished.consultation_id].status == S.COMPLETED
    assert consultation_repo.docs[fresh.consultation_id].status == S.ACTIVE
