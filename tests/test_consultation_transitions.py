"""
Consultation status table tests.
"""

import pytest

from teleconsult.domain.entities.consultation import Consultation
from teleconsult.domain.enums import TERMINAL_STATUSES, ConsultationStatus, ConsultationType
from teleconsult.domain.errors import InvalidTransitionError, ValidationError
from teleconsult.domain.rules.consultation_transitions import (
    ALLOWED_TRANSITIONS,
    allowed_transitions,
    can_transition,
)

from .conftest import FIXED_NOW, new_id

S = ConsultationStatus


def _consultation(status):
    return Consultation(
        consultation_id=new_id(),
        patient_id=new_id(),
        doctor_id=new_id(),
        consultation_type=ConsultationType.CHAT,
        status=status,
        is_active=True,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def test_every_status_has_an_entry():
    assert set(ALLOWED_TRANSITIONS) == set(ConsultationStatus)


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert allowed_transitions(status) == []


@pytest.mark.parametrize("current", list(ConsultationStatus))
@pytest.mark.parametrize("target", list(ConsultationStatus))
def test_plan_transition_matches_table(current, target):
    consultation = _consultation(current)
    if target in ALLOWED_TRANSITIONS[current]:
        change, _ = consultation.plan_transition(target, "tester", now=FIXED_NOW)
        assert change.status == target
        assert change.previous_status == current
    else:
        with pytest.raises(InvalidTransitionError):
            consultation.plan_transition(target, "tester", now=FIXED_NOW)


def test_invalid_transition_message_lists_allowed_targets():
    consultation = _consultation(S.PAYMENT_CONFIRMED)
    with pytest.raises(InvalidTransitionError) as exc_info:
        consultation.plan_transition(S.COMPLETED, "tester")

    err = exc_info.value
    assert isinstance(err, ValidationError)
    assert err.error_code == "INVALID_TRANSITION"
    assert err.message == (
        "Invalid status transition from payment_confirmed to completed. "
        "Allowed transitions: clinical_assessment_pending, active, cancelled"
    )


def test_plan_transition_does_not_mutate():
    consultation = _consultation(S.IN_PROGRESS)
    consultation.plan_transition(S.COMPLETED, "doctor", now=FIXED_NOW)
    assert consultation.status == S.IN_PROGRESS
    assert consultation.status_history == []


def test_terminal_side_effects_clear_active_flag():
    consultation = _consultation(S.IN_PROGRESS)
    consultation.transition_to(S.COMPLETED, "doctor", now=FIXED_NOW)
    assert consultation.status == S.COMPLETED
    assert consultation.is_active is False
    assert consultation.completed_at == FIXED_NOW
    assert not consultation.counts_as_active


def test_in_progress_sets_activation():
    consultation = _consultation(S.DOCTOR_ASSIGNED)
    consultation.is_active = False
    consultation.transition_to(S.IN_PROGRESS, "doctor", now=FIXED_NOW)
    assert consultation.is_active is True
    assert consultation.activated_at == FIXED_NOW


def test_can_transition_on_hold_round_trip():
    assert can_transition(S.IN_PROGRESS, S.ON_HOLD)
    assert can_transition(S.ON_HOLD, S.IN_PROGRESS)
    assert not can_transition(S.ON_HOLD, S.COMPLETED)
