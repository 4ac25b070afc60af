"""
Consultation status transition table and per-status side effects.
"""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping

from ..enums import ConsultationStatus as S

ALLOWED_TRANSITIONS: Mapping[S, FrozenSet[S]] = {
    S.DRAFT: frozenset({S.PENDING, S.CANCELLED}),
    S.PENDING: frozenset({S.PAYMENT_PENDING, S.CANCELLED}),
    S.PAYMENT_PENDING: frozenset({S.PAYMENT_CONFIRMED, S.CANCELLED}),
    S.PAYMENT_CONFIRMED: frozenset({S.CLINICAL_ASSESSMENT_PENDING, S.ACTIVE, S.CANCELLED}),
    S.CLINICAL_ASSESSMENT_PENDING: frozenset({S.ACTIVE, S.DOCTOR_REVIEW_PENDING, S.CANCELLED}),
    S.ACTIVE: frozenset({S.DOCTOR_REVIEW_PENDING, S.DOCTOR_ASSIGNED, S.COMPLETED, S.CANCELLED}),
    S.DOCTOR_REVIEW_PENDING: frozenset({S.DOCTOR_ASSIGNED, S.IN_PROGRESS, S.CANCELLED}),
    S.DOCTOR_ASSIGNED: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.ON_HOLD, S.CANCELLED}),
    S.ON_HOLD: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.EXPIRED: frozenset(),
}

# Declaration order, used to sort allowed targets.
_ORDER = {status: index for index, status in enumerate(S)}


def allowed_transitions(status: S) -> list:
    """Allowed targets from ``status`` in declaration order."""
    return sorted(ALLOWED_TRANSITIONS.get(status, frozenset()), key=_ORDER.__getitem__)


def can_transition(current: S, target: S) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def status_side_effects(status: S, now: datetime) -> Dict[str, Any]:
    """Attribute updates implied by entering ``status``."""
    if status == S.COMPLETED:
        return {"completed_at": now, "is_active": False}
    if status == S.CANCELLED:
        return {"cancelled_at": now, "is_active": False}
    if status == S.EXPIRED:
        return {"expired_at": now, "is_active": False}
    if status == S.IN_PROGRESS:
        return {"activated_at": now, "is_active": True}
    return {}
