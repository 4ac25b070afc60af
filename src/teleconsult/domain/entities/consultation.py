"""
Consultation domain entity.

A consultation is created on payment confirmation and is only mutated through
status transitions. It is never physically deleted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..enums import ConsultationStatus, ConsultationType, TransitionSource
from ..errors import InvalidTransitionError
from ..rules.consultation_transitions import allowed_transitions, can_transition, status_side_effects

DEFAULT_CONSULTATION_LIFETIME = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StatusChange:
    """One entry of the append-only status history."""

    status: ConsultationStatus
    changed_at: datetime
    changed_by: str
    reason: Optional[str] = None
    previous_status: Optional[ConsultationStatus] = None
    source: TransitionSource = TransitionSource.SYSTEM
    trigger: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "changed_at": self.changed_at,
            "changed_by": self.changed_by,
            "reason": self.reason,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "metadata": {
                "source": self.source.value,
                "trigger": self.trigger,
                "notes": self.notes,
            },
        }


@dataclass
class PaymentInfo:
    payment_id: str
    amount: float
    currency: str
    status: str
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None


@dataclass
class Consultation:
    """Durable consultation record."""

    consultation_id: str
    patient_id: str
    doctor_id: str
    consultation_type: ConsultationType
    status: ConsultationStatus = ConsultationStatus.PAYMENT_CONFIRMED
    is_active: bool = False
    status_history: List[StatusChange] = field(default_factory=list)
    symptoms: Dict[str, Any] = field(default_factory=dict)
    ai_diagnosis: Dict[str, Any] = field(default_factory=dict)
    payment_info: Optional[PaymentInfo] = None
    session_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    is_deleted: bool = False

    def __post_init__(self) -> None:
        if self.expires_at is None:
            self.expires_at = self.created_at + DEFAULT_CONSULTATION_LIFETIME

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def counts_as_active(self) -> bool:
        """Active, not terminal and not deleted."""
        return self.is_active and not self.is_terminal and not self.is_deleted

    def allowed_next(self) -> List[ConsultationStatus]:
        return allowed_transitions(self.status)

    def plan_transition(
        self,
        new_status: ConsultationStatus,
        changed_by: str,
        reason: Optional[str] = None,
        source: TransitionSource = TransitionSource.SYSTEM,
        trigger: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[StatusChange, Dict[str, Any]]:
        """Validate a transition and return the history entry plus field updates.

        The entity itself is not modified; see :meth:`apply`.
        """
        if not can_transition(self.status, new_status):
            raise InvalidTransitionError(
                self.status.value,
                new_status.value,
                [s.value for s in self.allowed_next()],
            )
        now = now or utcnow()
        change = StatusChange(
            status=new_status,
            changed_at=now,
            changed_by=changed_by,
            reason=reason,
            previous_status=self.status,
            source=source,
            trigger=trigger,
            notes=notes,
        )
        return change, status_side_effects(new_status, now)

    def apply(self, change: StatusChange, updates: Dict[str, Any]) -> None:
        self.status = change.status
        self.status_history.append(change)
        for name, value in updates.items():
            setattr(self, name, value)
        self.updated_at = change.changed_at

    def transition_to(self, new_status: ConsultationStatus, changed_by: str, **kwargs: Any) -> StatusChange:
        """Plan and apply a transition on this instance only; nothing is persisted."""
        change, updates = self.plan_transition(new_status, changed_by, **kwargs)
        self.apply(change, updates)
        return change
