"""
Consultation lifecycle enums.
"""

from enum import Enum


class ConsultationStatus(str, Enum):
    """Lifecycle states of a durable consultation record."""

    DRAFT = "draft"
    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CONFIRMED = "payment_confirmed"
    CLINICAL_ASSESSMENT_PENDING = "clinical_assessment_pending"
    ACTIVE = "active"
    DOCTOR_REVIEW_PENDING = "doctor_review_pending"
    DOCTOR_ASSIGNED = "doctor_assigned"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED, ConsultationStatus.EXPIRED}
)


class ConsultationType(str, Enum):
    """How the patient meets the doctor."""

    CHAT = "chat"
    VIDEO = "video"
    EMERGENCY = "emergency"


class TransitionSource(str, Enum):
    """Who triggered a status change."""

    SYSTEM = "system"
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
