"""
Phase enums for ephemeral intake and clinical sessions.
"""

from enum import Enum


class SessionPhase(str, Enum):
    """Phases of the pre-payment intake session, in order."""

    SYMPTOM_COLLECTION = "symptom_collection"
    CONSULTATION_SELECTION = "consultation_selection"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CONFIRMED = "payment_confirmed"
    DETAILED_COLLECTION = "detailed_collection"
    CONSULTATION_CREATED = "consultation_created"


class ClinicalSessionPhase(str, Enum):
    """Phases of the post-payment clinical session, in order."""

    DETAILED_ASSESSMENT = "detailed_assessment"
    SYMPTOMS_COLLECTED = "symptoms_collected"
    DOCTOR_REVIEW = "doctor_review"
    TREATMENT_PLANNING = "treatment_planning"
    COMPLETED = "completed"
