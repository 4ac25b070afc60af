from .consultation import Consultation, PaymentInfo, StatusChange
from .doctor_shift import DoctorShift
from .session import (
    CLINICAL_PHASE_SUCCESSORS,
    SESSION_PHASE_SUCCESSORS,
    ClinicalData,
    ClinicalSession,
    IntakeData,
    Session,
)

__all__ = [
    "Consultation",
    "PaymentInfo",
    "StatusChange",
    "DoctorShift",
    "ClinicalData",
    "ClinicalSession",
    "IntakeData",
    "Session",
    "SESSION_PHASE_SUCCESSORS",
    "CLINICAL_PHASE_SUCCESSORS",
]
