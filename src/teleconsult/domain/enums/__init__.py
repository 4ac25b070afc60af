from .consultation import ConsultationStatus, ConsultationType, TERMINAL_STATUSES, TransitionSource
from .diagnosis import DiagnosisSeverity, InvestigationPriority, SymptomSeverity
from .session import ClinicalSessionPhase, SessionPhase
from .shift import ShiftStatus, ShiftType

__all__ = [
    "ConsultationStatus",
    "ConsultationType",
    "TERMINAL_STATUSES",
    "TransitionSource",
    "DiagnosisSeverity",
    "InvestigationPriority",
    "SymptomSeverity",
    "ClinicalSessionPhase",
    "SessionPhase",
    "ShiftStatus",
    "ShiftType",
]
