"""
Diagnosis related enums.
"""

from enum import Enum


class SymptomSeverity(str, Enum):
    """Severity declared by the patient at intake."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def score(self) -> int:
        """Numeric severity stored on the consultation (mild=1 .. severe=3)."""
        return {"mild": 1, "moderate": 2, "severe": 3}[self.value]


class DiagnosisSeverity(str, Enum):
    """Severity bucket derived from the diagnosis confidence."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InvestigationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
