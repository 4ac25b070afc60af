"""
Diagnosis result value object.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..enums import ConsultationType, DiagnosisSeverity


@dataclass(frozen=True)
class Investigation:
    """Suggested investigation returned by the diagnosis service."""

    name: str
    priority: str = "medium"
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "priority": self.priority, "reason": self.reason}

    @classmethod
    def from_raw(cls, raw: Any) -> "Investigation":
        if isinstance(raw, str):
            return cls(name=raw)
        return cls(
            name=str(raw.get("test_name") or raw.get("name") or ""),
            priority=str(raw.get("priority") or "medium").lower(),
            reason=raw.get("reason"),
        )


@dataclass(frozen=True)
class DiagnosisResult:
    """Immutable outcome of a diagnosis request.

    ``severity`` and ``recommended_consultation_type`` are always derived from
    ``confidence`` and the investigation priorities, never set independently.
    """

    diagnosis: str
    confidence: float
    severity: DiagnosisSeverity
    recommended_consultation_type: ConsultationType
    recommended_investigations: List[Investigation] = field(default_factory=list)
    recommended_medications: List[Any] = field(default_factory=list)
    is_fallback: bool = False
    from_cache: bool = False
    raw: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")

    def as_cached(self) -> "DiagnosisResult":
        return replace(self, from_cache=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diagnosis": self.diagnosis,
            "confidence": self.confidence,
            "severity": self.severity.value,
            "recommended_consultation_type": self.recommended_consultation_type.value,
            "recommended_investigations": [i.to_dict() for i in self.recommended_investigations],
            "recommended_medications": list(self.recommended_medications),
            "is_fallback": self.is_fallback,
            "raw": dict(self.raw),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagnosisResult":
        return cls(
            diagnosis=data["diagnosis"],
            confidence=float(data["confidence"]),
            severity=DiagnosisSeverity(data["severity"]),
            recommended_consultation_type=ConsultationType(data["recommended_consultation_type"]),
            recommended_investigations=[
                Investigation.from_raw(i) for i in data.get("recommended_investigations") or []
            ],
            recommended_medications=list(data.get("recommended_medications") or []),
            is_fallback=bool(data.get("is_fallback", False)),
            raw=dict(data.get("raw") or {}),
        )
