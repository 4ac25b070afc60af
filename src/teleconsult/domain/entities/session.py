"""
Ephemeral session entities.

Session data is typed: every field a phase may write is declared explicitly,
and entering a phase checks that the fields it depends on are present.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Sequence

from ..enums import ClinicalSessionPhase, SessionPhase
from ..errors import InvalidInputError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _PhaseData:
    """Base for per-session data bags with a fixed field set."""

    def merge(self, partial: Mapping[str, Any]) -> None:
        """Shallow merge, later keys win. Unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(partial) - known)
        if unknown:
            raise InvalidInputError("data", f"unknown session fields: {', '.join(unknown)}")
        for key, value in partial.items():
            setattr(self, key, value)

    def missing(self, required: Sequence[str]) -> list:
        return [name for name in required if getattr(self, name) is None]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class IntakeData(_PhaseData):
    """Data gathered before payment."""

    initial_symptoms: Optional[Dict[str, Any]] = None
    ai_diagnosis: Optional[Dict[str, Any]] = None
    consultation_pricing: Optional[Dict[str, Any]] = None
    selected_consultation_type: Optional[str] = None
    payment_details: Optional[Dict[str, Any]] = None
    payment_confirmed: Optional[bool] = None
    detailed_symptoms: Optional[Dict[str, Any]] = None
    consultation_id: Optional[str] = None
    clinical_session_id: Optional[str] = None

    # Fields that must be set once a phase is entered.
    REQUIRED_ON_ENTRY: ClassVar[Dict[SessionPhase, FrozenSet[str]]] = {
        SessionPhase.CONSULTATION_SELECTION: frozenset({"initial_symptoms"}),
        SessionPhase.PAYMENT_PENDING: frozenset({"selected_consultation_type"}),
        SessionPhase.PAYMENT_CONFIRMED: frozenset({"payment_details"}),
        SessionPhase.CONSULTATION_CREATED: frozenset({"consultation_id"}),
    }

    SCREENING_FIELDS: ClassVar[Sequence[str]] = (
        "initial_symptoms",
        "ai_diagnosis",
        "payment_details",
        "consultation_pricing",
    )

    def clear_screening(self) -> None:
        for name in self.SCREENING_FIELDS:
            setattr(self, name, None)


@dataclass
class ClinicalData(_PhaseData):
    """Data gathered during post-payment detailed assessment."""

    detailed_symptoms: Optional[Dict[str, Any]] = None
    medical_history: Optional[Dict[str, Any]] = None
    vitals: Optional[Dict[str, Any]] = None
    assessment_notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    treatment_plan: Optional[Dict[str, Any]] = None

    REQUIRED_ON_ENTRY: ClassVar[Dict[ClinicalSessionPhase, FrozenSet[str]]] = {
        ClinicalSessionPhase.SYMPTOMS_COLLECTED: frozenset({"detailed_symptoms"}),
        ClinicalSessionPhase.TREATMENT_PLANNING: frozenset({"doctor_notes"}),
    }


@dataclass
class Session:
    """Short-lived intake session keyed by session id."""

    session_id: str
    patient_id: str
    current_phase: SessionPhase = SessionPhase.SYMPTOM_COLLECTION
    data: IntakeData = field(default_factory=IntakeData)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    expires_at: Optional[datetime] = None
    ttl_seconds: int = 3600

    def __post_init__(self) -> None:
        if self.expires_at is None:
            self.expires_at = self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "patient_id": self.patient_id,
            "current_phase": self.current_phase.value,
            "data": self.data.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "ttl_seconds": self.ttl_seconds,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Session":
        return cls(
            session_id=raw["session_id"],
            patient_id=raw["patient_id"],
            current_phase=SessionPhase(raw["current_phase"]),
            data=IntakeData.from_dict(raw.get("data")),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            expires_at=datetime.fromisoformat(raw["expires_at"]),
            ttl_seconds=int(raw.get("ttl_seconds", 3600)),
        )


@dataclass
class ClinicalSession:
    """Consultation-scoped session for post-payment assessment."""

    clinical_session_id: str
    consultation_id: str
    patient_id: str
    current_phase: ClinicalSessionPhase = ClinicalSessionPhase.DETAILED_ASSESSMENT
    data: ClinicalData = field(default_factory=ClinicalData)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    expires_at: Optional[datetime] = None
    ttl_seconds: int = 86400

    def __post_init__(self) -> None:
        if self.expires_at is None:
            self.expires_at = self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clinical_session_id": self.clinical_session_id,
            "consultation_id": self.consultation_id,
            "patient_id": self.patient_id,
            "current_phase": self.current_phase.value,
            "data": self.data.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "ttl_seconds": self.ttl_seconds,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ClinicalSession":
        return cls(
            clinical_session_id=raw["clinical_session_id"],
            consultation_id=raw["consultation_id"],
            patient_id=raw["patient_id"],
            current_phase=ClinicalSessionPhase(raw["current_phase"]),
            data=ClinicalData.from_dict(raw.get("data")),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            expires_at=datetime.fromisoformat(raw["expires_at"]),
            ttl_seconds=int(raw.get("ttl_seconds", 86400)),
        )


# Allowed phase successors. Staying in the same phase is always allowed.
SESSION_PHASE_SUCCESSORS: Dict[SessionPhase, FrozenSet[SessionPhase]] = {
    SessionPhase.SYMPTOM_COLLECTION: frozenset({SessionPhase.CONSULTATION_SELECTION}),
    SessionPhase.CONSULTATION_SELECTION: frozenset({SessionPhase.PAYMENT_PENDING}),
    SessionPhase.PAYMENT_PENDING: frozenset({SessionPhase.PAYMENT_CONFIRMED}),
    SessionPhase.PAYMENT_CONFIRMED: frozenset(
        {SessionPhase.DETAILED_COLLECTION, SessionPhase.CONSULTATION_CREATED}
    ),
    SessionPhase.DETAILED_COLLECTION: frozenset({SessionPhase.CONSULTATION_CREATED}),
    SessionPhase.CONSULTATION_CREATED: frozenset(),
}

CLINICAL_PHASE_SUCCESSORS: Dict[ClinicalSessionPhase, FrozenSet[ClinicalSessionPhase]] = {
    ClinicalSessionPhase.DETAILED_ASSESSMENT: frozenset({ClinicalSessionPhase.SYMPTOMS_COLLECTED}),
    ClinicalSessionPhase.SYMPTOMS_COLLECTED: frozenset({ClinicalSessionPhase.DOCTOR_REVIEW}),
    ClinicalSessionPhase.DOCTOR_REVIEW: frozenset({ClinicalSessionPhase.TREATMENT_PLANNING}),
    ClinicalSessionPhase.TREATMENT_PLANNING: frozenset({ClinicalSessionPhase.COMPLETED}),
    ClinicalSessionPhase.COMPLETED: frozenset(),
}
