"""
Intake flow request and response schemas.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ...domain.entities.session import Session


class MedicalHistory(BaseModel):
    allergies: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    chronic_conditions: List[str] = Field(default_factory=list)
    previous_surgeries: List[str] = Field(default_factory=list)
    family_history: List[str] = Field(default_factory=list)


class CollectSymptomsBody(BaseModel):
    """Initial symptom screening submitted by the patient."""

    patient_id: str = Field(..., description="Patient ObjectId")
    primary_symptoms: List[str] = Field(..., min_length=1, description="Main complaints")
    duration: str = Field(..., min_length=1, description="How long the symptoms have lasted")
    severity: str = Field(..., description="mild, moderate or severe")
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    secondary_symptoms: List[str] = Field(default_factory=list)
    patient_age: Optional[int] = Field(None, ge=0, le=150)
    additional_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("primary_symptoms")
    @classmethod
    def strip_symptoms(cls, v: List[str]) -> List[str]:
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("At least one primary symptom is required")
        return cleaned


class CollectSymptomsOut(BaseModel):
    session_id: str
    phase: str
    diagnosis: Dict[str, Any]
    pricing: Dict[str, Dict[str, Any]]
    expires_at: str


class SelectConsultationTypeBody(BaseModel):
    patient_id: str
    consultation_type: str = Field(..., description="chat, video or emergency")


class SelectConsultationTypeOut(BaseModel):
    session_id: str
    phase: str
    order: Dict[str, Any]


class ConfirmPaymentBody(BaseModel):
    patient_id: str
    payment_id: str


class ConfirmPaymentOut(BaseModel):
    consultation_id: str
    status: str
    doctor_id: str
    clinical_session_id: str
    is_recovered: bool
    recovery_reason: Optional[str] = None


class SessionOut(BaseModel):
    session_id: str
    patient_id: str
    current_phase: str
    data: Dict[str, Any]
    created_at: str
    updated_at: str
    expires_at: str

    @classmethod
    def from_domain(cls, session: Session) -> "SessionOut":
        raw = session.to_dict()
        raw.pop("ttl_seconds", None)
        return cls(**raw)
