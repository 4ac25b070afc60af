"""
Consultation request and response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...domain.entities.consultation import Consultation


class CreateConsultationBody(BaseModel):
    patient_id: str
    consultation_type: str = Field(..., description="chat, video or emergency")
    doctor_id: Optional[str] = Field(None, description="Resolved from the shift schedule when omitted")
    symptoms: Dict[str, Any] = Field(default_factory=dict)
    ai_diagnosis: Dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = None


class StatusUpdateBody(BaseModel):
    status: str
    changed_by: str
    reason: Optional[str] = None
    source: str = Field("system", description="system, patient, doctor or admin")
    trigger: Optional[str] = None
    notes: Optional[str] = None


class ActivateBody(BaseModel):
    patient_id: str
    changed_by: Optional[str] = None


class StatusChangeOut(BaseModel):
    status: str
    changed_at: datetime
    changed_by: str
    reason: Optional[str] = None
    previous_status: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ConsultationOut(BaseModel):
    consultation_id: str
    patient_id: str
    doctor_id: str
    consultation_type: str
    status: str
    is_active: bool
    allowed_transitions: List[str]
    status_history: List[StatusChangeOut]
    symptoms: Dict[str, Any]
    ai_diagnosis: Dict[str, Any]
    payment_info: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    expires_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, consultation: Consultation) -> "ConsultationOut":
        payment = consultation.payment_info
        return cls(
            consultation_id=consultation.consultation_id,
            patient_id=consultation.patient_id,
            doctor_id=consultation.doctor_id,
            consultation_type=consultation.consultation_type.value,
            status=consultation.status.value,
            is_active=consultation.is_active,
            allowed_transitions=[s.value for s in consultation.allowed_next()],
            status_history=[StatusChangeOut(**c.to_dict()) for c in consultation.status_history],
            symptoms=consultation.symptoms,
            ai_diagnosis=consultation.ai_diagnosis,
            payment_info=vars(payment).copy() if payment else None,
            session_id=consultation.session_id,
            created_at=consultation.created_at,
            updated_at=consultation.updated_at,
            expires_at=consultation.expires_at,
            activated_at=consultation.activated_at,
            completed_at=consultation.completed_at,
            cancelled_at=consultation.cancelled_at,
            expired_at=consultation.expired_at,
        )
