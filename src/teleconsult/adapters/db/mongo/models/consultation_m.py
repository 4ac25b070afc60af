"""
MongoDB Beanie models for consultations and doctor shifts.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from beanie import Document
from pydantic import BaseModel, Field

from teleconsult.domain.enums import ConsultationStatus, ShiftStatus


class StatusChangeMetadataMongo(BaseModel):
    source: str = Field(default="system")
    trigger: Optional[str] = None
    notes: Optional[str] = None


class StatusChangeMongo(BaseModel):
    """Embedded status history entry."""

    status: str
    changed_at: datetime
    changed_by: str
    reason: Optional[str] = None
    previous_status: Optional[str] = None
    metadata: StatusChangeMetadataMongo = Field(default_factory=StatusChangeMetadataMongo)


class PaymentInfoMongo(BaseModel):
    payment_id: str
    amount: float
    currency: str
    status: str
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None


class ConsultationMongo(Document):
    """MongoDB model for consultation."""

    consultation_id: str = Field(..., description="Consultation ID (ObjectId hex)")
    patient_id: str = Field(..., description="Patient ID reference")
    doctor_id: str = Field(..., description="Assigned doctor ID")
    consultation_type: str = Field(..., description="chat, video or emergency")
    status: str = Field(default=ConsultationStatus.PAYMENT_CONFIRMED.value)
    is_active: bool = Field(default=False)
    status_history: List[StatusChangeMongo] = Field(default_factory=list)
    symptoms: Dict[str, Any] = Field(default_factory=dict)
    ai_diagnosis: Dict[str, Any] = Field(default_factory=dict)
    payment_info: Optional[PaymentInfoMongo] = None
    session_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    is_deleted: bool = Field(default=False)

    class Settings:
        name = "consultations"
        indexes = [
            "consultation_id",
            "patient_id",
            "status",
            [("patient_id", 1), ("is_active", 1), ("is_deleted", 1)],  # active lookup and deactivation
            [("expires_at", 1), ("status", 1)],  # expiry sweep
            [("patient_id", 1), ("created_at", -1)],
        ]


class DoctorShiftMongo(Document):
    """MongoDB model for a doctor's recurring shift."""

    shift_id: str = Field(..., description="Shift ID (ObjectId hex)")
    doctor_id: str = Field(..., description="Doctor ID reference")
    shift_type: str = Field(..., description="morning, evening, night or custom")
    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=1, le=24)
    status: str = Field(default=ShiftStatus.ACTIVE.value)
    effective_from: datetime = Field(default_factory=datetime.utcnow)
    effective_to: Optional[datetime] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "doctor_shifts"
        indexes = [
            "shift_id",
            [("doctor_id", 1), ("shift_type", 1)],
            [("status", 1), ("effective_from", 1), ("created_at", -1)],
        ]
