from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...domain.entities.doctor_shift import DoctorShift


class ShiftBody(BaseModel):
    doctor_id: str
    shift_type: str = Field(..., description="morning, evening, night or custom")
    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=1, le=24)
    description: Optional[str] = None
    effective_to: Optional[datetime] = None


class ShiftStatusBody(BaseModel):
    status: str = Field(..., description="active or inactive")


class ShiftOut(BaseModel):
    shift_id: Optional[str]
    doctor_id: str
    shift_type: str
    start_hour: int
    end_hour: int
    status: str
    effective_from: datetime
    effective_to: Optional[datetime] = None
    description: Optional[str] = None

    @classmethod
    def from_domain(cls, shift: DoctorShift) -> "ShiftOut":
        return cls(
            shift_id=shift.shift_id,
            doctor_id=shift.doctor_id,
            shift_type=shift.shift_type.value,
            start_hour=shift.start_hour,
            end_hour=shift.end_hour,
            status=shift.status.value,
            effective_from=shift.effective_from,
            effective_to=shift.effective_to,
            description=shift.description,
        )


class CurrentDoctorOut(BaseModel):
    doctor_id: str
    hour: int
