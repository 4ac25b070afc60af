from .consultation_repo import ConsultationRepository
from .doctor_shift_repo import DoctorShiftRepository

__all__ = ["ConsultationRepository", "DoctorShiftRepository"]
