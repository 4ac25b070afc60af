from .consultation_repository import MongoConsultationRepository
from .doctor_shift_repository import MongoDoctorShiftRepository

__all__ = ["MongoConsultationRepository", "MongoDoctorShiftRepository"]
