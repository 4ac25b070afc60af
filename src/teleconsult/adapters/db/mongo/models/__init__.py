from .consultation_m import ConsultationMongo, DoctorShiftMongo

DOCUMENT_MODELS = [ConsultationMongo, DoctorShiftMongo]

__all__ = ["ConsultationMongo", "DoctorShiftMongo", "DOCUMENT_MODELS"]
