from .audit_service import AuditService
from .cache_service import CacheService
from .diagnosis_client import DiagnosisClient, DiagnosisHttpResponse, DiagnosisTransportError
from .payment_gateway import PaymentGateway, PaymentOrder, PaymentVerification

__all__ = [
    "AuditService",
    "CacheService",
    "DiagnosisClient",
    "DiagnosisHttpResponse",
    "DiagnosisTransportError",
    "PaymentGateway",
    "PaymentOrder",
    "PaymentVerification",
]
