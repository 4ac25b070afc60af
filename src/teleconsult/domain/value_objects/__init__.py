from .diagnosis_result import DiagnosisResult, Investigation
from .identifiers import SessionId, ensure_object_id
from .service_token import ServiceToken

__all__ = ["DiagnosisResult", "Investigation", "SessionId", "ensure_object_id", "ServiceToken"]
