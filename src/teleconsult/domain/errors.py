"""
Domain-specific error types for business rule violations.

Callers branch on the error class (or ``error_code``), never on message text.
"""

from typing import Any, Dict, Iterable, Optional


class DomainError(Exception):
    """Base domain error."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------


class ValidationError(DomainError):
    """Malformed id or input. Never retried."""

    def __init__(
        self,
        message: str,
        error_code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, error_code, details)


class NotFoundError(DomainError):
    """A session, consultation or payment does not exist."""

    def __init__(
        self,
        message: str,
        error_code: str = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, error_code, details)


class ConflictError(DomainError):
    """The request contradicts existing state."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, error_code, details)


class PhaseMismatchError(DomainError):
    """A session is not in the phase the operation requires."""

    def __init__(
        self, session_id: str, expected: str, actual: str, requested: Optional[str] = None
    ) -> None:
        if requested:
            message = f"Cannot move session from {actual} to {requested}. Expected one of: {expected}"
        else:
            message = f"Invalid session phase. Expected: {expected}, Current: {actual}"
        super().__init__(
            message,
            "PHASE_MISMATCH",
            {
                "session_id": session_id,
                "expected_phase": expected,
                "current_phase": actual,
                "requested_phase": requested,
            },
        )


class ExternalServiceError(DomainError):
    """An upstream collaborator (diagnosis service, payment gateway) failed."""

    def __init__(
        self,
        service: str,
        message: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        super().__init__(f"{service}: {message}", error_code, {"service": service, **(details or {})})


class InternalError(DomainError):
    """Unexpected failure, surfaced as an opaque server error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "INTERNAL_ERROR", details)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidInputError(ValidationError):
    """Invalid input field."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid {field}: {reason}", "INVALID_INPUT", {"field": field, "reason": reason}
        )


class InvalidTransitionError(ValidationError):
    """Status change not allowed from the current status."""

    def __init__(self, current: str, requested: str, allowed: Iterable[str]) -> None:
        allowed = list(allowed)
        message = (
            f"Invalid status transition from {current} to {requested}. "
            f"Allowed transitions: {', '.join(allowed) if allowed else 'none'}"
        )
        super().__init__(
            message,
            "INVALID_TRANSITION",
            {"current_status": current, "requested_status": requested, "allowed": allowed},
        )


class PaymentNotCompletedError(ValidationError):
    """Payment has not been completed yet."""

    def __init__(self, payment_id: str, status: str) -> None:
        super().__init__(
            f"Payment {payment_id} is not completed (status: {status})",
            "PAYMENT_NOT_COMPLETED",
            {"payment_id": payment_id, "status": status},
        )


class PaymentMismatchError(ValidationError):
    """Payment id does not belong to the session."""

    def __init__(self, session_id: str, payment_id: str) -> None:
        super().__init__(
            f"Payment ID mismatch for session {session_id}",
            "PAYMENT_ID_MISMATCH",
            {"session_id": session_id, "payment_id": payment_id},
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class SessionNotFoundError(NotFoundError):
    """Session missing or expired."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session '{session_id}' not found or expired",
            "SESSION_NOT_FOUND",
            {"session_id": session_id},
        )


class ConsultationNotFoundError(NotFoundError):
    """Consultation not found."""

    def __init__(self, consultation_id: str) -> None:
        super().__init__(
            f"Consultation with ID '{consultation_id}' not found",
            "CONSULTATION_NOT_FOUND",
            {"consultation_id": consultation_id},
        )


class PaymentNotFoundError(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Payment session '{session_id}' not found",
            "PAYMENT_NOT_FOUND",
            {"session_id": session_id},
        )


class ShiftNotFoundError(NotFoundError):
    def __init__(self, shift_id: str) -> None:
        super().__init__(
            f"Doctor shift '{shift_id}' not found", "SHIFT_NOT_FOUND", {"shift_id": shift_id}
        )


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class ActiveConsultationExistsError(ConflictError):
    """Patient already has an active consultation."""

    def __init__(self, patient_id: str, consultation_id: Optional[str] = None) -> None:
        super().__init__(
            "Patient already has an active consultation",
            "ACTIVE_CONSULTATION_EXISTS",
            {"patient_id": patient_id, "consultation_id": consultation_id},
        )


class PatientMismatchError(ConflictError):
    """Session belongs to another patient."""

    def __init__(self, resource_id: str) -> None:
        super().__init__(
            "Patient ID does not match session",
            "PATIENT_MISMATCH",
            {"resource_id": resource_id},
        )


class ConsultationMismatchError(ConflictError):
    """Clinical session accessed under the wrong consultation."""

    def __init__(self, clinical_session_id: str, consultation_id: str) -> None:
        super().__init__(
            "Consultation ID does not match clinical session",
            "CONSULTATION_MISMATCH",
            {"clinical_session_id": clinical_session_id, "consultation_id": consultation_id},
        )


class ConcurrentModificationError(ConflictError):
    """Consultation changed between read and conditional write."""

    def __init__(self, consultation_id: str, expected_status: str) -> None:
        super().__init__(
            f"Consultation '{consultation_id}' was modified concurrently",
            "CONCURRENT_MODIFICATION",
            {"consultation_id": consultation_id, "expected_status": expected_status},
        )


# ---------------------------------------------------------------------------
# External
# ---------------------------------------------------------------------------


class ServiceUnavailableError(ExternalServiceError):
    """Upstream failed and no fallback applies."""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(service, message, "SERVICE_UNAVAILABLE", details)
