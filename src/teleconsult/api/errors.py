from teleconsult.domain.errors import (
    ConflictError,
    DomainError,
    ExternalServiceError,
    InternalError,
    NotFoundError,
    PhaseMismatchError,
    ValidationError,
)


class APIError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: dict = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details


class MockPaymentsDisabledError(APIError):
    def __init__(self):
        super().__init__("MOCK_PAYMENTS_DISABLED", "Mock payment completion is disabled in production", 403)


_STATUS_BY_KIND = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (PhaseMismatchError, 409),
    (ConflictError, 409),
    (ExternalServiceError, 503),
    (InternalError, 500),
)


def domain_error_status(exc: DomainError) -> int:
    for kind, status in _STATUS_BY_KIND:
        if isinstance(exc, kind):
            return status
    return 400
