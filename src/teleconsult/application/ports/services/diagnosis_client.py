"""
Diagnosis HTTP service interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class DiagnosisHttpResponse:
    status: int
    body: Optional[Dict[str, Any]] = None


class DiagnosisTransportError(Exception):
    """Network level failure: connection refused, DNS, timeout."""


class DiagnosisClient(ABC):
    """Transport for the external diagnosis service.

    Non-2xx responses are returned, not raised; only transport failures raise
    ``DiagnosisTransportError``. Retry policy belongs to the caller.
    """

    @abstractmethod
    async def post_diagnosis(
        self, payload: Dict[str, Any], token: str, headers: Optional[Dict[str, str]] = None
    ) -> DiagnosisHttpResponse:
        """POST the diagnosis payload with bearer ``token``."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the service answers its health endpoint."""
