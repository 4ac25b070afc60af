"""
Audit sink interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class AuditService(ABC):
    """Fire-and-forget data access audit trail.

    Implementations must never raise; a failing audit sink cannot abort a
    business operation.
    """

    @abstractmethod
    async def log_data_access(
        self,
        actor: str,
        resource: str,
        action: str,
        resource_id: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        request_metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record one audit event."""
