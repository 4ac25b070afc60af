"""
Service token value object.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ServiceToken:
    """Bearer credential for the diagnosis service with its validity window."""

    token: str
    issued_at: datetime
    expires_at: datetime

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        return int((self.expires_at - now).total_seconds())

    def is_usable(self, buffer_seconds: int, now: Optional[datetime] = None) -> bool:
        """True while more than ``buffer_seconds`` of validity remain."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at - timedelta(seconds=buffer_seconds) > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceToken":
        return cls(
            token=data["token"],
            issued_at=datetime.fromisoformat(data["issued_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )
