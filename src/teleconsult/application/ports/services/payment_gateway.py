"""
Payment gateway interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class PaymentOrder:
    payment_id: str
    session_id: str
    patient_id: str
    consultation_type: str
    status: str
    amount: float
    currency: str
    expires_at: datetime
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "session_id": self.session_id,
            "patient_id": self.patient_id,
            "consultation_type": self.consultation_type,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PaymentVerification:
    payment_id: str
    status: str  # pending | completed | failed
    amount: float
    currency: str
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class PaymentGateway(ABC):
    """Order creation and verification against a payment provider."""

    @abstractmethod
    async def create_order(
        self, session_id: str, patient_id: str, consultation_type: str
    ) -> PaymentOrder:
        """Create an order, or return the pending one for the same session."""

    @abstractmethod
    async def verify_payment(self, session_id: str, payment_id: str) -> PaymentVerification:
        """Current status of a payment. Raises NotFound/Validation domain errors."""

    @abstractmethod
    async def complete_payment(self, session_id: str, payment_id: str) -> PaymentVerification:
        """Mark a payment completed (simulated providers only)."""

    @abstractmethod
    def get_pricing(self) -> Dict[str, Dict[str, Any]]:
        """Price list per consultation type."""
