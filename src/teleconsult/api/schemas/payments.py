from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...application.ports.services.payment_gateway import PaymentVerification


class CreateOrderBody(BaseModel):
    session_id: str
    patient_id: str
    consultation_type: str


class PaymentRefBody(BaseModel):
    session_id: str
    payment_id: str


class PaymentVerificationOut(BaseModel):
    payment_id: str
    status: str
    amount: float
    currency: str
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None

    @classmethod
    def from_domain(cls, verification: PaymentVerification) -> "PaymentVerificationOut":
        return cls(**vars(verification))
