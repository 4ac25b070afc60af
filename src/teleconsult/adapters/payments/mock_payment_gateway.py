"""
Simulated payment gateway.

Orders are kept in the cache under ``payment:<session_id>`` with a reverse
index ``payment:id:<payment_id>``. With ``auto_complete`` a verification
completes a pending order, which mimics a provider callback arriving before
the client confirms.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from teleconsult.application.ports.services.audit_service import AuditService
from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.application.ports.services.payment_gateway import (
    PaymentGateway,
    PaymentOrder,
    PaymentVerification,
)
from teleconsult.core.config import PaymentSettings
from teleconsult.domain.enums import ConsultationType
from teleconsult.domain.errors import (
    InvalidInputError,
    PaymentMismatchError,
    PaymentNotFoundError,
)

logger = logging.getLogger("teleconsult.payments")

PAYMENT_PREFIX = "payment:"
PAYMENT_ID_PREFIX = "payment:id:"

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MockPaymentGateway(PaymentGateway):
    def __init__(
        self,
        cache: CacheService,
        audit: AuditService,
        settings: Optional[PaymentSettings] = None,
        auto_complete: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._audit = audit
        self._settings = settings or PaymentSettings()
        self._auto_complete = auto_complete
        self._clock = clock

    def get_pricing(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"amount": amount, "currency": self._settings.currency}
            for name, amount in self._settings.pricing.items()
        }

    async def create_order(
        self, session_id: str, patient_id: str, consultation_type: str
    ) -> PaymentOrder:
        try:
            consultation_type = ConsultationType(consultation_type).value
        except ValueError:
            raise InvalidInputError("consultation_type", f"unsupported type {consultation_type}") from None
        if consultation_type not in self._settings.pricing:
            raise InvalidInputError("consultation_type", f"no price configured for {consultation_type}")

        now = self._clock()
        existing = await self._cache.get(PAYMENT_PREFIX + session_id)
        if existing and existing.get("status") == STATUS_PENDING:
            order = self._order_from_record(existing)
            if order.expires_at > now and order.consultation_type == consultation_type:
                logger.info(f"Returning pending payment order {order.payment_id} for session {session_id}")
                return order

        order = PaymentOrder(
            payment_id=f"mock_pay_{uuid.uuid4().hex[:16]}",
            session_id=session_id,
            patient_id=patient_id,
            consultation_type=consultation_type,
            status=STATUS_PENDING,
            amount=float(self._settings.pricing[consultation_type]),
            currency=self._settings.currency,
            expires_at=now + timedelta(minutes=self._settings.order_ttl_minutes),
            created_at=now,
        )
        await self._save(order.to_dict())
        await self._cache.set(PAYMENT_ID_PREFIX + order.payment_id, {"session_id": session_id}, self._settings.record_ttl_seconds)
        await self._safe_audit(patient_id, "create_order", order.payment_id, {"amount": order.amount})
        logger.info(f"Created payment order {order.payment_id} for session {session_id}")
        return order

    async def verify_payment(self, session_id: str, payment_id: str) -> PaymentVerification:
        record = await self._require(session_id, payment_id)
        if record["status"] == STATUS_PENDING:
            if datetime.fromisoformat(record["expires_at"]) <= self._clock():
                record["status"] = STATUS_FAILED
                await self._save(record)
            elif self._auto_complete:
                return await self.complete_payment(session_id, payment_id)
        return self._verification_from_record(record)

    async def complete_payment(self, session_id: str, payment_id: str) -> PaymentVerification:
        record = await self._require(session_id, payment_id)
        if record["status"] != STATUS_COMPLETED:
            record["status"] = STATUS_COMPLETED
            record["paid_at"] = self._clock().isoformat()
            record["transaction_id"] = f"txn_{uuid.uuid4().hex[:20]}"
            await self._save(record)
            await self._safe_audit(record["patient_id"], "complete_payment", payment_id, {"status": STATUS_COMPLETED})
        return self._verification_from_record(record)

    async def _require(self, session_id: str, payment_id: str) -> Dict[str, Any]:
        if not payment_id:
            raise InvalidInputError("payment_id", "payment id is required")
        record = await self._cache.get(PAYMENT_PREFIX + session_id)
        if not record:
            raise PaymentNotFoundError(session_id)
        if record.get("payment_id") != payment_id:
            raise PaymentMismatchError(session_id, payment_id)
        return record

    async def _save(self, record: Dict[str, Any]) -> None:
        await self._cache.set(PAYMENT_PREFIX + record["session_id"], record, self._settings.record_ttl_seconds)

    @staticmethod
    def _order_from_record(record: Dict[str, Any]) -> PaymentOrder:
        return PaymentOrder(
            payment_id=record["payment_id"],
            session_id=record["session_id"],
            patient_id=record["patient_id"],
            consultation_type=record["consultation_type"],
            status=record["status"],
            amount=float(record["amount"]),
            currency=record["currency"],
            expires_at=datetime.fromisoformat(record["expires_at"]),
            created_at=datetime.fromisoformat(record["created_at"]),
        )

    @staticmethod
    def _verification_from_record(record: Dict[str, Any]) -> PaymentVerification:
        paid_at = record.get("paid_at")
        return PaymentVerification(
            payment_id=record["payment_id"],
            status=record["status"],
            amount=float(record["amount"]),
            currency=record["currency"],
            paid_at=datetime.fromisoformat(paid_at) if paid_at else None,
            transaction_id=record.get("transaction_id"),
        )

    async def _safe_audit(self, actor: str, action: str, payment_id: str, after: Dict[str, Any]) -> None:
        try:
            await self._audit.log_data_access(
                actor=actor, resource="payment", action=action, resource_id=payment_id, after=after
            )
        except Exception as e:
            logger.warning(f"Payment audit failed: {e}")
