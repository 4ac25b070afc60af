"""
MongoDB implementation of ConsultationRepository.

Status changes are single-document ``find_one_and_update`` calls guarded by
the expected status. Bulk deactivation and expiry use pipeline updates so each
pushed history entry records that document's own previous status.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from teleconsult.application.ports.repositories.consultation_repo import ConsultationRepository
from teleconsult.domain.entities.consultation import Consultation, PaymentInfo, StatusChange
from teleconsult.domain.enums import (
    TERMINAL_STATUSES,
    ConsultationStatus,
    ConsultationType,
    TransitionSource,
)

from ..models.consultation_m import (
    ConsultationMongo,
    PaymentInfoMongo,
    StatusChangeMetadataMongo,
    StatusChangeMongo,
)

logger = logging.getLogger("teleconsult.consultations")

_TERMINAL_VALUES = [s.value for s in TERMINAL_STATUSES]


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo returns naive UTC datetimes."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _literal(value: Any) -> Dict[str, Any]:
    return {"$literal": value}


class MongoConsultationRepository(ConsultationRepository):
    """MongoDB implementation of ConsultationRepository."""

    @staticmethod
    def _collection():
        return ConsultationMongo.get_motor_collection()

    async def save(self, consultation: Consultation) -> Consultation:
        existing = await ConsultationMongo.find_one(
            ConsultationMongo.consultation_id == consultation.consultation_id
        )
        consultation_mongo = self._domain_to_mongo(consultation)
        if existing is not None:
            consultation_mongo.id = existing.id
        await consultation_mongo.save()
        return self._mongo_to_domain(consultation_mongo)

    async def find_by_id(self, consultation_id: str) -> Optional[Consultation]:
        consultation_mongo = await ConsultationMongo.find_one(
            ConsultationMongo.consultation_id == consultation_id,
            ConsultationMongo.is_deleted == False,  # noqa: E712
        )
        if not consultation_mongo:
            return None
        return self._mongo_to_domain(consultation_mongo)

    async def find_by_patient_id(self, patient_id: str) -> List[Consultation]:
        consultations_mongo = await ConsultationMongo.find(
            ConsultationMongo.patient_id == patient_id,
            ConsultationMongo.is_deleted == False,  # noqa: E712
        ).sort([("created_at", -1)]).to_list()
        return [self._mongo_to_domain(c) for c in consultations_mongo]

    async def find_active_by_patient_id(self, patient_id: str) -> Optional[Consultation]:
        consultation_mongo = await ConsultationMongo.find_one(
            {
                "patient_id": patient_id,
                "is_active": True,
                "is_deleted": False,
                "status": {"$nin": _TERMINAL_VALUES},
            }
        )
        if not consultation_mongo:
            return None
        return self._mongo_to_domain(consultation_mongo)

    async def apply_status_change(
        self,
        consultation_id: str,
        expected_status: ConsultationStatus,
        change: StatusChange,
        updates: Dict[str, Any],
    ) -> Optional[Consultation]:
        doc = await self._collection().find_one_and_update(
            {
                "consultation_id": consultation_id,
                "status": expected_status.value,
                "is_deleted": False,
            },
            {
                "$set": {"status": change.status.value, "updated_at": change.changed_at, **updates},
                "$push": {"status_history": self._change_to_doc(change)},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return self._mongo_to_domain(ConsultationMongo.model_validate(doc))

    async def deactivate_others(
        self,
        patient_id: str,
        exclude_id: str,
        changed_by: str,
        reason: str,
        trigger: str,
        now: datetime,
    ) -> int:
        result = await self._collection().update_many(
            {
                "patient_id": patient_id,
                "consultation_id": {"$ne": exclude_id},
                "is_active": True,
                "is_deleted": False,
                "status": {"$nin": _TERMINAL_VALUES},
            },
            self._bulk_transition_pipeline(
                ConsultationStatus.CANCELLED, "cancelled_at", changed_by, reason, trigger, now
            ),
        )
        return result.modified_count

    async def mark_active(
        self, consultation_id: str, change: Optional[StatusChange], now: datetime
    ) -> Optional[Consultation]:
        update: Dict[str, Any] = {"$set": {"is_active": True, "activated_at": now, "updated_at": now}}
        if change is not None:
            update["$push"] = {"status_history": self._change_to_doc(change)}
        doc = await self._collection().find_one_and_update(
            {"consultation_id": consultation_id, "is_deleted": False},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return self._mongo_to_domain(ConsultationMongo.model_validate(doc))

    async def expire_overdue(self, now: datetime, changed_by: str) -> int:
        result = await self._collection().update_many(
            {
                "expires_at": {"$lt": now},
                "status": {"$nin": _TERMINAL_VALUES},
                "is_deleted": False,
            },
            self._bulk_transition_pipeline(
                ConsultationStatus.EXPIRED,
                "expired_at",
                changed_by,
                "Consultation expired automatically",
                "auto_expiry",
                now,
            ),
        )
        return result.modified_count

    @staticmethod
    def _bulk_transition_pipeline(
        status: ConsultationStatus,
        timestamp_field: str,
        changed_by: str,
        reason: str,
        trigger: str,
        now: datetime,
    ) -> List[Dict[str, Any]]:
        entry = {
            "status": _literal(status.value),
            "changed_at": now,
            "changed_by": _literal(changed_by),
            "reason": _literal(reason),
            "previous_status": "$status",
            "metadata": {
                "source": _literal(TransitionSource.SYSTEM.value),
                "trigger": _literal(trigger),
                "notes": None,
            },
        }
        return [
            {
                "$set": {
                    "status_history": {
                        "$concatArrays": [{"$ifNull": ["$status_history", []]}, [entry]]
                    }
                }
            },
            {
                "$set": {
                    "status": _literal(status.value),
                    "is_active": False,
                    timestamp_field: now,
                    "updated_at": now,
                }
            },
        ]

    @staticmethod
    def _change_to_doc(change: StatusChange) -> Dict[str, Any]:
        return StatusChangeMongo(
            status=change.status.value,
            changed_at=change.changed_at,
            changed_by=change.changed_by,
            reason=change.reason,
            previous_status=change.previous_status.value if change.previous_status else None,
            metadata=StatusChangeMetadataMongo(
                source=change.source.value, trigger=change.trigger, notes=change.notes
            ),
        ).model_dump()

    def _domain_to_mongo(self, consultation: Consultation) -> ConsultationMongo:
        payment = consultation.payment_info
        return ConsultationMongo(
            consultation_id=consultation.consultation_id,
            patient_id=consultation.patient_id,
            doctor_id=consultation.doctor_id,
            consultation_type=consultation.consultation_type.value,
            status=consultation.status.value,
            is_active=consultation.is_active,
            status_history=[StatusChangeMongo(**self._change_to_doc(c)) for c in consultation.status_history],
            symptoms=consultation.symptoms,
            ai_diagnosis=consultation.ai_diagnosis,
            payment_info=PaymentInfoMongo(**vars(payment)) if payment else None,
            session_id=consultation.session_id,
            created_at=consultation.created_at,
            updated_at=consultation.updated_at,
            expires_at=consultation.expires_at,
            activated_at=consultation.activated_at,
            completed_at=consultation.completed_at,
            cancelled_at=consultation.cancelled_at,
            expired_at=consultation.expired_at,
            is_deleted=consultation.is_deleted,
        )

    def _mongo_to_domain(self, consultation_mongo: ConsultationMongo) -> Consultation:
        history = [
            StatusChange(
                status=ConsultationStatus(entry.status),
                changed_at=_aware(entry.changed_at),
                changed_by=entry.changed_by,
                reason=entry.reason,
                previous_status=ConsultationStatus(entry.previous_status) if entry.previous_status else None,
                source=TransitionSource(entry.metadata.source),
                trigger=entry.metadata.trigger,
                notes=entry.metadata.notes,
            )
            for entry in consultation_mongo.status_history
        ]
        payment = consultation_mongo.payment_info
        return Consultation(
            consultation_id=consultation_mongo.consultation_id,
            patient_id=consultation_mongo.patient_id,
            doctor_id=consultation_mongo.doctor_id,
            consultation_type=ConsultationType(consultation_mongo.consultation_type),
            status=ConsultationStatus(consultation_mongo.status),
            is_active=consultation_mongo.is_active,
            status_history=history,
            symptoms=consultation_mongo.symptoms,
            ai_diagnosis=consultation_mongo.ai_diagnosis,
            payment_info=PaymentInfo(
                payment_id=payment.payment_id,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                paid_at=_aware(payment.paid_at),
                transaction_id=payment.transaction_id,
            )
            if payment
            else None,
            session_id=consultation_mongo.session_id,
            created_at=_aware(consultation_mongo.created_at),
            updated_at=_aware(consultation_mongo.updated_at),
            expires_at=_aware(consultation_mongo.expires_at),
            activated_at=_aware(consultation_mongo.activated_at),
            completed_at=_aware(consultation_mongo.completed_at),
            cancelled_at=_aware(consultation_mongo.cancelled_at),
            expired_at=_aware(consultation_mongo.expired_at),
            is_deleted=consultation_mongo.is_deleted,
        )
