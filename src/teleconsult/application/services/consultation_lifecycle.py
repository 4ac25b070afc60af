"""
Consultation state machine service.

Every status change goes through the transition table on the entity and is
persisted as one conditional write guarded by the status that was read.
Activation is two dependent writes (deactivate the others, then activate the
target) without a compensating rollback: if the second write fails the
patient is left with no active consultation, never with two.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from bson import ObjectId

from teleconsult.application.ports.repositories.consultation_repo import ConsultationRepository
from teleconsult.application.ports.services.audit_service import AuditService
from teleconsult.application.services.doctor_shift_resolver import DoctorShiftResolver
from teleconsult.domain.entities.consultation import Consultation, PaymentInfo, StatusChange
from teleconsult.domain.enums import ConsultationStatus, ConsultationType, TransitionSource
from teleconsult.domain.errors import (
    ActiveConsultationExistsError,
    ConcurrentModificationError,
    ConsultationNotFoundError,
    InternalError,
    InvalidTransitionError,
    PatientMismatchError,
)
from teleconsult.domain.value_objects import ensure_object_id

logger = logging.getLogger("teleconsult.consultations")

DEACTIVATION_REASON = "Deactivated due to new active consultation"
DEACTIVATION_TRIGGER = "consultation_activation"
EXPIRY_ACTOR = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NewConsultation:
    patient_id: str
    consultation_type: ConsultationType
    symptoms: Dict[str, Any] = field(default_factory=dict)
    ai_diagnosis: Dict[str, Any] = field(default_factory=dict)
    payment_info: Optional[PaymentInfo] = None
    session_id: Optional[str] = None
    doctor_id: Optional[str] = None
    status: ConsultationStatus = ConsultationStatus.PAYMENT_CONFIRMED
    created_by: Optional[str] = None


class ConsultationLifecycleService:
    def __init__(
        self,
        repository: ConsultationRepository,
        shift_resolver: DoctorShiftResolver,
        audit: AuditService,
        lifetime_hours: int = 24,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._shifts = shift_resolver
        self._audit = audit
        self._lifetime = timedelta(hours=lifetime_hours)
        self._clock = clock

    async def create_consultation(self, request: NewConsultation) -> Consultation:
        ensure_object_id(request.patient_id, "patient_id")
        await self.validate_new_consultation(request.patient_id)

        doctor_id = request.doctor_id
        if doctor_id:
            ensure_object_id(doctor_id, "doctor_id")
        else:
            doctor_id = await self._shifts.get_active_doctor_for_current_time()

        now = self._clock()
        consultation = Consultation(
            consultation_id=str(ObjectId()),
            patient_id=request.patient_id,
            doctor_id=doctor_id,
            consultation_type=ConsultationType(request.consultation_type),
            status=request.status,
            symptoms=dict(request.symptoms),
            ai_diagnosis=dict(request.ai_diagnosis),
            payment_info=request.payment_info,
            session_id=request.session_id,
            created_at=now,
            updated_at=now,
            expires_at=now + self._lifetime,
        )
        consultation.status_history.append(
            StatusChange(
                status=request.status,
                changed_at=now,
                changed_by=request.created_by or request.patient_id,
                reason="Consultation created",
                previous_status=None,
                source=TransitionSource.PATIENT,
                trigger="consultation_creation",
            )
        )
        saved = await self._repo.save(consultation)
        logger.info(f"Created consultation {saved.consultation_id} for doctor {doctor_id}")
        await self._safe_audit(
            actor=request.created_by or request.patient_id,
            action="create",
            resource_id=saved.consultation_id,
            after={"status": saved.status.value, "doctor_id": doctor_id},
        )
        return saved

    async def get_consultation(self, consultation_id: str) -> Consultation:
        ensure_object_id(consultation_id, "consultation_id")
        consultation = await self._repo.find_by_id(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id)
        return consultation

    async def update_consultation_status(
        self,
        consultation_id: str,
        new_status: ConsultationStatus,
        changed_by: str,
        reason: Optional[str] = None,
        source: TransitionSource = TransitionSource.SYSTEM,
        trigger: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Consultation:
        consultation = await self.get_consultation(consultation_id)
        previous = consultation.status
        change, updates = consultation.plan_transition(
            ConsultationStatus(new_status),
            changed_by,
            reason=reason,
            source=source,
            trigger=trigger,
            notes=notes,
            now=self._clock(),
        )
        updated = await self._repo.apply_status_change(consultation_id, previous, change, updates)
        if updated is None:
            raise ConcurrentModificationError(consultation_id, previous.value)

        logger.info(f"Consultation {consultation_id}: {previous.value} -> {change.status.value}")
        await self._safe_audit(
            actor=changed_by,
            action="status_change",
            resource_id=consultation_id,
            before={"status": previous.value},
            after={"status": change.status.value, "reason": reason},
        )
        return updated

    async def activate_consultation(
        self, consultation_id: str, patient_id: str, changed_by: Optional[str] = None
    ) -> Consultation:
        ensure_object_id(patient_id, "patient_id")
        consultation = await self.get_consultation(consultation_id)
        if consultation.patient_id != patient_id:
            raise PatientMismatchError(consultation_id)
        if consultation.is_terminal:
            raise InvalidTransitionError(consultation.status.value, "active", [])

        actor = changed_by or patient_id
        now = self._clock()
        deactivated = await self._repo.deactivate_others(
            patient_id,
            exclude_id=consultation_id,
            changed_by=actor,
            reason=DEACTIVATION_REASON,
            trigger=DEACTIVATION_TRIGGER,
            now=now,
        )
        if deactivated:
            logger.info(f"Deactivated {deactivated} consultation(s) for patient before activation")

        change = StatusChange(
            status=consultation.status,
            changed_at=now,
            changed_by=actor,
            reason="Consultation activated",
            previous_status=consultation.status,
            source=TransitionSource.SYSTEM,
            trigger=DEACTIVATION_TRIGGER,
        )
        try:
            activated = await self._repo.mark_active(consultation_id, change, now)
        except Exception as e:
            logger.error(
                f"Activation of {consultation_id} failed after deactivating {deactivated} "
                f"consultation(s); patient has no active consultation: {e}",
                exc_info=True,
            )
            raise InternalError(
                "Consultation activation failed", {"consultation_id": consultation_id}
            ) from e
        if activated is None:
            raise ConsultationNotFoundError(consultation_id)

        await self._safe_audit(
            actor=actor,
            action="activate",
            resource_id=consultation_id,
            after={"is_active": True, "deactivated_count": deactivated},
        )
        return activated

    async def has_active_consultation(self, patient_id: str) -> bool:
        return await self.get_active_consultation(patient_id) is not None

    async def get_active_consultation(self, patient_id: str) -> Optional[Consultation]:
        ensure_object_id(patient_id, "patient_id")
        return await self._repo.find_active_by_patient_id(patient_id)

    async def validate_new_consultation(self, patient_id: str) -> None:
        active = await self.get_active_consultation(patient_id)
        if active is not None:
            raise ActiveConsultationExistsError(patient_id, active.consultation_id)

    async def check_consultation_conflicts(self, patient_id: str) -> Dict[str, Any]:
        active = await self.get_active_consultation(patient_id)
        return {
            "has_conflict": active is not None,
            "active_consultation_id": active.consultation_id if active else None,
            "active_status": active.status.value if active else None,
        }

    async def get_patient_consultation_stats(self, patient_id: str) -> Dict[str, Any]:
        ensure_object_id(patient_id, "patient_id")
        consultations = await self._repo.find_by_patient_id(patient_id)
        by_status: Dict[str, int] = {}
        for consultation in consultations:
            by_status[consultation.status.value] = by_status.get(consultation.status.value, 0) + 1
        active = next((c for c in consultations if c.counts_as_active), None)
        return {
            "total": len(consultations),
            "by_status": by_status,
            "completed": by_status.get(ConsultationStatus.COMPLETED.value, 0),
            "cancelled": by_status.get(ConsultationStatus.CANCELLED.value, 0),
            "expired": by_status.get(ConsultationStatus.EXPIRED.value, 0),
            "active_consultation_id": active.consultation_id if active else None,
        }

    async def expire_consultations(self, now: Optional[datetime] = None) -> int:
        """Move overdue consultations to EXPIRED, bypassing the transition table."""
        count = await self._repo.expire_overdue(now or self._clock(), EXPIRY_ACTOR)
        if count:
            logger.info(f"Expired {count} consultation(s)")
        return count

    async def _safe_audit(self, actor: str, action: str, resource_id: str, before=None, after=None) -> None:
        try:
            await self._audit.log_data_access(
                actor=actor,
                resource="consultation",
                action=action,
                resource_id=resource_id,
                before=before,
                after=after,
            )
        except Exception as e:
            logger.warning(f"Consultation audit failed: {e}")
