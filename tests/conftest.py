"""
Shared fixtures and in-memory fakes for the service-level tests.
"""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId

from teleconsult.adapters.cache.memory_cache import InMemoryCacheService
from teleconsult.adapters.payments.mock_payment_gateway import MockPaymentGateway
from teleconsult.application.ports.repositories.consultation_repo import ConsultationRepository
from teleconsult.application.ports.repositories.doctor_shift_repo import DoctorShiftRepository
from teleconsult.application.ports.services.audit_service import AuditService
from teleconsult.application.ports.services.diagnosis_client import (
    DiagnosisClient,
    DiagnosisHttpResponse,
)
from teleconsult.application.services.consultation_lifecycle import ConsultationLifecycleService
from teleconsult.application.services.doctor_shift_resolver import DoctorShiftResolver
from teleconsult.application.services.intake_temp_store import IntakeTempStore
from teleconsult.application.services.session_recovery import SessionRecoveryPipeline
from teleconsult.application.services.session_store import SessionStore
from teleconsult.core.config import ServiceTokenSettings
from teleconsult.domain.entities.consultation import Consultation, StatusChange
from teleconsult.domain.entities.doctor_shift import DoctorShift
from teleconsult.domain.enums import (
    ConsultationStatus,
    ConsultationType,
    ShiftStatus,
    ShiftType,
    TransitionSource,
)

# 12:00 in Asia/Kolkata.
FIXED_NOW = datetime(2025, 1, 15, 6, 30, tzinfo=timezone.utc)


def new_id() -> str:
    return str(ObjectId())


class FakeClock:
    """Settable clock shared by the services under test."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingAuditService(AuditService):
    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    async def log_data_access(
        self,
        actor,
        resource,
        action,
        resource_id=None,
        before=None,
        after=None,
        request_metadata=None,
    ) -> None:
        self.events.append(
            {
                "actor": actor,
                "resource": resource,
                "action": action,
                "resource_id": resource_id,
                "before": before,
                "after": after,
            }
        )


class FakeDiagnosisClient(DiagnosisClient):
    """Replays scripted responses; an Exception instance in the script is raised."""

    def __init__(self, script: Optional[List[Any]] = None, healthy: bool = True) -> None:
        self.script = list(script or [])
        self.calls: List[Dict[str, Any]] = []
        self.healthy = healthy

    async def post_diagnosis(self, payload, token, headers=None) -> DiagnosisHttpResponse:
        self.calls.append({"payload": payload, "token": token, "headers": headers or {}})
        if not self.script:
            raise AssertionError("diagnosis client called more often than scripted")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    async def health_check(self) -> bool:
        return self.healthy

    @property
    def call_count(self) -> int:
        return len(self.calls)


class InMemoryConsultationRepository(ConsultationRepository):
    """Dictionary-backed repository with the same write semantics as the Mongo one."""

    def __init__(self) -> None:
        self.docs: Dict[str, Consultation] = {}
        self.fail_mark_active = False

    async def save(self, consultation: Consultation) -> Consultation:
        self.docs[consultation.consultation_id] = copy.deepcopy(consultation)
        return copy.deepcopy(consultation)

    async def find_by_id(self, consultation_id: str) -> Optional[Consultation]:
        doc = self.docs.get(consultation_id)
        if doc is None or doc.is_deleted:
            return None
        return copy.deepcopy(doc)

    async def find_by_patient_id(self, patient_id: str) -> List[Consultation]:
        docs = [d for d in self.docs.values() if d.patient_id == patient_id and not d.is_deleted]
        docs.sort(key=lambda d: d.created_at, reverse=True)
        return [copy.deepcopy(d) for d in docs]

    async def find_active_by_patient_id(self, patient_id: str) -> Optional[Consultation]:
        for doc in self.docs.values():
            if doc.patient_id == patient_id and doc.counts_as_active:
                return copy.deepcopy(doc)
        return None

    async def apply_status_change(self, consultation_id, expected_status, change, updates):
        doc = self.docs.get(consultation_id)
        if doc is None or doc.is_deleted or doc.status != expected_status:
            return None
        doc.apply(change, updates)
        return copy.deepcopy(doc)

    async def deactivate_others(self, patient_id, exclude_id, changed_by, reason, trigger, now) -> int:
        count = 0
        for doc in self.docs.values():
            if doc.patient_id != patient_id or doc.consultation_id == exclude_id or not doc.counts_as_active:
                continue
            self._bulk_transition(doc, ConsultationStatus.CANCELLED, "cancelled_at", changed_by, reason, trigger, now)
            count += 1
        return count

    async def mark_active(self, consultation_id, change, now):
        if self.fail_mark_active:
            raise RuntimeError("write failed")
        doc = self.docs.get(consultation_id)
        if doc is None or doc.is_deleted:
            return None
        doc.is_active = True
        doc.activated_at = now
        doc.updated_at = now
        if change is not None:
            doc.status_history.append(change)
        return copy.deepcopy(doc)

    async def expire_overdue(self, now, changed_by) -> int:
        count = 0
        for doc in self.docs.values():
            if doc.is_deleted or doc.is_terminal or doc.expires_at >= now:
                continue
            self._bulk_transition(
                doc,
                ConsultationStatus.EXPIRED,
                "expired_at",
                changed_by,
                "Consultation expired automatically",
                "auto_expiry",
                now,
            )
            count += 1
        return count

    @staticmethod
    def _bulk_transition(doc, status, timestamp_field, changed_by, reason, trigger, now) -> None:
        doc.status_history.append(
            StatusChange(
                status=status,
                changed_at=now,
                changed_by=changed_by,
                reason=reason,
                previous_status=doc.status,
                source=TransitionSource.SYSTEM,
                trigger=trigger,
            )
        )
        doc.status = status
        doc.is_active = False
        setattr(doc, timestamp_field, now)
        doc.updated_at = now


class InMemoryDoctorShiftRepository(DoctorShiftRepository):
    def __init__(self) -> None:
        self.shifts: Dict[str, DoctorShift] = {}
        self.fail_lookups = False
        self.lookups = 0

    async def save(self, shift: DoctorShift) -> DoctorShift:
        if shift.shift_id is None:
            shift.shift_id = new_id()
        self.shifts[shift.shift_id] = copy.deepcopy(shift)
        return copy.deepcopy(shift)

    async def find_by_id(self, shift_id: str) -> Optional[DoctorShift]:
        shift = self.shifts.get(shift_id)
        return copy.deepcopy(shift) if shift else None

    async def find_by_doctor_and_type(self, doctor_id: str, shift_type: ShiftType) -> Optional[DoctorShift]:
        for shift in self.shifts.values():
            if shift.doctor_id == doctor_id and shift.shift_type == shift_type:
                return copy.deepcopy(shift)
        return None

    async def find_effective(self, now: datetime) -> List[DoctorShift]:
        self.lookups += 1
        if self.fail_lookups:
            raise RuntimeError("database unavailable")
        return [copy.deepcopy(s) for s in self.shifts.values() if s.is_effective(now)]

    async def find_all(self) -> List[DoctorShift]:
        return [copy.deepcopy(s) for s in self.shifts.values()]

    async def update_status(self, shift_id: str, status: ShiftStatus) -> Optional[DoctorShift]:
        shift = self.shifts.get(shift_id)
        if shift is None:
            return None
        shift.status = status
        return copy.deepcopy(shift)

    async def count(self) -> int:
        return len(self.shifts)


async def seed_consultation(
    repo: InMemoryConsultationRepository,
    patient_id: str,
    status: ConsultationStatus = ConsultationStatus.ACTIVE,
    is_active: bool = True,
    created_at: datetime = FIXED_NOW,
) -> Consultation:
    consultation = Consultation(
        consultation_id=new_id(),
        patient_id=patient_id,
        doctor_id=new_id(),
        consultation_type=ConsultationType.CHAT,
        status=status,
        is_active=is_active,
        created_at=created_at,
        updated_at=created_at,
    )
    return await repo.save(consultation)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache():
    return InMemoryCacheService()


@pytest.fixture
def audit():
    return RecordingAuditService()


@pytest.fixture
def token_settings():
    return ServiceTokenSettings(secret="test-service-token-secret-0123456789abcdef")


@pytest.fixture
def patient_id():
    return new_id()


@pytest.fixture
def consultation_repo():
    return InMemoryConsultationRepository()


@pytest.fixture
def shift_repo():
    return InMemoryDoctorShiftRepository()


@pytest.fixture
def shift_resolver(shift_repo, cache, clock):
    return DoctorShiftResolver(shift_repo, cache, clock=clock)


@pytest.fixture
def lifecycle(consultation_repo, shift_resolver, audit, clock):
    return ConsultationLifecycleService(consultation_repo, shift_resolver, audit, clock=clock)


@pytest.fixture
def session_store(cache, clock):
    return SessionStore(cache, clock=clock)


@pytest.fixture
def temp_store(cache):
    return IntakeTempStore(cache)


@pytest.fixture
def recovery(temp_store):
    return SessionRecoveryPipeline(temp_store)


@pytest.fixture
def payments(cache, audit, clock):
    return MockPaymentGateway(cache, audit, clock=clock)
