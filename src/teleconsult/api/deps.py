"""FastAPI dependency providers.

Infrastructure singletons are built once per process; use cases are
assembled per request from the service providers so tests can override any
single provider through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from ..adapters.cache.memory_cache import InMemoryCacheService
from ..adapters.cache.redis_cache import RedisCacheService
from ..adapters.db.mongo.repositories import (
    MongoConsultationRepository,
    MongoDoctorShiftRepository,
)
from ..adapters.external.diagnosis_client_http import AiohttpDiagnosisClient
from ..adapters.payments.mock_payment_gateway import MockPaymentGateway
from ..application.ports.repositories.consultation_repo import ConsultationRepository
from ..application.ports.repositories.doctor_shift_repo import DoctorShiftRepository
from ..application.ports.services.audit_service import AuditService
from ..application.ports.services.cache_service import CacheService
from ..application.ports.services.payment_gateway import PaymentGateway
from ..application.services.consultation_lifecycle import ConsultationLifecycleService
from ..application.services.diagnosis_orchestrator import DiagnosisOrchestrator
from ..application.services.doctor_shift_resolver import DoctorShiftResolver
from ..application.services.intake_temp_store import IntakeTempStore
from ..application.services.retry_policy import RetryPolicy
from ..application.services.service_token_manager import ServiceTokenManager
from ..application.services.session_recovery import SessionRecoveryPipeline
from ..application.services.session_store import SessionStore
from ..application.use_cases.collect_symptoms import CollectSymptomsUseCase
from ..application.use_cases.confirm_payment import ConfirmPaymentUseCase
from ..application.use_cases.select_consultation_type import SelectConsultationTypeUseCase
from ..core.config import get_settings
from ..observability.audit import LoggingAuditService

logger = logging.getLogger("teleconsult")


@lru_cache()
def get_cache_service() -> CacheService:
    """Redis when enabled, otherwise a per-process cache."""
    settings = get_settings()
    if settings.redis.enabled:
        return RedisCacheService(settings.redis)
    logger.warning("Redis disabled; using in-process cache (single instance only)")
    return InMemoryCacheService()


@lru_cache()
def get_audit_service() -> AuditService:
    return LoggingAuditService()


@lru_cache()
def get_consultation_repository() -> ConsultationRepository:
    return MongoConsultationRepository()


@lru_cache()
def get_doctor_shift_repository() -> DoctorShiftRepository:
    return MongoDoctorShiftRepository()


@lru_cache()
def get_token_manager() -> ServiceTokenManager:
    return ServiceTokenManager(get_cache_service(), get_settings().service_token)


@lru_cache()
def get_diagnosis_orchestrator() -> DiagnosisOrchestrator:
    settings = get_settings().diagnosis
    return DiagnosisOrchestrator(
        client=AiohttpDiagnosisClient(settings),
        tokens=get_token_manager(),
        cache=get_cache_service(),
        audit=get_audit_service(),
        retry_policy=RetryPolicy.from_settings(settings),
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )


@lru_cache()
def get_session_store() -> SessionStore:
    return SessionStore(get_cache_service(), get_settings().session)


@lru_cache()
def get_intake_temp_store() -> IntakeTempStore:
    return IntakeTempStore(get_cache_service(), get_settings().session.temp_data_ttl_seconds)


@lru_cache()
def get_recovery_pipeline() -> SessionRecoveryPipeline:
    return SessionRecoveryPipeline(get_intake_temp_store())


@lru_cache()
def get_payment_gateway() -> PaymentGateway:
    return MockPaymentGateway(get_cache_service(), get_audit_service(), get_settings().payment)


@lru_cache()
def get_shift_resolver() -> DoctorShiftResolver:
    return DoctorShiftResolver(get_doctor_shift_repository(), get_cache_service(), get_settings().shift)


@lru_cache()
def get_lifecycle_service() -> ConsultationLifecycleService:
    return ConsultationLifecycleService(
        get_consultation_repository(),
        get_shift_resolver(),
        get_audit_service(),
        lifetime_hours=get_settings().consultation.lifetime_hours,
    )


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
IntakeTempStoreDep = Annotated[IntakeTempStore, Depends(get_intake_temp_store)]
RecoveryPipelineDep = Annotated[SessionRecoveryPipeline, Depends(get_recovery_pipeline)]
DiagnosisOrchestratorDep = Annotated[DiagnosisOrchestrator, Depends(get_diagnosis_orchestrator)]
PaymentGatewayDep = Annotated[PaymentGateway, Depends(get_payment_gateway)]
ShiftResolverDep = Annotated[DoctorShiftResolver, Depends(get_shift_resolver)]
LifecycleServiceDep = Annotated[ConsultationLifecycleService, Depends(get_lifecycle_service)]


def get_collect_symptoms_use_case(
    sessions: SessionStoreDep,
    orchestrator: DiagnosisOrchestratorDep,
    temp_store: IntakeTempStoreDep,
    payments: PaymentGatewayDep,
) -> CollectSymptomsUseCase:
    return CollectSymptomsUseCase(sessions, orchestrator, temp_store, payments)


def get_select_consultation_type_use_case(
    sessions: SessionStoreDep, temp_store: IntakeTempStoreDep, payments: PaymentGatewayDep
) -> SelectConsultationTypeUseCase:
    return SelectConsultationTypeUseCase(sessions, temp_store, payments)


def get_confirm_payment_use_case(
    payments: PaymentGatewayDep,
    recovery: RecoveryPipelineDep,
    lifecycle: LifecycleServiceDep,
    sessions: SessionStoreDep,
    temp_store: IntakeTempStoreDep,
) -> ConfirmPaymentUseCase:
    return ConfirmPaymentUseCase(payments, recovery, lifecycle, sessions, temp_store)


CollectSymptomsUseCaseDep = Annotated[CollectSymptomsUseCase, Depends(get_collect_symptoms_use_case)]
SelectConsultationTypeUseCaseDep = Annotated[
    SelectConsultationTypeUseCase, Depends(get_select_consultation_type_use_case)
]
ConfirmPaymentUseCaseDep = Annotated[ConfirmPaymentUseCase, Depends(get_confirm_payment_use_case)]
