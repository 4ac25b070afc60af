"""Confirm payment use case: turn a paid intake session into a consultation."""

import logging
from typing import Optional

from teleconsult.application.ports.services.payment_gateway import PaymentGateway
from teleconsult.application.services.consultation_lifecycle import (
    ConsultationLifecycleService,
    NewConsultation,
)
from teleconsult.application.services.intake_temp_store import IntakeTempStore, intake_keys
from teleconsult.application.services.session_recovery import SessionRecoveryPipeline
from teleconsult.application.services.session_store import SessionStore
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.entities.consultation import Consultation, PaymentInfo
from teleconsult.domain.enums import ConsultationStatus, SessionPhase, TransitionSource
from teleconsult.domain.errors import DomainError, InvalidInputError, PaymentNotCompletedError
from teleconsult.domain.value_objects import ensure_object_id

logger = logging.getLogger("teleconsult.intake")


class ConfirmPaymentRequest:
    """Request for confirming a payment."""

    def __init__(self, session_id: str, patient_id: str, payment_id: str):
        self.session_id = session_id
        self.patient_id = patient_id
        self.payment_id = payment_id


class ConfirmPaymentResponse:
    """Response for confirming a payment."""

    def __init__(
        self,
        consultation: Consultation,
        clinical_session_id: str,
        is_recovered: bool,
        recovery_reason: Optional[str] = None,
    ):
        self.consultation = consultation
        self.clinical_session_id = clinical_session_id
        self.is_recovered = is_recovered
        self.recovery_reason = recovery_reason


class ConfirmPaymentUseCase:
    def __init__(
        self,
        payments: PaymentGateway,
        recovery: SessionRecoveryPipeline,
        lifecycle: ConsultationLifecycleService,
        sessions: SessionStore,
        temp_store: IntakeTempStore,
    ):
        self._payments = payments
        self._recovery = recovery
        self._lifecycle = lifecycle
        self._sessions = sessions
        self._temp = temp_store

    async def execute(self, request: ConfirmPaymentRequest) -> ConfirmPaymentResponse:
        if not request.session_id:
            raise InvalidInputError("session_id", "session id is required")
        if not request.payment_id:
            raise InvalidInputError("payment_id", "payment id is required")
        ensure_object_id(request.patient_id, "patient_id")

        # The gateway is authoritative; nothing else is touched for an unpaid order.
        verification = await self._payments.verify_payment(request.session_id, request.payment_id)
        if not verification.is_completed:
            raise PaymentNotCompletedError(request.payment_id, verification.status)

        intake = await self._recovery.recover(request.session_id, request.patient_id)
        if intake.is_recovered:
            logger.warning(
                f"Creating consultation for session {request.session_id} from recovered data "
                f"({intake.recovery_reason})"
            )

        consultation = await self._lifecycle.create_consultation(
            NewConsultation(
                patient_id=request.patient_id,
                consultation_type=intake.selected_consultation_type,
                symptoms=intake.consultation_symptoms(),
                ai_diagnosis=intake.consultation_diagnosis(),
                payment_info=PaymentInfo(
                    payment_id=verification.payment_id,
                    amount=verification.amount,
                    currency=verification.currency,
                    status=verification.status,
                    paid_at=verification.paid_at,
                    transaction_id=verification.transaction_id,
                ),
                session_id=request.session_id,
                status=ConsultationStatus.PAYMENT_CONFIRMED,
                created_by=request.patient_id,
            )
        )
        consultation_id = consultation.consultation_id
        await self._lifecycle.activate_consultation(consultation_id, request.patient_id)
        clinical = await self._sessions.create_clinical_session(consultation_id, request.patient_id)
        consultation = await self._lifecycle.update_consultation_status(
            consultation_id,
            ConsultationStatus.CLINICAL_ASSESSMENT_PENDING,
            changed_by=request.patient_id,
            reason="Payment confirmed",
            source=TransitionSource.PATIENT,
            trigger="payment_confirmation",
        )

        await self._close_intake_session(request, consultation_id, clinical.clinical_session_id)
        failures = await self._temp.delete_many(intake_keys(request.session_id))
        if failures:
            logger.warning(f"{failures} temp key(s) left behind for session {request.session_id}")

        return ConfirmPaymentResponse(
            consultation=consultation,
            clinical_session_id=clinical.clinical_session_id,
            is_recovered=intake.is_recovered,
            recovery_reason=intake.recovery_reason,
        )

    async def _close_intake_session(
        self, request: ConfirmPaymentRequest, consultation_id: str, clinical_session_id: str
    ) -> None:
        """Advance the intake session when it still exists. Never fails the purchase."""
        try:
            session = await self._sessions.get_session(request.session_id)
            if session is None or session.patient_id != request.patient_id:
                return
            if session.current_phase == SessionPhase.PAYMENT_PENDING:
                session = await self._sessions.update_session(
                    request.session_id,
                    SessionPhase.PAYMENT_CONFIRMED,
                    {"payment_confirmed": True},
                    patient_id=request.patient_id,
                )
            if session.current_phase in (SessionPhase.PAYMENT_CONFIRMED, SessionPhase.DETAILED_COLLECTION):
                await self._sessions.update_session(
                    request.session_id,
                    SessionPhase.CONSULTATION_CREATED,
                    {"consultation_id": consultation_id, "clinical_session_id": clinical_session_id},
                    patient_id=request.patient_id,
                )
        except (DomainError, CacheError) as e:
            logger.warning(f"Could not advance intake session {request.session_id}: {e}")
