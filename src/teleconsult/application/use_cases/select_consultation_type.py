"""Select consultation type use case: open a payment order for the chosen type."""

import logging

from teleconsult.application.ports.services.payment_gateway import PaymentGateway, PaymentOrder
from teleconsult.application.services.intake_temp_store import IntakeTempStore, selection_key
from teleconsult.application.services.session_store import SessionStore
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.enums import ConsultationType, SessionPhase
from teleconsult.domain.errors import InvalidInputError

logger = logging.getLogger("teleconsult.intake")


class SelectConsultationTypeRequest:
    """Request for selecting a consultation type."""

    def __init__(self, session_id: str, patient_id: str, consultation_type: str):
        self.session_id = session_id
        self.patient_id = patient_id
        self.consultation_type = consultation_type


class SelectConsultationTypeResponse:
    """Response for selecting a consultation type."""

    def __init__(self, session_id: str, phase: str, order: PaymentOrder):
        self.session_id = session_id
        self.phase = phase
        self.order = order


class SelectConsultationTypeUseCase:
    def __init__(self, sessions: SessionStore, temp_store: IntakeTempStore, payments: PaymentGateway):
        self._sessions = sessions
        self._temp = temp_store
        self._payments = payments

    async def execute(self, request: SelectConsultationTypeRequest) -> SelectConsultationTypeResponse:
        try:
            consultation_type = ConsultationType(request.consultation_type)
        except ValueError:
            raise InvalidInputError(
                "consultation_type",
                f"must be one of: {', '.join(t.value for t in ConsultationType)}",
            ) from None

        session = await self._sessions.validate_session_phase(
            request.session_id, SessionPhase.CONSULTATION_SELECTION, patient_id=request.patient_id
        )
        order = await self._payments.create_order(
            session.session_id, request.patient_id, consultation_type.value
        )
        payment_details = order.to_dict()

        try:
            await self._temp.put(
                selection_key(session.session_id),
                {
                    "patient_id": request.patient_id,
                    "session_id": session.session_id,
                    "symptoms": session.data.initial_symptoms,
                    "ai_diagnosis": session.data.ai_diagnosis,
                    "selected_consultation_type": consultation_type.value,
                    "payment_details": payment_details,
                },
            )
        except CacheError as e:
            logger.warning(f"Failed to store selection data for {session.session_id}: {e}")

        session = await self._sessions.update_session(
            session.session_id,
            SessionPhase.PAYMENT_PENDING,
            {"selected_consultation_type": consultation_type.value, "payment_details": payment_details},
            patient_id=request.patient_id,
        )
        return SelectConsultationTypeResponse(
            session_id=session.session_id, phase=session.current_phase.value, order=order
        )
