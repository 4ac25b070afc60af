"""Collect symptoms use case: start an intake session and run a preliminary diagnosis."""

import logging
from typing import Any, Dict, List, Optional

from teleconsult.application.ports.services.payment_gateway import PaymentGateway
from teleconsult.application.services.diagnosis_orchestrator import (
    DiagnosisOrchestrator,
    DiagnosisRequest,
)
from teleconsult.application.services.intake_temp_store import IntakeTempStore, base_key, diagnosis_key
from teleconsult.application.services.session_store import SessionStore
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.enums import SessionPhase
from teleconsult.domain.value_objects import DiagnosisResult

logger = logging.getLogger("teleconsult.intake")


class CollectSymptomsRequest:
    """Request for collecting intake symptoms."""

    def __init__(
        self,
        patient_id: str,
        primary_symptoms: List[str],
        duration: str,
        severity: str,
        medical_history: Optional[Dict[str, List[str]]] = None,
        secondary_symptoms: Optional[List[str]] = None,
        patient_age: Optional[int] = None,
        additional_notes: Optional[str] = None,
    ):
        self.patient_id = patient_id
        self.primary_symptoms = primary_symptoms
        self.duration = duration
        self.severity = severity
        self.medical_history = medical_history or {}
        self.secondary_symptoms = secondary_symptoms or []
        self.patient_age = patient_age
        self.additional_notes = additional_notes


class CollectSymptomsResponse:
    """Response for collecting intake symptoms."""

    def __init__(
        self,
        session_id: str,
        phase: str,
        diagnosis: DiagnosisResult,
        pricing: Dict[str, Dict[str, Any]],
        expires_at: str,
    ):
        self.session_id = session_id
        self.phase = phase
        self.diagnosis = diagnosis
        self.pricing = pricing
        self.expires_at = expires_at


class CollectSymptomsUseCase:
    def __init__(
        self,
        sessions: SessionStore,
        orchestrator: DiagnosisOrchestrator,
        temp_store: IntakeTempStore,
        payments: PaymentGateway,
    ):
        self._sessions = sessions
        self._orchestrator = orchestrator
        self._temp = temp_store
        self._payments = payments

    async def execute(self, request: CollectSymptomsRequest) -> CollectSymptomsResponse:
        diagnosis_request = DiagnosisRequest(
            primary_symptoms=request.primary_symptoms,
            duration=request.duration,
            severity=request.severity,
            medical_history=request.medical_history,
            secondary_symptoms=request.secondary_symptoms,
            patient_age=request.patient_age,
            additional_notes=request.additional_notes,
            patient_id=request.patient_id,
        )
        # Reject bad input before a session is created.
        diagnosis_request.validate()

        session = await self._sessions.create_session(request.patient_id)
        diagnosis_request.session_id = session.session_id
        diagnosis = await self._orchestrator.get_diagnosis(diagnosis_request)

        symptoms = diagnosis_request.to_dict()
        diagnosis_data = diagnosis.to_dict()
        pricing = self._payments.get_pricing()

        try:
            await self._temp.put(
                base_key(session.session_id),
                {
                    "patient_id": request.patient_id,
                    "session_id": session.session_id,
                    "symptoms": symptoms,
                    "ai_diagnosis": diagnosis_data,
                },
            )
            await self._temp.put(diagnosis_key(session.session_id), diagnosis_data)
        except CacheError as e:
            # Payment confirmation recovers without these entries.
            logger.warning(f"Failed to store temp intake data for {session.session_id}: {e}")

        session = await self._sessions.update_session(
            session.session_id,
            SessionPhase.CONSULTATION_SELECTION,
            {
                "initial_symptoms": symptoms,
                "ai_diagnosis": diagnosis_data,
                "consultation_pricing": pricing,
            },
            patient_id=request.patient_id,
        )

        return CollectSymptomsResponse(
            session_id=session.session_id,
            phase=session.current_phase.value,
            diagnosis=diagnosis,
            pricing=pricing,
            expires_at=session.expires_at.isoformat(),
        )
