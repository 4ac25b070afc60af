"""
Ephemeral session store.

Intake sessions live under ``consultation_session:<id>`` and clinical
sessions under ``clinical_session:<id>``. Expiry is checked lazily on read:
an expired record is destroyed and reported as absent.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.core.config import SessionSettings
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.entities.session import (
    CLINICAL_PHASE_SUCCESSORS,
    SESSION_PHASE_SUCCESSORS,
    ClinicalData,
    ClinicalSession,
    IntakeData,
    Session,
)
from teleconsult.domain.enums import ClinicalSessionPhase, SessionPhase
from teleconsult.domain.errors import (
    ConsultationMismatchError,
    InternalError,
    InvalidInputError,
    PatientMismatchError,
    PhaseMismatchError,
    SessionNotFoundError,
)
from teleconsult.domain.value_objects import SessionId, ensure_object_id

logger = logging.getLogger("teleconsult.sessions")

SESSION_PREFIX = "consultation_session:"
CLINICAL_PREFIX = "clinical_session:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_progression(
    record_id: str,
    current,
    target,
    successors: Mapping[Any, FrozenSet[Any]],
) -> None:
    if target == current or target in successors.get(current, frozenset()):
        return
    allowed = [current.value] + sorted(p.value for p in successors.get(current, frozenset()))
    raise PhaseMismatchError(record_id, ", ".join(allowed), current.value, requested=target.value)


def _check_required(data, target, required_map) -> None:
    missing = data.missing(sorted(required_map.get(target, ())))
    if missing:
        raise InvalidInputError("data", f"phase {target.value} requires: {', '.join(missing)}")


class SessionStore:
    def __init__(
        self,
        cache: CacheService,
        settings: Optional[SessionSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._settings = settings or SessionSettings()
        self._clock = clock

    # ------------------------------------------------------------------
    # Intake sessions
    # ------------------------------------------------------------------

    async def create_session(
        self, patient_id: str, initial_data: Optional[Dict[str, Any]] = None
    ) -> Session:
        ensure_object_id(patient_id, "patient_id")
        now = self._clock()
        data = IntakeData()
        if initial_data:
            data.merge(initial_data)
        session = Session(
            session_id=str(SessionId.generate()),
            patient_id=patient_id,
            current_phase=SessionPhase.SYMPTOM_COLLECTION,
            data=data,
            created_at=now,
            updated_at=now,
            ttl_seconds=self._settings.ttl_seconds,
        )
        await self._cache.set(SESSION_PREFIX + session.session_id, session.to_dict(), session.ttl_seconds)
        logger.info(f"Created session {session.session_id}")
        return session

    async def get_session(self, session_id: str) -> Optional[Session]:
        """Return the live session or None; expired records are destroyed.

        A cache failure raises InternalError rather than reporting the session
        as absent.
        """
        try:
            raw = await self._cache.get(SESSION_PREFIX + session_id)
        except CacheError as e:
            logger.error(f"Failed to read session {session_id}: {e}")
            raise InternalError("Session store unavailable", {"session_id": session_id}) from e
        if not raw:
            return None
        try:
            session = Session.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding corrupt session {session_id}: {e}")
            await self.destroy_session(session_id)
            return None
        if session.is_expired(self._clock()):
            await self.destroy_session(session_id)
            return None
        return session

    async def update_session(
        self,
        session_id: str,
        phase: SessionPhase,
        partial_data: Optional[Dict[str, Any]] = None,
        patient_id: Optional[str] = None,
    ) -> Session:
        session = await self._require_session(session_id, patient_id)
        phase = SessionPhase(phase)
        _check_progression(session_id, session.current_phase, phase, SESSION_PHASE_SUCCESSORS)

        session.data.merge(partial_data or {})
        if phase != session.current_phase:
            _check_required(session.data, phase, IntakeData.REQUIRED_ON_ENTRY)
        session.current_phase = phase
        await self._persist_session(session)
        return session

    async def validate_session_phase(
        self, session_id: str, expected_phase: SessionPhase, patient_id: Optional[str] = None
    ) -> Session:
        session = await self._require_session(session_id, patient_id)
        if session.current_phase != SessionPhase(expected_phase):
            raise PhaseMismatchError(
                session_id, SessionPhase(expected_phase).value, session.current_phase.value
            )
        return session

    async def clear_initial_screening_data(self, session_id: str, patient_id: Optional[str] = None) -> Session:
        """Drop symptoms, diagnosis, payment details and pricing from the data bag."""
        session = await self._require_session(session_id, patient_id)
        session.data.clear_screening()
        await self._persist_session(session)
        return session

    async def destroy_session(self, session_id: str) -> None:
        try:
            await self._cache.delete(SESSION_PREFIX + session_id)
        except CacheError as e:
            logger.warning(f"Failed to destroy session {session_id}: {e}")

    async def _require_session(self, session_id: str, patient_id: Optional[str]) -> Session:
        session = await self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if patient_id is not None and session.patient_id != patient_id:
            raise PatientMismatchError(session_id)
        return session

    async def _persist_session(self, session: Session) -> None:
        now = self._clock()
        session.updated_at = now
        remaining = int((session.expires_at - now).total_seconds())
        await self._cache.set(SESSION_PREFIX + session.session_id, session.to_dict(), max(remaining, 1))

    # ------------------------------------------------------------------
    # Clinical sessions
    # ------------------------------------------------------------------

    async def create_clinical_session(
        self,
        consultation_id: str,
        patient_id: str,
        initial_data: Optional[Dict[str, Any]] = None,
    ) -> ClinicalSession:
        ensure_object_id(consultation_id, "consultation_id")
        ensure_object_id(patient_id, "patient_id")
        now = self._clock()
        data = ClinicalData()
        if initial_data:
            data.merge(initial_data)
        clinical = ClinicalSession(
            clinical_session_id=str(SessionId.generate(clinical=True)),
            consultation_id=consultation_id,
            patient_id=patient_id,
            data=data,
            created_at=now,
            updated_at=now,
            ttl_seconds=self._settings.clinical_ttl_seconds,
        )
        await self._cache.set(
            CLINICAL_PREFIX + clinical.clinical_session_id, clinical.to_dict(), clinical.ttl_seconds
        )
        logger.info(f"Created clinical session {clinical.clinical_session_id} for consultation {consultation_id}")
        return clinical

    async def get_clinical_session(
        self, clinical_session_id: str, consultation_id: Optional[str] = None
    ) -> Optional[ClinicalSession]:
        try:
            raw = await self._cache.get(CLINICAL_PREFIX + clinical_session_id)
        except CacheError as e:
            logger.error(f"Failed to read clinical session {clinical_session_id}: {e}")
            raise InternalError(
                "Session store unavailable", {"clinical_session_id": clinical_session_id}
            ) from e
        if not raw:
            return None
        try:
            clinical = ClinicalSession.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding corrupt clinical session {clinical_session_id}: {e}")
            await self.destroy_clinical_session(clinical_session_id)
            return None
        if clinical.is_expired(self._clock()):
            await self.destroy_clinical_session(clinical_session_id)
            return None
        if consultation_id is not None and clinical.consultation_id != consultation_id:
            raise ConsultationMismatchError(clinical_session_id, consultation_id)
        return clinical

    async def update_clinical_session(
        self,
        clinical_session_id: str,
        consultation_id: str,
        phase: ClinicalSessionPhase,
        partial_data: Optional[Dict[str, Any]] = None,
        patient_id: Optional[str] = None,
    ) -> ClinicalSession:
        clinical = await self._require_clinical(clinical_session_id, consultation_id, patient_id)
        phase = ClinicalSessionPhase(phase)
        _check_progression(clinical_session_id, clinical.current_phase, phase, CLINICAL_PHASE_SUCCESSORS)

        clinical.data.merge(partial_data or {})
        if phase != clinical.current_phase:
            _check_required(clinical.data, phase, ClinicalData.REQUIRED_ON_ENTRY)
        clinical.current_phase = phase

        now = self._clock()
        clinical.updated_at = now
        remaining = int((clinical.expires_at - now).total_seconds())
        await self._cache.set(
            CLINICAL_PREFIX + clinical_session_id, clinical.to_dict(), max(remaining, 1)
        )
        return clinical

    async def validate_clinical_session(
        self,
        clinical_session_id: str,
        consultation_id: str,
        expected_phase: Optional[ClinicalSessionPhase] = None,
        patient_id: Optional[str] = None,
    ) -> ClinicalSession:
        clinical = await self._require_clinical(clinical_session_id, consultation_id, patient_id)
        if expected_phase is not None and clinical.current_phase != ClinicalSessionPhase(expected_phase):
            raise PhaseMismatchError(
                clinical_session_id,
                ClinicalSessionPhase(expected_phase).value,
                clinical.current_phase.value,
            )
        return clinical

    async def destroy_clinical_session(self, clinical_session_id: str) -> None:
        try:
            await self._cache.delete(CLINICAL_PREFIX + clinical_session_id)
        except CacheError as e:
            logger.warning(f"Failed to destroy clinical session {clinical_session_id}: {e}")

    async def _require_clinical(
        self, clinical_session_id: str, consultation_id: str, patient_id: Optional[str]
    ) -> ClinicalSession:
        clinical = await self.get_clinical_session(clinical_session_id, consultation_id)
        if clinical is None:
            raise SessionNotFoundError(clinical_session_id)
        if patient_id is not None and clinical.patient_id != patient_id:
            raise PatientMismatchError(clinical_session_id)
        return clinical
