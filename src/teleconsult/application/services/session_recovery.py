"""
Payment confirmation recovery pipeline.

Resolves the intake data needed to create a consultation through three tiers:
the post-selection entry, the base intake entry, then fixed placeholders.
The base intake entry is only used when it belongs to the paying patient;
an entry recorded for anyone else is skipped in favour of the placeholders,
rather than rebuilt from whatever the entry holds.

The pipeline never raises. Anything recovered is marked so its diagnosis
confidence is clamped and its text annotated before it reaches a
consultation record.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from teleconsult.application.services.intake_temp_store import (
    IntakeTempStore,
    base_key,
    selection_key,
)
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.enums import ConsultationType, SymptomSeverity
from teleconsult.domain.rules.diagnosis_rules import map_confidence_to_severity

logger = logging.getLogger("teleconsult.recovery")

REASON_BASE_SESSION = "reconstructed_from_base_session"
REASON_PAYMENT_RECOVERY = "payment_recovery"

RECOVERED_CONFIDENCE_CAP = 0.3
RECOVERED_SUFFIX = " (Recovered from session)"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_SEVERITY_SCORE = 2

DEFAULT_SYMPTOMS: Dict[str, Any] = {
    "primary_symptoms": ["General consultation"],
    "duration": "unknown",
    "severity": "moderate",
}
DEFAULT_DIAGNOSIS: Dict[str, Any] = {
    "diagnosis": "General consultation",
    "confidence": DEFAULT_CONFIDENCE,
}


@dataclass
class RecoveredIntake:
    """Consultation-creatable intake data."""

    patient_id: str
    session_id: str
    symptoms: Dict[str, Any]
    ai_diagnosis: Dict[str, Any]
    selected_consultation_type: ConsultationType
    is_recovered: bool
    recovery_reason: Optional[str] = None
    payment_details: Dict[str, Any] = field(default_factory=dict)

    def consultation_symptoms(self) -> Dict[str, Any]:
        return map_symptoms(self.symptoms)

    def consultation_diagnosis(self) -> Dict[str, Any]:
        return map_diagnosis(self.ai_diagnosis, self.is_recovered)


def map_symptoms(symptoms: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Intake symptoms to the consultation shape; severity becomes 1..3."""
    symptoms = symptoms or {}
    primary = symptoms.get("primary_symptoms") or DEFAULT_SYMPTOMS["primary_symptoms"]
    try:
        severity_score = SymptomSeverity(str(symptoms.get("severity", "")).lower()).score
    except ValueError:
        severity_score = DEFAULT_SEVERITY_SCORE
    return {
        "primary_symptom": primary[0],
        "primary_symptoms": list(primary),
        "secondary_symptoms": list(symptoms.get("secondary_symptoms") or []),
        "duration": symptoms.get("duration") or DEFAULT_SYMPTOMS["duration"],
        "severity": severity_score,
        "medical_history": dict(symptoms.get("medical_history") or {}),
        "additional_notes": symptoms.get("additional_notes"),
    }


def map_diagnosis(diagnosis: Optional[Dict[str, Any]], is_recovered: bool) -> Dict[str, Any]:
    diagnosis = diagnosis or {}
    text = diagnosis.get("diagnosis") or DEFAULT_DIAGNOSIS["diagnosis"]
    confidence = diagnosis.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool) or not 0 <= confidence <= 1:
        confidence = DEFAULT_CONFIDENCE
    confidence = float(confidence)
    if is_recovered:
        text = text + RECOVERED_SUFFIX
        confidence = min(confidence, RECOVERED_CONFIDENCE_CAP)
    return {
        "diagnosis": text,
        "confidence": confidence,
        "severity": map_confidence_to_severity(confidence).value,
        "recommended_consultation_type": diagnosis.get("recommended_consultation_type"),
        "recommended_investigations": list(diagnosis.get("recommended_investigations") or []),
        "is_fallback": bool(diagnosis.get("is_fallback", False)),
        "is_recovered": is_recovered,
    }


def _consultation_type(value: Any) -> ConsultationType:
    try:
        return ConsultationType(value)
    except ValueError:
        return ConsultationType.CHAT


class SessionRecoveryPipeline:
    def __init__(self, temp_store: IntakeTempStore) -> None:
        self._temp = temp_store

    async def recover(self, session_id: str, patient_id: str) -> RecoveredIntake:
        selection = await self._load(selection_key(session_id))
        if selection is not None:
            if selection.get("patient_id") == patient_id and selection.get("selected_consultation_type"):
                return RecoveredIntake(
                    patient_id=patient_id,
                    session_id=session_id,
                    symptoms=selection.get("symptoms") or dict(DEFAULT_SYMPTOMS),
                    ai_diagnosis=selection.get("ai_diagnosis") or dict(DEFAULT_DIAGNOSIS),
                    selected_consultation_type=_consultation_type(selection["selected_consultation_type"]),
                    is_recovered=False,
                    payment_details=selection.get("payment_details") or {},
                )
            logger.warning(
                f"Selection data for session {session_id} is unusable "
                f"(patient match: {selection.get('patient_id') == patient_id}); trying base session"
            )

        base = await self._load(base_key(session_id))
        if base is not None and base.get("patient_id") == patient_id:
            logger.info(f"Reconstructed selection data for session {session_id} from base session")
            return RecoveredIntake(
                patient_id=patient_id,
                session_id=session_id,
                symptoms=base.get("symptoms") or dict(DEFAULT_SYMPTOMS),
                ai_diagnosis=base.get("ai_diagnosis") or dict(DEFAULT_DIAGNOSIS),
                selected_consultation_type=_consultation_type(
                    base.get("selected_consultation_type") or ConsultationType.CHAT.value
                ),
                is_recovered=True,
                recovery_reason=REASON_BASE_SESSION,
                payment_details=base.get("payment_details") or {},
            )

        logger.warning(f"No intake data for session {session_id}; using payment recovery defaults")
        return RecoveredIntake(
            patient_id=patient_id,
            session_id=session_id,
            symptoms=dict(DEFAULT_SYMPTOMS),
            ai_diagnosis=dict(DEFAULT_DIAGNOSIS),
            selected_consultation_type=ConsultationType.CHAT,
            is_recovered=True,
            recovery_reason=REASON_PAYMENT_RECOVERY,
        )

    async def _load(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._temp.get(key)
        except CacheError as e:
            logger.error(f"Failed to load temp data {key}: {e}")
            return None
