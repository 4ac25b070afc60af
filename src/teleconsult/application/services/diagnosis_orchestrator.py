"""
Diagnosis request orchestrator.

Validates the symptom payload, serves repeated requests from cache, calls the
external diagnosis service under a retry policy and falls back to keyword
rules when the service cannot be reached.
"""

import asyncio
import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from teleconsult.application.ports.services.audit_service import AuditService
from teleconsult.application.ports.services.cache_service import CacheService
from teleconsult.application.ports.services.diagnosis_client import (
    DiagnosisClient,
    DiagnosisHttpResponse,
    DiagnosisTransportError,
)
from teleconsult.application.services.retry_policy import RetryPolicy
from teleconsult.application.services.service_token_manager import ServiceTokenManager
from teleconsult.core.exceptions import CacheError
from teleconsult.domain.enums import SymptomSeverity
from teleconsult.domain.errors import InvalidInputError, ServiceUnavailableError
from teleconsult.domain.rules.diagnosis_rules import (
    build_fallback_diagnosis,
    determine_consultation_type,
    map_confidence_to_severity,
)
from teleconsult.domain.value_objects import DiagnosisResult, Investigation

logger = logging.getLogger("teleconsult.diagnosis")

CACHE_PREFIX = "ai-diagnosis:"
SERVICE_NAME = "diagnosis-service"

MEDICAL_HISTORY_FIELDS = (
    "allergies",
    "current_medications",
    "chronic_conditions",
    "previous_surgeries",
    "family_history",
)


@dataclass
class DiagnosisRequest:
    """Structured symptom payload."""

    primary_symptoms: List[str]
    duration: str
    severity: str
    medical_history: Dict[str, List[str]] = field(default_factory=dict)
    secondary_symptoms: List[str] = field(default_factory=list)
    patient_age: Optional[int] = None
    additional_notes: Optional[str] = None
    session_id: Optional[str] = None
    patient_id: Optional[str] = None

    def validate(self) -> SymptomSeverity:
        symptoms = [s for s in (self.primary_symptoms or []) if isinstance(s, str) and s.strip()]
        if not symptoms:
            raise InvalidInputError("primary_symptoms", "at least one primary symptom is required")
        if not isinstance(self.duration, str) or not self.duration.strip():
            raise InvalidInputError("duration", "duration is required")
        try:
            severity = SymptomSeverity(str(self.severity).lower())
        except ValueError:
            raise InvalidInputError(
                "severity", f"must be one of: {', '.join(s.value for s in SymptomSeverity)}"
            ) from None
        if not isinstance(self.medical_history, dict):
            raise InvalidInputError("medical_history", "must be an object")
        unknown = set(self.medical_history) - set(MEDICAL_HISTORY_FIELDS)
        if unknown:
            raise InvalidInputError("medical_history", f"unknown fields: {', '.join(sorted(unknown))}")
        for name, values in self.medical_history.items():
            if not isinstance(values, list):
                raise InvalidInputError(f"medical_history.{name}", "must be a list")
        if self.patient_age is not None and not 0 <= self.patient_age <= 150:
            raise InvalidInputError("patient_age", "must be between 0 and 150")
        return severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_symptoms": list(self.primary_symptoms),
            "secondary_symptoms": list(self.secondary_symptoms),
            "duration": self.duration,
            "severity": str(self.severity).lower(),
            "medical_history": {k: list(v) for k, v in self.medical_history.items()},
            "patient_age": self.patient_age,
            "additional_notes": self.additional_notes,
        }


def _normalize_list(values) -> List[str]:
    return sorted(str(v).strip().lower() for v in (values or []) if str(v).strip())


def diagnosis_cache_key(request: DiagnosisRequest) -> str:
    """Content key, stable under list ordering and letter case."""
    normalized = {
        "primary_symptoms": _normalize_list(request.primary_symptoms),
        "secondary_symptoms": _normalize_list(request.secondary_symptoms),
        "duration": request.duration.strip().lower(),
        "severity": str(request.severity).strip().lower(),
        "medical_history": {
            name: _normalize_list(request.medical_history.get(name)) for name in MEDICAL_HISTORY_FIELDS
        },
        "patient_age": request.patient_age,
        "additional_notes": (request.additional_notes or "").strip().lower(),
    }
    digest = hashlib.sha256(json.dumps(normalized, sort_keys=True).encode("utf-8")).hexdigest()
    return f"{CACHE_PREFIX}{digest}"


def build_service_payload(request: DiagnosisRequest) -> Dict[str, Any]:
    history: List[str] = []
    for name in MEDICAL_HISTORY_FIELDS:
        history.extend(str(v) for v in request.medical_history.get(name) or [])
    return {
        "symptoms": list(request.primary_symptoms) + list(request.secondary_symptoms),
        "severity": str(request.severity).lower(),
        "duration": request.duration,
        "medical_history": history,
        "patient_age": request.patient_age,
        "additional_notes": request.additional_notes,
    }


class InvalidDiagnosisResponse(ValueError):
    """The service answered 2xx with an unusable body."""


def parse_service_response(body: Optional[Dict[str, Any]]) -> DiagnosisResult:
    if not isinstance(body, dict):
        raise InvalidDiagnosisResponse("response body is not an object")
    diagnosis = body.get("diagnosis")
    if not isinstance(diagnosis, str) or not diagnosis.strip():
        raise InvalidDiagnosisResponse("diagnosis text is missing")
    confidence = body.get("confidence_score")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        raise InvalidDiagnosisResponse("confidence_score must be a number in [0, 1]")
    investigations = body.get("suggested_investigations", [])
    medications = body.get("recommended_medications", [])
    if not isinstance(investigations, list) or not isinstance(medications, list):
        raise InvalidDiagnosisResponse("investigations and medications must be lists")

    parsed = [Investigation.from_raw(i) for i in investigations]
    severity = map_confidence_to_severity(float(confidence))
    return DiagnosisResult(
        diagnosis=diagnosis.strip(),
        confidence=float(confidence),
        severity=severity,
        recommended_consultation_type=determine_consultation_type(severity, parsed),
        recommended_investigations=parsed,
        recommended_medications=medications,
        is_fallback=False,
        raw=body,
    )


class DiagnosisOrchestrator:
    def __init__(
        self,
        client: DiagnosisClient,
        tokens: ServiceTokenManager,
        cache: CacheService,
        audit: AuditService,
        retry_policy: Optional[RetryPolicy] = None,
        cache_ttl_seconds: int = 3600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._cache = cache
        self._audit = audit
        self._policy = retry_policy or RetryPolicy()
        self._cache_ttl = cache_ttl_seconds
        self._sleep = sleep

    async def get_diagnosis(self, request: DiagnosisRequest) -> DiagnosisResult:
        declared = request.validate()
        key = diagnosis_cache_key(request)

        cached = await self._read_cache(key)
        if cached is not None:
            logger.info("Diagnosis served from cache")
            await self._record(request, cached, attempts=0)
            return cached

        payload = build_service_payload(request)
        headers = {}
        if request.session_id:
            headers["X-Session-ID"] = request.session_id
        if request.patient_id:
            headers["X-Patient-ID"] = request.patient_id

        attempts, outcome = await self._call_with_retries(payload, headers)
        if isinstance(outcome, DiagnosisResult):
            await self._write_cache(key, outcome)
            await self._record(request, outcome, attempts=attempts)
            return outcome

        last_status = outcome
        if last_status is None or last_status >= 500:
            logger.warning(
                f"Diagnosis service unavailable after {attempts} attempt(s) "
                f"(last status: {last_status}); using rule-based fallback"
            )
            fallback = build_fallback_diagnosis(request.primary_symptoms, declared)
            await self._record(request, fallback, attempts=attempts)
            return fallback

        raise ServiceUnavailableError(
            SERVICE_NAME,
            f"Diagnosis request failed with status {last_status}",
            {"status": last_status, "attempts": attempts},
        )

    async def _call_with_retries(self, payload: Dict[str, Any], headers: Dict[str, str]):
        """Run the attempt loop.

        Returns ``(attempts, result)`` on success or ``(attempts, last_status)``
        on failure, where a status of None means a transport error or an
        unusable response body.
        """
        last_status: Optional[int] = None
        attempt = 0
        while attempt < self._policy.max_attempts:
            attempt += 1
            token = await self._tokens.get_valid_token()
            try:
                response: DiagnosisHttpResponse = await self._client.post_diagnosis(payload, token, headers)
            except DiagnosisTransportError as e:
                logger.warning(f"Diagnosis attempt {attempt} failed: {e}")
                last_status = None
            else:
                if 200 <= response.status < 300:
                    try:
                        return attempt, parse_service_response(response.body)
                    except InvalidDiagnosisResponse as e:
                        logger.warning(f"Diagnosis attempt {attempt} returned an invalid body: {e}")
                        last_status = None
                else:
                    last_status = response.status
                    logger.warning(f"Diagnosis attempt {attempt} returned HTTP {response.status}")
                    if response.status == 401:
                        if attempt < self._policy.max_attempts:
                            # Fresh credentials, immediate retry.
                            await self._tokens.refresh_token()
                        continue
                    if not self._policy.retry_predicate(response.status):
                        break

            if attempt < self._policy.max_attempts:
                await self._sleep(self._policy.backoff_fn(attempt))

        return attempt, last_status

    async def health_check(self) -> bool:
        return await self._client.health_check()

    async def _read_cache(self, key: str) -> Optional[DiagnosisResult]:
        try:
            raw = await self._cache.get(key)
        except CacheError as e:
            logger.warning(f"Diagnosis cache read failed: {e}")
            return None
        if not raw:
            return None
        try:
            return DiagnosisResult.from_dict(raw).as_cached()
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed cached diagnosis: {e}")
            return None

    async def _write_cache(self, key: str, result: DiagnosisResult) -> None:
        try:
            await self._cache.set(key, result.to_dict(), self._cache_ttl)
        except CacheError as e:
            logger.warning(f"Diagnosis cache write failed: {e}")

    async def _record(self, request: DiagnosisRequest, result: DiagnosisResult, attempts: int) -> None:
        # Counts only; symptom text never reaches the audit trail.
        try:
            await self._audit.log_data_access(
                actor=request.patient_id or "system",
                resource="ai_diagnosis",
                action="diagnosis_request",
                resource_id=request.session_id,
                after={
                    "fromCache": result.from_cache,
                    "isFallback": result.is_fallback,
                    "attempts": attempts,
                    "symptomCount": len(request.primary_symptoms) + len(request.secondary_symptoms),
                    "historyItemCount": sum(len(v or []) for v in request.medical_history.values()),
                    "severity": result.severity.value,
                    "confidence": result.confidence,
                },
            )
        except Exception as e:
            logger.warning(f"Diagnosis audit failed: {e}")
