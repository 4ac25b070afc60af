"""
Deterministic diagnosis rules: severity buckets, consultation type and the
keyword table used when the diagnosis service cannot be reached.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from ..enums import ConsultationType, DiagnosisSeverity, InvestigationPriority, SymptomSeverity
from ..value_objects import DiagnosisResult, Investigation

# (minimum confidence, bucket); anything below the last threshold is critical.
CONFIDENCE_THRESHOLDS: Sequence[Tuple[float, DiagnosisSeverity]] = (
    (0.9, DiagnosisSeverity.HIGH),
    (0.7, DiagnosisSeverity.MEDIUM),
    (0.5, DiagnosisSeverity.LOW),
)

# Checked in order, first keyword hit wins.
FALLBACK_KEYWORD_TABLE: Sequence[Tuple[str, DiagnosisSeverity]] = (
    ("chest pain", DiagnosisSeverity.CRITICAL),
    ("difficulty breathing", DiagnosisSeverity.CRITICAL),
    ("severe abdominal pain", DiagnosisSeverity.CRITICAL),
    ("loss of consciousness", DiagnosisSeverity.CRITICAL),
    ("severe bleeding", DiagnosisSeverity.CRITICAL),
    ("stroke symptoms", DiagnosisSeverity.CRITICAL),
    ("high fever", DiagnosisSeverity.HIGH),
    ("severe headache", DiagnosisSeverity.HIGH),
    ("persistent vomiting", DiagnosisSeverity.HIGH),
    ("severe pain", DiagnosisSeverity.HIGH),
)

DECLARED_SEVERITY_FALLBACK = {
    SymptomSeverity.SEVERE: DiagnosisSeverity.HIGH,
    SymptomSeverity.MODERATE: DiagnosisSeverity.MEDIUM,
    SymptomSeverity.MILD: DiagnosisSeverity.LOW,
}

FALLBACK_DIAGNOSIS_TEXT = "Preliminary assessment requires medical consultation"
FALLBACK_CONFIDENCE = 0.5


def map_confidence_to_severity(confidence: float) -> DiagnosisSeverity:
    """Low confidence maps to critical so an unsure result is escalated."""
    for threshold, bucket in CONFIDENCE_THRESHOLDS:
        if confidence >= threshold:
            return bucket
    return DiagnosisSeverity.CRITICAL


def determine_consultation_type(
    severity: DiagnosisSeverity, investigations: Iterable[Investigation] = ()
) -> ConsultationType:
    if severity == DiagnosisSeverity.CRITICAL:
        return ConsultationType.EMERGENCY
    if severity == DiagnosisSeverity.HIGH or any(
        i.priority == InvestigationPriority.HIGH.value for i in investigations
    ):
        return ConsultationType.VIDEO
    return ConsultationType.CHAT


def classify_fallback_severity(
    symptoms: Iterable[str], declared: Optional[SymptomSeverity]
) -> DiagnosisSeverity:
    """Pure keyword lookup over the primary symptom text, then the declared severity."""
    text = " ".join(symptoms).lower()
    for keyword, bucket in FALLBACK_KEYWORD_TABLE:
        if keyword in text:
            return bucket
    if declared is not None:
        return DECLARED_SEVERITY_FALLBACK[declared]
    return DiagnosisSeverity.LOW


def build_fallback_diagnosis(
    symptoms: List[str], declared: Optional[SymptomSeverity]
) -> DiagnosisResult:
    severity = classify_fallback_severity(symptoms, declared)
    consultation_type = (
        ConsultationType.EMERGENCY if severity == DiagnosisSeverity.CRITICAL else ConsultationType.CHAT
    )
    return DiagnosisResult(
        diagnosis=FALLBACK_DIAGNOSIS_TEXT,
        confidence=FALLBACK_CONFIDENCE,
        severity=severity,
        recommended_consultation_type=consultation_type,
        recommended_investigations=[],
        recommended_medications=[],
        is_fallback=True,
        raw={"reason": "diagnosis_service_unavailable"},
    )
