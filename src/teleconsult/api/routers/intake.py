"""
Intake flow endpoints: symptom screening, consultation type selection and
payment confirmation.
"""

from fastapi import APIRouter, Request, status

from ...application.use_cases.collect_symptoms import CollectSymptomsRequest
from ...application.use_cases.confirm_payment import ConfirmPaymentRequest
from ...application.use_cases.select_consultation_type import SelectConsultationTypeRequest
from ...domain.errors import PatientMismatchError, SessionNotFoundError
from ..deps import (
    CollectSymptomsUseCaseDep,
    ConfirmPaymentUseCaseDep,
    SelectConsultationTypeUseCaseDep,
    SessionStoreDep,
)
from ..schemas.common import ApiResponse
from ..schemas.intake import (
    CollectSymptomsBody,
    CollectSymptomsOut,
    ConfirmPaymentBody,
    ConfirmPaymentOut,
    SelectConsultationTypeBody,
    SelectConsultationTypeOut,
    SessionOut,
)
from ..utils.responses import ok

router = APIRouter(prefix="/intake", tags=["intake"])


@router.post("/symptoms", response_model=ApiResponse[CollectSymptomsOut], status_code=status.HTTP_201_CREATED)
async def collect_symptoms(request: Request, body: CollectSymptomsBody, use_case: CollectSymptomsUseCaseDep):
    """Start an intake session and return a preliminary assessment with pricing."""
    result = await use_case.execute(
        CollectSymptomsRequest(
            patient_id=body.patient_id,
            primary_symptoms=body.primary_symptoms,
            duration=body.duration,
            severity=body.severity,
            medical_history=body.medical_history.model_dump(),
            secondary_symptoms=body.secondary_symptoms,
            patient_age=body.patient_age,
            additional_notes=body.additional_notes,
        )
    )
    return ok(request, data=CollectSymptomsOut(
        session_id=result.session_id,
        phase=result.phase,
        diagnosis={**result.diagnosis.to_dict(), "from_cache": result.diagnosis.from_cache},
        pricing=result.pricing,
        expires_at=result.expires_at,
    ), message="Symptoms recorded")


@router.post("/{session_id}/consultation-type", response_model=ApiResponse[SelectConsultationTypeOut])
async def select_consultation_type(
    request: Request,
    session_id: str,
    body: SelectConsultationTypeBody,
    use_case: SelectConsultationTypeUseCaseDep,
):
    result = await use_case.execute(
        SelectConsultationTypeRequest(
            session_id=session_id,
            patient_id=body.patient_id,
            consultation_type=body.consultation_type,
        )
    )
    return ok(request, data=SelectConsultationTypeOut(
        session_id=result.session_id, phase=result.phase, order=result.order.to_dict()
    ), message="Payment order created")


@router.post("/{session_id}/confirm-payment", response_model=ApiResponse[ConfirmPaymentOut])
async def confirm_payment(
    request: Request, session_id: str, body: ConfirmPaymentBody, use_case: ConfirmPaymentUseCaseDep
):
    """Verify the payment and open the consultation."""
    result = await use_case.execute(
        ConfirmPaymentRequest(session_id=session_id, patient_id=body.patient_id, payment_id=body.payment_id)
    )
    consultation = result.consultation
    return ok(request, data=ConfirmPaymentOut(
        consultation_id=consultation.consultation_id,
        status=consultation.status.value,
        doctor_id=consultation.doctor_id,
        clinical_session_id=result.clinical_session_id,
        is_recovered=result.is_recovered,
        recovery_reason=result.recovery_reason,
    ), message="Consultation created")


@router.get("/{session_id}", response_model=ApiResponse[SessionOut])
async def get_session(request: Request, session_id: str, patient_id: str, sessions: SessionStoreDep):
    session = await sessions.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    if session.patient_id != patient_id:
        raise PatientMismatchError(session_id)
    return ok(request, data=SessionOut.from_domain(session), message="OK")
