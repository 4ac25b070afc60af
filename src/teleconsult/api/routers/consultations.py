"""
Consultation lifecycle endpoints.
"""

from fastapi import APIRouter, Request, status

from ...application.services.consultation_lifecycle import NewConsultation
from ...domain.enums import ConsultationStatus, ConsultationType, TransitionSource
from ...domain.errors import InvalidInputError
from ..deps import LifecycleServiceDep
from ..schemas.common import ApiResponse
from ..schemas.consultations import (
    ActivateBody,
    ConsultationOut,
    CreateConsultationBody,
    StatusUpdateBody,
)
from ..utils.responses import ok

router = APIRouter(prefix="/consultations", tags=["consultations"])


def _parse_enum(enum_cls, value: str, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(field, f"must be one of: {', '.join(e.value for e in enum_cls)}") from None


@router.post("", response_model=ApiResponse[ConsultationOut], status_code=status.HTTP_201_CREATED)
async def create_consultation(request: Request, body: CreateConsultationBody, lifecycle: LifecycleServiceDep):
    consultation = await lifecycle.create_consultation(
        NewConsultation(
            patient_id=body.patient_id,
            consultation_type=_parse_enum(ConsultationType, body.consultation_type, "consultation_type"),
            doctor_id=body.doctor_id,
            symptoms=body.symptoms,
            ai_diagnosis=body.ai_diagnosis,
            session_id=body.session_id,
        )
    )
    return ok(request, data=ConsultationOut.from_domain(consultation), message="Consultation created")


@router.get("/{consultation_id}", response_model=ApiResponse[ConsultationOut])
async def get_consultation(request: Request, consultation_id: str, lifecycle: LifecycleServiceDep):
    consultation = await lifecycle.get_consultation(consultation_id)
    return ok(request, data=ConsultationOut.from_domain(consultation), message="OK")


@router.patch("/{consultation_id}/status", response_model=ApiResponse[ConsultationOut])
async def update_status(
    request: Request, consultation_id: str, body: StatusUpdateBody, lifecycle: LifecycleServiceDep
):
    """Apply one transition from the consultation status table."""
    consultation = await lifecycle.update_consultation_status(
        consultation_id,
        _parse_enum(ConsultationStatus, body.status, "status"),
        changed_by=body.changed_by,
        reason=body.reason,
        source=_parse_enum(TransitionSource, body.source, "source"),
        trigger=body.trigger,
        notes=body.notes,
    )
    return ok(request, data=ConsultationOut.from_domain(consultation), message="Status updated")


@router.post("/{consultation_id}/activate", response_model=ApiResponse[ConsultationOut])
async def activate_consultation(
    request: Request, consultation_id: str, body: ActivateBody, lifecycle: LifecycleServiceDep
):
    """Make this the patient's only active consultation."""
    consultation = await lifecycle.activate_consultation(
        consultation_id, body.patient_id, changed_by=body.changed_by
    )
    return ok(request, data=ConsultationOut.from_domain(consultation), message="Consultation activated")


@router.get("/patients/{patient_id}/active", response_model=ApiResponse[ConsultationOut])
async def get_active_consultation(request: Request, patient_id: str, lifecycle: LifecycleServiceDep):
    consultation = await lifecycle.get_active_consultation(patient_id)
    data = ConsultationOut.from_domain(consultation) if consultation else None
    return ok(request, data=data, message="OK" if data else "No active consultation")


@router.get("/patients/{patient_id}/conflicts", response_model=ApiResponse[dict])
async def check_conflicts(request: Request, patient_id: str, lifecycle: LifecycleServiceDep):
    return ok(request, data=await lifecycle.check_consultation_conflicts(patient_id), message="OK")


@router.get("/patients/{patient_id}/stats", response_model=ApiResponse[dict])
async def get_stats(request: Request, patient_id: str, lifecycle: LifecycleServiceDep):
    return ok(request, data=await lifecycle.get_patient_consultation_stats(patient_id), message="OK")
