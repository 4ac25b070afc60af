"""
Doctor shift schedule endpoints.
"""

from fastapi import APIRouter, Request

from ...domain.enums import ShiftStatus, ShiftType
from ...domain.errors import InvalidInputError
from ..deps import ShiftResolverDep
from ..schemas.common import ApiResponse
from ..schemas.shifts import CurrentDoctorOut, ShiftBody, ShiftOut, ShiftStatusBody
from ..utils.responses import ok

router = APIRouter(prefix="/doctor-shifts", tags=["doctor-shifts"])


@router.get("/current", response_model=ApiResponse[CurrentDoctorOut])
async def get_current_doctor(request: Request, resolver: ShiftResolverDep, refresh: bool = False):
    if refresh:
        doctor_id = await resolver.force_refresh_current_doctor()
    else:
        doctor_id = await resolver.get_active_doctor_for_current_time()
    return ok(request, data=CurrentDoctorOut(doctor_id=doctor_id, hour=resolver.current_hour()), message="OK")


@router.get("", response_model=ApiResponse[list])
async def list_shifts(request: Request, resolver: ShiftResolverDep):
    shifts = await resolver.get_all_shifts()
    return ok(request, data=[ShiftOut.from_domain(s) for s in shifts], message="OK")


@router.put("", response_model=ApiResponse[ShiftOut])
async def create_or_update_shift(request: Request, body: ShiftBody, resolver: ShiftResolverDep):
    try:
        shift_type = ShiftType(body.shift_type)
    except ValueError:
        raise InvalidInputError(
            "shift_type", f"must be one of: {', '.join(t.value for t in ShiftType)}"
        ) from None
    shift = await resolver.create_or_update_shift(
        body.doctor_id,
        shift_type,
        body.start_hour,
        body.end_hour,
        description=body.description,
        effective_to=body.effective_to,
    )
    return ok(request, data=ShiftOut.from_domain(shift), message="Shift saved")


@router.patch("/{shift_id}/status", response_model=ApiResponse[ShiftOut])
async def update_shift_status(request: Request, shift_id: str, body: ShiftStatusBody, resolver: ShiftResolverDep):
    try:
        new_status = ShiftStatus(body.status)
    except ValueError:
        raise InvalidInputError("status", "must be active or inactive") from None
    shift = await resolver.update_shift_status(shift_id, new_status)
    return ok(request, data=ShiftOut.from_domain(shift), message="Shift status updated")


@router.get("/debug", response_model=ApiResponse[dict])
async def shift_debug(request: Request, resolver: ShiftResolverDep):
    return ok(request, data=await resolver.get_shift_debug_info(), message="OK")


@router.delete("/cache", response_model=ApiResponse[dict])
async def clear_shift_cache(request: Request, resolver: ShiftResolverDep):
    await resolver.clear_shift_cache()
    return ok(request, data={"cleared": True}, message="Shift cache cleared")
