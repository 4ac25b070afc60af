"""
Payment endpoints backed by the simulated gateway.
"""

from fastapi import APIRouter, Request, status

from ...core.config import get_settings
from ..deps import PaymentGatewayDep
from ..errors import MockPaymentsDisabledError
from ..schemas.common import ApiResponse
from ..schemas.payments import CreateOrderBody, PaymentRefBody, PaymentVerificationOut
from ..utils.responses import ok

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/pricing", response_model=ApiResponse[dict])
async def get_pricing(request: Request, payments: PaymentGatewayDep):
    return ok(request, data=payments.get_pricing(), message="OK")


@router.post("/orders", response_model=ApiResponse[dict], status_code=status.HTTP_201_CREATED)
async def create_order(request: Request, body: CreateOrderBody, payments: PaymentGatewayDep):
    order = await payments.create_order(body.session_id, body.patient_id, body.consultation_type)
    return ok(request, data=order.to_dict(), message="Order created")


@router.post("/verify", response_model=ApiResponse[PaymentVerificationOut])
async def verify_payment(request: Request, body: PaymentRefBody, payments: PaymentGatewayDep):
    verification = await payments.verify_payment(body.session_id, body.payment_id)
    return ok(request, data=PaymentVerificationOut.from_domain(verification), message="OK")


@router.post("/mock-complete", response_model=ApiResponse[PaymentVerificationOut])
async def mock_complete_payment(request: Request, body: PaymentRefBody, payments: PaymentGatewayDep):
    """Mark an order paid. Disabled in production."""
    if get_settings().is_production:
        raise MockPaymentsDisabledError()
    verification = await payments.complete_payment(body.session_id, body.payment_id)
    return ok(request, data=PaymentVerificationOut.from_domain(verification), message="Payment completed")
