"""
End-to-end intake flow: collect symptoms, select a consultation type, confirm
payment. Runs the use cases against in-memory adapters.
"""

import pytest

from teleconsult.adapters.payments.mock_payment_gateway import MockPaymentGateway
from teleconsult.application.ports.services.diagnosis_client import DiagnosisHttpResponse
from teleconsult.application.services.diagnosis_orchestrator import DiagnosisOrchestrator
from teleconsult.application.services.intake_temp_store import (
    base_key,
    diagnosis_key,
    intake_keys,
    selection_key,
)
from teleconsult.application.services.service_token_manager import ServiceTokenManager
from teleconsult.application.services.session_recovery import REASON_PAYMENT_RECOVERY
from teleconsult.application.use_cases.collect_symptoms import (
    CollectSymptomsRequest,
    CollectSymptomsUseCase,
)
from teleconsult.application.use_cases.confirm_payment import (
    ConfirmPaymentRequest,
    ConfirmPaymentUseCase,
)
from teleconsult.application.use_cases.select_consultation_type import (
    SelectConsultationTypeRequest,
    SelectConsultationTypeUseCase,
)
from teleconsult.domain.enums import ConsultationStatus, ConsultationType, SessionPhase
from teleconsult.domain.errors import (
    ActiveConsultationExistsError,
    InternalError,
    PaymentNotCompletedError,
    PhaseMismatchError,
)

from .conftest import FakeDiagnosisClient

SERVICE_BODY = {
    "diagnosis": "Acute gastritis",
    "confidence_score": 0.75,
    "suggested_investigations": [],
    "recommended_medications": ["Antacid"],
}


async def _noop_sleep(delay):
    return None


@pytest.fixture
def orchestrator(cache, token_settings, audit):
    client = FakeDiagnosisClient([DiagnosisHttpResponse(200, SERVICE_BODY) for _ in range(5)])
    return DiagnosisOrchestrator(
        client, ServiceTokenManager(cache, token_settings), cache, audit, sleep=_noop_sleep
    )


@pytest.fixture
def collect(session_store, orchestrator, temp_store, payments):
    return CollectSymptomsUseCase(session_store, orchestrator, temp_store, payments)


@pytest.fixture
def select(session_store, temp_store, payments):
    return SelectConsultationTypeUseCase(session_store, temp_store, payments)


@pytest.fixture
def confirm(payments, recovery, lifecycle, session_store, temp_store):
    return ConfirmPaymentUseCase(payments, recovery, lifecycle, session_store, temp_store)


async def _collect_and_select(collect, select, patient_id, consultation_type="video"):
    collected = await collect.execute(
        CollectSymptomsRequest(
            patient_id=patient_id,
            primary_symptoms=["stomach ache"],
            duration="1 day",
            severity="moderate",
        )
    )
    selected = await select.execute(
        SelectConsultationTypeRequest(collected.session_id, patient_id, consultation_type)
    )
    return collected, selected


@pytest.mark.asyncio
async def test_collect_symptoms_opens_selection_phase(collect, temp_store, patient_id):
    response = await collect.execute(
        CollectSymptomsRequest(
            patient_id=patient_id,
            primary_symptoms=["stomach ache"],
            duration="1 day",
            severity="moderate",
        )
    )

    assert response.phase == SessionPhase.CONSULTATION_SELECTION.value
    assert response.diagnosis.diagnosis == "Acute gastritis"
    assert set(response.pricing) == {"chat", "video", "emergency"}
    assert (await temp_store.get(base_key(response.session_id)))["patient_id"] == patient_id
    assert await temp_store.get(diagnosis_key(response.session_id)) is not None


@pytest.mark.asyncio
async def test_select_before_symptoms_is_a_phase_mismatch(select, session_store, patient_id):
    session = await session_store.create_session(patient_id)

    with pytest.raises(PhaseMismatchError):
        await select.execute(SelectConsultationTypeRequest(session.session_id, patient_id, "chat"))


@pytest.mark.asyncio
async def test_full_flow_creates_active_consultation(
    collect, select, confirm, session_store, temp_store, consultation_repo, patient_id
):
    collected, selected = await _collect_and_select(collect, select, patient_id)
    assert selected.phase == SessionPhase.PAYMENT_PENDING.value
    assert await temp_store.get(selection_key(collected.session_id)) is not None

    result = await confirm.execute(
        ConfirmPaymentRequest(collected.session_id, patient_id, selected.order.payment_id)
    )

    consultation = result.consultation
    assert result.is_recovered is False
    assert consultation.status == ConsultationStatus.CLINICAL_ASSESSMENT_PENDING
    assert consultation.is_active is True
    assert consultation.consultation_type == ConsultationType.VIDEO
    assert consultation.payment_info.status == "completed"
    assert consultation.ai_diagnosis["diagnosis"] == "Acute gastritis"
    assert consultation.symptoms["primary_symptom"] == "stomach ache"
    assert [c.status for c in consultation.status_history] == [
        ConsultationStatus.PAYMENT_CONFIRMED,
        ConsultationStatus.PAYMENT_CONFIRMED,
        ConsultationStatus.CLINICAL_ASSESSMENT_PENDING,
    ]

    session = await session_store.get_session(collected.session_id)
    assert session.current_phase == SessionPhase.CONSULTATION_CREATED
    assert session.data.payment_confirmed is True
    assert session.data.consultation_id == consultation.consultation_id

    clinical = await session_store.validate_clinical_session(
        result.clinical_session_id, consultation.consultation_id, patient_id=patient_id
    )
    assert clinical.patient_id == patient_id

    for key in intake_keys(collected.session_id):
        assert await temp_store.get(key) is None
    assert len(consultation_repo.docs) == 1


@pytest.mark.asyncio
async def test_confirm_recovers_when_temp_data_is_gone(
    collect, select, confirm, temp_store, patient_id
):
    collected, selected = await _collect_and_select(collect, select, patient_id)
    await temp_store.delete_many(intake_keys(collected.session_id))

    result = await confirm.execute(
        ConfirmPaymentRequest(collected.session_id, patient_id, selected.order.payment_id)
    )

    assert result.is_recovered is True
    assert result.recovery_reason == REASON_PAYMENT_RECOVERY
    assert result.consultation.ai_diagnosis["confidence"] <= 0.3
    assert result.consultation.ai_diagnosis["is_recovered"] is True
    assert result.consultation.consultation_type == ConsultationType.CHAT


@pytest.mark.asyncio
async def test_unpaid_order_creates_nothing(
    collect, cache, audit, clock, recovery, lifecycle, session_store, temp_store, consultation_repo, patient_id
):
    manual = MockPaymentGateway(cache, audit, auto_complete=False, clock=clock)
    select = SelectConsultationTypeUseCase(session_store, temp_store, manual)
    confirm = ConfirmPaymentUseCase(manual, recovery, lifecycle, session_store, temp_store)
    collected, selected = await _collect_and_select(collect, select, patient_id, "chat")

    with pytest.raises(PaymentNotCompletedError):
        await confirm.execute(ConfirmPaymentRequest(collected.session_id, patient_id, selected.order.payment_id))

    assert consultation_repo.docs == {}
    assert await temp_store.get(selection_key(collected.session_id)) is not None
    session = await session_store.get_session(collected.session_id)
    assert session.current_phase == SessionPhase.PAYMENT_PENDING


@pytest.mark.asyncio
async def test_second_purchase_conflicts_with_active_consultation(collect, select, confirm, patient_id):
    first, first_order = await _collect_and_select(collect, select, patient_id)
    await confirm.execute(ConfirmPaymentRequest(first.session_id, patient_id, first_order.order.payment_id))

    second, second_order = await _collect_and_select(collect, select, patient_id, "chat")
    with pytest.raises(ActiveConsultationExistsError):
        await confirm.execute(ConfirmPaymentRequest(second.session_id, patient_id, second_order.order.payment_id))


@pytest.mark.asyncio
async def test_session_store_outage_does_not_fail_purchase(
    collect, select, confirm, session_store, patient_id, monkeypatch
):
    collected, selected = await _collect_and_select(collect, select, patient_id)

    async def unavailable(session_id):
        raise InternalError("Session store unavailable", {"session_id": session_id})

    monkeypatch.setattr(session_store, "get_session", unavailable)

    result = await confirm.execute(
        ConfirmPaymentRequest(collected.session_id, patient_id, selected.order.payment_id)
    )

    assert result.consultation.status == ConsultationStatus.CLINICAL_ASSESSMENT_PENDING
    assert result.is_recovered is False
