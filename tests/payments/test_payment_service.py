from decimal import Decimal

import pytest

from application.dtos.checkout import RecurringPaymentStatus
from application.services.payment_service import PaymentService
from infrastructure.external.api_clients import NotFoundError

from conftest import make_payment


@pytest.fixture
def service(gateway):
    return PaymentService(gateway)


@pytest.mark.asyncio
async def test_refund_success_reports_total_fees(service, gateway):
    gateway.payment = make_payment("tbx-1", status="Refund", tax=1.25, gateway_fee=0.5)
    outcome = await service.refund("tbx-1")
    assert outcome.status == "success"
    assert outcome.transaction_id == "tbx-1"
    assert outcome.fees == Decimal("1.75")
    assert outcome.internal_status == "refunded"
    assert outcome.raw["transaction_id"] == "tbx-1"
    assert gateway.call_names() == ["refund_payment"]


@pytest.mark.asyncio
async def test_refund_error_is_returned_not_raised(service, gateway):
    gateway.error = NotFoundError("Not Found: Payment - unknown", status_code=404, title="Payment", detail="unknown")
    outcome = await service.refund("tbx-404")
    assert outcome.status == "error"
    assert outcome.transaction_id == "tbx-404"
    assert outcome.raw["category"] == "not found"
    assert outcome.raw["status_code"] == 404


@pytest.mark.asyncio
async def test_fetch_payment_maps_status(service, gateway):
    outcome = await service.fetch_payment("tbx-2")
    assert outcome.status == "success"
    assert outcome.internal_status == "succeeded"


@pytest.mark.asyncio
async def test_cancel_subscription(service, gateway):
    outcome = await service.cancel_subscription("tbx-r-1")
    assert outcome.status == "success"
    assert outcome.action == "cancel"
    assert gateway.calls == [("cancel_recurring_payment", ("tbx-r-1",))]


@pytest.mark.asyncio
async def test_pause_and_reactivate_update_status(service, gateway):
    await service.pause_subscription("tbx-r-1")
    await service.reactivate_subscription("tbx-r-1")
    assert gateway.calls == [
        ("update_recurring_payment_status", ("tbx-r-1", RecurringPaymentStatus.PAUSED)),
        ("update_recurring_payment_status", ("tbx-r-1", RecurringPaymentStatus.ACTIVE)),
    ]


@pytest.mark.asyncio
async def test_subscription_error_result(service, gateway):
    gateway.error = NotFoundError("Not Found", status_code=404)
    outcome = await service.fetch_subscription("tbx-missing")
    assert outcome.status == "error"
    assert outcome.action == "fetch"
    assert outcome.reference == "tbx-missing"


@pytest.mark.asyncio
async def test_aclose_closes_gateway(service, gateway):
    await service.aclose()
    assert gateway.closed is True
