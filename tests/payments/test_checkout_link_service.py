from decimal import Decimal

import pytest

from application.dtos.checkout import CheckoutLinks, CheckoutResponse, ExpiryPeriod, PackagePaymentType
from application.services.checkout_link_service import BASKET_FAILED_MESSAGE, CheckoutLinkService
from core.settings import CheckoutSettings
from domain.billing import ClientDetails, HostingService, Invoice, InvoiceItem
from domain.common.exceptions import InvoiceNotFoundException
from infrastructure.external.api_clients import APIError

CLIENT = ClientDetails(first_name="Jane", last_name="Doe", email="jane@example.com")


def _settings(**overrides) -> CheckoutSettings:
    values = {"account_id": "acct", "api_key": "key", "webhook_secret": "s", "allow_subscriptions": True}
    values.update(overrides)
    return CheckoutSettings(**values)


def _hosting_item(relid=55, amount="10.00", description="VPS Monthly", invoice_id=100):
    return InvoiceItem(
        id=relid * 10, invoice_id=invoice_id, type="Hosting", relid=relid, description=description, amount=Decimal(amount)
    )


def _sent_basket(gateway):
    name, args = gateway.calls[-1]
    assert name == "create_checkout_request"
    return args[0]


@pytest.fixture
def service(gateway, uow_factory):
    return CheckoutLinkService(gateway=gateway, uow_factory=uow_factory, settings=_settings())


@pytest.mark.asyncio
async def test_monthly_hosting_becomes_subscription(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Monthly")
    invoice = Invoice(id=100, total=Decimal("10.00"), items=[_hosting_item()])

    result = await service.build_checkout_link(invoice, CLIENT, return_url="https://billing.example.com/viewinvoice.php?id=100")

    assert result.ok
    assert result.url == "https://pay.tebex.io/bskt-1"
    basket = _sent_basket(gateway)
    assert basket.recurring is True
    assert basket.custom == {"invoiceId": 100}
    assert basket.return_url == basket.complete_url == "https://billing.example.com/viewinvoice.php?id=100"
    assert (basket.first_name, basket.last_name, basket.email) == ("Jane", "Doe", "jane@example.com")

    item = basket.items[0]
    assert item.type == PackagePaymentType.SUBSCRIPTION
    assert item.package.name == "VPS Monthly"
    assert item.package.price == Decimal("10.00")
    assert item.package.expiry_period == ExpiryPeriod.MONTH
    assert item.package.expiry_length == 1
    assert item.package.meta.custom_data() == {"relid": 55}


@pytest.mark.parametrize(
    "cycle,months",
    [("Monthly", 1), ("Quarterly", 3), ("Semi-Annually", 6), ("Annually", 12), ("Biennially", 24), ("Triennially", 36)],
)
@pytest.mark.asyncio
async def test_cycle_maps_to_month_expiry(service, gateway, repo, cycle, months):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle=cycle)
    await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)
    package = _sent_basket(gateway).items[0].package
    assert package.expiry_period == ExpiryPeriod.MONTH
    assert package.expiry_length == months


@pytest.mark.asyncio
async def test_one_time_hosting_is_single_payment(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="One Time")
    await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)
    basket = _sent_basket(gateway)
    assert basket.recurring is False
    assert basket.items[0].type == PackagePaymentType.SINGLE
    assert basket.items[0].package.expiry_period is None


@pytest.mark.asyncio
async def test_linked_hosting_is_not_subscribed_again(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Monthly", subscription_id="tbx-r-1")
    await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)
    basket = _sent_basket(gateway)
    assert basket.recurring is False
    assert basket.items[0].type == PackagePaymentType.SINGLE
    # expiry terms still apply
    assert basket.items[0].package.expiry_length == 1


@pytest.mark.asyncio
async def test_subscriptions_disabled(gateway, uow_factory, repo):
    service = CheckoutLinkService(gateway=gateway, uow_factory=uow_factory, settings=_settings(allow_subscriptions=False))
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Annually")
    await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)
    basket = _sent_basket(gateway)
    assert basket.recurring is False
    assert basket.items[0].package.expiry_length == 12


@pytest.mark.asyncio
async def test_non_hosting_items_are_single_packages(service, gateway):
    items = [
        InvoiceItem(id=1, invoice_id=100, type="DomainRegister", relid=7, description="example.com", amount=Decimal("12.99")),
        InvoiceItem(id=2, invoice_id=100, type="Addon", relid=8, description="Backups", amount=Decimal("2.00")),
    ]
    await service.build_checkout_link(Invoice(id=100, items=items), CLIENT)
    basket = _sent_basket(gateway)
    assert [i.package.name for i in basket.items] == ["example.com", "Backups"]
    assert [i.package.meta.custom_data() for i in basket.items] == [{"relid": 7}, {"relid": 8}]
    assert all(i.type == PackagePaymentType.SINGLE for i in basket.items)


@pytest.mark.asyncio
async def test_unknown_cycle_returns_error_without_remote_call(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Fortnightly")
    result = await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)
    assert not result.ok
    assert "Fortnightly" in result.error
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_second_subscription_item_is_rejected(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Monthly")
    repo.hostings[56] = HostingService(id=56, package_id=2, billing_cycle="Annually")
    invoice = Invoice(id=100, items=[_hosting_item(55), _hosting_item(56, description="VPS Annual")])

    result = await service.build_checkout_link(invoice, CLIENT)

    assert result.error == "Only one subscription product is allowed per invoice"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_missing_hosting_returns_error(service, gateway):
    result = await service.build_checkout_link(Invoice(id=100, items=[_hosting_item(99)]), CLIENT)
    assert result.error == "Hosting service not found: 99"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_missing_checkout_link_is_reported(service, gateway, repo):
    repo.hostings[55] = HostingService(id=55, package_id=1, billing_cycle="Monthly")
    gateway.checkout_response = CheckoutResponse(ident="bskt-2", links=CheckoutLinks(checkout=None))

    result = await service.build_checkout_link(Invoice(id=100, items=[_hosting_item()]), CLIENT)

    assert result.url is None
    assert result.error == BASKET_FAILED_MESSAGE
    assert len(gateway.triage_events) == 1
    event = gateway.triage_events[0]
    assert event.error_message == "Failed to create checkout basket"
    assert event.metadata["basket"]["custom"] == {"invoiceId": 100}
    assert event.metadata["items"][0]["package"]["metaData"] == {"custom": '{"relid": 55}'}


@pytest.mark.asyncio
async def test_provider_error_is_reported(service, gateway):
    gateway.error = APIError("Bad Request", status_code=400, title="Bad Request", detail="Invalid basket")
    result = await service.build_checkout_link(Invoice(id=100, items=[]), CLIENT)
    assert result.error == BASKET_FAILED_MESSAGE
    assert len(gateway.triage_events) == 1
    assert "error" in gateway.triage_events[0].metadata


@pytest.mark.asyncio
async def test_triage_failure_does_not_escape(service, gateway):
    gateway.checkout_response = CheckoutResponse(ident="bskt-3")
    gateway.triage_error = RuntimeError("sink down")
    result = await service.build_checkout_link(Invoice(id=100, items=[]), CLIENT)
    assert result.error == BASKET_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_build_for_invoice_id_loads_invoice(service, gateway, repo):
    repo.invoices[100] = Invoice(id=100, items=[
        InvoiceItem(id=1, invoice_id=100, type="Item", relid=0, description="Setup fee", amount=Decimal("5.00"))
    ])
    result = await service.build_for_invoice_id(100, CLIENT, "https://billing.example.com/return")
    assert result.ok
    assert _sent_basket(gateway).return_url == "https://billing.example.com/return"


@pytest.mark.asyncio
async def test_build_for_unknown_invoice_raises(service):
    with pytest.raises(InvoiceNotFoundException):
        await service.build_for_invoice_id(404, CLIENT, "https://billing.example.com/return")
