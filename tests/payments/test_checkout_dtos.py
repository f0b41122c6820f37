from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from application.dtos.checkout import (
    Basket,
    BasketItem,
    CheckoutRequest,
    ExpiryPeriod,
    Package,
    PackagePaymentType,
    RevenueShare,
    Sale,
)
from domain.common.exceptions import MultipleSubscriptionItemsException


def test_basket_defaults():
    basket = Basket()
    assert basket.recurring is False
    assert basket.items == ()
    assert basket.custom == {}
    remaining = basket.expires_at - datetime.now(timezone.utc)
    assert timedelta(hours=23) < remaining <= timedelta(hours=24)


def test_with_methods_return_copies():
    base = Basket().with_custom({"invoiceId": 1})
    recurring = base.with_recurring()
    assert base.recurring is False
    assert recurring.recurring is True
    assert recurring.custom == {"invoiceId": 1}


def test_models_are_frozen():
    basket = Basket()
    with pytest.raises(ValidationError):
        basket.recurring = True


def test_complete_url_defaults_to_return_url():
    basket = Basket().with_urls("https://billing.example.test/r")
    assert basket.complete_url == "https://billing.example.test/r"
    assert Basket().with_urls("a", "b").complete_url == "b"


def test_package_wire_shape_without_terms():
    data = Package(name="Setup", price=Decimal("5.5")).model_dump(mode="json", by_alias=True)
    assert data == {"name": "Setup", "price": 5.5, "expiry_period": "", "expiry_length": 1, "metaData": {}}


def test_package_wire_shape_with_terms():
    package = Package(name="VPS", price=Decimal("10")).with_expiry(ExpiryPeriod.MONTH, 3).with_subscription()
    data = package.model_dump(mode="json", by_alias=True)
    assert data["expiry_period"] == "month"
    assert data["expiry_length"] == 3
    assert "subscription" not in data


def test_package_accepts_wire_shape():
    package = Package.model_validate({"name": "VPS", "price": 1, "expiry_period": "", "metaData": {}})
    assert package.expiry_period is None
    assert package.meta is None


def test_item_type_follows_package_subscription_flag():
    single = BasketItem.for_package(Package(name="a"))
    subscription = BasketItem.for_package(Package(name="b").with_subscription())
    assert single.type == PackagePaymentType.SINGLE
    assert subscription.type == PackagePaymentType.SUBSCRIPTION


def test_item_quantity_must_be_positive():
    item = BasketItem.for_package(Package(name="a"))
    assert item.with_quantity(3).qty == 3
    with pytest.raises(ValueError):
        item.with_quantity(0)


def test_item_with_revenue_share_and_sale():
    item = (
        BasketItem.for_package(Package(name="a"))
        .with_revenue_share(RevenueShare(wallet_ref="w-1", amount=Decimal("1.25")))
        .with_sale(Sale(id=1, name="Spring", discount_amount=Decimal("2"), type="amount"))
    )
    data = item.model_dump(mode="json", by_alias=True)
    assert data["revenue_share"] == [{"wallet_ref": "w-1", "amount": 1.25, "gateway_fee_percent": 0.0}]
    assert data["sale"]["discountAmount"] == 2.0


def test_second_subscription_item_raises():
    basket = Basket().with_custom({"invoiceId": 7}).with_item(
        BasketItem.for_package(Package(name="a").with_subscription())
    )
    basket = basket.with_item(BasketItem.for_package(Package(name="b")))
    with pytest.raises(MultipleSubscriptionItemsException) as exc_info:
        basket.with_item(BasketItem.for_package(Package(name="c").with_subscription()))
    assert exc_info.value.details == {"invoice_id": 7}
    assert len(basket.subscription_items) == 1


def test_checkout_request_payload_keeps_items_beside_basket():
    basket = Basket().with_item(BasketItem.for_package(Package(name="a")))
    payload = CheckoutRequest(basket=basket).to_payload()
    assert "items" not in payload["basket"]
    assert len(payload["items"]) == 1
    assert payload["sale"] == {}


def test_basket_payload_round_trips_through_json():
    basket = (
        Basket()
        .with_urls("https://billing.example.test/r")
        .with_customer("Jane", "Doe", "jane@example.com")
        .with_custom({"invoiceId": 100})
        .with_recurring()
    )
    restored = Basket.model_validate(basket.to_payload())
    assert restored.to_payload() == basket.to_payload()
    assert restored.expires_at == basket.expires_at


def test_checkout_payload_with_items_restores_basket():
    basket = (
        Basket()
        .with_custom({"invoiceId": 100})
        .with_item(
            BasketItem.for_package(
                Package(name="VPS", price=Decimal("10.00"))
                .with_expiry(ExpiryPeriod.MONTH, 1)
                .with_meta({"invoiceId": 100})
                .with_subscription()
            )
        )
        .with_item(BasketItem.for_package(Package(name="Setup", price=Decimal("5.00")), qty=2))
    )
    payload = CheckoutRequest(basket=basket).to_payload()

    restored = Basket.model_validate({**payload["basket"], "items": payload["items"]})

    assert [item.package.name for item in restored.items] == ["VPS", "Setup"]
    assert [item.type for item in restored.items] == [PackagePaymentType.SUBSCRIPTION, PackagePaymentType.SINGLE]
    assert [item.qty for item in restored.items] == [1, 2]
    assert restored.items[0].package.meta.custom_data() == {"invoiceId": 100}
    assert restored.items[1].package.expiry_period is None
    assert restored.items[1].sale is None
    assert restored.items[1].revenue_share == ()
    assert len(restored.subscription_items) == 1
    assert CheckoutRequest(basket=restored).to_payload() == payload
