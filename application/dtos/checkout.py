"""
Checkout request DTOs (Pydantic v2) sent to the remote checkout API.

All models are frozen. Builder-style `with_*` methods return a new value
instead of mutating, so shared defaults can seed several baskets safely.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from domain.common.exceptions import MultipleSubscriptionItemsException

DEFAULT_BASKET_TTL = timedelta(hours=24)


class ExpiryPeriod(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class PackagePaymentType(str, Enum):
    SINGLE = "single"
    SUBSCRIPTION = "subscription"


class RecurringPaymentStatus(str, Enum):
    PAUSED = "Paused"
    ACTIVE = "Active"


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PackageMeta(_Payload):
    """Free-form metadata; `custom` is a JSON string echoed back in webhooks."""

    custom: str = ""

    @classmethod
    def from_custom(cls, value: dict[str, Any]) -> "PackageMeta":
        return cls(custom=json.dumps(value))

    def custom_data(self) -> dict[str, Any]:
        return json.loads(self.custom) if self.custom else {}


class Sale(_Payload):
    id: int
    name: str
    package_id: Optional[int] = None
    discount_amount: Decimal = Field(alias="discountAmount")
    type: str

    @field_serializer("discount_amount")
    def _ser_discount(self, value: Decimal) -> float:
        return float(value)


class RevenueShare(_Payload):
    wallet_ref: str
    amount: Decimal = Decimal("0")
    gateway_fee_percent: Decimal = Decimal("0")

    @field_serializer("amount", "gateway_fee_percent")
    def _ser_decimal(self, value: Decimal) -> float:
        return float(value)


class Package(_Payload):
    name: str = ""
    price: Decimal = Decimal("0.00")
    expiry_period: Optional[ExpiryPeriod] = None
    expiry_length: int = 1
    meta: Optional[PackageMeta] = Field(default=None, alias="metaData")
    # Not part of the wire shape; decides the basket item payment type.
    subscription: bool = Field(default=False, exclude=True)

    @field_validator("expiry_period", mode="before")
    @classmethod
    def _blank_period(cls, v):
        return None if v in ("", None) else v

    @field_serializer("expiry_period")
    def _ser_period(self, value: Optional[ExpiryPeriod]) -> str:
        return value.value if value else ""

    @field_serializer("price")
    def _ser_price(self, value: Decimal) -> float:
        return float(value)

    @field_serializer("meta")
    def _ser_meta(self, value: Optional[PackageMeta]) -> dict:
        return value.model_dump() if value else {}

    @field_validator("meta", mode="before")
    @classmethod
    def _empty_meta(cls, v):
        return None if v in ({}, [], None) else v

    def with_subscription(self, value: bool = True) -> "Package":
        return self.model_copy(update={"subscription": value})

    def with_expiry(self, period: ExpiryPeriod, length: int) -> "Package":
        return self.model_copy(update={"expiry_period": period, "expiry_length": length})

    def with_meta(self, custom: dict[str, Any]) -> "Package":
        return self.model_copy(update={"meta": PackageMeta.from_custom(custom)})


class BasketItem(_Payload):
    package: Package
    qty: int = Field(default=1, ge=1)
    type: PackagePaymentType = PackagePaymentType.SINGLE
    revenue_share: tuple[RevenueShare, ...] = ()
    sale: Optional[Sale] = None

    @classmethod
    def for_package(cls, package: Package, qty: int = 1) -> "BasketItem":
        payment_type = PackagePaymentType.SUBSCRIPTION if package.subscription else PackagePaymentType.SINGLE
        return cls(package=package, qty=qty, type=payment_type)

    @field_validator("sale", mode="before")
    @classmethod
    def _empty_sale(cls, v):
        return None if v in ({}, [], None) else v

    @field_serializer("sale")
    def _ser_sale(self, value: Optional[Sale]) -> dict:
        return value.model_dump(mode="json", by_alias=True) if value else {}

    @property
    def is_subscription(self) -> bool:
        return self.type == PackagePaymentType.SUBSCRIPTION

    def with_quantity(self, qty: int) -> "BasketItem":
        if qty < 1:
            raise ValueError("qty must be at least 1")
        return self.model_copy(update={"qty": qty})

    def with_revenue_share(self, *shares: RevenueShare) -> "BasketItem":
        return self.model_copy(update={"revenue_share": tuple(shares)})

    def with_sale(self, sale: Sale) -> "BasketItem":
        return self.model_copy(update={"sale": sale})


class Basket(_Payload):
    """
    The payload for `POST /checkout`'s `basket` key.

    `custom` is returned untouched in every webhook for payments made from
    this basket, which is how a webhook finds its invoice.
    """

    return_url: str = ""
    complete_url: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    expires_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc) + DEFAULT_BASKET_TTL)
    custom: dict[str, Any] = Field(default_factory=dict)
    recurring: bool = False
    items: tuple[BasketItem, ...] = ()

    @property
    def subscription_items(self) -> list[BasketItem]:
        return [item for item in self.items if item.is_subscription]

    def with_urls(self, return_url: str, complete_url: Optional[str] = None) -> "Basket":
        return self.model_copy(update={"return_url": return_url, "complete_url": complete_url or return_url})

    def with_customer(self, first_name: str, last_name: str, email: str) -> "Basket":
        return self.model_copy(update={"first_name": first_name, "last_name": last_name, "email": email})

    def with_custom(self, custom: dict[str, Any]) -> "Basket":
        return self.model_copy(update={"custom": dict(custom)})

    def with_recurring(self, value: bool = True) -> "Basket":
        return self.model_copy(update={"recurring": value})

    def with_expiry(self, expires_at: datetime) -> "Basket":
        return self.model_copy(update={"expires_at": expires_at})

    def with_item(self, item: BasketItem) -> "Basket":
        if item.is_subscription and self.subscription_items:
            raise MultipleSubscriptionItemsException(self.custom.get("invoiceId"))
        return self.model_copy(update={"items": (*self.items, item)})

    def to_payload(self) -> dict[str, Any]:
        """Wire shape of the basket itself; items travel next to it."""
        return self.model_dump(mode="json", by_alias=True, exclude={"items"})


class CheckoutRequest(_Payload):
    basket: Basket
    sale: Optional[Sale] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "basket": self.basket.to_payload(),
            "items": [item.model_dump(mode="json", by_alias=True) for item in self.basket.items],
            "sale": self.sale.model_dump(mode="json", by_alias=True) if self.sale else {},
        }


class TriageEvent(BaseModel):
    """Diagnostic report posted to the plugin log sink when an integration step fails."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    game_id: str = ""
    framework_id: str = ""
    plugin_version: str = ""
    server_ip: str = ""
    error_message: str = ""
    trace: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    store_name: str = ""
    store_url: str = ""


class CheckoutLinks(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    checkout: Optional[str] = None
    payment: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Response of `POST /checkout`; a missing checkout link is a build failure, not a decode error."""

    model_config = ConfigDict(extra="allow", frozen=True)

    ident: Optional[str] = None
    links: Optional[CheckoutLinks] = None

    @property
    def checkout_url(self) -> Optional[str]:
        return self.links.checkout if self.links else None


class RemoteBasket(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    ident: str
    complete: bool = False
    links: Optional[CheckoutLinks] = None
    rows: list[dict[str, Any]] = Field(default_factory=list)
