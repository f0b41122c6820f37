"""
Webhook and payment response models received from the remote checkout API.

Required fields must be present (they may be null where the remote sends
null); a missing field is a decode error rather than a silent None.
"""
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

VALIDATION_EVENT = "validation.webhook"
RECURRING_PAYMENT_STARTED = "recurring-payment.started"


class WebhookKind(str, Enum):
    """Closed set of webhook families, keyed by event-type prefix."""

    VALIDATION = "validation"
    PAYMENT = "payment"
    RECURRING_PAYMENT = "recurring-payment"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, event_type: str) -> "WebhookKind":
        if event_type == VALIDATION_EVENT:
            return cls.VALIDATION
        if event_type.startswith("recurring-payment."):
            return cls.RECURRING_PAYMENT
        if event_type.startswith("payment."):
            return cls.PAYMENT
        return cls.UNKNOWN


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Price(_Model):
    amount: Decimal
    currency: str


class Status(_Model):
    id: int
    description: str


class PaymentMethod(_Model):
    name: str
    refundable: bool


class Fees(_Model):
    tax: Price
    gateway: Price

    @property
    def total(self) -> Decimal:
        return self.tax.amount + self.gateway.amount


class Username(_Model):
    id: Union[int, str, None]
    username: Optional[str]


class Customer(_Model):
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str]
    ip: Optional[str]
    username: Optional[Username]
    marketing_consent: bool
    country: Optional[str]
    postal_code: Optional[str]


class Variable(_Model):
    identifier: str
    option: Any


class Product(_Model):
    id: Union[int, str]
    name: str
    quantity: int
    base_price: Price
    paid_price: Price
    variables: list[Variable]
    expires_at: Optional[datetime]
    custom: Union[str, dict[str, Any], None]
    username: Optional[Username]

    def custom_data(self) -> dict[str, Any]:
        """Package metadata echoed back; sent as a JSON string."""
        if isinstance(self.custom, dict):
            return self.custom
        if not self.custom:
            return {}
        decoded = json.loads(self.custom)
        return decoded if isinstance(decoded, dict) else {}


class DeclineReason(_Model):
    code: Optional[str]
    message: Optional[str]


class PaymentSubject(_Model):
    transaction_id: str
    status: Status
    payment_sequence: str
    created_at: datetime
    price: Price
    price_paid: Price
    payment_method: PaymentMethod
    fees: Fees
    customer: Customer
    products: list[Product]
    coupons: list[Any]
    gift_cards: list[Any]
    recurring_payment_reference: Optional[str]
    decline_reason: Optional[DeclineReason]
    custom: Optional[dict[str, Any]] = None


class RecurringPaymentSubject(_Model):
    reference: str
    created_at: datetime
    next_payment_at: Optional[datetime]
    status: Status
    initial_payment: PaymentSubject
    last_payment: PaymentSubject
    fail_count: int
    price: Price
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    custom: Optional[dict[str, Any]] = None


class UnknownSubject(_Model):
    raw: dict[str, Any] = Field(default_factory=dict)


WebhookSubject = Union[PaymentSubject, RecurringPaymentSubject, UnknownSubject, None]


class WebhookEnvelope(_Model):
    id: str
    type: str
    date: Optional[datetime] = None
    kind: WebhookKind
    subject: WebhookSubject = None

    @property
    def is_validation(self) -> bool:
        return self.kind == WebhookKind.VALIDATION

    @property
    def is_declined(self) -> bool:
        return "declined" in self.type

    @property
    def payment(self) -> Optional[PaymentSubject]:
        """The payment this event is about; for recurring events, the latest one."""
        if isinstance(self.subject, PaymentSubject):
            return self.subject
        if isinstance(self.subject, RecurringPaymentSubject):
            return self.subject.last_payment
        return None

    def resolve_invoice_id(self) -> Optional[str]:
        """Invoice id from `subject.custom`, falling back to `subject.last_payment.custom`."""
        subject = self.subject
        custom = getattr(subject, "custom", None) or {}
        if custom.get("invoiceId") is not None:
            return str(custom["invoiceId"])
        if isinstance(subject, RecurringPaymentSubject):
            fallback = subject.last_payment.custom or {}
            if fallback.get("invoiceId") is not None:
                return str(fallback["invoiceId"])
        return None
