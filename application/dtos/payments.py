"""
Result DTOs (Pydantic v2) returned by the application services to the host.
"""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from domain.billing import ClientDetails


class CheckoutLinkResult(BaseModel):
    """Either a checkout url or a user-visible error message."""

    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None


class CallbackStatus(str, Enum):
    VALIDATED = "validated"
    PAID = "paid"
    DECLINED = "declined"
    IGNORED = "ignored"


class CallbackOutcome(BaseModel):
    status: CallbackStatus
    event_id: str
    event_type: str
    message: str = ""
    invoice_id: Optional[int] = None
    transaction_id: Optional[str] = None
    subscription_linked: Optional[bool] = None
    # Exact JSON body for validation challenges
    body: Optional[dict[str, Any]] = None


class RefundOutcome(BaseModel):
    status: Literal["success", "error"]
    transaction_id: str
    fees: Decimal = Decimal("0")
    internal_status: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)


class SubscriptionOutcome(BaseModel):
    status: Literal["success", "error"]
    reference: str
    action: str
    raw: dict[str, Any] = Field(default_factory=dict)


class CheckoutLinkRequest(BaseModel):
    """Client details the host passes when rendering the pay-now link."""

    return_url: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    phone: str = ""

    def to_client_details(self) -> ClientDetails:
        return ClientDetails(**self.model_dump(exclude={"return_url"}))
