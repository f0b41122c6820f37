"""
Checkout gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from application.dtos.checkout import (
    Basket,
    CheckoutResponse,
    Package,
    RecurringPaymentStatus,
    RemoteBasket,
    Sale,
    TriageEvent,
)
from application.dtos.webhooks import PaymentSubject, RecurringPaymentSubject, WebhookEnvelope


@runtime_checkable
class CheckoutGateway(Protocol):
    """Gateway protocol for the hosted-checkout payment processor.

    Implementations should be async and side-effect free beyond IO.
    """

    async def create_basket(self, basket: Basket) -> RemoteBasket: ...

    async def fetch_basket(self, basket_id: str) -> RemoteBasket: ...

    async def add_package_to_basket(self, basket_id: str, package: Package) -> RemoteBasket: ...

    async def remove_row_from_basket(self, basket_id: str, row_id: int) -> RemoteBasket: ...

    async def add_sale_to_basket(self, basket_id: str, sale: Sale) -> RemoteBasket: ...

    async def create_checkout_request(self, basket: Basket, sale: Optional[Sale] = None) -> CheckoutResponse: ...

    async def fetch_payment(self, transaction_id: str) -> PaymentSubject: ...

    async def refund_payment(self, transaction_id: str) -> PaymentSubject: ...

    async def fetch_recurring_payment(self, reference: str) -> RecurringPaymentSubject: ...

    async def update_subscribed_product(self, reference: str, items: list[dict[str, Any]]) -> RecurringPaymentSubject: ...

    async def cancel_recurring_payment(self, reference: str) -> RecurringPaymentSubject: ...

    async def update_recurring_payment_status(
        self, reference: str, status: RecurringPaymentStatus
    ) -> RecurringPaymentSubject: ...

    async def post_plugin_log(self, event: TriageEvent) -> None: ...


@runtime_checkable
class WebhookDecoder(Protocol):
    """Verifies a signed webhook delivery and decodes it into an envelope.

    Raises WebhookSignatureException / WebhookPayloadException.
    """

    def verify_and_decode(self, raw_body: bytes, signature: Optional[str]) -> WebhookEnvelope: ...
