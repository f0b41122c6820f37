"""
Hosted checkout REST adapter.

Authenticates with HTTP Basic (account id : secret key) and talks JSON to
the checkout API. Every call is attempted once; failures surface as the
classified `APIError` family from the base client.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.checkout import (
    Basket,
    CheckoutRequest,
    CheckoutResponse,
    Package,
    RecurringPaymentStatus,
    RemoteBasket,
    Sale,
    TriageEvent,
)
from application.dtos.webhooks import PaymentSubject, RecurringPaymentSubject
from core.settings import CheckoutSettings
from infrastructure.external.api_clients.base import BaseAPIClient


class CheckoutAPIClient(BaseAPIClient):
    module = "Tebex Checkout"

    def __init__(
        self,
        account_id: Optional[str],
        secret_key: Optional[str],
        *,
        base_url: str = "https://checkout.tebex.io/api/",
        plugin_log_url: str = "https://plugin-logs.tebex.io/",
        timeout: float | httpx.Timeout = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            auth=httpx.BasicAuth(account_id or "", secret_key or ""),
            transport=transport,
        )
        self.plugin_log_url = plugin_log_url

    @classmethod
    def from_settings(
        cls, settings: CheckoutSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "CheckoutAPIClient":
        t = settings.timeouts
        return cls(
            settings.account_id,
            settings.api_key,
            base_url=settings.api_url,
            plugin_log_url=settings.plugin_log_url,
            timeout=httpx.Timeout(t.total, connect=t.connect, read=t.read, write=t.write),
            transport=transport,
        )

    # Baskets

    async def create_basket(self, basket: Basket) -> RemoteBasket:
        response = await self.post("baskets", json_data=basket.to_payload())
        return self.decode(response, RemoteBasket)

    async def fetch_basket(self, basket_id: str) -> RemoteBasket:
        response = await self.get(f"baskets/{basket_id}")
        return self.decode(response, RemoteBasket)

    async def add_package_to_basket(self, basket_id: str, package: Package) -> RemoteBasket:
        response = await self.post(f"baskets/{basket_id}/packages", json_data=package)
        return self.decode(response, RemoteBasket)

    async def remove_row_from_basket(self, basket_id: str, row_id: int) -> RemoteBasket:
        response = await self.delete(f"baskets/{basket_id}/packages/{row_id}")
        return self.decode(response, RemoteBasket)

    async def add_sale_to_basket(self, basket_id: str, sale: Sale) -> RemoteBasket:
        response = await self.post(f"baskets/{basket_id}/sales", json_data=sale)
        return self.decode(response, RemoteBasket)

    # Checkout

    async def create_checkout_request(self, basket: Basket, sale: Optional[Sale] = None) -> CheckoutResponse:
        payload = CheckoutRequest(basket=basket, sale=sale).to_payload()
        response = await self.post("checkout", json_data=payload)
        return self.decode(response, CheckoutResponse)

    # Payments

    async def fetch_payment(self, transaction_id: str) -> PaymentSubject:
        response = await self.get(f"payments/{transaction_id}", params={"type": "txn_id"})
        return self.decode(response, PaymentSubject)

    async def refund_payment(self, transaction_id: str) -> PaymentSubject:
        response = await self.post(f"payments/{transaction_id}/refund", params={"type": "txn_id"}, json_data={})
        return self.decode(response, PaymentSubject)

    # Recurring payments

    async def fetch_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        response = await self.get(f"recurring-payments/{reference}")
        return self.decode(response, RecurringPaymentSubject)

    async def update_subscribed_product(self, reference: str, items: list[dict[str, Any]]) -> RecurringPaymentSubject:
        response = await self.put(f"recurring-payments/{reference}", json_data={"items": items})
        return self.decode(response, RecurringPaymentSubject)

    async def cancel_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        response = await self.delete(f"recurring-payments/{reference}")
        return self.decode(response, RecurringPaymentSubject)

    async def update_recurring_payment_status(
        self, reference: str, status: RecurringPaymentStatus
    ) -> RecurringPaymentSubject:
        response = await self.put(f"recurring-payments/{reference}/status", json_data={"status": status.value})
        return self.decode(response, RecurringPaymentSubject)

    async def pause_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        return await self.update_recurring_payment_status(reference, RecurringPaymentStatus.PAUSED)

    async def reactivate_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        return await self.update_recurring_payment_status(reference, RecurringPaymentStatus.ACTIVE)

    # Diagnostics

    async def post_plugin_log(self, event: TriageEvent) -> None:
        """Send a triage event to the plugin log sink (no authentication)."""
        await self.post(
            self.plugin_log_url,
            json_data=event.model_dump(mode="json", by_alias=True),
            use_auth=False,
        )
