"""
结账链接应用服务 - builds the hosted checkout link for an invoice.

Each invoice line item becomes one basket package. Hosting items on a
recurring billing cycle carry expiry terms and, when subscriptions are
enabled and the service is not yet linked, turn the basket recurring.
Failures never escape this service: they are logged, reported to the
plugin log sink and returned as a user-visible error string.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from application.dtos.checkout import Basket, BasketItem, ExpiryPeriod, Package, TriageEvent
from application.dtos.payments import CheckoutLinkResult
from application.ports.payment_gateway import CheckoutGateway
from core.i18n import t
from core.logging_config import get_logger
from core.settings import CheckoutSettings, checkout_settings
from domain.billing import BillingCycle, ClientDetails, Invoice, InvoiceItem
from domain.common.exceptions import BusinessException, InvoiceNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.external.api_clients import APIError
from shared.codes import BusinessCode


logger = get_logger(__name__)

BASKET_FAILED_MESSAGE = "Error! Failed to create checkout basket. See module log."


class CheckoutLinkService:
    def __init__(
        self,
        gateway: CheckoutGateway,
        uow_factory: Callable[..., AbstractUnitOfWork],
        settings: Optional[CheckoutSettings] = None,
    ) -> None:
        self.gateway = gateway
        self._uow_factory = uow_factory
        self.settings = settings or checkout_settings

    async def build_for_invoice_id(self, invoice_id: int, client: ClientDetails, return_url: str) -> CheckoutLinkResult:
        async with self._uow_factory(readonly=True) as uow:
            invoice = await uow.billing_repository.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundException(invoice_id)
        return await self.build_checkout_link(invoice, client, return_url=return_url)

    async def build_checkout_link(
        self,
        invoice: Invoice,
        client: ClientDetails,
        settings: Optional[CheckoutSettings] = None,
        return_url: str = "",
    ) -> CheckoutLinkResult:
        settings = settings or self.settings
        try:
            basket = await self._build_basket(invoice, client, settings, return_url)
        except BusinessException as exc:
            logger.warning(
                "checkout_basket_rejected",
                invoice_id=invoice.id,
                error_type=exc.error_type,
                reason=exc.message,
                details=exc.details,
            )
            return CheckoutLinkResult(error=exc.message)

        logger.info(
            "checkout_link_request",
            invoice_id=invoice.id,
            items=len(basket.items),
            recurring=basket.recurring,
            sandbox=settings.sandbox_mode,
        )
        try:
            response = await self.gateway.create_checkout_request(basket, sale=None)
        except APIError as exc:
            await self._report_failure(invoice, basket, {"error": exc.error_details})
            return CheckoutLinkResult(error=t(BASKET_FAILED_MESSAGE))

        if not response.checkout_url:
            await self._report_failure(invoice, basket, {"response": response.model_dump(mode="json")})
            return CheckoutLinkResult(error=t(BASKET_FAILED_MESSAGE))

        logger.info("checkout_link_created", invoice_id=invoice.id, ident=response.ident)
        return CheckoutLinkResult(url=response.checkout_url)

    async def _build_basket(
        self, invoice: Invoice, client: ClientDetails, settings: CheckoutSettings, return_url: str
    ) -> Basket:
        basket = (
            Basket()
            .with_urls(return_url)
            .with_customer(client.first_name, client.last_name, client.email)
            .with_custom({"invoiceId": invoice.id})
            .with_expiry(datetime.now(timezone.utc) + timedelta(hours=settings.basket_ttl_hours))
        )
        for item in invoice.items:
            package = Package(name=item.description, price=item.amount)
            if item.is_hosting:
                package, recurring = await self._apply_hosting_terms(package, item, settings)
                if recurring:
                    basket = basket.with_recurring(True)
            package = package.with_meta({"relid": item.relid})
            basket = basket.with_item(BasketItem.for_package(package))
        return basket

    async def _apply_hosting_terms(
        self, package: Package, item: InvoiceItem, settings: CheckoutSettings
    ) -> tuple[Package, bool]:
        async with self._uow_factory(readonly=True) as uow:
            hosting = await uow.billing_repository.get_hosting(item.relid)
        if hosting is None:
            raise BusinessException(
                code=BusinessCode.NOT_FOUND,
                message=f"Hosting service not found: {item.relid}",
                error_type="HostingNotFound",
                details={"relid": item.relid, "invoice_id": item.invoice_id},
            )

        cycle = BillingCycle.parse(hosting.billing_cycle, relid=hosting.id)
        if not cycle.is_recurring:
            return package, False

        # 未关联订阅且允许订阅时走订阅流程
        subscribe = not hosting.has_subscription and settings.allow_subscriptions
        if subscribe:
            package = package.with_subscription(True)
        return package.with_expiry(ExpiryPeriod.MONTH, cycle.months), subscribe

    async def _report_failure(self, invoice: Invoice, basket: Basket, extra: dict[str, Any]) -> None:
        metadata = {"basket": basket.to_payload(), "items": [i.model_dump(mode="json", by_alias=True) for i in basket.items], "sale": None}
        metadata.update(extra)
        logger.error("checkout_basket_failed", invoice_id=invoice.id, **extra)

        event = TriageEvent(
            plugin_version=self.settings.plugin_version,
            error_message="Failed to create checkout basket",
            metadata=metadata,
        )
        try:
            await self.gateway.post_plugin_log(event)
        except Exception as exc:  # 诊断上报失败不影响主流程
            logger.warning("triage_event_failed", invoice_id=invoice.id, error=str(exc))
