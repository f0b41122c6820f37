"""
Webhook callback processing.

Applies verified payment webhooks to host invoice and hosting state. The
order of checks matters: nothing is written to the invoice until the
signature, invoice and transaction checks have all passed.
"""
from __future__ import annotations

from typing import Callable, Optional

from application.dtos.payments import CallbackOutcome, CallbackStatus
from application.dtos.webhooks import (
    RECURRING_PAYMENT_STARTED,
    RecurringPaymentSubject,
    WebhookEnvelope,
    WebhookKind,
)
from application.ports.payment_gateway import WebhookDecoder
from core.logging_config import get_logger
from core.settings import CheckoutSettings, checkout_settings
from domain.common.exceptions import (
    DuplicateTransactionException,
    InvoiceNotFoundException,
    WebhookPayloadException,
    WebhookSignatureException,
)
from domain.common.unit_of_work import AbstractUnitOfWork


logger = get_logger(__name__)

SUBSCRIPTION_LINKED = "Subscription ID set successfully"
SUBSCRIPTION_NOT_LINKED = "Could not find hosting object"


class CallbackService:
    def __init__(
        self,
        verifier: WebhookDecoder,
        uow_factory: Callable[..., AbstractUnitOfWork],
        settings: Optional[CheckoutSettings] = None,
    ) -> None:
        self.verifier = verifier
        self._uow_factory = uow_factory
        self.settings = settings or checkout_settings

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> CallbackOutcome:
        """
        处理一次 webhook 投递

        Raises:
            WebhookSignatureException: 签名无效（不做任何状态变更）
            WebhookPayloadException: 负载无法解析
            InvoiceNotFoundException: 发票不存在
            DuplicateTransactionException: 交易号已记录
        """
        try:
            event = self.verifier.verify_and_decode(raw_body, signature)
        except WebhookSignatureException:
            logger.warning("webhook_rejected", reason="signature")
            raise

        if event.is_validation:
            logger.info("webhook_validation", event_id=event.id)
            return CallbackOutcome(
                status=CallbackStatus.VALIDATED,
                event_id=event.id,
                event_type=event.type,
                body={"id": event.id},
            )

        # 网关日志独立提交，后续中止时仍保留
        async with self._uow_factory() as uow:
            await uow.billing_repository.log_transaction(
                self.settings.gateway_name,
                raw_body.decode("utf-8", errors="replace"),
                event.type,
            )

        if event.kind == WebhookKind.UNKNOWN:
            logger.info("webhook_ignored", event_id=event.id, event_type=event.type)
            return CallbackOutcome(
                status=CallbackStatus.IGNORED,
                event_id=event.id,
                event_type=event.type,
                message=f"Unhandled webhook type: {event.type}",
            )

        return await self._apply(event)

    async def _apply(self, event: WebhookEnvelope) -> CallbackOutcome:
        payment = event.payment
        if payment is None:
            raise WebhookPayloadException("missing payment subject", details={"type": event.type})

        raw_invoice_id = event.resolve_invoice_id()
        try:
            invoice_id = int(raw_invoice_id) if raw_invoice_id is not None else None
        except ValueError:
            invoice_id = None

        success = not event.is_declined
        log = logger.bind(
            event_id=event.id,
            event_type=event.type,
            invoice_id=raw_invoice_id,
            transaction_id=payment.transaction_id,
        )

        async with self._uow_factory() as uow:
            repo = uow.billing_repository
            if invoice_id is None or not await repo.invoice_exists(invoice_id):
                log.warning("webhook_invoice_not_found")
                raise InvoiceNotFoundException(raw_invoice_id)
            starts_subscription = event.type == RECURRING_PAYMENT_STARTED
            already_recorded = await repo.transaction_exists(payment.transaction_id)
            # The first recurring charge may arrive as payment.completed before the start event.
            if already_recorded and not starts_subscription:
                log.info("webhook_duplicate_transaction")
                raise DuplicateTransactionException(payment.transaction_id)

            if not success:
                log.info("webhook_payment_declined", decline_reason=_decline_reason(event))
                return CallbackOutcome(
                    status=CallbackStatus.DECLINED,
                    event_id=event.id,
                    event_type=event.type,
                    invoice_id=invoice_id,
                    transaction_id=payment.transaction_id,
                    message="Payment declined",
                )

            if already_recorded:
                log.info("webhook_payment_already_recorded")
            else:
                await repo.add_invoice_payment(
                    invoice_id,
                    payment.transaction_id,
                    payment.price_paid.amount,
                    payment.fees.gateway.amount,
                    self.settings.module_name,
                )
                log.info(
                    "webhook_payment_applied",
                    amount=str(payment.price_paid.amount),
                    fee=str(payment.fees.gateway.amount),
                )

            linked: Optional[bool] = None
            message = "Payment applied"
            if starts_subscription:
                linked = await self._link_subscription(repo, event)
                message = SUBSCRIPTION_LINKED if linked else SUBSCRIPTION_NOT_LINKED

        return CallbackOutcome(
            status=CallbackStatus.PAID,
            event_id=event.id,
            event_type=event.type,
            invoice_id=invoice_id,
            transaction_id=payment.transaction_id,
            subscription_linked=linked,
            message=message,
        )

    async def _link_subscription(self, repo, event: WebhookEnvelope) -> bool:
        """Store the recurring reference on the hosting service named by the first product's relid."""
        subject = event.subject
        if not isinstance(subject, RecurringPaymentSubject):
            return False
        try:
            relid = int(subject.initial_payment.products[0].custom_data()["relid"])
        except (IndexError, KeyError, TypeError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning("subscription_link_failed", event_id=event.id, reason="no relid in product custom", error=repr(exc))
            return False

        updated = await repo.set_hosting_subscription_id(relid, subject.reference)
        logger.info("subscription_link", event_id=event.id, relid=relid, reference=subject.reference, linked=updated)
        return updated


def _decline_reason(event: WebhookEnvelope) -> Optional[str]:
    payment = event.payment
    if payment is None or payment.decline_reason is None:
        return None
    return payment.decline_reason.message or payment.decline_reason.code
