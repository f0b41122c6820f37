"""
Application service orchestrating admin payment use-cases.

This class depends only on the application CheckoutGateway port and DTOs.
Gateway implementations are provided by infrastructure and must be injected
from the composition root (API routes), keeping dependencies one-way.
Remote failures are returned as ``status="error"`` results, never raised.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable

from application.dtos.checkout import RecurringPaymentStatus
from application.dtos.payments import RefundOutcome, SubscriptionOutcome
from application.dtos.webhooks import RecurringPaymentSubject
from application.ports.payment_gateway import CheckoutGateway
from core.logging_config import get_logger
from infrastructure.external.api_clients import APIError
from shared.codes.payment_codes import map_remote_status


logger = get_logger(__name__)


def _error_raw(exc: APIError) -> dict[str, Any]:
    raw: dict[str, Any] = {"message": exc.message, **exc.error_details}
    if exc.response is not None and isinstance(exc.response.data, dict):
        raw["response"] = exc.response.data
    return raw


class PaymentService:
    def __init__(self, gateway: CheckoutGateway) -> None:
        self.gateway = gateway

    async def refund(self, transaction_id: str) -> RefundOutcome:
        logger.info("payment_refund_request", transaction_id=transaction_id)
        try:
            payment = await self.gateway.refund_payment(transaction_id)
        except APIError as exc:
            logger.warning("payment_refund_failed", transaction_id=transaction_id, **exc.error_details)
            return RefundOutcome(status="error", transaction_id=transaction_id, raw=_error_raw(exc))

        raw = payment.model_dump(mode="json")
        if not payment.transaction_id:
            logger.warning("payment_refund_failed", transaction_id=transaction_id, reason="no transaction id")
            return RefundOutcome(status="error", transaction_id=transaction_id, fees=payment.fees.total, raw=raw)

        outcome = RefundOutcome(
            status="success",
            transaction_id=transaction_id,
            fees=payment.fees.total,
            internal_status=map_remote_status(payment.status.description),
            raw=raw,
        )
        logger.info(
            "payment_refund_response",
            transaction_id=transaction_id,
            status=outcome.internal_status,
            fees=str(outcome.fees),
        )
        return outcome

    async def fetch_payment(self, transaction_id: str) -> RefundOutcome:
        """Current remote state of a payment, in the same result shape as a refund."""
        logger.info("payment_query_request", transaction_id=transaction_id)
        try:
            payment = await self.gateway.fetch_payment(transaction_id)
        except APIError as exc:
            return RefundOutcome(status="error", transaction_id=transaction_id, raw=_error_raw(exc))
        return RefundOutcome(
            status="success",
            transaction_id=payment.transaction_id,
            fees=payment.fees.total,
            internal_status=map_remote_status(payment.status.description),
            raw=payment.model_dump(mode="json"),
        )

    async def cancel_subscription(self, reference: str) -> SubscriptionOutcome:
        return await self._subscription_call("cancel", reference, self.gateway.cancel_recurring_payment)

    async def pause_subscription(self, reference: str) -> SubscriptionOutcome:
        return await self._subscription_call("pause", reference, self._pause)

    async def reactivate_subscription(self, reference: str) -> SubscriptionOutcome:
        return await self._subscription_call("reactivate", reference, self._reactivate)

    async def fetch_subscription(self, reference: str) -> SubscriptionOutcome:
        return await self._subscription_call("fetch", reference, self.gateway.fetch_recurring_payment)

    async def _pause(self, reference: str) -> RecurringPaymentSubject:
        return await self.gateway.update_recurring_payment_status(reference, RecurringPaymentStatus.PAUSED)

    async def _reactivate(self, reference: str) -> RecurringPaymentSubject:
        return await self.gateway.update_recurring_payment_status(reference, RecurringPaymentStatus.ACTIVE)

    async def _subscription_call(
        self,
        action: str,
        reference: str,
        call: Callable[[str], Awaitable[RecurringPaymentSubject]],
    ) -> SubscriptionOutcome:
        logger.info("subscription_request", action=action, reference=reference)
        try:
            subject = await call(reference)
        except APIError as exc:
            logger.warning("subscription_request_failed", action=action, reference=reference, **exc.error_details)
            return SubscriptionOutcome(status="error", reference=reference, action=action, raw=_error_raw(exc))

        logger.info("subscription_response", action=action, reference=reference, status=subject.status.description)
        return SubscriptionOutcome(
            status="success",
            reference=reference,
            action=action,
            raw=subject.model_dump(mode="json"),
        )

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
