"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class WebhookSignatureException(BusinessException):
    def __init__(self, reason: str = "Hash Verification Failure - Check Webhook Secret Key"):
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=reason,
            error_type="WebhookSignatureInvalid",
            message_key="payments.webhook.signature_invalid",
        )


class WebhookPayloadException(BusinessException):
    def __init__(self, reason: str, *, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.WEBHOOK_PAYLOAD_INVALID,
            message=f"Invalid webhook payload: {reason}",
            error_type="WebhookPayloadInvalid",
            details=details,
            message_key="payments.webhook.payload_invalid",
        )


class InvoiceNotFoundException(BusinessException):
    def __init__(self, invoice_id: Optional[object] = None):
        details = {"invoice_id": invoice_id} if invoice_id is not None else None
        super().__init__(
            code=PaymentCode.INVOICE_NOT_FOUND,
            message=f"Invoice not found: {invoice_id}",
            error_type="InvoiceNotFound",
            details=details,
            message_key="billing.invoice.not_found",
        )


class DuplicateTransactionException(BusinessException):
    def __init__(self, transaction_id: str):
        super().__init__(
            code=PaymentCode.DUPLICATE_TRANSACTION,
            message=f"Transaction {transaction_id} has already been recorded",
            error_type="DuplicateTransaction",
            details={"transaction_id": transaction_id},
            message_key="billing.transaction.duplicate",
        )


class UnsupportedBillingCycleException(BusinessException):
    def __init__(self, billing_cycle: Optional[str], *, relid: Optional[int] = None):
        details: dict = {"billing_cycle": billing_cycle}
        if relid is not None:
            details["relid"] = relid
        super().__init__(
            code=PaymentCode.UNSUPPORTED_BILLING_CYCLE,
            message=f"Unsupported billing cycle: {billing_cycle!r}",
            error_type="UnsupportedBillingCycle",
            details=details,
            field="billing_cycle",
            message_key="billing.cycle.unsupported",
        )


class MultipleSubscriptionItemsException(BusinessException):
    def __init__(self, invoice_id: Optional[int] = None):
        details = {"invoice_id": invoice_id} if invoice_id is not None else None
        super().__init__(
            code=PaymentCode.MULTIPLE_SUBSCRIPTIONS,
            message="Only one subscription product is allowed per invoice",
            error_type="MultipleSubscriptionItems",
            details=details,
            message_key="checkout.basket.multiple_subscriptions",
        )
