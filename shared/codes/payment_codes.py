"""
Payment specific codes and remote status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    SIGNATURE_ERROR = 60002
    TIMEOUT = 60003
    TRANSPORT_ERROR = 60005
    RESPONSE_DECODE_ERROR = 60006

    # Webhook/billing errors (61xxx)
    WEBHOOK_PAYLOAD_INVALID = 61000
    INVOICE_NOT_FOUND = 61001
    DUPLICATE_TRANSACTION = 61002
    UNSUPPORTED_BILLING_CYCLE = 61003
    MULTIPLE_SUBSCRIPTIONS = 61004


# Remote payment status descriptions -> internal status names
REMOTE_STATUS_TO_INTERNAL = {
    "Complete": "succeeded",
    "Refund": "refunded",
    "Chargeback": "chargeback",
    "Declined": "failed",
    "Pending Checkout": "pending",
    "Refund Pending": "refund_pending",
}


def map_remote_status(description: str | None) -> str:
    if not description:
        return "unknown"
    return REMOTE_STATUS_TO_INTERNAL.get(description, description.lower().replace(" ", "_"))
