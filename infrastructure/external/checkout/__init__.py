"""
Factory for the hosted-checkout gateway client.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import CheckoutGateway
from core.settings import CheckoutSettings, checkout_settings
from .client import CheckoutAPIClient
from .webhooks import SIGNATURE_HEADER, WebhookVerifier, compute_signature, decode_webhook, verify_signature


def get_checkout_gateway(settings: Optional[CheckoutSettings] = None) -> CheckoutGateway:
    return CheckoutAPIClient.from_settings(settings or checkout_settings)


def get_webhook_verifier(settings: Optional[CheckoutSettings] = None) -> WebhookVerifier:
    return WebhookVerifier((settings or checkout_settings).webhook_secret)


__all__ = [
    "CheckoutAPIClient",
    "WebhookVerifier",
    "SIGNATURE_HEADER",
    "compute_signature",
    "decode_webhook",
    "verify_signature",
    "get_checkout_gateway",
    "get_webhook_verifier",
]
