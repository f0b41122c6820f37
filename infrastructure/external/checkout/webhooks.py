"""
Webhook signature verification and envelope decoding.

The remote signs each delivery as
``hex(HMAC-SHA256(secret, hex(SHA256(raw_body))))`` in the ``X-Signature``
header. The body must be hashed exactly as received, before any JSON parsing.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Optional

from pydantic import ValidationError

from application.dtos.webhooks import (
    PaymentSubject,
    RecurringPaymentSubject,
    UnknownSubject,
    WebhookEnvelope,
    WebhookKind,
)
from core.logging_config import get_logger
from domain.common.exceptions import WebhookPayloadException, WebhookSignatureException

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Signature"


def compute_signature(raw_body: bytes, secret: str) -> str:
    body_digest = hashlib.sha256(raw_body).hexdigest()
    return hmac.new(secret.encode("utf-8"), body_digest.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, provided_signature: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time signature check; a missing signature or secret never verifies."""
    if not provided_signature or not secret:
        return False
    expected = compute_signature(raw_body, secret)
    provided = provided_signature.strip().lower().encode("utf-8")
    return hmac.compare_digest(expected.encode("ascii"), provided)


def _decode_subject(kind: WebhookKind, subject: Any):
    if kind == WebhookKind.VALIDATION:
        return None
    if kind == WebhookKind.PAYMENT:
        return PaymentSubject.model_validate(subject)
    if kind == WebhookKind.RECURRING_PAYMENT:
        return RecurringPaymentSubject.model_validate(subject)
    return UnknownSubject(raw=subject if isinstance(subject, dict) else {"value": subject})


def decode_webhook(raw_body: bytes) -> WebhookEnvelope:
    """Parse a raw webhook body into a typed envelope.

    Raises:
        WebhookPayloadException: body is not JSON or does not match the schema
    """
    try:
        data = json.loads(raw_body or b"")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WebhookPayloadException("body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise WebhookPayloadException("body must be a JSON object")

    event_id = data.get("id")
    event_type = data.get("type")
    if not event_id or not isinstance(event_type, str):
        raise WebhookPayloadException("missing id or type", details={"id": event_id, "type": event_type})

    kind = WebhookKind.from_type(event_type)
    try:
        return WebhookEnvelope(
            id=str(event_id),
            type=event_type,
            date=data.get("date"),
            kind=kind,
            subject=_decode_subject(kind, data.get("subject")),
        )
    except ValidationError as exc:
        raise WebhookPayloadException(
            f"unexpected {kind.value} subject",
            details={"id": event_id, "type": event_type, "errors": exc.errors(include_url=False)},
        ) from exc


class WebhookVerifier:
    """Bundles the shared secret with verification and decoding."""

    def __init__(self, secret: Optional[str]) -> None:
        self.secret = secret

    def verify(self, raw_body: bytes, signature: Optional[str]) -> None:
        if not verify_signature(raw_body, signature, self.secret):
            logger.warning("webhook_signature_invalid", has_signature=bool(signature), has_secret=bool(self.secret))
            raise WebhookSignatureException()

    def verify_and_decode(self, raw_body: bytes, signature: Optional[str]) -> WebhookEnvelope:
        self.verify(raw_body, signature)
        return decode_webhook(raw_body)
