"""
Payments API routes.

Exposes the checkout webhook plus admin endpoints to refund and inspect
payments via the application service. Keep this thin: no HTTP client
details here.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.dependencies import (
    get_callback_service,
    get_checkout_settings,
    get_payment_service,
    require_admin,
)
from application.dtos.gateway import describe_gateway
from application.services.callback_service import CallbackService
from application.services.payment_service import PaymentService
from core.i18n import t
from core.logging_config import get_logger
from core.response import success_response
from core.settings import CheckoutSettings
from domain.common.exceptions import (
    DuplicateTransactionException,
    InvoiceNotFoundException,
    WebhookSignatureException,
)
from infrastructure.external.checkout import SIGNATURE_HEADER


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/webhooks", summary="Checkout webhook", response_model=None)
async def checkout_webhook(request: Request, service: CallbackService = Depends(get_callback_service)):
    """
    Responds 200 in every handled case: the validation challenge gets its
    `{"id"}` JSON body, everything else a plain-text message.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    try:
        outcome = await service.handle(raw_body, signature)
    except (WebhookSignatureException, InvoiceNotFoundException, DuplicateTransactionException) as exc:
        logger.info("webhook_aborted", error_type=exc.error_type, reason=exc.message)
        return PlainTextResponse(exc.message)

    if outcome.body is not None:
        return JSONResponse(outcome.body)
    return PlainTextResponse(outcome.message)


@router.get("/gateway", summary="Gateway metadata and configuration", dependencies=[Depends(require_admin)])
async def gateway_metadata(config: CheckoutSettings = Depends(get_checkout_settings)):
    return success_response(data=describe_gateway(config).model_dump(mode="json"), message=t("payments.gateway.info"))


@router.get("/{transaction_id}", summary="Fetch payment", dependencies=[Depends(require_admin)])
async def fetch_payment(transaction_id: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.fetch_payment(transaction_id)
    return success_response(data=result.model_dump(mode="json"), message=t("payments.payment.status"))


@router.post("/{transaction_id}/refund", summary="Refund payment", dependencies=[Depends(require_admin)])
async def refund_payment(transaction_id: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.refund(transaction_id)
    return success_response(data=result.model_dump(mode="json"), message=t("payments.refund.triggered"))
