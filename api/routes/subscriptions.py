"""
Subscription admin routes - 远程订阅（recurring payment）的查询与状态管理
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_payment_service, require_admin
from application.services.payment_service import PaymentService
from core.i18n import t
from core.response import success_response


router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"], dependencies=[Depends(require_admin)])


@router.get("/{reference}", summary="Fetch subscription")
async def fetch_subscription(reference: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.fetch_subscription(reference)
    return success_response(data=result.model_dump(mode="json"), message=t("subscriptions.fetched"))


@router.post("/{reference}/cancel", summary="Cancel subscription")
async def cancel_subscription(reference: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.cancel_subscription(reference)
    return success_response(data=result.model_dump(mode="json"), message=t("subscriptions.cancelled"))


@router.post("/{reference}/pause", summary="Pause subscription")
async def pause_subscription(reference: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.pause_subscription(reference)
    return success_response(data=result.model_dump(mode="json"), message=t("subscriptions.paused"))


@router.post("/{reference}/reactivate", summary="Reactivate subscription")
async def reactivate_subscription(reference: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.reactivate_subscription(reference)
    return success_response(data=result.model_dump(mode="json"), message=t("subscriptions.reactivated"))
