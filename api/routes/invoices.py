"""
Invoice routes - 为发票生成托管结账链接
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from api.dependencies import get_checkout_link_service, require_admin
from application.dtos.payments import CheckoutLinkRequest
from application.services.checkout_link_service import CheckoutLinkService
from core.i18n import t
from core.response import success_response


router = APIRouter(prefix="/invoices", tags=["Invoices"], dependencies=[Depends(require_admin)])


@router.post("/{invoice_id}/checkout-link", summary="Build checkout link")
async def build_checkout_link(
    payload: CheckoutLinkRequest,
    invoice_id: int = Path(..., gt=0),
    service: CheckoutLinkService = Depends(get_checkout_link_service),
):
    """返回 `{url, error}`；远程失败时 `error` 为可直接展示给客户的文本"""
    result = await service.build_for_invoice_id(invoice_id, payload.to_client_details(), payload.return_url)
    message = t("checkout.link.created") if result.ok else t("checkout.link.failed")
    return success_response(data=result.model_dump(mode="json"), message=message)
