"""
API依赖项 - 服务装配与管理接口认证

路由只通过这些依赖获取服务；测试用 app.dependency_overrides 替换网关与
Unit of Work。
"""
import hmac
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from application.ports.payment_gateway import CheckoutGateway, WebhookDecoder
from application.services.callback_service import CallbackService
from application.services.checkout_link_service import CheckoutLinkService
from application.services.payment_service import PaymentService
from core.config import settings
from core.exceptions import UnauthorizedException
from core.settings import CheckoutSettings, checkout_settings
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.external.checkout import get_checkout_gateway, get_webhook_verifier
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="Admin API token",
    auto_error=False,
)


def get_checkout_settings() -> CheckoutSettings:
    return checkout_settings


def get_uow_factory() -> Callable[..., AbstractUnitOfWork]:
    return SQLAlchemyUnitOfWork


async def get_gateway(
    config: CheckoutSettings = Depends(get_checkout_settings),
) -> AsyncIterator[CheckoutGateway]:
    """每个请求一个客户端，请求结束后关闭连接池"""
    gateway = get_checkout_gateway(config)
    try:
        yield gateway
    finally:
        close = getattr(gateway, "aclose", None)
        if callable(close):
            await close()


def get_verifier(config: CheckoutSettings = Depends(get_checkout_settings)) -> WebhookDecoder:
    return get_webhook_verifier(config)


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> None:
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        raise UnauthorizedException("Admin API is disabled")
    provided = credentials.credentials if credentials else ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedException("Invalid admin token")


def get_callback_service(
    verifier: WebhookDecoder = Depends(get_verifier),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
    config: CheckoutSettings = Depends(get_checkout_settings),
) -> CallbackService:
    return CallbackService(verifier=verifier, uow_factory=uow_factory, settings=config)


def get_checkout_link_service(
    gateway: CheckoutGateway = Depends(get_gateway),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
    config: CheckoutSettings = Depends(get_checkout_settings),
) -> CheckoutLinkService:
    return CheckoutLinkService(gateway=gateway, uow_factory=uow_factory, settings=config)


def get_payment_service(gateway: CheckoutGateway = Depends(get_gateway)) -> PaymentService:
    return PaymentService(gateway=gateway)
