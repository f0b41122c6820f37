"""
Gateway module metadata and the admin-configurable fields.

Secrets are reported as configured/not configured only; their values never
leave the process.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from core.settings import CheckoutSettings

API_VERSION = "1.1"


class GatewayMetadata(BaseModel):
    display_name: str
    api_version: str = API_VERSION
    disable_local_credit_card_input: bool = True
    tokenised_storage: bool = False


class ConfigField(BaseModel):
    key: str
    friendly_name: str
    type: Literal["text", "password", "yesno"]
    size: Optional[int] = None
    description: str = ""
    # password 字段只报告是否已配置
    value: Optional[bool | str] = None


class GatewayDescription(BaseModel):
    metadata: GatewayMetadata
    fields: list[ConfigField] = Field(default_factory=list)
    sandbox_mode: bool = False


def describe_gateway(settings: CheckoutSettings) -> GatewayDescription:
    fields = [
        ConfigField(
            key="account_id",
            friendly_name="Account ID",
            type="text",
            size=50,
            description="Account ID (you can get this from https://creator.tebex.io/developers/api-keys)",
            value=settings.account_id or "",
        ),
        ConfigField(
            key="api_key",
            friendly_name="API Key",
            type="password",
            size=25,
            description="Your API key (you can get this from https://creator.tebex.io/developers/api-keys)",
            value=bool(settings.api_key),
        ),
        ConfigField(
            key="webhook_secret",
            friendly_name="Webhook Secret",
            type="password",
            size=30,
            description=(
                "Your webhook secret key used to sign webhook requests sent by us. "
                "(get this from https://creator.tebex.io/webhooks/endpoints)"
            ),
            value=bool(settings.webhook_secret),
        ),
        ConfigField(
            key="sandbox_mode",
            friendly_name="Sandbox Mode",
            type="yesno",
            description="Tick to enable sandbox mode",
            value=settings.sandbox_mode,
        ),
        ConfigField(
            key="allow_subscriptions",
            friendly_name="Allow Subscriptions",
            type="yesno",
            description="Tick to enable subscription payments. Only one subscription product allowed per invoice.",
            value=settings.allow_subscriptions,
        ),
    ]
    return GatewayDescription(
        metadata=GatewayMetadata(display_name=f"{settings.gateway_name} {settings.plugin_version}"),
        fields=fields,
        sandbox_mode=settings.sandbox_mode,
    )
