"""
Checkout gateway settings using pydantic-settings v2 with nested env keys.

These are the values the billing host lets an administrator configure for
the gateway (account id, API key, webhook secret, sandbox and subscription
toggles), plus transport tuning.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class CheckoutTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 15.0
    write: float = 15.0
    total: float = 20.0


class CheckoutSettings(BaseSettings):
    account_id: Optional[str] = None
    api_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    sandbox_mode: bool = False
    allow_subscriptions: bool = False

    api_url: str = "https://checkout.tebex.io/api/"
    plugin_log_url: str = "https://plugin-logs.tebex.io/"
    gateway_name: str = "Tebex Checkout"
    module_name: str = "tebexcheckout"
    plugin_version: str = "1.1.0"
    basket_ttl_hours: int = 24

    timeouts: CheckoutTimeouts = Field(default_factory=CheckoutTimeouts)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHECKOUT__",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


checkout_settings = CheckoutSettings()
