"""
账单领域实体 - host billing records referenced by the gateway.

These mirror the rows owned by the billing host (invoices, invoice line
items, hosting services). The gateway only reads them and updates a few
columns through the repository.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException, UnsupportedBillingCycleException


class InvoiceItemType(str, Enum):
    """Line item types the host attaches to invoices."""
    HOSTING = "Hosting"
    DOMAIN_REGISTER = "DomainRegister"
    DOMAIN_TRANSFER = "DomainTransfer"
    DOMAIN = "Domain"
    ADDON = "Addon"
    UPGRADE = "Upgrade"
    ITEM = "Item"
    PROMO_HOSTING = "PromoHosting"


class BillingCycle(str, Enum):
    """计费周期"""
    FREE_ACCOUNT = "Free Account"
    ONE_TIME = "One Time"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    SEMI_ANNUALLY = "Semi-Annually"
    ANNUALLY = "Annually"
    BIENNIALLY = "Biennially"
    TRIENNIALLY = "Triennially"

    @property
    def months(self) -> Optional[int]:
        """Length of one billing period in months; None for non-recurring cycles."""
        return _CYCLE_MONTHS.get(self)

    @property
    def is_recurring(self) -> bool:
        return self.months is not None

    @classmethod
    def parse(cls, value: Optional[str], *, relid: Optional[int] = None) -> "BillingCycle":
        """Parse a host billing cycle string.

        Unknown strings raise rather than silently defaulting to a period.
        """
        normalized = (value or "").strip()
        for cycle in cls:
            if cycle.value.lower() == normalized.lower():
                return cycle
        raise UnsupportedBillingCycleException(value, relid=relid)


_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.SEMI_ANNUALLY: 6,
    BillingCycle.ANNUALLY: 12,
    BillingCycle.BIENNIALLY: 24,
    BillingCycle.TRIENNIALLY: 36,
}


@dataclass
class InvoiceItem:
    id: Optional[int]
    invoice_id: int
    type: str
    relid: int
    description: str
    amount: Decimal

    @property
    def is_hosting(self) -> bool:
        return self.type == InvoiceItemType.HOSTING.value


@dataclass
class Invoice:
    """
    发票聚合 - 只读视图

    业务规则：
    1. 发票ID必须为正整数
    2. 行项目顺序与宿主返回顺序一致
    """

    id: int
    status: str = "Unpaid"
    total: Decimal = field(default_factory=lambda: Decimal("0"))
    currency: str = "USD"
    items: list[InvoiceItem] = field(default_factory=list)

    def __post_init__(self):
        if self.id is None or int(self.id) <= 0:
            raise DomainValidationException(
                f"Invalid invoice id: {self.id}",
                field="invoice_id",
            )


@dataclass
class HostingService:
    """A provisioned hosting product; `subscription_id` links it to a remote recurring payment."""

    id: int
    package_id: Optional[int]
    billing_cycle: str
    subscription_id: Optional[str] = None

    @property
    def has_subscription(self) -> bool:
        return bool(self.subscription_id)


@dataclass
class ClientDetails:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    phone: str = ""
