"""Billing domain exports."""
from .entity import (
    BillingCycle,
    ClientDetails,
    HostingService,
    Invoice,
    InvoiceItem,
    InvoiceItemType,
)
from .repository import BillingRepository

__all__ = [
    "BillingCycle",
    "BillingRepository",
    "ClientDetails",
    "HostingService",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
]
