"""Infrastructure models package exports."""
from .base import Base, metadata
from .billing import (
    AccountModel,
    GatewayLogModel,
    HostingModel,
    InvoiceItemModel,
    InvoiceModel,
)

__all__ = [
    "Base",
    "metadata",
    "AccountModel",
    "GatewayLogModel",
    "HostingModel",
    "InvoiceItemModel",
    "InvoiceModel",
]
