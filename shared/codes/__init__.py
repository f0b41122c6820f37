"""
Shared business codes used across layers (Domain/Core/API).

`BusinessCode` covers generic request/auth/system failures; gateway and
billing failures live in `PaymentCode` (61xxx for webhook handling,
60xxx for the remote checkout API).
"""
from enum import IntEnum

from .payment_codes import PaymentCode


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_TYPE_ERROR = 10002
    PARAM_VALIDATION_ERROR = 10003

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006  # invoice line item points at a missing hosting service, etc.

    # Authorization errors (3xxxx): admin token
    PERMISSION_ERROR = 30000
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    DATABASE_ERROR = 40001
    NETWORK_ERROR = 40002
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode", "PaymentCode"]
