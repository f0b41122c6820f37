"""
API客户端模块

提供与外部REST API集成的客户端实现
"""
from .base import (
    BaseAPIClient,
    APIResponse,
    APIError,
    BadRequestError,
    AccessDeniedError,
    NotFoundError,
    ServerError,
    TransportError,
    ResponseDecodeError,
)

__all__ = [
    "BaseAPIClient",
    "APIResponse",
    "APIError",
    "BadRequestError",
    "AccessDeniedError",
    "NotFoundError",
    "ServerError",
    "TransportError",
    "ResponseDecodeError",
]
