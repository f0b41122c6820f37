"""
REST API客户端基类

提供通用的HTTP请求功能，包括：
- 错误分类（bad request / access denied / not found / server error）
- 请求/响应日志（审计用，每次调用都会记录）
- Basic 认证
- 超时控制

不做自动重试：每个请求只尝试一次。
"""
import json
from typing import Dict, Any, Optional, Union, Type, TypeVar
from dataclasses import dataclass
from enum import Enum
from datetime import datetime

import httpx
from pydantic import BaseModel, ValidationError

from core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T', bound=BaseModel)

PARSE_ERROR_TITLE = "Error parsing JSON response"
PARSE_ERROR_DETAIL = "An error occurred while decoding the API response."


class HTTPMethod(Enum):
    """HTTP方法枚举"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    decode_error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def text(self) -> str:
        return self.raw_content.decode('utf-8', errors='replace')


class APIError(Exception):
    """API错误基类

    Carries the HTTP status and the remote error body (`title`, `detail`).
    `category` is informational only; it never changes retry behaviour.
    """

    category = "api error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        title: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.title = title
        self.detail = detail
        super().__init__(self.message)

    @property
    def error_details(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "status_code": self.status_code,
            "title": self.title,
            "detail": self.detail,
        }

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        return " | ".join(parts)


class BadRequestError(APIError):
    category = "bad request"


class AccessDeniedError(APIError):
    category = "access denied"


class NotFoundError(APIError):
    category = "not found"


class ServerError(APIError):
    category = "server error"


class TransportError(APIError):
    """网络层错误（连接失败、超时等），对当前调用是致命的"""
    category = "transport error"


class ResponseDecodeError(APIError):
    """成功响应无法解码为预期结构"""
    category = "decode error"


def classify_status(status_code: int) -> Type[APIError]:
    """Map an HTTP status to its error category."""
    if status_code == 400:
        return BadRequestError
    if status_code in (401, 403):
        return AccessDeniedError
    if status_code == 404:
        return NotFoundError
    if 500 <= status_code <= 599:
        return ServerError
    return APIError


def parse_error_body(raw: bytes) -> Dict[str, str]:
    """Extract `title`/`detail` from an error body, synthesizing them when unparsable."""
    try:
        parsed = json.loads(raw or b"")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"title": PARSE_ERROR_TITLE, "detail": PARSE_ERROR_DETAIL}
    if not isinstance(parsed, dict):
        return {"title": PARSE_ERROR_TITLE, "detail": PARSE_ERROR_DETAIL}
    return {
        "title": str(parsed.get("title") or "Unknown error"),
        "detail": str(parsed.get("detail") or "No additional information provided"),
    }


class BaseAPIClient:
    """
    REST API客户端基类

    提供通用的HTTP请求功能，子类可以继承并实现具体的API调用
    """

    module = "api"

    def __init__(
        self,
        base_url: str,
        timeout: Union[float, httpx.Timeout] = 20.0,
        auth: Optional[httpx.Auth] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        verify_ssl: bool = True,
    ):
        """
        初始化API客户端

        Args:
            base_url: API基础URL
            timeout: 请求超时（秒或 httpx.Timeout）
            auth: 认证（如 httpx.BasicAuth）
            headers: 默认请求头
            transport: 自定义传输层（测试时注入 httpx.MockTransport）
            verify_ssl: 是否验证SSL证书
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
        self.auth = auth
        self.verify_ssl = verify_ssl
        self._transport = transport

        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            self.default_headers.update(headers)

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭HTTP客户端"""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _build_url(self, endpoint: str) -> str:
        """构建完整URL"""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}"

    def _log_request(self, method: str, url: str, payload: Any) -> None:
        logger.info("module_call", module=self.module, action="api request", method=method, url=url, request=payload)

    def _log_response(self, method: str, url: str, response: APIResponse) -> None:
        logger.info(
            "module_call",
            module=self.module,
            action="api response",
            method=method,
            url=url,
            status_code=response.status_code,
            elapsed_ms=round(response.elapsed_ms, 2),
            response=response.data,
        )

    def _raise_for_error(self, method: str, url: str, payload: Any, response: APIResponse) -> None:
        """处理错误响应：记录分类后的错误详情并抛出"""
        body = parse_error_body(response.raw_content)
        error_class = classify_status(response.status_code)
        error = error_class(
            message=f"{error_class.category.title()}: {body['title']} - {body['detail']}",
            status_code=response.status_code,
            response=response,
            title=body["title"],
            detail=body["detail"],
        )
        logger.error(
            "module_call",
            module=self.module,
            action="api response - error",
            method=method,
            url=url,
            request=payload,
            response=response.text(),
            **error.error_details,
        )
        raise error

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Any = None,
        auth: Optional[httpx.Auth] = None,
        use_auth: bool = True,
    ) -> APIResponse:
        """
        发送HTTP请求

        Args:
            method: HTTP方法
            endpoint: API端点（相对路径或完整URL）
            params: 查询参数
            json_data: JSON数据（pydantic模型会被序列化）
            auth: 覆盖默认认证
            use_auth: False 时发送匿名请求

        Returns:
            APIResponse: API响应

        Raises:
            APIError: 状态码 >= 400
            TransportError: 网络错误或超时
        """
        if isinstance(method, HTTPMethod):
            method = method.value

        url = self._build_url(endpoint)

        if isinstance(json_data, BaseModel):
            json_data = json_data.model_dump(mode="json", by_alias=True)

        self._log_request(method, url, json_data)

        request_auth = (auth or self.auth) if use_auth else None
        content = json.dumps(json_data, default=str).encode("utf-8") if json_data is not None else None

        start_time = datetime.now()
        try:
            response = await self.client.request(
                method=method,
                url=url,
                params=params,
                content=content,
                headers=self.default_headers,
                auth=request_auth,
            )
        except httpx.TimeoutException as exc:
            logger.error("module_call", module=self.module, action="transport error", method=method, url=url, error=str(exc))
            raise TransportError(f"Request timeout calling {url}") from exc
        except httpx.TransportError as exc:
            logger.error("module_call", module=self.module, action="transport error", method=method, url=url, error=str(exc))
            raise TransportError(f"Request Error: {exc}") from exc

        elapsed = (datetime.now() - start_time).total_seconds() * 1000

        response_data = None
        decode_error = None
        if response.content:
            try:
                response_data = response.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                decode_error = str(exc)

        api_response = APIResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=response_data,
            raw_content=response.content,
            elapsed_ms=elapsed,
            decode_error=decode_error,
        )

        if api_response.is_error:
            self._raise_for_error(method, url, json_data, api_response)

        self._log_response(method, url, api_response)
        return api_response

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        """GET请求"""
        return await self._request(HTTPMethod.GET, endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> APIResponse:
        """POST请求"""
        return await self._request(HTTPMethod.POST, endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs) -> APIResponse:
        """PUT请求"""
        return await self._request(HTTPMethod.PUT, endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> APIResponse:
        """DELETE请求"""
        return await self._request(HTTPMethod.DELETE, endpoint, **kwargs)

    @staticmethod
    def decode(response: APIResponse, response_model: Type[T]) -> T:
        """将响应解码为类型化模型；缺失字段或 JSON 无效时抛出 ResponseDecodeError"""
        if response.decode_error is not None or response.data is None:
            raise ResponseDecodeError(
                PARSE_ERROR_DETAIL,
                status_code=response.status_code,
                response=response,
                title=PARSE_ERROR_TITLE,
                detail=response.decode_error or "Empty response body",
            )
        try:
            return response_model.model_validate(response.data)
        except ValidationError as exc:
            raise ResponseDecodeError(
                f"Unexpected {response_model.__name__} response",
                status_code=response.status_code,
                response=response,
                title=PARSE_ERROR_TITLE,
                detail=str(exc),
            ) from exc
