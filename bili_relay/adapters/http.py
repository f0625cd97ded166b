"""
HTTP 传输层 - httpx 异步客户端封装

特性:
    - 固定超时 (默认 10s)，强制校验证书
    - 仅对 5xx 响应重试 (默认 3 次)
    - httpx 异常统一转换为 TransportError 子类
"""

import json
from typing import Any

import httpx

from bili_relay.core.exceptions import ParseError, classify_http_error, classify_network_error
from bili_relay.core.resilience import retry_with_backoff
from bili_relay.utils.logger import log


class HttpClient:
    """
    Example:
        async with HttpClient("https://api.vc.bilibili.com") as client:
            data = await client.get_json("/session_svr/v1/session_svr/single_unread")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retries: int = 3,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        name: str = "",
    ):
        self.base_url = base_url
        self.retries = retries
        self.name = name or base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            verify=True,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self._client.aclose()

    @retry_with_backoff(max_retries=lambda self: self.retries)
    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """发送请求，返回 2xx 响应

        Raises:
            APIError: 非 2xx 响应 (5xx 已按配置重试)
            NetworkError: 连接失败、超时
        """
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise classify_network_error(e, host=self.base_url, operation=f"{method} {url}") from e

        if response.is_error:
            body = _safe_json(response)
            log.debug(f"[{self.name}] {method} {url} -> {response.status_code}")
            raise classify_http_error(
                response.status_code,
                response_text=response.text[:200],
                api_name=url,
                body=body,
            )
        return response

    async def get_json(self, url: str, **kwargs) -> Any:
        response = await self.request("GET", url, **kwargs)
        return _parse_json(response, url)

    async def post_json(self, url: str, **kwargs) -> Any:
        response = await self.request("POST", url, **kwargs)
        return _parse_json(response, url)

    async def post_text(self, url: str, **kwargs) -> str:
        response = await self.request("POST", url, **kwargs)
        return response.text


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _parse_json(response: httpx.Response, url: str) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(message=f"{url} 返回的不是 JSON: {response.text[:100]}", cause=e) from e
