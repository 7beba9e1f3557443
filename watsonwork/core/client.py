"""
Watson Work Services 异步请求分发

特性:
- 每个请求自动注入 Authorization: Bearer <token>（覆盖调用方传入的值）
- 根据 body 类型选择编码: dict/list -> JSON, str -> 原样发送
- 非 2xx 与网络错误统一抛出 TransportError，本层不做重试、不设超时
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

import httpx

from watsonwork.core.config import settings
from watsonwork.core.errors import TransportError
from watsonwork.core.log import _mask_token, verbose

logger = logging.getLogger(__name__)

GRAPHQL_ROUTE = "graphql"

ResponseEnvelope = Any  # dict (JSON 响应) 或 str (其他响应)


class BearerAuth(httpx.Auth):
    """
    Injects the current bearer token into every request.

    The token is read through a provider callable at send time, so a token
    refreshed after the client was built is picked up automatically.
    """

    def __init__(self, token_provider: Callable[[], str]):
        self.token_provider = token_provider

    def auth_flow(self, request: httpx.Request):
        request.headers["Authorization"] = f"Bearer {self.token_provider()}"
        yield request


def _safe_headers(headers: httpx.Headers) -> Dict[str, str]:
    safe = dict(headers)
    auth = safe.get("authorization")
    if auth:
        scheme, _, token = auth.partition(" ")
        safe["authorization"] = f"{scheme} {_mask_token(token)}"
    return safe


async def _trace_request(request: httpx.Request) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    try:
        body = request.content.decode("utf-8", errors="replace")
    except httpx.RequestNotRead:
        body = "<stream>"
    logger.debug(
        "Request: %s %s headers=%s body=%s",
        request.method,
        request.url,
        _safe_headers(request.headers),
        body[:2000],
    )


async def _trace_response(response: httpx.Response) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    await response.aread()
    logger.debug(
        "Response: %d %s headers=%s body=%s",
        response.status_code,
        response.request.url,
        dict(response.headers),
        response.text[:2000],
    )


class RequestDispatcher:
    """
    Async HTTP client for the Watson Work Services API.

    Example:
        manager = TokenLifecycleManager(app_id, app_secret)
        await manager.start()
        dispatcher = RequestDispatcher(manager.accessor())

        space = await dispatcher.send_graphql({"query": "...", "variables": {...}})
        await dispatcher.dispatch("v1/spaces/123/messages", "POST", body={...})
    """

    def __init__(
        self,
        token_provider: Callable[[], str],
        base_url: Optional[str] = None,
        graphql_view: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.WATSONWORK_BASE_URL).rstrip("/")
        self.graphql_view = graphql_view or settings.WATSONWORK_GRAPHQL_VIEW
        logger.info("Initializing RequestDispatcher with base_url=%s", self.base_url)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=BearerAuth(token_provider),
            timeout=None,  # 超时策略由调用方决定
            trust_env=False,
            event_hooks={"request": [_trace_request], "response": [_trace_response]},
        )

    async def dispatch_raw(
        self,
        route: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request and return the raw httpx response.

        Args:
            route: path relative to base_url (e.g. "v1/spaces/123/messages")
                or an absolute http(s) URL
            method: HTTP method
            headers: extra headers; Authorization is always overwritten
            body: dict/list (sent as JSON), str/bytes (sent as-is) or None
            params: query parameters
            files: multipart files, httpx format

        Raises:
            TransportError: network failure or non-2xx status
        """
        request_headers = dict(headers or {})
        kwargs: Dict[str, Any] = {}

        if files is not None:
            kwargs["files"] = files
            if isinstance(body, Mapping):
                kwargs["data"] = body
        elif isinstance(body, (dict, list)):
            request_headers["Content-Type"] = "application/json"
            kwargs["json"] = body
        elif isinstance(body, (str, bytes)):
            kwargs["content"] = body
        elif body is not None:
            raise TypeError(f"Unsupported request body type: {type(body).__name__}")

        verbose(logger, "%s to '%s'", method, route)

        try:
            response = await self.client.request(
                method, route, headers=request_headers, params=params, **kwargs
            )
        except httpx.RequestError as e:
            logger.error("%s %s failed (network error): %s", method, route, e)
            raise TransportError(f"{method} {route} failed: {e}") from e

        if response.is_error:
            logger.error(
                "HTTP error %d from %s: %s",
                response.status_code,
                route,
                response.text[:200],
            )
            raise TransportError(
                f"HTTP {response.status_code} from {method} {route}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug("Request successful: %s %s -> %d", method, route, response.status_code)
        return response

    async def dispatch(
        self,
        route: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        """Send a request; JSON responses are decoded, anything else is returned as text."""
        response = await self.dispatch_raw(
            route, method, headers, body, params=params, files=files
        )
        return self._decode(response)

    async def send_graphql(self, graphql: Any) -> ResponseEnvelope:
        """
        POST a GraphQL document.

        Args:
            graphql: raw GraphQL text (sent as application/graphql) or a
                {"query": ..., "variables": ...} dict (sent as application/json)
        """
        headers = {
            "Content-Type": (
                "application/graphql" if isinstance(graphql, str) else "application/json"
            ),
            "x-graphql-view": self.graphql_view,
        }
        return await self.dispatch(GRAPHQL_ROUTE, "POST", headers, graphql)

    @staticmethod
    def _decode(response: httpx.Response) -> ResponseEnvelope:
        if "json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                logger.warning(
                    "Response declared JSON but could not be decoded; returning text"
                )
        return response.text

    async def close(self) -> None:
        """关闭客户端连接"""
        logger.info("Closing RequestDispatcher connection")
        await self.client.aclose()

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
