import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse, urlunparse

import httpx

from ..configs import settings
from ..encoding import stringify
from ..errors import TransportError, TransportTimeoutError
from ..models import Request, Response

logger = logging.getLogger(__name__)


@dataclass
class PoolLimits:
    max_connections: int = 100
    max_keepalive: int = 20
    keepalive_expiry: float = 30.0

    def to_httpx_limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive,
            keepalive_expiry=self.keepalive_expiry,
        )


@dataclass
class ProxyConfig:
    url: str
    auth: tuple[str, str] | None = None

    def to_httpx_proxy(self) -> str:
        if not self.auth:
            return self.url
        parsed = urlparse(self.url)
        netloc = f"{self.auth[0]}:{self.auth[1]}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))


class HttpxTransport:
    """
    Sends a request through ``httpx.AsyncClient``.

    Options are read from ``transport_configs["Httpx"]``:

    * ``impl``: a shared ``httpx.AsyncClient``; when absent a client is opened
      and closed around every call
    * ``pool_limits``: ``PoolLimits`` for the per-call client
    * ``proxy``: proxy url or ``ProxyConfig`` for the per-call client
    * ``follow_redirects``: defaults to True
    """

    name = "Httpx"

    def __init__(self, request: Request, configs: Mapping[str, Any]):
        self.request = request
        self.configs: dict[str, Any] = dict(configs.get(self.name) or {})

    def _get_proxy_url(self) -> str | None:
        proxy = self.configs.get("proxy")
        if proxy is None:
            return None
        if isinstance(proxy, str):
            return proxy
        return proxy.to_httpx_proxy()

    def _timeout_seconds(self) -> float:
        timeout_ms = self.request.timeout
        if timeout_ms is None:
            timeout_ms = settings.DEFAULT_TIMEOUT_MS
        return timeout_ms / 1000

    def _request_kwargs(self) -> dict[str, Any]:
        request = self.request
        kwargs: dict[str, Any] = {
            "method": request.method,
            "url": request.url,
            "headers": {key: stringify(value) for key, value in request.headers.items()},
            "timeout": self._timeout_seconds(),
        }
        if isinstance(request.body, (bytes, str)):
            kwargs["content"] = request.body
        elif request.body is not None:
            kwargs["json"] = request.body
        if "username" in request.auth:
            kwargs["auth"] = httpx.BasicAuth(
                str(request.auth["username"]), str(request.auth.get("password", ""))
            )
        return kwargs

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        impl = self.configs.get("impl")
        if impl is not None:
            yield impl
            return
        pool_limits = self.configs.get("pool_limits") or PoolLimits()
        async with httpx.AsyncClient(
            limits=pool_limits.to_httpx_limits(),
            proxy=self._get_proxy_url(),
            follow_redirects=self.configs.get("follow_redirects", True),
        ) as client:
            yield client

    async def call(self) -> Response:
        request = self.request
        start_time = time.time()
        try:
            async with self._client() as client:
                http_response = await client.request(**self._request_kwargs())
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(
                f"{request.method} {request.url} timed out: {exc}", request=request
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}", request=request) from exc

        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"<- {http_response.status_code} {request.method} {request.url} ({latency_ms}ms)")

        return Response(
            request=request,
            status=http_response.status_code,
            headers=dict(http_response.headers),
            body=http_response.content,
            latency_ms=latency_ms,
        )
