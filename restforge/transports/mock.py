"""
In-memory transport for tests.

    routes = MockRoutes()
    routes.add("GET", "http://example.org/users/1", body={"id": 1})
    client = forge(manifest, GlobalConfigs(transport="Mock", transport_configs={"Mock": {"routes": routes}}))
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import TransportError
from ..models import Request, Response


@dataclass
class MockRoute:
    method: str
    url: str | re.Pattern
    status: int = 200
    body: Any = b""
    headers: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None
    calls: int = 0

    def matches(self, request: Request) -> bool:
        if self.method.upper() != request.method:
            return False
        if isinstance(self.url, re.Pattern):
            return self.url.search(request.url) is not None
        return self.url == request.url

    def to_response(self, request: Request) -> Response:
        headers = dict(self.headers)
        body = self.body
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
            headers.setdefault("content-type", "application/json")
        return Response(request=request, status=self.status, headers=headers, body=body)


class MockRoutes:
    def __init__(self) -> None:
        self.routes: list[MockRoute] = []
        self.requests: list[Request] = []

    def add(
        self,
        method: str,
        url: str | re.Pattern,
        *,
        status: int = 200,
        body: Any = b"",
        headers: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> MockRoute:
        route = MockRoute(
            method=method, url=url, status=status, body=body, headers=headers or {}, error=error
        )
        self.routes.append(route)
        return route

    def match(self, request: Request) -> MockRoute | None:
        for route in self.routes:
            if route.matches(request):
                return route
        return None

    def clear(self) -> None:
        self.routes.clear()
        self.requests.clear()


class MockTransport:
    name = "Mock"

    def __init__(self, request: Request, configs: Mapping[str, Any]):
        self.request = request
        self.configs: dict[str, Any] = dict(configs.get(self.name) or {})

    async def call(self) -> Response:
        request = self.request
        routes: MockRoutes | None = self.configs.get("routes")
        if routes is None:
            raise TransportError(
                "no mock routes configured (transport_configs['Mock']['routes'])", request=request
            )
        routes.requests.append(request)
        route = routes.match(request)
        if route is None:
            raise TransportError(f"no mock route matches {request.method} {request.url}", request=request)
        route.calls += 1
        if route.error is not None:
            raise route.error
        return route.to_response(request)
