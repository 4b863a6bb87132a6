"""Transports, selected by name through ``GlobalConfigs.transport``."""

from typing import Any

from .httpx_transport import HttpxTransport, PoolLimits, ProxyConfig
from .mock import MockRoute, MockRoutes, MockTransport

TRANSPORTS: dict[str, Any] = {
    HttpxTransport.name: HttpxTransport,
    MockTransport.name: MockTransport,
}


def resolve_transport(transport: Any) -> Any:
    if isinstance(transport, str):
        return TRANSPORTS.get(transport)
    return transport


__all__ = [
    "TRANSPORTS",
    "HttpxTransport",
    "MockRoute",
    "MockRoutes",
    "MockTransport",
    "PoolLimits",
    "ProxyConfig",
    "resolve_transport",
]
