from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import Request, Response

Renew = Callable[..., Awaitable["Response"]]


@dataclass(frozen=True)
class MiddlewareParams:
    """Arguments handed to every middleware factory, once per call."""

    resource_name: str
    resource_method: str
    client_id: str | None = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


class Middleware(Protocol):
    """
    A hook set. Every method is optional; the pipeline only calls the ones
    an instance actually defines, in the order the middleware was declared.

    transform_request(request) -> Request | Awaitable[Request]
    transform_response(response: Awaitable[Response], renew) -> Response | Awaitable[Response]
    transform_response_error(error, renew) -> Response | Awaitable[Response], or raise
    """


MiddlewareFactory = Callable[[MiddlewareParams], Middleware]


@runtime_checkable
class Transport(Protocol):
    name: str

    def __init__(self, request: "Request", configs: Mapping[str, Any]) -> None: ...

    async def call(self) -> "Response": ...


TransportFactory = Callable[["Request", Mapping[str, Any]], Transport]
