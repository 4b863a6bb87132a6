import json
import logging
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from functools import cache, cached_property
from typing import Any

from .encoding import (
    ParameterEncoder,
    QueryEncoder,
    bracket_query_encoder,
    encode_parameter,
    interpolate_path,
)
from .errors import TransportAbortedError, TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


def lower_keys(headers: dict[str, Any] | None) -> dict[str, Any]:
    return {str(key).lower(): value for key, value in (headers or {}).items()}


@dataclass(frozen=True)
class Request:
    method: str = HttpMethod.GET
    host: str = ""
    path_template: str = "/"
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, Any] = field(default_factory=dict)
    auth: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    timeout: float | None = None
    extras: dict[str, Any] = field(default_factory=dict)
    resource_name: str | None = None
    resource_method: str | None = None
    query_param_alias: dict[str, str] = field(default_factory=dict)
    binary: bool = False
    query_encoder: QueryEncoder = bracket_query_encoder
    parameter_encoder: ParameterEncoder = encode_parameter

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", str(self.method).upper())
        object.__setattr__(self, "headers", lower_keys(self.headers))

    def enhance(self, **changes: Any) -> "Request":
        """
        Derive a new request.

        ``params``, ``headers`` and ``extras`` merge key by key, every other
        field is replaced. Keys that are not fields are kept in ``extras``.
        """
        known = _request_field_names()
        updates: dict[str, Any] = {}
        extras = dict(self.extras)
        for key, value in changes.items():
            if key == "extras":
                extras.update(value or {})
            elif key == "headers":
                updates["headers"] = {**self.headers, **lower_keys(value)}
            elif key == "params":
                updates["params"] = {**self.params, **(value or {})}
            elif key in known:
                updates[key] = value
            else:
                extras[key] = value
        return replace(self, extras=extras, **updates)

    @cached_property
    def _interpolated(self) -> tuple[str, frozenset[str]]:
        return interpolate_path(self.path_template, self.params, self.parameter_encoder)

    @property
    def path(self) -> str:
        return self._interpolated[0]

    @property
    def path_params(self) -> frozenset[str]:
        return self._interpolated[1]

    @property
    def query_params(self) -> dict[str, Any]:
        consumed = self.path_params
        return {
            self.query_param_alias.get(key, key): value
            for key, value in self.params.items()
            if key not in consumed
        }

    @property
    def url(self) -> str:
        host = self.host.rstrip("/")
        path = self.path
        if host and path and not path.startswith("/"):
            path = f"/{path}"
        url = f"{host}{path}"
        query = self.query_encoder(self.query_params, self.parameter_encoder)
        if query:
            url = f"{url}{'&' if '?' in url else '?'}{query}"
        return url

    def header(self, name: str, default: Any = None) -> Any:
        return self.headers.get(name.lower(), default)


@cache
def _request_field_names() -> frozenset[str]:
    return frozenset(f.name for f in fields(Request))


@dataclass(frozen=True)
class Response:
    request: Request
    status: int | None = None
    headers: dict[str, Any] = field(default_factory=dict)
    body: bytes | str | None = None
    error: Exception | None = None
    latency_ms: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", lower_keys(self.headers))

    def header(self, name: str, default: Any = None) -> Any:
        return self.headers.get(name.lower(), default)

    @property
    def content_type(self) -> str:
        return str(self.header("content-type", ""))

    @cached_property
    def data(self) -> Any:
        # decoding is advisory: a body that fails to parse is returned as is
        if self.body is None or self.request.binary:
            return self.body
        if "json" not in self.content_type.lower():
            return self.body
        try:
            return json.loads(self.body)
        except ValueError:
            logger.debug(f"failed to decode JSON body for {self.request.method} {self.request.url}")
            return self.body

    def text(self) -> str:
        if self.body is None:
            return ""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8", errors="replace")
        return self.body

    @property
    def success(self) -> bool:
        return self.status is not None and 200 <= self.status < 300

    @property
    def client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    @property
    def server_error(self) -> bool:
        return self.status is not None and 500 <= self.status < 600

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, TransportTimeoutError)

    @property
    def can_retry(self) -> bool:
        if isinstance(self.error, TransportAbortedError):
            return False
        return self.timed_out or self.server_error or isinstance(self.error, TransportError)

    def enhance(self, **changes: Any) -> "Response":
        if "headers" in changes:
            changes["headers"] = {**self.headers, **lower_keys(changes["headers"])}
        return replace(self, **changes)
