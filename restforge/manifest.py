"""
Manifest normalization.

A raw manifest looks like::

    {
        "host": "http://example.org",
        "client_id": "example",
        "middleware": [...],
        "transport_configs": {"Httpx": {...}},
        "resources": {
            "User": {
                "_configs": {"headers": {"x-resource": "user"}},
                "by_id": {"path": "/users/{id}"},
                "create": {"path": "/users", "method": "post"},
            },
        },
    }

Every option a method accepts may also be set at the manifest level or in a
resource's ``_configs`` entry. Options merge per key with method over
resource over manifest over global configs. Keys that are not method options
(a service "name", a per-method "description") are kept as request extras for
middleware to read.
"""

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, ValidationError, field_validator

from .encoding import bracket_query_encoder, encode_parameter
from .errors import InvalidManifestError, MissingPathError
from .models import HttpMethod
from .types import Middleware, MiddlewareFactory, MiddlewareParams

if TYPE_CHECKING:
    from .configs import GlobalConfigs

logger = logging.getLogger(__name__)

RESOURCE_CONFIGS_KEY = "_configs"
MANIFEST_ONLY_KEYS = frozenset({"resources", "middleware"})


class MethodDescriptor(BaseModel):
    """Effective, fully merged configuration of one resource method."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    resource_name: str
    method_name: str
    path: str = Field(min_length=1)
    method: HttpMethod = HttpMethod.GET
    host: str = ""
    client_id: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, Any] = Field(default_factory=dict)
    auth: dict[str, Any] = Field(default_factory=dict)
    timeout: NonNegativeFloat | None = None
    body_attr: str = "body"
    headers_attr: str = "headers"
    auth_attr: str = "auth"
    timeout_attr: str = "timeout"
    host_attr: str = "host"
    allow_resource_host_override: bool = False
    query_param_alias: dict[str, str] = Field(default_factory=dict)
    binary: bool = False
    middleware: list[Callable[..., Any]] = Field(default_factory=list)
    ignore_global_middleware: bool = False
    transport_configs: dict[str, Any] = Field(default_factory=dict)
    query_encoder: Callable[..., str] = bracket_query_encoder
    parameter_encoder: Callable[[Any], str] = encode_parameter
    # options the descriptor does not know, handed to middleware via Request.extras
    extras: dict[str, Any] = Field(default_factory=dict)

    @field_validator("method", mode="before")
    @classmethod
    def upper_case_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


DESCRIPTOR_OPTIONS = frozenset(MethodDescriptor.model_fields) - {
    "resource_name",
    "method_name",
    "middleware",
    "extras",
}


def merge_configs(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge mappings left to right; nested mappings merge per key."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, Mapping) and isinstance(value, Mapping):
                merged[key] = merge_configs(current, value)
            elif isinstance(value, Mapping):
                merged[key] = merge_configs(value)
            else:
                merged[key] = value
    return merged


def _without_middleware(layer: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in layer.items() if key != "middleware"}


class Manifest:
    def __init__(self, raw: Mapping[str, Any] | None, global_configs: "GlobalConfigs | None" = None):
        if not isinstance(raw, Mapping):
            raise InvalidManifestError(f"invalid manifest ({raw!r})")

        resources = raw.get("resources")
        if not isinstance(resources, Mapping):
            raise InvalidManifestError(f"invalid manifest (resources: {resources!r})")

        self.host: str = raw.get("host") or ""
        self.client_id: str | None = raw.get("client_id")
        self.middleware: list[MiddlewareFactory] = list(raw.get("middleware") or [])
        self.global_middleware: list[MiddlewareFactory] = (
            list(global_configs.middleware) if global_configs else []
        )
        self._global_layer: dict[str, Any] = (
            {"transport_configs": global_configs.transport_configs} if global_configs else {}
        )
        self._defaults = {
            key: value for key, value in raw.items() if key not in MANIFEST_ONLY_KEYS
        }
        self._resources: dict[str, dict[str, MethodDescriptor]] = {
            name: self._build_resource(name, definition) for name, definition in resources.items()
        }
        logger.debug(f"manifest loaded with {len(self._resources)} resources")

    def _build_resource(self, resource_name: str, definition: Any) -> dict[str, MethodDescriptor]:
        if not isinstance(definition, Mapping):
            raise InvalidManifestError(f'invalid definition for resource "{resource_name}"')
        resource_layer = definition.get(RESOURCE_CONFIGS_KEY) or {}
        if not isinstance(resource_layer, Mapping):
            raise InvalidManifestError(
                f'invalid {RESOURCE_CONFIGS_KEY} for resource "{resource_name}"'
            )
        return {
            method_name: self._build_method(resource_name, method_name, method_spec, resource_layer)
            for method_name, method_spec in definition.items()
            if method_name != RESOURCE_CONFIGS_KEY
        }

    def _build_method(
        self,
        resource_name: str,
        method_name: str,
        method_spec: Any,
        resource_layer: Mapping[str, Any],
    ) -> MethodDescriptor:
        if not isinstance(method_spec, Mapping):
            raise InvalidManifestError(
                f'invalid definition for resource "{resource_name}" method "{method_name}"'
            )
        if not method_spec.get("path"):
            raise MissingPathError(resource_name, method_name)

        merged = merge_configs(
            self._global_layer,
            self._defaults,
            _without_middleware(resource_layer),
            _without_middleware(method_spec),
        )
        middleware = list(method_spec.get("middleware") or []) + list(
            resource_layer.get("middleware") or []
        )
        if not merged.get("ignore_global_middleware"):
            middleware += self.middleware + self.global_middleware

        options = {key: value for key, value in merged.items() if key in DESCRIPTOR_OPTIONS}
        extras = {key: value for key, value in merged.items() if key not in DESCRIPTOR_OPTIONS}

        try:
            return MethodDescriptor(
                resource_name=resource_name,
                method_name=method_name,
                middleware=middleware,
                extras=extras,
                **options,
            )
        except (ValidationError, TypeError) as exc:
            raise InvalidManifestError(
                f'invalid definition for resource "{resource_name}" method "{method_name}": {exc}'
            ) from exc

    def resource_names(self) -> list[str]:
        return list(self._resources)

    def method_names(self, resource_name: str) -> list[str]:
        return list(self._resources[resource_name])

    def method_descriptor(self, resource_name: str, method_name: str) -> MethodDescriptor:
        return self._resources[resource_name][method_name]

    def create_middleware(
        self, descriptor: MethodDescriptor, context: Mapping[str, Any] | None = None
    ) -> list[Middleware]:
        params = MiddlewareParams(
            resource_name=descriptor.resource_name,
            resource_method=descriptor.method_name,
            client_id=self.client_id,
            context=MappingProxyType(dict(context or {})),
        )
        return [factory(params) for factory in descriptor.middleware]
