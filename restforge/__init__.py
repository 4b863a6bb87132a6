"""Declarative HTTP client generator."""

from .client_builder import Client, ClientBuilder, Resource, ResourceMethod, forge
from .configs import ClientSettings, GlobalConfigs, configs, settings
from .encoding import bracket_query_encoder, encode_parameter, repeat_query_encoder
from .errors import (
    AsyncRuntimeNotConfiguredError,
    ConfigurationError,
    InvalidManifestError,
    MiddlewareStackExceededError,
    MissingPathError,
    RestforgeError,
    TransportAbortedError,
    TransportError,
    TransportNotConfiguredError,
    TransportTimeoutError,
)
from .manifest import Manifest, MethodDescriptor
from .middleware import (
    encode_json_middleware,
    headers_middleware,
    logging_middleware,
    retry_middleware,
    timeout_middleware,
)
from .models import HttpMethod, Request, Response
from .pipeline import PipelineExecutor
from .types import Middleware, MiddlewareFactory, MiddlewareParams, Transport

__version__ = "0.1.0"

__all__ = [
    "AsyncRuntimeNotConfiguredError",
    "Client",
    "ClientBuilder",
    "ClientSettings",
    "ConfigurationError",
    "GlobalConfigs",
    "HttpMethod",
    "InvalidManifestError",
    "Manifest",
    "MethodDescriptor",
    "Middleware",
    "MiddlewareFactory",
    "MiddlewareParams",
    "MiddlewareStackExceededError",
    "MissingPathError",
    "PipelineExecutor",
    "Request",
    "Resource",
    "ResourceMethod",
    "Response",
    "RestforgeError",
    "Transport",
    "TransportAbortedError",
    "TransportError",
    "TransportNotConfiguredError",
    "TransportTimeoutError",
    "bracket_query_encoder",
    "configs",
    "encode_json_middleware",
    "encode_parameter",
    "forge",
    "headers_middleware",
    "logging_middleware",
    "repeat_query_encoder",
    "retry_middleware",
    "settings",
    "timeout_middleware",
]
