import json
import logging
from collections.abc import Awaitable
from typing import Any

from .errors import TransportAbortedError, TransportError
from .models import Request, Response
from .types import MiddlewareFactory, MiddlewareParams, Renew


def retry_middleware(
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (502, 503, 504),
) -> MiddlewareFactory:
    """
    Renew the call when the response status is in ``retry_on`` or the
    transport failed with a retryable error.

    Every retry is a renewal, so ``max_middleware_stack_execution_allowed``
    must be at least ``max_retries + 1``.
    """

    class RetryMiddleware:
        def __init__(self, params: MiddlewareParams):
            self.params = params
            self.attempts = 0

        async def transform_response(self, response: Awaitable[Response], renew: Renew) -> Response:
            result = await response
            if result.status in retry_on and self.attempts < max_retries:
                self.attempts += 1
                return await renew()
            return result

        async def transform_response_error(self, error: Exception, renew: Renew) -> Response:
            retryable = isinstance(error, TransportError) and not isinstance(
                error, TransportAbortedError
            )
            if not retryable or self.attempts >= max_retries:
                raise error
            self.attempts += 1
            return await renew()

    return RetryMiddleware


def timeout_middleware(timeout_ms: float) -> MiddlewareFactory:
    class TimeoutMiddleware:
        def __init__(self, params: MiddlewareParams):
            self.params = params

        def transform_request(self, request: Request) -> Request:
            return request.enhance(timeout=timeout_ms)

    return TimeoutMiddleware


def logging_middleware(logger: logging.Logger | None = None) -> MiddlewareFactory:
    log = logger or logging.getLogger(__name__)

    class LoggingMiddleware:
        def __init__(self, params: MiddlewareParams):
            self.params = params

        def transform_request(self, request: Request) -> Request:
            log.info(f"-> {request.method} {request.url}")
            return request

        async def transform_response(self, response: Awaitable[Response], renew: Renew) -> Response:
            result = await response
            log.info(f"<- {result.status} {result.request.method} {result.request.url} ({result.latency_ms}ms)")
            return result

        def transform_response_error(self, error: Exception, renew: Renew) -> Response:
            log.warning(f"<- {type(error).__name__}: {error}")
            raise error

    return LoggingMiddleware


def headers_middleware(**headers: Any) -> MiddlewareFactory:
    class HeadersMiddleware:
        def __init__(self, params: MiddlewareParams):
            self.params = params

        def transform_request(self, request: Request) -> Request:
            return request.enhance(headers=headers)

    return HeadersMiddleware


def encode_json_middleware(content_type: str = "application/json;charset=utf-8") -> MiddlewareFactory:
    """Serialize mapping and list bodies as JSON unless a content-type is already set."""

    class EncodeJsonMiddleware:
        def __init__(self, params: MiddlewareParams):
            self.params = params

        def transform_request(self, request: Request) -> Request:
            if not isinstance(request.body, (dict, list)) or request.header("content-type"):
                return request
            return request.enhance(
                body=json.dumps(request.body),
                headers={"content-type": content_type},
            )

    return EncodeJsonMiddleware
