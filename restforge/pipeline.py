"""
Pipeline executor.

One executor runs one client call. A cycle folds the request hooks left to
right, dispatches the final request through a freshly built transport, then
folds either the response hooks (transport succeeded) or the error hooks
(transport or a response hook raised). Hooks may restart the whole cycle
through ``renew``; the number of restarts is bounded by
``max_middleware_stack_execution_allowed``.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any

from .errors import MiddlewareStackExceededError
from .models import Request, Response
from .types import Middleware, TransportFactory

logger = logging.getLogger(__name__)


async def resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def settled(response: Response) -> Awaitable[Response]:
    future = asyncio.get_running_loop().create_future()
    future.set_result(response)
    return future


class PipelineExecutor:
    def __init__(
        self,
        middleware: Sequence[Middleware],
        transport_factory: TransportFactory,
        transport_configs: Mapping[str, Any],
        max_middleware_stack_execution_allowed: int,
    ):
        self._request_hooks = [
            m.transform_request for m in middleware if hasattr(m, "transform_request")
        ]
        self._response_hooks = [
            m.transform_response for m in middleware if hasattr(m, "transform_response")
        ]
        self._error_hooks = [
            m.transform_response_error
            for m in middleware
            if hasattr(m, "transform_response_error")
        ]
        self._transport_factory = transport_factory
        self._transport_configs = transport_configs
        self._max_executions = max_middleware_stack_execution_allowed
        self._renewals = 0
        self._initial_request: Request | None = None
        self._settled_errors: list[BaseException] = []

    @property
    def renewals(self) -> int:
        return self._renewals

    async def run(self, request: Request) -> Response:
        self._initial_request = request
        return await self._cycle(request)

    async def renew(self, request: Request | None = None) -> Response:
        """Restart the pipeline from the request phase."""
        self._renewals += 1
        if self._renewals >= self._max_executions:
            logger.warning(
                f"middleware stack renewed {self._renewals} times, "
                f"limit is {self._max_executions} executions"
            )
            raise MiddlewareStackExceededError(self._renewals + 1)
        logger.debug(f"renewing middleware stack (renewal {self._renewals})")
        return await self._cycle(request or self._initial_request)

    async def _cycle(self, request: Request) -> Response:
        try:
            for hook in self._request_hooks:
                transformed = await resolve(hook(request))
                if transformed is not None:
                    request = transformed
        except Exception as error:
            # request hook failures skip the error hooks, also inside renew()
            self._settled_errors.append(error)
            raise

        try:
            response = await self._dispatch(request)
            for hook in self._response_hooks:
                response = await resolve(hook(settled(response), self.renew))
        except Exception as error:
            if self._is_settled(error):
                raise
            return await self._recover(error)
        return response

    async def _dispatch(self, request: Request) -> Response:
        transport = self._transport_factory(request, self._transport_configs)
        logger.debug(f"dispatching {request.method} {request.url} via {type(transport).__name__}")
        return await transport.call()

    def _is_settled(self, error: BaseException) -> bool:
        # errors that already ended a cycle, raised back through renew()
        if isinstance(error, MiddlewareStackExceededError):
            return True
        return any(error is settled_error for settled_error in self._settled_errors)

    async def _recover(self, error: Exception) -> Response:
        for hook in self._error_hooks:
            try:
                recovered = await resolve(hook(error, self.renew))
            except Exception as exc:
                if self._is_settled(exc):
                    raise
                error = exc
                continue
            if recovered is not None:
                logger.debug(f"error {type(error).__name__} recovered by middleware")
                return recovered
        self._settled_errors.append(error)
        raise error
