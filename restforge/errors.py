from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Request


class RestforgeError(Exception):
    message: str = "restforge error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.__class__.message


# =============================================================================
# Configuration errors (raised synchronously while wiring a client)
# =============================================================================
class ConfigurationError(RestforgeError):
    message = "Invalid configuration."


class InvalidManifestError(ConfigurationError):
    message = "invalid manifest (None)"


class MissingPathError(ConfigurationError):
    def __init__(self, resource_name: str, method_name: str) -> None:
        super().__init__(
            f'path is undefined for resource "{resource_name}" method "{method_name}"'
        )
        self.resource_name = resource_name
        self.method_name = method_name


class TransportNotConfiguredError(ConfigurationError):
    message = "transport class not configured (configs.transport)"


class AsyncRuntimeNotConfiguredError(ConfigurationError):
    message = "task factory not configured (configs.task_factory)"


# =============================================================================
# Transport errors (raised when the call is awaited)
# =============================================================================
class TransportError(RestforgeError):
    message = "Transport failure."

    def __init__(self, message: str | None = None, request: "Request | None" = None) -> None:
        super().__init__(message)
        self.request = request


class TransportTimeoutError(TransportError):
    message = "Request timed out."


class TransportAbortedError(TransportError):
    message = "Request aborted."


# =============================================================================
# Pipeline guard
# =============================================================================
class MiddlewareStackExceededError(RestforgeError):
    def __init__(self, executions: int) -> None:
        super().__init__(
            f"infinite loop detected (middleware stack invoked {executions} times). "
            'Check the use of "renew" in one of the middleware.'
        )
        self.executions = executions
