import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from pydantic import Field, NonNegativeInt, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import MiddlewareFactory


class PipelineConfig(BaseSettings):
    MAX_MIDDLEWARE_STACK_EXECUTION_ALLOWED: PositiveInt = Field(
        description="How many times the middleware stack may run for one call "
        "before the call fails, counting the first run",
        default=2,
    )


class TransportConfig(BaseSettings):
    DEFAULT_TRANSPORT: str = Field(
        description="Name of the registered transport used when none is configured",
        default="Httpx",
    )

    DEFAULT_TIMEOUT_MS: NonNegativeInt = Field(
        description="Timeout in milliseconds for requests that do not carry one",
        default=30000,
    )


class LoggingConfig(BaseSettings):
    """
    Configuration for library logging, applied by ext_logging.init_logging
    """

    LOG_LEVEL: str = Field(
        description="Logging level, default to INFO.",
        default="INFO",
    )

    LOG_FILE: str | None = Field(
        description="File path for log output.",
        default=None,
    )

    LOG_FILE_MAX_SIZE: PositiveInt = Field(
        description="Maximum file size for file rotation retention, the unit is megabytes (MB)",
        default=20,
    )

    LOG_FILE_BACKUP_COUNT: PositiveInt = Field(
        description="Maximum file backup count file rotation retention",
        default=5,
    )

    LOG_FORMAT: str = Field(
        description="Format string for log messages",
        default=(
            "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] "
            "[%(filename)s:%(lineno)d] %(call_id)s - %(message)s"
        ),
    )

    LOG_DATEFORMAT: str | None = Field(
        description="Date format string for log timestamps",
        default=None,
    )

    LOG_TZ: str | None = Field(
        description="Timezone for log timestamps (e.g., 'America/New_York')",
        default=None,
    )


class ClientSettings(PipelineConfig, TransportConfig, LoggingConfig):
    model_config = SettingsConfigDict(
        env_prefix="RESTFORGE_",
        # read from dotenv format config file
        env_file=".env",
        env_file_encoding="utf-8",
        # ignore extra attributes
        extra="ignore",
    )


settings: ClientSettings = ClientSettings()

TaskFactory = Callable[[Coroutine[Any, Any, Any]], Awaitable[Any]]


@dataclass
class GlobalConfigs:
    """Runtime objects shared by every client built from these configs."""

    context: dict[str, Any] = field(default_factory=dict)
    middleware: list[MiddlewareFactory] = field(default_factory=list)
    task_factory: TaskFactory | None = asyncio.ensure_future
    transport_impl: Any = None
    max_middleware_stack_execution_allowed: int = field(
        default_factory=lambda: settings.MAX_MIDDLEWARE_STACK_EXECUTION_ALLOWED
    )
    transport: Any = field(default_factory=lambda: settings.DEFAULT_TRANSPORT)
    transport_configs: dict[str, dict[str, Any]] = field(default_factory=dict)


configs: GlobalConfigs = GlobalConfigs()

__all__ = ["ClientSettings", "GlobalConfigs", "configs", "settings"]
