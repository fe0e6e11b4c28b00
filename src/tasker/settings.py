"""Client configuration."""

from typing import Any

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULTS = {
    "dispose_path": "/dispose",
    "terminate_path": "/terminate",
    "namespace": "/status",
    "activate_event": "activate",
    "progress_event": "progress",
    "success_event": "success",
    "error_event": "error",
    "terminate_event": "terminate",
}


class TaskerSettings(BaseSettings):
    """Tasker client settings.

    All settings can be configured via environment variables with the prefix TASKER_.
    For example, TASKER_BASE_URL=http://localhost:8000 will set base_url.
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKER_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    base_url: str
    """Root address of the task server."""

    # Server paths
    dispose_path: str = _DEFAULTS["dispose_path"]
    terminate_path: str = _DEFAULTS["terminate_path"]
    namespace: str = _DEFAULTS["namespace"]
    """Path of the event subscription."""

    # Event names
    activate_event: str = _DEFAULTS["activate_event"]
    progress_event: str = _DEFAULTS["progress_event"]
    success_event: str = _DEFAULTS["success_event"]
    error_event: str = _DEFAULTS["error_event"]
    terminate_event: str = _DEFAULTS["terminate_event"]

    # HTTP settings
    timeout: float = 30.0
    sse_read_timeout: float | None = None
    """How long (in seconds) the subscription waits for a new event before failing. None waits indefinitely."""

    settle_on_terminate: bool = False
    """Reject the outcome with TaskTerminatedError when a termination event arrives."""

    @field_validator(*_DEFAULTS, mode="before")
    @classmethod
    def empty_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return _DEFAULTS[info.field_name]
        return value

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    @property
    def dispose_url(self) -> str:
        return self._url(self.dispose_path)

    @property
    def terminate_url(self) -> str:
        return self._url(self.terminate_path)

    @property
    def subscription_url(self) -> str:
        return self._url(self.namespace)
