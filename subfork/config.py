"""Client configuration for Subfork."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

VERSION = "0.1.1"
API_VERSION = "api"
DEFAULT_EVENTS_URL = "https://events.fork.io"
DEFAULT_WAIT_INTERVAL_S = 0.1

_LOCAL_HOSTS = frozenset({"localhost", "0.0.0.0", "127.0.0.1"})
_LOCAL_PORTS = frozenset({"8000", "8080"})


def _default_host() -> str:
    return os.getenv("SUBFORK_HOST") or "localhost"


def _default_port() -> str:
    return os.getenv("SUBFORK_PORT") or ""


class SubforkConfig(BaseModel):
    """Connection settings accepted by :class:`subfork.Client`.

    ``host`` and ``port`` fall back to ``SUBFORK_HOST`` / ``SUBFORK_PORT``.
    ``on`` maps session-level event names to callbacks receiving an Event.
    On connect each one is bound to the channel under ``<sessionid>:<event>``.
    That key format is a convention of this client; the event server has to
    emit under the same name for the callback to fire.
    """

    host: str = Field(default_factory=_default_host)
    port: str = Field(default_factory=_default_port)
    on: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    api_version: str = API_VERSION
    events_url: str = DEFAULT_EVENTS_URL
    timeout_s: float | None = Field(default=None, gt=0)
    wait_interval_s: float = Field(default=DEFAULT_WAIT_INTERVAL_S, gt=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("port", mode="before")
    @classmethod
    def _coerce_port(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def from_value(cls, value: SubforkConfig | Mapping[str, Any] | None) -> SubforkConfig:
        if value is None:
            return cls()
        if isinstance(value, SubforkConfig):
            return value
        return cls.model_validate(dict(value))

    def is_local(self) -> bool:
        return self.host in _LOCAL_HOSTS and self.port in _LOCAL_PORTS

    @property
    def base_url(self) -> str:
        if self.is_local():
            return f"http://{self.host}:{self.port}"
        if self.port:
            return f"https://{self.host}:{self.port}"
        return f"https://{self.host}"


__all__ = [
    "API_VERSION",
    "DEFAULT_EVENTS_URL",
    "DEFAULT_WAIT_INTERVAL_S",
    "SubforkConfig",
    "VERSION",
]
