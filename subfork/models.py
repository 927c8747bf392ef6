"""Wire models shared by the Subfork accessors."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import ServerError


class EventType(str, Enum):
    DATA = "data"
    TASK = "task"
    USER = "user"


class TaskState(str, Enum):
    CREATED = "created"
    ENQUEUED = "enqueued"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"


class ApiResponse(BaseModel):
    """Envelope returned by every remote endpoint."""

    success: bool = False
    data: Any | None = None
    error: Any | None = None

    model_config = ConfigDict(extra="allow")

    def raise_for_error(self, endpoint: str) -> ApiResponse:
        if not self.success:
            raise ServerError(endpoint, self.error)
        return self


class Session(BaseModel):
    """Client identity returned by the bootstrap call."""

    sessionid: str | None = None

    model_config = ConfigDict(extra="allow", frozen=True)

    @field_validator("sessionid", mode="before")
    @classmethod
    def _coerce_sessionid(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def established(self) -> bool:
        return bool(self.sessionid)


__all__ = ["ApiResponse", "EventType", "Session", "TaskState"]
