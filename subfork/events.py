"""Event envelopes delivered to subscribers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .models import EventType, TaskState
from .users import User

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .client import Client
    from .data import Datatype
    from .tasks import Task

logger = logging.getLogger("subfork.events")


def _parse_type(raw: Any) -> EventType | None:
    try:
        return EventType(raw)
    except ValueError:
        return None


class Event:
    """One pushed message, tagged with the subscribed event name."""

    __slots__ = ("name", "type", "message", "raw", "_client")

    def __init__(self, name: str, raw: Mapping[str, Any], *, client: Client | None = None) -> None:
        self.name = name
        self.raw = dict(raw)
        self.type = _parse_type(self.raw.get("type"))
        self.message = self.raw.get("message")
        self._client = client

    def __repr__(self) -> str:
        kind = self.type.value if self.type is not None else None
        return f"Event(name={self.name!r}, type={kind!r}, message={self.message!r})"

    def task(self) -> Task | None:
        if self.type is not EventType.TASK or self._client is None:
            return None
        queue_name = self.raw.get("queue")
        if not isinstance(queue_name, str):
            return None
        task_data = self.raw.get("task") or {}
        if not isinstance(task_data, Mapping):
            logger.warning("event_task_malformed", extra={"event": self.name, "queue": queue_name})
            return None
        data = dict(task_data)
        if data.get("error"):
            state = TaskState.FAILED
        elif "results" in data:
            state = TaskState.COMPLETED
        else:
            state = TaskState.CONFIRMED
        return self._client.task(queue_name).build_task(data, state=state)

    def data(self) -> Datatype | None:
        if self.type is not EventType.DATA or self._client is None:
            return None
        return self._client.data(self.name)

    def user(self) -> User | None:
        if self.type is not EventType.USER:
            return None
        user_data = self.raw.get("user") or {}
        if not isinstance(user_data, Mapping):
            logger.warning("event_user_malformed", extra={"event": self.name})
            return None
        return User(dict(user_data))

    def materialize(self) -> Task | Datatype | User | None:
        """Return the object matching ``type``."""
        if self.type is EventType.TASK:
            return self.task()
        if self.type is EventType.DATA:
            return self.data()
        if self.type is EventType.USER:
            return self.user()
        return None


__all__ = ["Event"]
