"""Task queues, tasks and task event subscriptions."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .channel import Ack
from .config import VERSION
from .errors import InvalidNameError, SessionNotEstablishedError
from .events import Event
from .models import TaskState

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .client import Client, ResponseCallback

logger = logging.getLogger("subfork.tasks")

SIGNATURE_DELIMITER = ":"

EventCallback = Callable[[Event], Any]


def _check_name(kind: str, name: str) -> None:
    if SIGNATURE_DELIMITER in name:
        raise InvalidNameError(kind, name, SIGNATURE_DELIMITER)


def session_signature(sessionid: str | None, event_name: str) -> str:
    """Return the key for session-level events, ``<sessionid>:<event>``."""
    if not sessionid:
        raise SessionNotEstablishedError()
    _check_name("event", event_name)
    return SIGNATURE_DELIMITER.join((sessionid, event_name))


def task_signature(sessionid: str | None, queue_name: str, event_name: str) -> str:
    """Return the key for queue events, ``<sessionid>:task:<queue>:<event>``."""
    if not sessionid:
        raise SessionNotEstablishedError()
    _check_name("queue", queue_name)
    _check_name("event", event_name)
    return SIGNATURE_DELIMITER.join((sessionid, "task", queue_name, event_name))


def event_handler(client: Client, event_name: str, callback: EventCallback):
    """Wrap ``callback`` so each delivery gets a freshly built :class:`Event`."""

    def _handle(payload: Mapping[str, Any], ack: Ack | None = None) -> Any:
        return callback(Event(event_name, payload, client=client))

    return _handle


@dataclass(slots=True, eq=False)
class Task:
    queue: TaskQueue
    data: dict[str, Any] = field(default_factory=dict)
    state: TaskState = TaskState.CREATED

    def get_error(self) -> Any:
        return self.data.get("error")

    def get_results(self) -> Any:
        results = self.data.get("results")
        if not isinstance(results, str | bytes | bytearray):
            return results
        try:
            return json.loads(results)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return results

    def on(self, event_name: str, callback: EventCallback) -> bool:
        return self.queue.on(event_name, callback)


class TaskQueue:
    """Creates, looks up and subscribes to tasks of one named queue."""

    def __init__(self, client: Client, name: str) -> None:
        self.client = client
        self.name = name

    def __repr__(self) -> str:
        return f"TaskQueue(name={self.name!r})"

    def build_task(self, data: Mapping[str, Any], *, state: TaskState = TaskState.CREATED) -> Task:
        return Task(self, dict(data), state)

    def create(
        self,
        data: Mapping[str, Any],
        callback: ResponseCallback | None = None,
    ) -> asyncio.Task[Task | None]:
        """Create and enqueue a task; resolves to the task once confirmed."""
        task = self.build_task(data)
        pending = self.enqueue(task, callback=callback)

        async def _created() -> Task | None:
            return task if await pending else None

        return self.client.spawn(_created())

    def enqueue(self, task: Task, callback: ResponseCallback | None = None) -> asyncio.Task[bool]:
        payload = {"queue": self.name, "data": task.data, "version": VERSION}
        task.state = TaskState.ENQUEUED

        async def _enqueue() -> bool:
            response = await self.client.request("task/create", payload)
            if response.success:
                task.state = TaskState.CONFIRMED
            else:
                task.state = TaskState.REJECTED
                logger.warning("task_enqueue_rejected", extra={"queue": self.name, "error": response.error})
            await self.client.notify(callback, response)
            return response.success

        return self.client.spawn(_enqueue())

    async def get(self, taskid: Any) -> Task | None:
        payload = {"queue": self.name, "taskid": taskid, "version": VERSION}
        response = await self.client.request("task/get", payload, blocking=True)
        if not response.success:
            logger.error("task_get_failed", extra={"queue": self.name, "taskid": taskid, "error": response.error})
            return None
        data = response.data or {}
        if not isinstance(data, Mapping):
            logger.warning("task_get_malformed", extra={"queue": self.name, "taskid": taskid})
            return None
        return self.build_task(data, state=TaskState.CONFIRMED)

    def on(self, event_name: str, callback: EventCallback) -> bool:
        signature = task_signature(self.client.session.sessionid, self.name, event_name)
        self.client.channels.subscribe(signature, event_handler(self.client, event_name, callback))
        return True

    def off(self, event_name: str) -> None:
        signature = task_signature(self.client.session.sessionid, self.name, event_name)
        self.client.channels.unsubscribe(signature)


__all__ = [
    "EventCallback",
    "SIGNATURE_DELIMITER",
    "Task",
    "TaskQueue",
    "event_handler",
    "session_signature",
    "task_signature",
]
