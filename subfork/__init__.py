"""Public package surface for the Subfork client."""

from __future__ import annotations

from .cache import AccessorCache
from .channel import Channel, ChannelLoader, InMemoryChannel, wait_for
from .client import Client
from .config import API_VERSION, VERSION, SubforkConfig
from .data import Datatype
from .errors import (
    InvalidNameError,
    InvalidResponseError,
    ServerError,
    SessionNotEstablishedError,
    SubforkError,
    TransportError,
    WaitTimeoutError,
)
from .events import Event
from .models import ApiResponse, EventType, Session, TaskState
from .tasks import Task, TaskQueue, session_signature, task_signature
from .transport import HttpTransport, Transport
from .users import User
from .websocket import WebSocketChannel

__all__ = [
    "__version__",
    "API_VERSION",
    "AccessorCache",
    "ApiResponse",
    "Channel",
    "ChannelLoader",
    "Client",
    "Datatype",
    "Event",
    "EventType",
    "HttpTransport",
    "InMemoryChannel",
    "InvalidNameError",
    "InvalidResponseError",
    "ServerError",
    "Session",
    "SessionNotEstablishedError",
    "SubforkConfig",
    "SubforkError",
    "Task",
    "TaskQueue",
    "TaskState",
    "Transport",
    "TransportError",
    "User",
    "VERSION",
    "WaitTimeoutError",
    "WebSocketChannel",
    "session_signature",
    "task_signature",
    "wait_for",
]

__version__ = VERSION
