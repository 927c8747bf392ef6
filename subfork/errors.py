from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorDetails(BaseModel):
    type: str
    title: str
    detail: str | None = None
    status: int | None = None

    model_config = ConfigDict(extra="allow")


class SubforkError(Exception):
    type_name = "subfork-error"

    def __init__(
        self,
        *,
        title: str,
        detail: str | None = None,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail or title)
        self.title = title
        self.detail = detail
        self.status_code = status_code
        self.extra = extra or {}

    def to_problem_details(self) -> ErrorDetails:
        payload: dict[str, Any] = {"type": self.type_name, "title": self.title}
        if self.detail:
            payload["detail"] = self.detail
        if self.status_code is not None:
            payload["status"] = self.status_code
        if self.extra:
            payload.update(self.extra)
        return ErrorDetails.model_validate(payload)


class TransportError(SubforkError):
    type_name = "transport-error"

    def __init__(self, url: str, status_code: int, detail: str | None = None) -> None:
        message = f"Request to '{url}' failed ({status_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            title="Request failed",
            detail=message,
            status_code=status_code,
            extra={"url": url},
        )
        self.url = url


class InvalidResponseError(SubforkError):
    type_name = "invalid-response"

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(title="Invalid response", detail=detail, extra={"url": url})
        self.url = url


class ServerError(SubforkError):
    type_name = "server-error"

    def __init__(self, endpoint: str, error: Any) -> None:
        detail = str(error) if error else f"Server reported failure for '{endpoint}'."
        super().__init__(title="Server error", detail=detail, extra={"endpoint": endpoint})
        self.endpoint = endpoint
        self.error = error


class SessionNotEstablishedError(SubforkError):
    type_name = "session-not-established"

    def __init__(self) -> None:
        super().__init__(
            title="Session not established",
            detail="Call `await client.connect()` before subscribing to events.",
        )


class InvalidNameError(SubforkError, ValueError):
    type_name = "invalid-name"

    def __init__(self, kind: str, name: str, delimiter: str) -> None:
        super().__init__(
            title="Invalid name",
            detail=f"{kind} name '{name}' must not contain '{delimiter}'.",
            extra={"kind": kind, "name": name},
        )


class WaitTimeoutError(SubforkError, TimeoutError):
    type_name = "wait-timeout"

    def __init__(self, timeout_s: float) -> None:
        super().__init__(
            title="Wait timed out",
            detail=f"Condition was not met within {timeout_s:g}s.",
            extra={"timeoutS": timeout_s},
        )
        self.timeout_s = timeout_s


__all__ = [
    "ErrorDetails",
    "InvalidNameError",
    "InvalidResponseError",
    "ServerError",
    "SessionNotEstablishedError",
    "SubforkError",
    "TransportError",
    "WaitTimeoutError",
]
