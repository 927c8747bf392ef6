from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class User:
    """Read-only user snapshot."""

    data: dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> str | None:
        return self.data.get("username")


__all__ = ["User"]
