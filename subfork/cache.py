"""In-memory accessor cache."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Literal, TypeVar

Category = Literal["data", "task", "user"]

T = TypeVar("T")


class AccessorCache:
    """Maps ``(category, name)`` to accessor objects for one client."""

    def __init__(self) -> None:
        self._cache: dict[str, dict[str, Any]] = {}

    def add(self, category: Category, name: str, value: Any) -> None:
        self._cache.setdefault(category, {})[name] = value

    def get(self, category: Category, name: str, default: Any = None) -> Any:
        return self._cache.get(category, {}).get(name, default)

    def delete(self, category: Category, name: str) -> None:
        entries = self._cache.get(category)
        if entries is not None:
            entries.pop(name, None)

    def clear(self) -> None:
        self._cache.clear()

    def update(self, category: Category, other: Mapping[str, Any]) -> None:
        self._cache.setdefault(category, {}).update(other)

    def get_or_add(self, category: Category, name: str, factory: Callable[[], T]) -> T:
        # No await between the miss and the insert, so callers on the same
        # event loop always observe a single instance.
        entries = self._cache.setdefault(category, {})
        if name not in entries:
            entries[name] = factory()
        return entries[name]

    def __contains__(self, key: tuple[Category, str]) -> bool:
        category, name = key
        return name in self._cache.get(category, {})


__all__ = ["AccessorCache", "Category"]
