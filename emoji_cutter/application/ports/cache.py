"""Cache port - interface for caching."""

from __future__ import annotations

from collections import OrderedDict
from typing import Hashable, Protocol, runtime_checkable


@runtime_checkable
class Cache(Protocol):
    """Port for caching operations."""

    def get(self, key: Hashable) -> object | None:
        """Get value from cache."""
        ...

    def set(self, key: Hashable, value: object) -> None:
        """Store a value, evicting if the cache is full."""
        ...

    def delete(self, key: Hashable) -> None:
        """Delete key from cache."""
        ...

    def clear(self) -> None:
        """Clear all cached values."""
        ...

    def has(self, key: Hashable) -> bool:
        """Check if key exists in cache."""
        ...


class MemoryCache:
    """In-memory least-recently-used cache.

    ``max_size=None`` disables eviction; entries then live until ``clear()``.
    """

    def __init__(self, max_size: int | None = 100):
        if max_size is not None and max_size < 1:
            raise ValueError(f"max_size must be positive or None, got {max_size}")
        self._data: OrderedDict[Hashable, object] = OrderedDict()
        self._max_size = max_size

    @property
    def max_size(self) -> int | None:
        return self._max_size

    def get(self, key: Hashable) -> object | None:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def set(self, key: Hashable, value: object) -> None:
        self._data[key] = value
        self._data.move_to_end(key)
        if self._max_size is not None:
            while len(self._data) > self._max_size:
                self._data.popitem(last=False)

    def delete(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def has(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
