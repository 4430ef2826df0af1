import time
from collections.abc import Callable, Hashable
from typing import Any

Key = tuple[Hashable, ...]


class ResourceCache:
    """
    Read-through cache keyed by tuples such as ("trips", trip_id, "stages").

    Mutations invalidate by key prefix, so only the touched entity and its
    dependents are refetched. Entries also expire after `ttl` seconds.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Key, tuple[float, Any]] = {}

    def get(self, key: Key) -> Any | None:
        hit = self._entries.get(key)
        if hit is None:
            return None
        stored_at, value = hit
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: Key, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def get_or_fetch(self, key: Key, fetch: Callable[[], Any]) -> Any:
        value = self.get(key)
        if value is None:
            value = fetch()
            self.set(key, value)
        return value

    def invalidate(self, *prefix: Hashable) -> int:
        n = len(prefix)
        stale = [k for k in self._entries if k[:n] == prefix]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[Key]:
        return list(self._entries)

    def __contains__(self, key: Key) -> bool:
        return self.get(key) is not None
