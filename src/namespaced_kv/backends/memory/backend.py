import bisect
import re
import sys
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from cachetools import TLRUCache
from typing_extensions import override

from namespaced_kv.errors import BackendError, BackendUnavailableError
from namespaced_kv.types import BackendClient

DEFAULT_MAX_ENTRIES = 10000

INITIAL_CURSOR = "0"


@dataclass(frozen=True)
class MemoryEntry:
    """A value held by the memory backend along with the TTL it was written with."""

    value: bytes

    ttl: int | None


def _memory_entry_ttu(_key: str, value: MemoryEntry, now: float) -> float:
    """Calculate the expiration time of an entry from the TTL it was written with."""
    if value.ttl is None:
        return float(sys.maxsize)

    return now + value.ttl


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a Redis-style glob (`*`, `?`, `[...]`, `[^...]` and backslash escapes) to a regex."""
    parts: list[str] = []
    index = 0

    while index < len(pattern):
        char = pattern[index]
        index += 1

        if char == "\\" and index < len(pattern):
            parts.append(re.escape(pattern[index]))
            index += 1
        elif char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[" and (end := pattern.find("]", index)) != -1:
            body = pattern[index:end]
            negate = body.startswith("^")
            body = body.removeprefix("^")
            escaped_body = "".join(c if c == "-" else re.escape(c) for c in body.replace("\\", ""))
            parts.append(f"[{'^' if negate else ''}{escaped_body}]")
            index = end + 1
        else:
            parts.append(re.escape(char))

    return re.compile("".join(parts), flags=re.DOTALL)


class MemoryBackend(BackendClient):
    """An in-process backend client with cursor-based scanning and TTL expiry.

    The clock used for expiry can be replaced to make expiry deterministic in tests. Every operation
    served is recorded in `calls`.
    """

    calls: list[str]

    _cache: TLRUCache[str, MemoryEntry]
    _cursors: dict[str, str]
    _cursor_counter: int
    _closed: bool

    def __init__(self, *, max_entries: int = DEFAULT_MAX_ENTRIES, timer: Callable[[], float] = time.monotonic) -> None:
        """Initialize the memory backend.

        Args:
            max_entries: The maximum number of entries held before the least recently used are evicted.
            timer: The clock used to expire entries, in seconds. Defaults to `time.monotonic`.
        """
        self._cache = TLRUCache[str, MemoryEntry](maxsize=max_entries, ttu=_memory_entry_ttu, timer=timer)
        self._cursors = {}
        self._cursor_counter = 0
        self._closed = False
        self.calls = []

    def _record(self, operation: str) -> None:
        if self._closed:
            raise BackendUnavailableError(message="The memory backend is closed.", extra_info={"operation": operation})

        self.calls.append(operation)

    @override
    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        self._record("get_many")

        entries: list[MemoryEntry | None] = [self._cache.get(key) for key in keys]

        return [entry.value if entry is not None else None for entry in entries]

    @override
    async def set_many(self, entries: Sequence[tuple[str, bytes]], *, ttl: int | None = None) -> None:
        self._record("set_many")

        for key, value in entries:
            self._cache[key] = MemoryEntry(value=bytes(value), ttl=ttl)

    @override
    async def delete_many(self, keys: Sequence[str]) -> None:
        self._record("delete_many")

        for key in keys:
            _ = self._cache.pop(key, None)

    @override
    async def scan(self, cursor: str, *, match: str, count: int) -> tuple[str, list[str]]:
        """Examine up to `count` keys in key order after `cursor` and return the ones matching `match`.

        A cursor remembers the last key it examined rather than a position, so keys deleted or expired
        mid-scan do not shift the keys that come after them. Like Redis, a page can be empty while the
        scan is not finished yet.
        """
        self._record("scan")

        _ = self._cache.expire()

        all_keys: list[str] = sorted(self._cache.keys())

        if cursor == INITIAL_CURSOR:
            start = 0
        elif (last_key := self._cursors.pop(cursor, None)) is not None:
            start = bisect.bisect_right(all_keys, last_key)
        else:
            raise BackendError(message="Unknown scan cursor.", extra_info={"cursor": cursor})

        page: list[str] = all_keys[start : start + count]

        pattern: re.Pattern[str] = _compile_glob(match)
        matched: list[str] = [key for key in page if pattern.fullmatch(key)]

        if start + count >= len(all_keys):
            return INITIAL_CURSOR, matched

        self._cursor_counter += 1
        next_cursor = str(self._cursor_counter)
        self._cursors[next_cursor] = page[-1]

        return next_cursor, matched

    @override
    async def close(self) -> None:
        self._record("close")
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
