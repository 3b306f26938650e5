import logging
from collections import deque

from typing_extensions import Self

from namespaced_kv.types import BackendClient
from namespaced_kv.utils.compound import DEFAULT_NAMESPACE_SEPARATOR, is_namespaced_key, unprefix_key

logger = logging.getLogger(__name__)

INITIAL_CURSOR = "0"


class KeyScanner:
    """An independent, lazy enumeration of the logical keys in a namespace.

    The scanner holds its own backend cursor. Nothing is requested from the backend until the first
    page is needed, and every scanner starts from the beginning of the keyspace.

    The enumeration is not a point-in-time snapshot. Keys present for the whole scan are returned at
    least once; keys written or deleted while scanning may be missed or returned more than once.
    """

    _client: BackendClient
    _namespace: str
    _pattern: str
    _page_size: int

    _cursor: str
    _exhausted: bool
    _buffer: deque[str]

    def __init__(self, client: BackendClient, *, namespace: str, pattern: str, page_size: int) -> None:
        self._client = client
        self._namespace = namespace
        self._pattern = pattern
        self._page_size = page_size

        self._cursor = INITIAL_CURSOR
        self._exhausted = False
        self._buffer = deque()

    @property
    def pattern(self) -> str:
        """The glob pattern sent to the backend."""
        return self._pattern

    @property
    def exhausted(self) -> bool:
        """Whether the backend has reported the end of the scan."""
        return self._exhausted

    def _to_logical_key(self, key: str) -> str:
        if not is_namespaced_key(key=key, namespace=self._namespace, separator=DEFAULT_NAMESPACE_SEPARATOR):
            logger.warning(
                "Backend scan returned a key outside of the namespace",
                extra={"namespace": self._namespace, "key": key, "pattern": self._pattern},
            )
            return key

        return unprefix_key(key=key, namespace=self._namespace, separator=DEFAULT_NAMESPACE_SEPARATOR)

    async def next_batch(self) -> list[str] | None:
        """Fetch the next page of logical keys, or None once the scan is complete.

        A page may be empty before the scan is complete.
        """
        if self._exhausted:
            return None

        next_cursor, keys = await self._client.scan(self._cursor, match=self._pattern, count=self._page_size)

        logger.debug("Scanned page", extra={"cursor": self._cursor, "next_cursor": next_cursor, "keys": len(keys)})

        self._cursor = next_cursor

        # An empty cursor is treated like "0": the backend has nothing left to return.
        if not next_cursor or next_cursor == INITIAL_CURSOR:
            self._exhausted = True

        return [self._to_logical_key(key=key) for key in keys]

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> str:
        while not self._buffer:
            batch: list[str] | None = await self.next_batch()

            if batch is None:
                raise StopAsyncIteration

            self._buffer.extend(batch)

        return self._buffer.popleft()
