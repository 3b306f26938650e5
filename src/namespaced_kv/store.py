"""
A namespaced, TTL-aware byte key-value store over a scanning backend client.
"""

import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any, overload

from typing_extensions import Self

from namespaced_kv.backends.redis import RedisBackend
from namespaced_kv.errors import ConfigurationError
from namespaced_kv.scanner import KeyScanner
from namespaced_kv.types import BackendClient
from namespaced_kv.utils.compound import DEFAULT_NAMESPACE_SEPARATOR, namespace_match_pattern, prefix_key
from namespaced_kv.utils.time_to_live import prepare_ttl

logger = logging.getLogger(__name__)

DEFAULT_SCAN_PAGE_SIZE = 100


class NamespacedStore:
    """Stores byte values in a shared backend under a namespace.

    Every logical key is written to the backend as `namespace:key` (or as `key` when the namespace is
    empty) so that several stores can share one backend without seeing each other's keys.

    Batched writes and deletes are not atomic. If the backend fails part way through a batch, some keys
    may have been written or deleted while the call still raises. Callers that need all-or-nothing
    semantics must implement them on top of this store.

    Keys and namespaces may contain the ":" separator, but doing so can make namespaces overlap: the key
    "c" of a store with namespace "a:b" is stored as "a:b:c", which a store with namespace "a" reads and
    scans as its own key "b:c". Pick namespaces that are not another namespace followed by ":".
    """

    _client: BackendClient
    _owns_client: bool
    _namespace: str
    _ttl: int | None
    _scan_page_size: int
    _closed: bool

    @overload
    def __init__(
        self, *, client: BackendClient, ttl: int | None = None, namespace: str = "", scan_page_size: int = DEFAULT_SCAN_PAGE_SIZE
    ) -> None: ...

    @overload
    def __init__(
        self,
        *,
        url: str,
        client_options: Mapping[str, Any] | None = None,
        ttl: int | None = None,
        namespace: str = "",
        scan_page_size: int = DEFAULT_SCAN_PAGE_SIZE,
    ) -> None: ...

    def __init__(
        self,
        *,
        client: BackendClient | None = None,
        url: str | None = None,
        client_options: Mapping[str, Any] | None = None,
        ttl: int | None = None,
        namespace: str = "",
        scan_page_size: int = DEFAULT_SCAN_PAGE_SIZE,
    ) -> None:
        """Initialize the namespaced store.

        Either `client` or `url` must be provided. A store built from a `url` owns its connection and
        closes it in `close`. A `client` passed in is borrowed: the store never closes it.

        Args:
            client: An existing backend client to use.
            url: A Redis URL (e.g., redis://localhost:6379/0) to build a backend client from.
            client_options: Extra keyword arguments for the Redis client built from `url`.
            ttl: Seconds after which every key written through this store expires. Defaults to None (never).
            namespace: The namespace to prefix all keys with. Defaults to "" (no prefix).
            scan_page_size: The number of keys requested from the backend per scan page. Defaults to 100.
        """
        if not isinstance(scan_page_size, int) or isinstance(scan_page_size, bool) or scan_page_size <= 0:
            raise ConfigurationError(message="scan_page_size must be a positive integer.", extra_info={"scan_page_size": str(scan_page_size)})

        self._ttl = prepare_ttl(ttl)
        self._namespace = namespace
        self._scan_page_size = scan_page_size

        if client is not None:
            self._client = client
            self._owns_client = False
        elif url:
            self._client = RedisBackend.from_url(url, **dict(client_options or {}))
            self._owns_client = True
        else:
            raise ConfigurationError(message="Either a client or a url must be provided.")

        self._closed = False

        logger.debug(
            "Created namespaced store",
            extra={"namespace": namespace, "ttl": self._ttl, "owns_client": self._owns_client},
        )

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def ttl(self) -> int | None:
        return self._ttl

    @property
    def owns_client(self) -> bool:
        """Whether the store created its backend client and will close it."""
        return self._owns_client

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _prefix_key(self, key: str) -> str:
        return prefix_key(key=key, namespace=self._namespace, separator=DEFAULT_NAMESPACE_SEPARATOR)

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Retrieve the values for `keys`, in order, with None for every key that is not present.

        A present but empty value is returned as b"", never as None.
        """
        if not keys:
            return []

        prefixed_keys: list[str] = [self._prefix_key(key=key) for key in keys]

        logger.debug("Getting keys", extra={"namespace": self._namespace, "keys": len(prefixed_keys)})

        return await self._client.get_many(prefixed_keys)

    async def set_many(self, pairs: Sequence[tuple[str, bytes | bytearray | memoryview]]) -> None:
        """Store key-value pairs, all with the store's TTL.

        Without a TTL, keys are written with no expiry, clearing any expiry an existing key had.
        """
        if not pairs:
            return

        entries: list[tuple[str, bytes]] = [(self._prefix_key(key=key), bytes(value)) for key, value in pairs]

        logger.debug("Setting keys", extra={"namespace": self._namespace, "keys": len(entries), "ttl": self._ttl})

        await self._client.set_many(entries, ttl=self._ttl)

    async def delete_many(self, keys: Sequence[str]) -> None:
        """Delete keys. Keys that do not exist are ignored."""
        if not keys:
            return

        prefixed_keys: list[str] = [self._prefix_key(key=key) for key in keys]

        logger.debug("Deleting keys", extra={"namespace": self._namespace, "keys": len(prefixed_keys)})

        await self._client.delete_many(prefixed_keys)

    def scan_keys(self, prefix: str | None = None) -> KeyScanner:
        """Enumerate the logical keys in the namespace, optionally only those starting with `prefix`.

        Each call returns a new scanner that starts from the beginning. Use it with `async for`, or
        page through it with `KeyScanner.next_batch`.
        """
        pattern: str = namespace_match_pattern(namespace=self._namespace, prefix=prefix, separator=DEFAULT_NAMESPACE_SEPARATOR)

        return KeyScanner(self._client, namespace=self._namespace, pattern=pattern, page_size=self._scan_page_size)

    async def close(self) -> None:
        """Close the store, closing the backend client if the store created it.

        The store must not be used after it is closed.
        """
        if self._owns_client:
            await self._client.close()

        self._closed = True

        logger.debug("Closed namespaced store", extra={"namespace": self._namespace, "owns_client": self._owns_client})

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        await self.close()
