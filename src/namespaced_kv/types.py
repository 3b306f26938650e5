from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class BackendClient(Protocol):
    """Protocol defining the capabilities a namespaced store needs from a backend.

    Keys passed to and returned from a backend are always physical (namespace-prefixed) keys.
    """

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Retrieve multiple values, returning None for every missing key, in the order of `keys`."""
        ...

    async def set_many(self, entries: Sequence[tuple[str, bytes]], *, ttl: int | None = None) -> None:
        """Store multiple key-value pairs, all with the same TTL (or no expiry when `ttl` is None)."""
        ...

    async def delete_many(self, keys: Sequence[str]) -> None:
        """Delete multiple keys. Missing keys are ignored."""
        ...

    async def scan(self, cursor: str, *, match: str, count: int) -> tuple[str, list[str]]:
        """Fetch one page of keys matching the glob `match`, returning the next cursor and the page.

        A cursor of "0" starts a scan, and a returned cursor of "0" ends it.
        """
        ...

    async def close(self) -> None:
        """Release the connection to the backend."""
        ...
