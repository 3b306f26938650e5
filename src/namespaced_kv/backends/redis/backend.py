import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError
from typing_extensions import override

from namespaced_kv.errors import BackendUnavailableError
from namespaced_kv.types import BackendClient

logger = logging.getLogger(__name__)


def _to_bytes(value: Any) -> bytes | None:  # pyright: ignore[reportAny]
    if value is None:
        return None

    if isinstance(value, str):
        return value.encode("utf-8")

    return bytes(value)  # pyright: ignore[reportAny]


def _to_str(value: Any) -> str:  # pyright: ignore[reportAny]
    if isinstance(value, bytes):
        return value.decode("utf-8")

    return str(value)  # pyright: ignore[reportAny]


class RedisBackend(BackendClient):
    """Redis-based backend client."""

    _client: Redis

    def __init__(self, *, client: Redis) -> None:
        """Initialize the Redis backend.

        Args:
            client: The Redis client to use.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str, **client_options: Any) -> "RedisBackend":  # pyright: ignore[reportAny]
        """Create a Redis backend from a URL.

        No connection is made until the first operation.

        Args:
            url: Redis URL (e.g., redis://localhost:6379/0).
            client_options: Extra keyword arguments passed to `Redis.from_url`.
        """
        return cls(client=Redis.from_url(url, **client_options))  # pyright: ignore[reportUnknownMemberType, reportAny]

    @contextmanager
    def _translate_errors(self, operation: str, **extra: Any) -> Iterator[None]:  # pyright: ignore[reportAny]
        try:
            yield
        except RedisError as e:
            logger.error(
                "Redis operation failed",
                extra={"operation": operation, "error": str(e), **extra},
                exc_info=True,
            )
            raise BackendUnavailableError(message=f"Redis {operation} failed: {e}", extra_info={"operation": operation}) from e

    @override
    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        with self._translate_errors("MGET", key_count=len(keys)):
            values: list[Any] = await self._client.mget(list(keys))  # pyright: ignore[reportUnknownMemberType, reportAny]

        return [_to_bytes(value) for value in values]  # pyright: ignore[reportAny]

    @override
    async def set_many(self, entries: Sequence[tuple[str, bytes]], *, ttl: int | None = None) -> None:
        # Not a MULTI/EXEC transaction: each SET is atomic on its own, the batch is not.
        pipeline = self._client.pipeline(transaction=False)

        for key, value in entries:
            if ttl is not None:
                _ = pipeline.set(name=key, value=value, ex=ttl)  # pyright: ignore[reportUnknownMemberType]
            else:
                # A plain SET also clears any TTL left over from a previous write.
                _ = pipeline.set(name=key, value=value)  # pyright: ignore[reportUnknownMemberType]

        with self._translate_errors("SET", key_count=len(entries)):
            _ = await pipeline.execute()  # pyright: ignore[reportUnknownMemberType]

    @override
    async def delete_many(self, keys: Sequence[str]) -> None:
        with self._translate_errors("DEL", key_count=len(keys)):
            _ = await self._client.delete(*keys)  # pyright: ignore[reportUnknownMemberType, reportAny]

    @override
    async def scan(self, cursor: str, *, match: str, count: int) -> tuple[str, list[str]]:
        with self._translate_errors("SCAN", cursor=cursor, match=match):
            next_cursor, keys = await self._client.scan(cursor=int(cursor), match=match, count=count)  # pyright: ignore[reportUnknownMemberType, reportAny]

        return _to_str(next_cursor), [_to_str(key) for key in keys]  # pyright: ignore[reportAny]

    @override
    async def close(self) -> None:
        with self._translate_errors("CLOSE"):
            await self._client.aclose()
