"""
Computation result cache built on a namespaced store.

This example shows how to:
- Share one backend between subsystems by giving each its own namespace
- Store pydantic models as bytes with a uniform TTL
- Batch lookups and writes with get_many / set_many
- Enumerate cached entries with scan_keys
"""

import asyncio
import hashlib
import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError

from namespaced_kv import NamespacedStore
from namespaced_kv.backends.memory import MemoryBackend
from namespaced_kv.types import BackendClient

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


class ComputationResult(BaseModel):
    """The cached result of one computation."""

    function: str
    arguments: list[float]
    result: float
    computed_at: datetime


def cache_key(function: str, arguments: list[float]) -> str:
    digest = hashlib.sha256(repr([float(argument) for argument in arguments]).encode()).hexdigest()[:16]
    return f"{function}:{digest}"


class ComputationCache:
    """Caches computation results per function under the "computations" namespace."""

    def __init__(self, backend: BackendClient, ttl: int | None = 3600):
        self.store = NamespacedStore(client=backend, namespace="computations", ttl=ttl)

    async def get_results(self, function: str, calls: list[list[float]]) -> list[ComputationResult | None]:
        values = await self.store.get_many([cache_key(function, arguments) for arguments in calls])

        results: list[ComputationResult | None] = []
        for value in values:
            if value is None:
                results.append(None)
                continue
            try:
                results.append(ComputationResult.model_validate_json(value))
            except ValidationError:
                logger.warning("Discarding unreadable cache entry", exc_info=True)
                results.append(None)

        return results

    async def put_results(self, results: list[ComputationResult]) -> None:
        await self.store.set_many(
            [(cache_key(result.function, result.arguments), result.model_dump_json().encode()) for result in results]
        )

    async def compute_many(self, function: str, calls: list[list[float]]) -> list[float]:
        """Compute `function` for every argument list, reusing cached results."""
        cached = await self.get_results(function, calls)

        missing: list[ComputationResult] = [
            ComputationResult(
                function=function,
                arguments=arguments,
                result=sum(arguments) if function == "sum" else max(arguments),
                computed_at=datetime.now(tz=timezone.utc),
            )
            for arguments, result in zip(calls, cached)
            if result is None
        ]
        await self.put_results(missing)

        logger.info(f"{function}: {len(calls) - len(missing)} cached, {len(missing)} computed")

        computed = iter(missing)
        return [(result or next(computed)).result for result in cached]

    async def cached_functions(self) -> set[str]:
        return {key.split(":", 1)[0] async for key in self.store.scan_keys()}

    async def invalidate(self, function: str) -> int:
        keys = [key async for key in self.store.scan_keys(f"{function}:")]
        await self.store.delete_many(keys)
        return len(keys)


async def main():
    backend = MemoryBackend()
    cache = ComputationCache(backend=backend)

    print(await cache.compute_many("sum", [[1, 2], [3, 4]]))
    print(await cache.compute_many("sum", [[1, 2], [5, 6]]))
    print(await cache.compute_many("max", [[1, 9, 3]]))

    print(f"Cached functions: {sorted(await cache.cached_functions())}")
    print(f"Invalidated {await cache.invalidate('sum')} sum results")

    await cache.store.close()


if __name__ == "__main__":
    asyncio.run(main())
