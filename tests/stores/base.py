from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

import pytest

from namespaced_kv.scanner import KeyScanner
from namespaced_kv.store import DEFAULT_SCAN_PAGE_SIZE, NamespacedStore
from namespaced_kv.types import BackendClient


async def collect_keys(scanner: KeyScanner) -> list[str]:
    return [key async for key in scanner]


class BaseStoreTests(ABC):
    namespace: str = "test"
    scan_page_size: int = DEFAULT_SCAN_PAGE_SIZE

    @pytest.fixture
    @abstractmethod
    async def backend(self) -> BackendClient | AsyncGenerator[BackendClient, None]: ...

    @pytest.fixture
    async def store(self, backend: BackendClient) -> NamespacedStore:
        return NamespacedStore(client=backend, namespace=self.namespace, scan_page_size=self.scan_page_size)

    async def test_store(self, backend: BackendClient):
        """Tests that the backend satisfies the BackendClient protocol."""
        assert isinstance(backend, BackendClient) is True

    async def test_empty_get(self, store: NamespacedStore):
        """Tests that a key that was never written is absent rather than an error."""
        assert await store.get_many(["test"]) == [None]

    async def test_get_many_no_keys(self, store: NamespacedStore):
        assert await store.get_many([]) == []

    async def test_set_many_no_pairs(self, store: NamespacedStore):
        await store.set_many([])

    async def test_delete_many_no_keys(self, store: NamespacedStore):
        await store.delete_many([])

    async def test_set_get(self, store: NamespacedStore):
        await store.set_many([("test", b"value")])
        assert await store.get_many(["test"]) == [b"value"]

    async def test_set_get_binary(self, store: NamespacedStore):
        """Tests that every byte value survives a write and read unchanged."""
        value = bytes(range(256))
        await store.set_many([("test", value)])
        assert await store.get_many(["test"]) == [value]

    async def test_set_bytearray_get_bytes(self, store: NamespacedStore):
        await store.set_many([("test", bytearray(b"value"))])
        assert await store.get_many(["test"]) == [b"value"]

    async def test_empty_value_is_present(self, store: NamespacedStore):
        """Tests that a zero-length value is returned as b"" and not as absent."""
        await store.set_many([("empty", b"")])
        assert await store.get_many(["empty", "missing"]) == [b"", None]

    async def test_get_many_keeps_input_order(self, store: NamespacedStore):
        await store.set_many([("a", b"1"), ("b", b"2"), ("c", b"3")])
        assert await store.get_many(["c", "a", "missing", "b"]) == [b"3", b"1", None, b"2"]
        assert await store.get_many(["a", "b", "c"]) == [b"1", b"2", b"3"]

    async def test_set_set_get(self, store: NamespacedStore):
        await store.set_many([("test", b"first")])
        await store.set_many([("test", b"second")])
        assert await store.get_many(["test"]) == [b"second"]

    async def test_set_delete_get(self, store: NamespacedStore):
        await store.set_many([("test", b"value"), ("other", b"value")])
        await store.delete_many(["test"])
        assert await store.get_many(["test", "other"]) == [None, b"value"]

    async def test_delete_missing_key(self, store: NamespacedStore):
        await store.delete_many(["missing"])
        assert await store.get_many(["missing"]) == [None]

    async def test_special_characters_in_key_name(self, store: NamespacedStore):
        await store.set_many([("test_key!@#$%^&*()[]?\\", b"value")])
        assert await store.get_many(["test_key!@#$%^&*()[]?\\"]) == [b"value"]

    async def test_long_key_name(self, store: NamespacedStore):
        await store.set_many([("test_key" * 100, b"value")])
        assert await store.get_many(["test_key" * 100]) == [b"value"]

    async def test_scan_keys(self, store: NamespacedStore):
        await store.set_many([("x", b"1"), ("y", b"2"), ("z", b"3")])
        assert set(await collect_keys(store.scan_keys())) == {"x", "y", "z"}

    async def test_scan_keys_empty_store(self, store: NamespacedStore):
        assert await collect_keys(store.scan_keys()) == []

    async def test_scan_keys_with_prefix(self, store: NamespacedStore):
        await store.set_many([("pre:a", b"1"), ("pre:b", b"2"), ("other", b"3")])
        assert set(await collect_keys(store.scan_keys("pre:"))) == {"pre:a", "pre:b"}

    async def test_scan_keys_prefix_is_literal(self, store: NamespacedStore):
        """Tests that glob characters in a prefix only match themselves."""
        await store.set_many([("a*b", b"1"), ("axb", b"2"), ("a?c", b"3"), ("[ab]", b"4"), ("a", b"5")])
        assert set(await collect_keys(store.scan_keys("a*"))) == {"a*b"}
        assert set(await collect_keys(store.scan_keys("a?"))) == {"a?c"}
        assert set(await collect_keys(store.scan_keys("[ab"))) == {"[ab]"}

    async def test_scan_keys_is_restartable(self, store: NamespacedStore):
        await store.set_many([("x", b"1"), ("y", b"2"), ("z", b"3")])
        scanner = store.scan_keys()
        first = await collect_keys(scanner)
        assert scanner.exhausted

        assert await collect_keys(scanner) == []
        assert set(await collect_keys(store.scan_keys())) == set(first) == {"x", "y", "z"}

    async def test_scan_keys_next_batch(self, store: NamespacedStore):
        await store.set_many([(f"key_{i}", b"value") for i in range(10)])
        scanner = store.scan_keys()

        seen: set[str] = set()
        while (batch := await scanner.next_batch()) is not None:
            seen.update(batch)

        assert seen == {f"key_{i}" for i in range(10)}
        assert await scanner.next_batch() is None

    async def test_scan_keys_many_pages(self, store: NamespacedStore):
        await store.set_many([(f"key_{i}", b"value") for i in range(250)])
        assert set(await collect_keys(store.scan_keys())) == {f"key_{i}" for i in range(250)}

    async def test_scan_keys_after_delete(self, store: NamespacedStore):
        await store.set_many([("x", b"1"), ("y", b"2"), ("z", b"3")])
        await store.delete_many(["y"])
        assert set(await collect_keys(store.scan_keys())) == {"x", "z"}

    async def test_namespaces_are_isolated(self, store: NamespacedStore, backend: BackendClient):
        other_store = NamespacedStore(client=backend, namespace="other_namespace")

        await store.set_many([("shared", b"mine"), ("only_mine", b"mine")])
        await other_store.set_many([("shared", b"theirs"), ("only_theirs", b"theirs")])

        assert await store.get_many(["shared", "only_mine", "only_theirs"]) == [b"mine", b"mine", None]
        assert await other_store.get_many(["shared", "only_mine", "only_theirs"]) == [b"theirs", None, b"theirs"]

        assert set(await collect_keys(store.scan_keys())) == {"shared", "only_mine"}
        assert set(await collect_keys(other_store.scan_keys())) == {"shared", "only_theirs"}

        await other_store.delete_many(["shared"])
        assert await store.get_many(["shared"]) == [b"mine"]

    async def test_close_borrowed_client(self, store: NamespacedStore, backend: BackendClient):
        """Tests that closing a store does not close a client it was given."""
        await store.set_many([("test", b"value")])
        await store.close()
        assert store.is_closed

        new_store = NamespacedStore(client=backend, namespace=self.namespace)
        assert await new_store.get_many(["test"]) == [b"value"]

    async def test_context_manager(self, backend: BackendClient):
        async with NamespacedStore(client=backend, namespace=self.namespace) as store:
            await store.set_many([("test", b"value")])

        assert store.is_closed

        new_store = NamespacedStore(client=backend, namespace=self.namespace)
        assert await new_store.get_many(["test"]) == [b"value"]
