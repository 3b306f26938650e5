"""Namespaced KV - A namespaced, TTL-aware byte key-value store over scanning backends."""

from namespaced_kv.errors import BackendError, BackendUnavailableError, ConfigurationError, InvalidTTLError, NamespacedKVError
from namespaced_kv.scanner import KeyScanner
from namespaced_kv.store import NamespacedStore
from namespaced_kv.types import BackendClient

__all__ = [
    "BackendClient",
    "BackendError",
    "BackendUnavailableError",
    "ConfigurationError",
    "InvalidTTLError",
    "KeyScanner",
    "NamespacedKVError",
    "NamespacedStore",
]
