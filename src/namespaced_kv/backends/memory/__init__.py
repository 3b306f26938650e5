from namespaced_kv.backends.memory.backend import MemoryBackend

__all__ = ["MemoryBackend"]
