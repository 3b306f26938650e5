"""Error classes for namespaced key-value store operations.

Exception Hierarchy:
    NamespacedKVError (base for all errors)
    ├── ConfigurationError (raised while constructing a store or backend)
    │   └── InvalidTTLError
    └── BackendError (raised while talking to a backend)
        └── BackendUnavailableError

There is deliberately no "key not found" error: a missing key is reported as ``None``.
"""

ExtraInfoType = dict[str, str | int | float | bool | None]


class NamespacedKVError(Exception):
    """Base exception for all namespaced key-value errors."""

    def __init__(self, message: str | None = None, extra_info: ExtraInfoType | None = None):
        message_parts: list[str] = []

        if message:
            message_parts.append(message)

        if extra_info:
            extra_info_str = ";".join(f"{k}: {v}" for k, v in extra_info.items())
            if message:
                extra_info_str = "(" + extra_info_str + ")"

            message_parts.append(extra_info_str)

        super().__init__(": ".join(message_parts))


class ConfigurationError(NamespacedKVError):
    """Raised when store configuration is invalid or incomplete."""


class InvalidTTLError(ConfigurationError):
    """Raised when a TTL is invalid."""

    def __init__(self, ttl: object, extra_info: ExtraInfoType | None = None):
        super().__init__(
            message="A TTL must be a positive whole number of seconds.",
            extra_info={"ttl": str(ttl), **(extra_info or {})},
        )


class BackendError(NamespacedKVError):
    """Base exception for errors surfaced by a backend client."""


class BackendUnavailableError(BackendError):
    """Raised when unable to connect to or communicate with the underlying backend."""
