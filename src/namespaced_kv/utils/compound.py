"""Utilities for translating between logical keys and namespaced (physical) keys."""

DEFAULT_NAMESPACE_SEPARATOR = ":"

GLOB_SPECIAL_CHARACTERS = frozenset("\\*?[]")


def namespace_prefix(namespace: str, separator: str = DEFAULT_NAMESPACE_SEPARATOR) -> str:
    """The string every physical key in `namespace` starts with. Empty when there is no namespace."""
    if not namespace:
        return ""

    return f"{namespace}{separator}"


def prefix_key(key: str, namespace: str, separator: str = DEFAULT_NAMESPACE_SEPARATOR) -> str:
    """Translate a logical key into its physical key."""
    return f"{namespace_prefix(namespace=namespace, separator=separator)}{key}"


def is_namespaced_key(key: str, namespace: str, separator: str = DEFAULT_NAMESPACE_SEPARATOR) -> bool:
    """Whether a physical key belongs to `namespace`. Every key belongs to the empty namespace."""
    return key.startswith(namespace_prefix(namespace=namespace, separator=separator))


def unprefix_key(key: str, namespace: str, separator: str = DEFAULT_NAMESPACE_SEPARATOR) -> str:
    """Translate a physical key back into its logical key.

    Keys that do not carry the namespace prefix are returned unchanged.

    Note: a namespace or key containing the separator can make this ambiguous. With namespace "a"
    the physical key "a:b:c" is always read back as "b:c", even if it was written by a store with
    namespace "a:b" as the logical key "c".
    """
    prefix: str = namespace_prefix(namespace=namespace, separator=separator)

    if prefix and key.startswith(prefix):
        return key[len(prefix) :]

    return key


def escape_glob(value: str) -> str:
    """Escape glob metacharacters so `value` only matches itself in a backend match pattern."""
    return "".join(f"\\{char}" if char in GLOB_SPECIAL_CHARACTERS else char for char in value)


def namespace_match_pattern(namespace: str, prefix: str | None = None, separator: str = DEFAULT_NAMESPACE_SEPARATOR) -> str:
    """Build the glob pattern matching every physical key in `namespace` whose logical key starts with `prefix`."""
    literal: str = namespace_prefix(namespace=namespace, separator=separator) + (prefix or "")

    return f"{escape_glob(literal)}*"
