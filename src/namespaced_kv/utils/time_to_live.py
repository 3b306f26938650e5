from numbers import Integral

from namespaced_kv.errors import InvalidTTLError


def prepare_ttl(t: object) -> int | None:
    """Validate a store-wide TTL.

    If a TTL is provided, it must be a positive whole number of seconds and is returned as an int.
    If None is provided, None is returned and entries never expire.

    A bool is rejected even though it is an int: `ttl=True` would silently become a one second expiry.
    """
    if t is None:
        return None

    if not isinstance(t, Integral) or isinstance(t, bool):
        raise InvalidTTLError(ttl=t, extra_info={"type": type(t).__name__})

    ttl = int(t)

    if ttl <= 0:
        raise InvalidTTLError(ttl=t)

    return ttl
