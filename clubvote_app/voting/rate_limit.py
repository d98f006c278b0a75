import hashlib

from django.core.cache import cache


def _cache_key(*, scope: str, key_parts: list[str]) -> str:
    digest = hashlib.sha256("\x1f".join(key_parts).encode("utf-8")).hexdigest()
    return f"voting.rate_limit:{scope}:{digest}"


def allow_request(*, scope: str, key_parts: list[str], limit: int, window_seconds: int) -> bool:
    """Fixed-window counter in the Django cache. True while under `limit`."""
    key = _cache_key(scope=scope, key_parts=key_parts)
    if cache.add(key, 1, timeout=window_seconds):
        return True

    try:
        count = cache.incr(key)
    except ValueError:
        # Expired between add() and incr().
        cache.set(key, 1, timeout=window_seconds)
        return True

    # Some backends drop the expiry on incr(); a key without one never resets.
    cache.touch(key, window_seconds)
    return count <= limit
