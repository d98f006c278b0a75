from unittest.mock import patch

from django.test import SimpleTestCase

from voting.rate_limit import allow_request


class _ClockCache:
    """Just enough of the cache API, with a controllable clock.

    incr() drops the expiry, as some backends do.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.entries: dict[str, tuple[int, float | None]] = {}

    def _live(self, key: str) -> bool:
        entry = self.entries.get(key)
        return entry is not None and (entry[1] is None or entry[1] > self.now)

    def add(self, key: str, value: int, timeout: int) -> bool:
        if self._live(key):
            return False
        self.entries[key] = (value, self.now + timeout)
        return True

    def incr(self, key: str) -> int:
        if not self._live(key):
            raise ValueError("Key does not exist")
        value = self.entries[key][0] + 1
        self.entries[key] = (value, None)
        return value

    def touch(self, key: str, timeout: int) -> bool:
        if not self._live(key):
            return False
        self.entries[key] = (self.entries[key][0], self.now + timeout)
        return True

    def set(self, key: str, value: int, timeout: int) -> None:
        self.entries[key] = (value, self.now + timeout)


def _allow(ip: str = "198.51.100.10") -> bool:
    return allow_request(scope="voting.receipt_verify", key_parts=[ip], limit=2, window_seconds=10)


class AllowRequestTests(SimpleTestCase):
    def test_blocks_after_limit_and_recovers_after_window(self) -> None:
        cache_backend = _ClockCache()
        with patch("voting.rate_limit.cache", cache_backend):
            self.assertEqual([_allow() for _ in range(3)], [True, True, False])
            cache_backend.now += 11
            self.assertTrue(_allow())

    def test_expiry_survives_increment(self) -> None:
        cache_backend = _ClockCache()
        with patch("voting.rate_limit.cache", cache_backend):
            _allow()
            _allow()

        [(_, expires_at)] = cache_backend.entries.values()
        self.assertIsNotNone(expires_at)

    def test_clients_are_counted_separately(self) -> None:
        cache_backend = _ClockCache()
        with patch("voting.rate_limit.cache", cache_backend):
            for _ in range(3):
                _allow("198.51.100.10")
            self.assertTrue(_allow("198.51.100.11"))
