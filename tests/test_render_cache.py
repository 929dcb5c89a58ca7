import unittest

from enkabot.render_cache import MIN_TTL_MS, RenderCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class RenderCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = RenderCache(clock=self.clock)

    def test_put_then_get_returns_artifact(self) -> None:
        self.cache.put("100000001", "10000002", b"card", 300_000)
        self.assertEqual(self.cache.get("100000001", "10000002"), b"card")

    def test_minimum_ttl_is_accepted(self) -> None:
        self.cache.put("100000001", "10000002", b"card", MIN_TTL_MS)
        self.assertEqual(self.cache.get("100000001", "10000002"), b"card")

    def test_put_below_minimum_ttl_is_ignored(self) -> None:
        self.cache.put("100000001", "10000002", b"card", MIN_TTL_MS - 1)
        self.assertIsNone(self.cache.get("100000001", "10000002"))
        self.assertEqual(len(self.cache), 0)

    def test_entry_expires_after_ttl(self) -> None:
        self.cache.put("100000001", "10000002", b"card", 60_000)
        self.clock.now = 1059.5
        self.assertEqual(self.cache.get("100000001", "10000002"), b"card")
        self.clock.now = 1060.0
        self.assertIsNone(self.cache.get("100000001", "10000002"))
        self.assertEqual(len(self.cache), 0)

    def test_entries_are_not_shared_between_users(self) -> None:
        self.cache.put("100000001", "10000002", b"first", 300_000)
        self.assertIsNone(self.cache.get("100000002", "10000002"))
        self.cache.put("100000002", "10000002", b"second", 300_000)
        self.assertEqual(self.cache.get("100000001", "10000002"), b"first")
        self.assertEqual(self.cache.get("100000002", "10000002"), b"second")

    def test_put_overwrites_existing_entry(self) -> None:
        self.cache.put("100000001", "10000002", b"old", 300_000)
        self.cache.put("100000001", "10000002", b"new", 300_000)
        self.assertEqual(self.cache.get("100000001", "10000002"), b"new")


if __name__ == "__main__":
    unittest.main()
