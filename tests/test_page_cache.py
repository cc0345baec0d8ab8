"""Tests for the public page cache."""

from src.services.page_cache import PageCache, listing_cache_key, post_cache_key


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire():
    clock = FakeClock()
    cache = PageCache(ttl_seconds=10, clock=clock)
    cache.set("a", {"x": 1})
    assert cache.get("a") == {"x": 1}

    clock.now = 10.5
    assert cache.get("a") is None
    assert "a" not in cache


def test_least_recently_used_entry_is_evicted():
    cache = PageCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_invalidate_post_drops_page_and_listings():
    cache = PageCache()
    cache.set(post_cache_key("megane"), {"title": "Megane"})
    cache.set(post_cache_key("bmw"), {"title": "BMW"})
    cache.set(listing_cache_key(1, 10, None), {"posts": []})
    cache.set(listing_cache_key(2, 10, "megane"), {"posts": []})

    cache.invalidate_post("megane")

    assert post_cache_key("megane") not in cache
    assert post_cache_key("bmw") in cache
    assert listing_cache_key(1, 10, None) not in cache
    assert listing_cache_key(2, 10, "megane") not in cache


def test_clear():
    cache = PageCache()
    cache.set("a", 1)
    cache.clear()
    assert cache.get("a") is None
