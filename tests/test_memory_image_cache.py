"""Tests for MemoryImageCache (L1 byte-bounded LRU)."""

from __future__ import annotations

import pytest

from imageloader.infrastructure.services.memory_cache import MemoryImageCache


def _cache(max_size: int) -> MemoryImageCache[bytes]:
    return MemoryImageCache(max_size, size_of=len)


class TestMemoryImageCache:
    def test_put_and_get(self):
        cache = _cache(100)
        cache.put("a", b"12345")
        assert cache.get("a") == b"12345"
        assert cache.size == 5

    def test_miss(self):
        assert _cache(100).get("missing") is None

    def test_evicts_least_recently_used(self):
        cache = _cache(10)
        cache.put("a", b"1234")
        cache.put("b", b"1234")
        cache.get("a")
        cache.put("c", b"1234")
        assert "b" not in cache
        assert "a" in cache and "c" in cache
        assert cache.size == 8

    def test_size_never_exceeds_budget(self):
        cache = _cache(20)
        for index in range(50):
            cache.put(f"k{index}", b"x" * (index % 7 + 1))
            assert cache.size <= 20

    def test_evicts_several_to_fit(self):
        cache = _cache(10)
        cache.put("a", b"123")
        cache.put("b", b"123")
        cache.put("c", b"123")
        cache.put("d", b"12345678")
        assert len(cache) == 1
        assert "d" in cache

    def test_entry_larger_than_budget_not_retained(self):
        cache = _cache(10)
        cache.put("a", b"12")
        cache.put("huge", b"x" * 11)
        assert "huge" not in cache
        assert cache.get("a") == b"12"
        assert cache.size == 2

    def test_replace_adjusts_size(self):
        cache = _cache(100)
        cache.put("a", b"1234567890")
        cache.put("a", b"12")
        assert len(cache) == 1
        assert cache.size == 2

    def test_remove(self):
        cache = _cache(100)
        cache.put("a", b"123")
        assert cache.remove("a") == b"123"
        assert cache.remove("a") is None
        assert cache.size == 0

    def test_clear(self):
        cache = _cache(100)
        cache.put("a", b"1")
        cache.put("b", b"2")
        cache.clear()
        assert len(cache) == 0
        assert cache.size == 0

    def test_default_sizer_counts_entries(self):
        cache: MemoryImageCache[str] = MemoryImageCache(2)
        cache.put("a", "x")
        cache.put("b", "y")
        cache.put("c", "z")
        assert "a" not in cache
        assert len(cache) == 2

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            MemoryImageCache(-1)

    def test_negative_size_rejected(self):
        cache = MemoryImageCache(10, size_of=lambda value: -1)
        with pytest.raises(ValueError):
            cache.put("a", object())
