"""
Unit tests for the response cache and its key derivation.
"""

from conftest import FakeClock

from menuchat.core.response_cache import ResponseCache, make_cache_key


class TestCacheKey:
    def test_same_inputs_same_key(self) -> None:
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        assert make_cache_key("Wine?", history, "drinks") == make_cache_key("Wine?", list(history), "drinks")

    def test_message_is_trimmed(self) -> None:
        assert make_cache_key("  Wine?  ", [], "auto") == make_cache_key("Wine?", [], "auto")

    def test_category_is_part_of_key(self) -> None:
        assert make_cache_key("Wine?", [], "auto") != make_cache_key("Wine?", [], "drinks")

    def test_only_recent_turns_matter(self) -> None:
        tail = [{"role": "user", "content": f"q{i}"} for i in range(4)]
        older_a = [{"role": "user", "content": "soup?"}] + tail
        older_b = [{"role": "user", "content": "dessert?"}] + tail
        assert make_cache_key("Wine?", older_a, "auto") == make_cache_key("Wine?", older_b, "auto")

    def test_recent_turn_changes_key(self) -> None:
        a = [{"role": "user", "content": "soup?"}]
        b = [{"role": "user", "content": "dessert?"}]
        assert make_cache_key("Wine?", a, "auto") != make_cache_key("Wine?", b, "auto")

    def test_long_message_prefix(self) -> None:
        base = "x" * 600
        assert make_cache_key(base + "a", [], "auto") == make_cache_key(base + "b", [], "auto")

    def test_shape(self) -> None:
        key = make_cache_key("Wine?", [{"role": "user", "content": "hi"}], "drinks")
        assert key == "drinks::Wine?::user:hi"


class TestResponseCache:
    def test_hit_within_ttl(self) -> None:
        clock = FakeClock()
        cache = ResponseCache(ttl_ms=1_000, clock=clock)
        cache.put("k", "answer")
        clock.advance(999)
        entry = cache.get("k")
        assert entry is not None
        assert entry.answer == "answer"

    def test_expired_entry_is_absent(self) -> None:
        clock = FakeClock()
        cache = ResponseCache(ttl_ms=1_000, clock=clock)
        cache.put("k", "answer")
        clock.advance(1_000)
        assert cache.get("k") is None

    def test_put_refreshes_timestamp(self) -> None:
        clock = FakeClock()
        cache = ResponseCache(ttl_ms=1_000, clock=clock)
        cache.put("k", "old")
        clock.advance(800)
        cache.put("k", "new")
        clock.advance(800)
        assert cache.get("k").answer == "new"

    def test_cleanup_removes_only_expired(self) -> None:
        clock = FakeClock()
        cache = ResponseCache(ttl_ms=1_000, clock=clock)
        cache.put("old", "a")
        clock.advance(600)
        cache.put("new", "b")
        clock.advance(500)
        assert cache.cleanup() == 1
        assert len(cache) == 1
        assert cache.get("new") is not None

    def test_max_entries_evicts_oldest(self) -> None:
        cache = ResponseCache(ttl_ms=1_000, max_entries=2, clock=FakeClock())
        cache.put("a", "1")
        cache.put("b", "2")
        cache.put("c", "3")
        assert cache.get("a") is None
        assert cache.get("b") is not None
        assert cache.get("c") is not None
