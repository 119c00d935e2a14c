from __future__ import annotations

import math
import time
from typing import Any, List, Tuple

import pytest
from pydantic import ValidationError

from nanocache import CacheSettings, DisposeReason, TTLCache


def make_cache(clock: Any, **options: Any) -> TTLCache[str, Any]:
    options.setdefault("reap_interval_seconds", 0)
    return TTLCache(clock=clock, **options)


def test_ttl_cache_respects_lru_eviction(clock: Any) -> None:
    cache = make_cache(clock, max_entries=3)
    for key in ("a", "b", "c"):
        cache.put(key, key.upper())
        clock.advance(1)
    assert cache.get("a") == "A"
    clock.advance(1)
    assert cache.get("c") == "C"
    clock.advance(1)
    cache.put("d", "D")
    assert sorted(cache.keys()) == ["a", "c", "d"]
    assert cache.get("b") is None


def test_ttl_cache_expires_entries() -> None:
    cache = TTLCache[str, int](reap_interval_seconds=0)
    cache.put("a", 42, ttl=0.05)
    assert cache.get("a") == 42
    time.sleep(0.06)
    assert cache.get("a") is None


def test_unknown_keys_are_not_found(clock: Any) -> None:
    cache = make_cache(clock)
    assert cache.get("missing") is None
    assert cache.get("missing", "fallback") == "fallback"
    assert cache.peek("missing") is None
    assert cache.has("missing") is False
    assert "missing" not in cache


def test_entry_lives_until_ttl_elapses(clock: Any) -> None:
    cache = make_cache(clock)
    cache.put("k", "v", ttl=10)
    clock.advance(10)
    assert cache.get("k") == "v"
    clock.advance(0.5)
    assert cache.get("k") is None
    assert cache.has("k") is False
    # Dead entries stay in the store until reaped.
    assert cache.size == 1


def test_default_ttl_applies_when_ttl_omitted(clock: Any) -> None:
    cache = make_cache(clock, default_ttl_seconds=5)
    cache.put("k", 1)
    cache.put("forever", 2, ttl=0)
    clock.advance(6)
    assert cache.get("k") is None
    assert cache.get("forever") == 2


def test_stale_while_revalidate_window(clock: Any) -> None:
    cache = make_cache(clock, stale_while_revalidate_seconds=200)
    cache.put("k", "v", ttl=50)
    clock.advance(50)
    assert cache.get("k") == "v"
    clock.advance(50)
    assert cache.get("k") == "v"
    assert cache.has("k") is True
    clock.advance(160)
    assert cache.get("k") is None
    assert cache.has("k") is False


def test_allow_stale_serves_expired_values(clock: Any) -> None:
    cache = make_cache(clock, allow_stale=True)
    cache.put("k", "v", ttl=1)
    clock.advance(3600)
    assert cache.get("k") == "v"
    assert cache.has("k") is True


def test_peek_does_not_refresh_recency(clock: Any) -> None:
    cache = make_cache(clock, max_entries=2)
    cache.put("a", 1)
    clock.advance(1)
    cache.put("b", 2)
    clock.advance(1)
    assert cache.peek("a") == 1
    clock.advance(1)
    cache.put("c", 3)
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_overwrite_keeps_access_count_and_skips_dispose(clock: Any) -> None:
    disposed: List[Tuple[Any, str, DisposeReason]] = []
    cache = make_cache(clock, max_entries=2, on_dispose=lambda v, k, r: disposed.append((v, k, r)))
    cache.put("a", 1)
    cache.get("a")
    cache.get("a")
    cache.put("a", 10)
    assert cache.get("a") == 10
    assert cache._store["a"].access_count == 3
    assert disposed == []
    assert cache.size == 1


def test_overwrite_does_not_trigger_eviction(clock: Any) -> None:
    cache = make_cache(clock, max_entries=2)
    cache.put("a", 1).put("b", 2)
    cache.put("a", 3)
    assert cache.size == 2
    assert cache.get("b") == 2


def test_delete_and_clear_dispose_with_reason(clock: Any) -> None:
    disposed: List[Tuple[Any, str, DisposeReason]] = []
    cache = make_cache(clock, on_dispose=lambda v, k, r: disposed.append((v, k, r)))
    cache.put("a", 1).put("b", 2).put("c", 3)
    cache.delete("a")
    cache.clear()
    assert disposed[0] == (1, "a", DisposeReason.DELETE)
    assert sorted(disposed[1:]) == [(2, "b", "clear"), (3, "c", "clear")]
    assert cache.size == 0


def test_delete_absent_and_clear_empty_are_noops(clock: Any) -> None:
    disposed: List[Any] = []
    cache = make_cache(clock, on_dispose=lambda *args: disposed.append(args))
    assert cache.delete("nope") is cache
    assert cache.clear() is cache
    assert disposed == []


def test_failing_dispose_hook_does_not_break_cache(clock: Any) -> None:
    def explode(value: Any, key: str, reason: DisposeReason) -> None:
        raise RuntimeError("boom")

    cache = make_cache(clock, max_entries=1, on_dispose=explode)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.delete("b")
    assert cache.size == 0
    cache.put("c", 3)
    assert cache.get("c") == 3


def test_ttl_query_and_update(clock: Any) -> None:
    cache = make_cache(clock)
    assert cache.ttl("missing") is None
    cache.put("forever", 1)
    assert cache.ttl("forever") == math.inf
    cache.put("k", 1, ttl=30)
    clock.advance(10)
    assert cache.ttl("k") == pytest.approx(20)
    assert cache.ttl("k", 100) is cache
    assert cache.ttl("k") == pytest.approx(100)
    cache.ttl("k", 0)
    assert cache.ttl("k") == math.inf
    assert cache.ttl("missing", 5) is cache
    assert "missing" not in cache
    clock.advance(10_000)
    cache.ttl("forever", 1)
    clock.advance(2)
    assert cache.ttl("forever") == 0


def test_ttl_update_revives_expired_entry(clock: Any) -> None:
    cache = make_cache(clock)
    cache.put("k", "v", ttl=1)
    clock.advance(5)
    assert cache.get("k") is None
    cache.ttl("k", 10)
    assert cache.get("k") == "v"


def test_clone_on_access_isolates_caller_mutations(clock: Any) -> None:
    cache = make_cache(clock, clone_on_access=True)
    original = {"name": "Alice", "tags": ["a"]}
    cache.put("user", original)
    original["tags"].append("b")
    stored = cache.get("user")
    assert stored == {"name": "Alice", "tags": ["a"]}
    stored["name"] = "Mallory"
    assert cache.get("user")["name"] == "Alice"


def test_custom_clone_is_used(clock: Any) -> None:
    calls: List[Any] = []

    def clone(value: Any) -> Any:
        calls.append(value)
        return list(value)

    cache = make_cache(clock, clone_on_access=True, clone=clone)
    cache.put("k", [1, 2])
    assert cache.get("k") == [1, 2]
    assert len(calls) == 2


def test_values_are_shared_without_cloning(clock: Any) -> None:
    cache = make_cache(clock)
    payload = {"n": 1}
    cache.put("k", payload)
    assert cache.get("k") is payload


def test_batch_helpers(clock: Any) -> None:
    cache = make_cache(clock)
    cache.put_many({"a": 1, "b": 2}, ttl=5)
    assert cache.get_many(["a", "b", "c"]) == [1, 2, None]
    cache.delete_many(["a", "c"])
    assert cache.keys() == ["b"]
    assert cache.values() == [2]
    assert cache.items() == [("b", 2)]


def test_stats_reports_expired_and_estimated_bytes(clock: Any) -> None:
    cache = make_cache(clock, allow_stale=True)
    cache.put("s", "ab")
    cache.put("n", 7, ttl=1)
    clock.advance(2)
    stats = cache.stats()
    assert stats.size == 2
    assert stats.expired == 1
    assert stats.estimated_bytes == 12
    assert stats.to_dict() == {"size": 2, "expired": 1, "estimated_bytes": 12}


def test_stats_uses_custom_sizer(clock: Any) -> None:
    cache = make_cache(clock, sizer=lambda value: 1)
    cache.put_many({"a": "x" * 100, "b": None})
    assert cache.stats().estimated_bytes == 2


def test_prune_removes_only_strictly_expired(clock: Any) -> None:
    disposed: List[Tuple[Any, str, DisposeReason]] = []
    cache = make_cache(
        clock,
        stale_while_revalidate_seconds=100,
        on_dispose=lambda v, k, r: disposed.append((v, k, r)),
    )
    cache.put("old", 1, ttl=1)
    cache.put("fresh", 2, ttl=60)
    clock.advance(5)
    assert cache.get("old") == 1
    assert cache.prune() == 1
    assert cache.keys() == ["fresh"]
    assert disposed == [(1, "old", DisposeReason.EXPIRE)]
    assert cache.prune() == 0


def test_settings_object_and_overrides(clock: Any) -> None:
    settings = CacheSettings(max_entries=5, reap_interval_seconds=0)
    cache = TTLCache(settings, clock=clock, default_ttl_seconds=3)
    assert cache.settings.max_entries == 5
    assert cache.settings.default_ttl_seconds == 3
    with pytest.raises(ValidationError):
        cache.settings.max_entries = 10  # type: ignore[misc]


def test_invalid_options_are_rejected() -> None:
    with pytest.raises(ValidationError):
        TTLCache(max_entries=-1)
    with pytest.raises(ValidationError):
        TTLCache(unknown_option=True)


def test_from_env_uses_loaded_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    from nanocache.config import reload_cache_settings

    monkeypatch.setenv("NANOCACHE_CONFIG_FILE", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("NANOCACHE_MAX_ENTRIES", "7")
    monkeypatch.setenv("NANOCACHE_REAP_INTERVAL", "0")
    reload_cache_settings()
    cache = TTLCache.from_env()
    assert cache.settings.max_entries == 7
    assert repr(cache) == "TTLCache(size=0, max_entries=7)"
