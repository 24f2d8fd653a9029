from eventauth.cache.store import TTL_MISSING, TTL_PERSISTENT
from eventauth.cache.utils import build_key


async def test_set_get_expires_lazily(store, clock):
    await store.set("otp:a", {"code": "012345"}, ttl_seconds=10)
    assert await store.get("otp:a") == {"code": "012345"}

    clock.advance(9.9)
    assert await store.get("otp:a") is not None

    clock.advance(0.1)
    assert await store.get("otp:a") is None
    assert await store.ttl_ms("otp:a") == TTL_MISSING


async def test_incr_creates_window_once(store, clock):
    count, ttl = await store.incr("rl:k", 60)
    assert count == 1
    assert 0 < ttl <= 60_000

    clock.advance(30)
    count, ttl = await store.incr("rl:k", 60)
    assert count == 2
    # window is not extended by later increments
    assert ttl <= 30_000

    clock.advance(30)
    count, _ = await store.incr("rl:k", 60)
    assert count == 1


async def test_incr_without_ttl_is_persistent(store):
    await store.incr("epoch:x")
    count, ttl = await store.incr("epoch:x")
    assert count == 2
    assert ttl == TTL_PERSISTENT
    assert await store.get("epoch:x") == 2


async def test_compare_and_delete_only_matching_value(store):
    await store.set("k", {"v": 1})
    assert await store.compare_and_delete("k", {"v": 2}) is False
    assert await store.get("k") == {"v": 1}
    assert await store.compare_and_delete("k", {"v": 1}) is True
    assert await store.get("k") is None
    assert await store.compare_and_delete("k", {"v": 1}) is False


async def test_delete_reports_removed_count(store):
    assert await store.delete("missing") == 0
    await store.set("present", "x")
    assert await store.delete("present") == 1
    await store.set("a", 1)
    await store.set("b", 2)
    assert await store.delete("a", "b", "missing") == 2
    assert await store.get("a") is None and await store.get("b") is None


async def test_incr_and_flag_sets_flag_at_threshold(store, clock):
    assert await store.incr_and_flag("fails:a", 60, 3, "lock:a", {"locked": True}) == (1, False)
    assert await store.incr_and_flag("fails:a", 60, 3, "lock:a", {"locked": True}) == (2, False)
    assert await store.get("lock:a") is None

    assert await store.incr_and_flag("fails:a", 60, 3, "lock:a", {"locked": True}, 120) == (3, True)
    assert await store.get("lock:a") == {"locked": True}
    assert 0 < await store.ttl_ms("lock:a") <= 120_000

    # an existing flag is left as written
    assert await store.incr_and_flag("fails:a", 60, 3, "lock:a", {"locked": "again"}) == (4, True)
    assert await store.get("lock:a") == {"locked": True}

    clock.advance(60)
    assert await store.incr_and_flag("fails:a", 60, 3, "lock:a", {"locked": True}) == (1, False)


def test_build_key_hashes_long_keys():
    short = build_key("otp", "a@example.com")
    assert short == "otp:a@example.com"

    long_key = build_key("otp", "x" * 500)
    assert len(long_key) < 200
    assert long_key == build_key("otp", "x" * 500)
