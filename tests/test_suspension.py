import pytest
from eventauth.auth.suspension import SuspensionTracker

EMAIL = "member@example.com"


@pytest.fixture
def tracker(store, clock):
    return SuspensionTracker(store, threshold=5, failure_window_seconds=900, clock=clock)


async def test_suspends_at_threshold(tracker):
    for expected in range(1, 5):
        assert await tracker.record_failure(EMAIL) == expected
        assert not await tracker.is_suspended(EMAIL)

    assert await tracker.record_failure(EMAIL) == 5
    assert await tracker.is_suspended(EMAIL)
    assert await tracker.get_failed_attempts(EMAIL) == 5


async def test_suspension_outlives_failure_window(tracker, clock):
    for _ in range(5):
        await tracker.record_failure(EMAIL)
    clock.advance(10 * 24 * 3600)
    assert await tracker.is_suspended(EMAIL)


async def test_success_resets_everything(tracker):
    for _ in range(5):
        await tracker.record_failure(EMAIL)
    await tracker.record_success(EMAIL)
    assert not await tracker.is_suspended(EMAIL)
    assert await tracker.get_failed_attempts(EMAIL) == 0


async def test_clear_reports_whether_anything_was_removed(tracker):
    assert await tracker.clear(EMAIL) is False
    await tracker.record_failure(EMAIL)
    assert await tracker.clear(EMAIL) is True


async def test_status_reports_suspension_time(tracker, clock):
    for _ in range(5):
        await tracker.record_failure(EMAIL)
    st = await tracker.status(EMAIL)
    assert st.suspended
    assert st.failed_attempts == 5
    assert st.suspended_at_ms == int(clock() * 1000)
    assert st.suspended_until_ms is None


async def test_optional_suspension_ttl(store, clock):
    tracker = SuspensionTracker(store, threshold=2, suspension_ttl_seconds=60, clock=clock)
    await tracker.record_failure(EMAIL)
    await tracker.record_failure(EMAIL)
    assert await tracker.is_suspended(EMAIL)
    clock.advance(61)
    assert not await tracker.is_suspended(EMAIL)


async def test_identities_are_tracked_separately(tracker):
    for _ in range(5):
        await tracker.record_failure(EMAIL)
    assert not await tracker.is_suspended("bystander@example.com")


async def test_later_failures_keep_first_suspension_record(tracker, clock):
    for _ in range(5):
        await tracker.record_failure(EMAIL)
    first = (await tracker.status(EMAIL)).suspended_at_ms

    clock.advance(30)
    assert await tracker.record_failure(EMAIL) == 6
    assert (await tracker.status(EMAIL)).suspended_at_ms == first
