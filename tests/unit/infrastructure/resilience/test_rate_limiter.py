import pytest

from cmdqueue.infrastructure.resilience.rate_limiter import (
    FALLBACK_CALLER_ID,
    RateLimitConfig,
    RateLimiter,
    compute_window,
    seconds_until_free,
)

@pytest.fixture
def limiter(store, clock):
    return RateLimiter(store=store, config=RateLimitConfig(per_minute=5, per_hour=50), clock=clock)

@pytest.mark.asyncio
async def test_sixth_request_in_a_minute_is_denied(limiter, clock):
    for expected_remaining in (4, 3, 2, 1, 0):
        decision = await limiter.admit("alice")
        assert decision.allowed
        assert decision.remaining['minute'] == expected_remaining
        clock.advance(1)

    decision = await limiter.admit("alice")
    assert not decision.allowed
    assert decision.limit_type == "minute"
    assert decision.retry_after_seconds >= 1
    assert "5 commands per minute" in decision.error

@pytest.mark.asyncio
async def test_admitted_again_after_minute_window_passes(limiter, clock):
    for _ in range(5):
        await limiter.admit("alice")
    assert not (await limiter.admit("alice")).allowed

    clock.advance(61)
    decision = await limiter.admit("alice")
    assert decision.allowed
    assert decision.remaining['hour'] == 44

@pytest.mark.asyncio
async def test_hour_limit(store, clock):
    limiter = RateLimiter(store=store, config=RateLimitConfig(per_minute=100, per_hour=3), clock=clock)
    for _ in range(3):
        assert (await limiter.admit("bob")).allowed
        clock.advance(120)

    decision = await limiter.admit("bob")
    assert not decision.allowed
    assert decision.limit_type == "hour"
    # oldest entry is 360s old, so it frees up in 3240s
    assert decision.retry_after_seconds == 3240

@pytest.mark.asyncio
async def test_callers_are_isolated(limiter):
    for _ in range(5):
        await limiter.admit("alice")
    assert not (await limiter.admit("alice")).allowed
    assert (await limiter.admit("bob")).allowed

@pytest.mark.asyncio
async def test_status_does_not_consume_quota(limiter, store):
    await limiter.admit("alice")
    writes_before = list(store.writes)

    first = await limiter.status("alice")
    second = await limiter.status("alice")

    assert first == second
    assert first.minute_count == 1
    assert first.remaining == {'minute': 4, 'hour': 49}
    assert store.writes == writes_before

@pytest.mark.asyncio
async def test_missing_caller_uses_shared_fallback(limiter, store):
    await limiter.admit(None)
    key = f"rate_limit:{FALLBACK_CALLER_ID}"
    assert store.data[key]['caller_id'] == FALLBACK_CALLER_ID
    assert len(store.data[key]['request_timestamps']) == 1

@pytest.mark.asyncio
async def test_denial_persists_pruned_timestamps(limiter, store, clock):
    stale = int((clock() - 7200) * 1000)
    store.data["rate_limit:alice"] = {'caller_id': 'alice', 'request_timestamps': [stale]}
    for _ in range(5):
        await limiter.admit("alice")
    await limiter.admit("alice")
    assert stale not in store.data["rate_limit:alice"]['request_timestamps']

def test_compute_window_counts_both_windows():
    now = 10_000_000
    config = RateLimitConfig()
    snapshot = compute_window([now - 3_700_000, now - 120_000, now - 30_000, now - 1_000], now, config)
    assert snapshot.hour_count == 3
    assert snapshot.minute_count == 2
    assert snapshot.oldest_in_minute == now - 30_000

def test_seconds_until_free_is_at_least_one():
    assert seconds_until_free(None, 60_000, 0) == 1
    assert seconds_until_free(0, 60_000, 59_999) == 1
    assert seconds_until_free(0, 60_000, 30_500) == 30

def test_resolve_caller_and_storage_key():
    assert RateLimiter.resolve_caller(None) == FALLBACK_CALLER_ID
    assert RateLimiter.resolve_caller("alice") == "alice"
    assert RateLimiter.storage_key(RateLimiter.resolve_caller("alice")) == "rate_limit:alice"

@pytest.mark.asyncio
async def test_stored_float_timestamps_are_read_as_whole_ms(limiter, store, clock):
    now_ms = int(clock() * 1000)
    store.data["rate_limit:alice"] = {'caller_id': 'alice', 'request_timestamps': [now_ms - 500.7, "junk"]}
    status = await limiter.status("alice")
    assert status.caller_id == "alice"
    assert status.minute_count == 1
