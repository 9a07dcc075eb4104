"""
Tests for the Rate Limiters

Run with: python -m pytest tests/test_rate_limit.py -v
"""

import pytest

from kvengine.engine import KVEngine
from kvengine.patterns.rate_limit import (
    FixedWindowLimiter,
    SlidingWindowLimiter,
    TokenBucketLimiter,
)


class TestSlidingWindow:
    """Test the sliding-window log limiter."""

    def test_limit_then_recover(self, engine: KVEngine, clock):
        """Test three allowed, the fourth blocked, allowed again after the window."""
        limiter = SlidingWindowLimiter(engine)

        assert [limiter.allow("alice", 3, 60) for _ in range(4)] == [True, True, True, False]
        clock.advance(60)
        assert limiter.allow("alice", 3, 60) is True

    def test_rejected_requests_not_recorded(self, engine: KVEngine, clock):
        limiter = SlidingWindowLimiter(engine)
        for _ in range(10):
            limiter.allow("alice", 2, 60)

        assert limiter.status("alice")["current_requests"] == 2

    def test_window_slides(self, engine: KVEngine, clock):
        limiter = SlidingWindowLimiter(engine)
        limiter.allow("alice", 2, 10)
        clock.advance(5)
        limiter.allow("alice", 2, 10)
        assert limiter.allow("alice", 2, 10) is False

        clock.advance(5)
        # The first request has left the window
        assert limiter.allow("alice", 2, 10) is True
        assert limiter.allow("alice", 2, 10) is False

    def test_identifiers_independent(self, engine: KVEngine):
        limiter = SlidingWindowLimiter(engine)
        assert limiter.allow("alice", 1, 60) is True
        assert limiter.allow("bob", 1, 60) is True
        assert limiter.allow("alice", 1, 60) is False

    def test_limiters_share_engine_state(self, engine: KVEngine, clock):
        """Test two limiter objects on one engine count the same requests."""
        first = SlidingWindowLimiter(engine)
        second = SlidingWindowLimiter(engine)

        assert first.allow("alice", 1, 60) is True
        assert second.allow("alice", 1, 60) is False
        assert engine.zsets.zcard(first.key("alice")) == 1

    def test_same_instant_requests_counted(self, engine: KVEngine):
        limiters = [SlidingWindowLimiter(engine), SlidingWindowLimiter(engine)]
        assert [limiter.allow("bob", 2, 60) for limiter in limiters] == [True, True]
        assert limiters[0].status("bob")["current_requests"] == 2

    def test_result_fields(self, engine: KVEngine, clock):
        limiter = SlidingWindowLimiter(engine)
        result = limiter.check("alice", 3, 60)

        assert result.allowed is True
        assert result.remaining == 2
        assert result.reset_at == clock.now + 60
        assert result.limit == 3

    def test_key_expires_with_window(self, engine: KVEngine, clock):
        limiter = SlidingWindowLimiter(engine)
        limiter.allow("alice", 3, 60)
        assert engine.ttl_remaining(limiter.key("alice")) == pytest.approx(60)

    def test_reset(self, engine: KVEngine):
        limiter = SlidingWindowLimiter(engine)
        limiter.allow("alice", 1, 60)
        assert limiter.reset("alice") is True
        assert limiter.allow("alice", 1, 60) is True

    def test_invalid_window(self, engine: KVEngine):
        with pytest.raises(ValueError):
            SlidingWindowLimiter(engine).allow("alice", 3, 0)


class TestTokenBucket:
    """Test the token bucket limiter."""

    def test_burst_then_refill(self, engine: KVEngine, clock):
        limiter = TokenBucketLimiter(engine, capacity=3, refill_rate=1)

        assert [limiter.allow("charlie") for _ in range(4)] == [True, True, True, False]
        clock.advance(2)
        assert [limiter.allow("charlie") for _ in range(3)] == [True, True, False]

    def test_fractional_refill(self, engine: KVEngine, clock):
        limiter = TokenBucketLimiter(engine, capacity=1, refill_rate=2)
        assert limiter.allow("dave") is True
        clock.advance(0.25)
        assert limiter.allow("dave") is False
        clock.advance(0.25)
        assert limiter.allow("dave") is True

    def test_never_above_capacity(self, engine: KVEngine, clock):
        limiter = TokenBucketLimiter(engine, capacity=2, refill_rate=10)
        limiter.allow("erin")
        clock.advance(1000)
        limiter.allow("erin")

        assert limiter.status("erin")["tokens"] == pytest.approx(1)

    def test_state_hash(self, engine: KVEngine, clock):
        limiter = TokenBucketLimiter(engine, capacity=5, refill_rate=1)
        limiter.allow("frank")

        assert limiter.status("frank") == {"tokens": 4.0, "last_refill": clock.now}
        assert engine.ttl_remaining(limiter.key("frank")) == pytest.approx(3600)

    def test_invalid_configuration(self, engine: KVEngine):
        with pytest.raises(ValueError):
            TokenBucketLimiter(engine, capacity=0, refill_rate=1)
        with pytest.raises(ValueError):
            TokenBucketLimiter(engine, capacity=1, refill_rate=0)

    def test_reset(self, engine: KVEngine):
        limiter = TokenBucketLimiter(engine, capacity=1, refill_rate=0.01)
        limiter.allow("gina")
        assert limiter.allow("gina") is False
        limiter.reset("gina")
        assert limiter.allow("gina") is True


class TestFixedWindow:
    """Test the fixed-window counter limiter."""

    def test_limit_within_window(self, engine: KVEngine, clock):
        limiter = FixedWindowLimiter(engine)
        assert [limiter.allow("api", 2, 10) for _ in range(3)] == [True, True, False]

    def test_next_window(self, engine: KVEngine, clock):
        limiter = FixedWindowLimiter(engine)
        limiter.allow("api", 1, 10)
        assert limiter.allow("api", 1, 10) is False
        clock.advance(10)
        assert limiter.allow("api", 1, 10) is True

    def test_rejected_not_counted(self, engine: KVEngine, clock):
        limiter = FixedWindowLimiter(engine)
        for _ in range(5):
            limiter.allow("api", 2, 10)

        key = limiter.key("api", clock.now // 10 * 10)
        assert engine.strings.get(key) == "2"
        assert engine.ttl_remaining(key) == pytest.approx(20)
