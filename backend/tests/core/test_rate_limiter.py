# backend/tests/core/test_rate_limiter.py
import pytest

from agenciaos.core.rate_limit import AgencyRateLimiter

TEST_LIMITS = {
    "FREE": {"ai": "2/minute", "api": "5/minute"},
    "PRO": {"ai": "4/minute", "api": "50/minute"},
}

@pytest.fixture
def limiter() -> AgencyRateLimiter:
    return AgencyRateLimiter(plan_limits=TEST_LIMITS, enabled=True)

def test_third_ai_call_is_denied_on_free_plan(limiter):
    first = limiter.hit("agency-1", "FREE", "ai")
    second = limiter.hit("agency-1", "FREE", "ai")
    third = limiter.hit("agency-1", "FREE", "ai")

    assert first.allowed and second.allowed
    assert (first.remaining, second.remaining) == (1, 0)
    assert third.allowed is False
    assert third.remaining == 0
    assert third.used == 2
    assert third.headers()["X-RateLimit-Limit"] == "2"

def test_categories_and_agencies_are_counted_separately(limiter):
    limiter.hit("agency-1", "FREE", "ai")
    limiter.hit("agency-1", "FREE", "ai")

    assert limiter.hit("agency-1", "FREE", "api").allowed
    assert limiter.hit("agency-2", "FREE", "ai").allowed

def test_plan_defines_the_limit(limiter):
    results = [limiter.hit("agency-pro", "PRO", "ai") for _ in range(4)]
    assert all(r.allowed for r in results)
    assert results[-1].limit == 4

def test_unknown_plan_falls_back_to_free(limiter):
    assert limiter.limit_for("ENTERPRISE", "ai").amount == 2

def test_unknown_category_is_rejected(limiter):
    with pytest.raises(ValueError):
        limiter.hit("agency-1", "FREE", "uploads")

def test_peek_does_not_consume(limiter):
    limiter.hit("agency-1", "FREE", "api")
    before = limiter.peek("agency-1", "FREE", "api")
    after = limiter.peek("agency-1", "FREE", "api")
    assert before.used == after.used == 1
    assert before.allowed

def test_disabled_limiter_always_allows():
    limiter = AgencyRateLimiter(plan_limits=TEST_LIMITS, enabled=False)
    results = [limiter.hit("agency-1", "FREE", "ai") for _ in range(5)]
    assert all(r.allowed for r in results)
    assert results[-1].remaining == 2

def test_reset_clears_counters(limiter):
    limiter.hit("agency-1", "FREE", "ai")
    limiter.hit("agency-1", "FREE", "ai")
    limiter.reset()
    assert limiter.hit("agency-1", "FREE", "ai").allowed
