"""
Tests for the tiered fixed-window Rate Limiter.
"""
from datetime import timedelta

import pytest

from survey.config import RateLimitSettings, Settings
from survey.services.rate_limiter import (
    API_TIER, AUTH_TIER, RGPD_TIER, SURVEY_TIER,
    RateLimiter, RateLimitTier, build_tiers,
)


@pytest.fixture
def limiter(clock):
    return RateLimiter(build_tiers(Settings()), clock=clock)


# =============================================================================
# WINDOW BOUNDARIES
# =============================================================================

class TestWindowBoundary:

    def test_exactly_n_requests_allowed(self, limiter):
        """Survey tier: 5 per hour."""
        decisions = [limiter.hit(SURVEY_TIER, "203.0.113.7") for _ in range(5)]

        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [4, 3, 2, 1, 0]

    def test_n_plus_one_rejected_with_tier_message(self, limiter):
        for _ in range(5):
            limiter.hit(SURVEY_TIER, "203.0.113.7")

        decision = limiter.hit(SURVEY_TIER, "203.0.113.7")

        assert not decision.allowed
        assert decision.tier == SURVEY_TIER
        assert "limite de soumissions" in decision.message

    def test_counter_resets_after_window(self, limiter, clock):
        for _ in range(6):
            limiter.hit(SURVEY_TIER, "203.0.113.7")

        clock.advance(hours=1)

        assert limiter.hit(SURVEY_TIER, "203.0.113.7").allowed

    def test_still_rejected_just_before_window_ends(self, limiter, clock):
        for _ in range(5):
            limiter.hit(SURVEY_TIER, "203.0.113.7")

        clock.advance(minutes=59, seconds=59)

        assert not limiter.hit(SURVEY_TIER, "203.0.113.7").allowed

    def test_reset_at_and_retry_after(self, limiter, clock):
        start = clock.now
        for _ in range(5):
            limiter.hit(SURVEY_TIER, "203.0.113.7")
        clock.advance(minutes=20)

        decision = limiter.hit(SURVEY_TIER, "203.0.113.7")

        assert decision.reset_at == start + timedelta(hours=1)
        assert decision.retry_after_seconds(clock.now) == 40 * 60


# =============================================================================
# ISOLATION
# =============================================================================

class TestIsolation:

    def test_tiers_are_independent(self, limiter):
        for _ in range(3):
            limiter.hit(RGPD_TIER, "203.0.113.7")

        assert not limiter.hit(RGPD_TIER, "203.0.113.7").allowed
        assert limiter.hit(SURVEY_TIER, "203.0.113.7").allowed
        assert limiter.hit(API_TIER, "203.0.113.7").allowed

    def test_clients_are_independent(self, limiter):
        for _ in range(5):
            limiter.hit(SURVEY_TIER, "203.0.113.7")

        assert not limiter.hit(SURVEY_TIER, "203.0.113.7").allowed
        assert limiter.hit(SURVEY_TIER, "198.51.100.2").allowed

    def test_unknown_tier_raises(self, limiter):
        with pytest.raises(ValueError):
            limiter.hit("nope", "203.0.113.7")


# =============================================================================
# FAILURES-ONLY TIER
# =============================================================================

class TestFailuresOnly:

    def test_auth_tier_is_failures_only(self):
        tiers = {t.name: t for t in build_tiers(Settings())}

        assert tiers[AUTH_TIER].count_failures_only
        assert tiers[AUTH_TIER].window == timedelta(minutes=15)
        assert not tiers[SURVEY_TIER].count_failures_only

    def test_check_does_not_consume(self, limiter):
        for _ in range(20):
            assert limiter.check(AUTH_TIER, "203.0.113.7").allowed

    def test_check_blocks_after_failures(self, limiter):
        for _ in range(5):
            limiter.hit(AUTH_TIER, "203.0.113.7")

        assert not limiter.check(AUTH_TIER, "203.0.113.7").allowed


# =============================================================================
# CONFIGURATION & SWEEP
# =============================================================================

class TestConfiguration:

    def test_tiers_follow_settings(self, clock):
        settings = Settings(api_rate_limit=RateLimitSettings(2, 10))
        limiter = RateLimiter(build_tiers(settings), clock=clock)

        assert limiter.hit(API_TIER, "203.0.113.7").allowed
        assert limiter.hit(API_TIER, "203.0.113.7").allowed
        assert not limiter.hit(API_TIER, "203.0.113.7").allowed

        clock.advance(seconds=10)
        assert limiter.hit(API_TIER, "203.0.113.7").allowed

    def test_custom_tier(self, clock):
        limiter = RateLimiter(
            [RateLimitTier("export", 1, timedelta(minutes=1), "Slow down")], clock=clock
        )

        limiter.hit("export", "203.0.113.7")

        assert limiter.hit("export", "203.0.113.7").message == "Slow down"


class TestSweep:

    def test_sweep_drops_elapsed_windows(self, limiter, clock):
        limiter.hit(API_TIER, "203.0.113.7")
        limiter.hit(SURVEY_TIER, "203.0.113.7")
        assert limiter.tracked_windows() == 2

        clock.advance(minutes=2)

        assert limiter.sweep_expired() == 1
        assert limiter.tracked_windows() == 1
