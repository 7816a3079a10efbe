"""
Rate Limiter

Fixed-window request counters keyed by (tier, client address).

Tiers are independent: exhausting the submission tier never touches the
authentication tier, and each client address has its own windows.

A tier flagged count_failures_only is checked with check() before the
guarded operation and charged with hit() only when the operation fails,
so a successful login never consumes the budget.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

from ..config import Settings
from ..time_utils import Clock, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# TIERS
# =============================================================================

API_TIER = "api"
SURVEY_TIER = "survey"
AUTH_TIER = "auth"
RGPD_TIER = "rgpd"


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    max_requests: int
    window: timedelta
    message: str
    count_failures_only: bool = False


@dataclass
class RateWindow:
    """Counter for one client in one tier."""
    key: str
    tier: str
    window_start: datetime
    count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    tier: str
    limit: int
    remaining: int
    reset_at: datetime
    message: Optional[str] = None

    def retry_after_seconds(self, now: datetime) -> int:
        return max(0, int((self.reset_at - now).total_seconds() + 0.999))


def build_tiers(settings: Settings) -> Tuple[RateLimitTier, ...]:
    """The four tiers, sized from configuration."""
    return (
        RateLimitTier(
            name=API_TIER,
            max_requests=settings.api_rate_limit.max_requests,
            window=timedelta(seconds=settings.api_rate_limit.window_seconds),
            message="Trop de requêtes. Veuillez réessayer dans quelques instants.",
        ),
        RateLimitTier(
            name=SURVEY_TIER,
            max_requests=settings.survey_rate_limit.max_requests,
            window=timedelta(seconds=settings.survey_rate_limit.window_seconds),
            message="Vous avez atteint la limite de soumissions. Veuillez réessayer plus tard.",
        ),
        RateLimitTier(
            name=AUTH_TIER,
            max_requests=settings.auth_rate_limit.max_requests,
            window=timedelta(seconds=settings.auth_rate_limit.window_seconds),
            message="Trop de tentatives de connexion. Veuillez réessayer dans 15 minutes.",
            count_failures_only=True,
        ),
        RateLimitTier(
            name=RGPD_TIER,
            max_requests=settings.rgpd_rate_limit.max_requests,
            window=timedelta(seconds=settings.rgpd_rate_limit.window_seconds),
            message="Trop de demandes RGPD. Veuillez réessayer plus tard.",
        ),
    )


# =============================================================================
# LIMITER
# =============================================================================

class RateLimiter:
    """
    Thread-safe fixed-window limiter shared by all request handlers.

    Usage:
        limiter = RateLimiter(build_tiers(settings))
        decision = limiter.hit("survey", client_ip)
        if not decision.allowed:
            ...  # reject with decision.message
    """

    def __init__(self, tiers: Iterable[RateLimitTier], clock: Clock = utcnow):
        self.tiers: Dict[str, RateLimitTier] = {t.name: t for t in tiers}
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[Tuple[str, str], RateWindow] = {}

    def _tier(self, name: str) -> RateLimitTier:
        try:
            return self.tiers[name]
        except KeyError:
            raise ValueError(f"Unknown rate limit tier: {name}")

    def _current_window(self, tier: RateLimitTier, key: str, now: datetime) -> RateWindow:
        window = self._windows.get((tier.name, key))
        if window is None or now >= window.window_start + tier.window:
            window = RateWindow(key=key, tier=tier.name, window_start=now)
            self._windows[(tier.name, key)] = window
        return window

    def _decision(self, tier: RateLimitTier, window: RateWindow, allowed: bool) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            tier=tier.name,
            limit=tier.max_requests,
            remaining=max(0, tier.max_requests - window.count),
            reset_at=window.window_start + tier.window,
            message=None if allowed else tier.message,
        )

    def hit(self, tier_name: str, key: str) -> RateLimitDecision:
        """Consume one request from the client's budget if any is left."""
        tier = self._tier(tier_name)
        now = self._clock()
        with self._lock:
            window = self._current_window(tier, key, now)
            if window.count >= tier.max_requests:
                return self._decision(tier, window, allowed=False)
            window.count += 1
            return self._decision(tier, window, allowed=True)

    def check(self, tier_name: str, key: str) -> RateLimitDecision:
        """Report whether a request would be allowed, without consuming budget."""
        tier = self._tier(tier_name)
        now = self._clock()
        with self._lock:
            window = self._current_window(tier, key, now)
            return self._decision(tier, window, allowed=window.count < tier.max_requests)

    def reset(self, tier_name: str, key: str) -> None:
        with self._lock:
            self._windows.pop((tier_name, key), None)

    def sweep_expired(self) -> int:
        """Drop windows that have elapsed. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [
                k for k, w in self._windows.items()
                if now >= w.window_start + self.tiers[w.tier].window
            ]
            for k in stale:
                del self._windows[k]
        if stale:
            logger.debug(f"Swept {len(stale)} elapsed rate-limit window(s)")
        return len(stale)

    def tracked_windows(self) -> int:
        with self._lock:
            return len(self._windows)
