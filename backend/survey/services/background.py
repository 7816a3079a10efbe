"""
Background Jobs

Periodic maintenance running beside request handling:
- session/rate-window sweep every few minutes
- retention sweep once at startup, then daily

Each job is a daemon thread waiting on a stop event, so shutdown does not
have to wait out a full interval.
"""
import logging
import threading
from typing import Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from .rate_limiter import RateLimiter
from .retention import run_retention_sweep
from .session_store import SessionTokenStore

logger = logging.getLogger(__name__)


class PeriodicJob:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: Callable[[], object],
        run_on_start: bool = False,
    ):
        self.name = name
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.action = action
        self.run_on_start = run_on_start
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def run_once(self) -> None:
        """Run the action, logging instead of raising so the loop survives."""
        try:
            self.action()
        except Exception as e:
            logger.error(f"Background job {self.name} failed: {e}", exc_info=True)
        finally:
            self.runs += 1

    def _loop(self) -> None:
        if self.run_on_start:
            self.run_once()
        while not self._stop.wait(self.interval_seconds):
            self.run_once()


def build_maintenance_jobs(
    session_store: SessionTokenStore,
    rate_limiter: RateLimiter,
    session_factory: sessionmaker,
    retention_days: int,
    sweep_interval_seconds: int = 300,
    retention_interval_hours: int = 24,
) -> List[PeriodicJob]:
    """The two jobs the application starts in its lifespan."""

    def sweep_ephemeral_state():
        session_store.sweep_expired()
        rate_limiter.sweep_expired()

    return [
        PeriodicJob(
            name="session-sweep",
            interval_seconds=sweep_interval_seconds,
            action=sweep_ephemeral_state,
        ),
        PeriodicJob(
            name="retention-sweep",
            interval_seconds=retention_interval_hours * 3600,
            action=lambda: run_retention_sweep(session_factory, retention_days),
            run_on_start=True,
        ),
    ]
