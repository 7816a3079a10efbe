"""
Session Token Store

In-memory registry of administrator session tokens.

- Tokens are opaque random strings with an absolute expiry.
- Nothing is persisted: a restart logs every administrator out.
- validate() evicts an expired token as a side effect; sweep_expired()
  bounds memory when nobody is validating.
"""
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from ..time_utils import Clock, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=2)


@dataclass(frozen=True)
class SessionToken:
    token: str
    client_ip: str
    created_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        """Lifetime in seconds, as issued."""
        return int((self.expires_at - self.created_at).total_seconds())

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class SessionTokenStore:
    """
    Thread-safe token registry shared by all request handlers.

    Usage:
        store = SessionTokenStore(ttl=timedelta(hours=2))
        session = store.issue("203.0.113.7")
        store.validate(session.token)  # True
        store.revoke(session.token)
    """

    def __init__(self, ttl: timedelta = DEFAULT_TOKEN_TTL, clock: Clock = utcnow):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens: Dict[str, SessionToken] = {}

    def issue(self, client_ip: str) -> SessionToken:
        """Register a fresh token for an authenticated administrator."""
        now = self._clock()
        session = SessionToken(
            token=secrets.token_urlsafe(32),
            client_ip=client_ip,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._tokens[session.token] = session
        return session

    def get(self, token: Optional[str]) -> Optional[SessionToken]:
        """Return the live session for a token, evicting it if expired."""
        if not token:
            return None
        now = self._clock()
        with self._lock:
            session = self._tokens.get(token)
            if session is None:
                return None
            if session.is_expired(now):
                del self._tokens[token]
                return None
            return session

    def validate(self, token: Optional[str]) -> bool:
        return self.get(token) is not None

    def revoke(self, token: Optional[str]) -> None:
        """Remove a token. Unknown or already-expired tokens are ignored."""
        if not token:
            return
        with self._lock:
            self._tokens.pop(token, None)

    def sweep_expired(self) -> int:
        """Drop every expired token. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [t for t, s in self._tokens.items() if s.is_expired(now)]
            for token in expired:
                del self._tokens[token]
        if expired:
            logger.info(f"Swept {len(expired)} expired admin session(s)")
        return len(expired)

    def active_count(self) -> int:
        with self._lock:
            return len(self._tokens)
