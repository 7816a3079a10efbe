"""
IRVE Survey - Authentication Utilities
Password hashing, client identification and the admin session dependency
"""
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError
from .models.db_models import AuditEventType
from .services.audit_trail import AuditTrailService
from .services.session_store import SessionToken, SessionTokenStore

# Bearer token security (missing header handled below, not by FastAPI)
security = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_bytes)


class AdminCredentials:
    """
    The single administrator password, held only as a bcrypt hash.
    Hashed once at startup from configuration.
    """

    def __init__(self, password_hash: str):
        self.password_hash = password_hash

    @classmethod
    def from_plaintext(cls, password: str, rounds: int = 12) -> "AdminCredentials":
        if len(password.encode('utf-8')) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"ADMIN_PASSWORD must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes in UTF-8"
            )
        return cls(hash_password(password, rounds=rounds))

    def verify(self, candidate: Optional[str]) -> bool:
        if not candidate:
            return False
        # Longer than anything we could have hashed, so it cannot match
        if len(candidate.encode('utf-8')) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        return verify_password(candidate, self.password_hash)


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop (reverse proxy), else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_session_store(request: Request) -> SessionTokenStore:
    return request.app.state.session_store


def get_admin_credentials(request: Request) -> AdminCredentials:
    return request.app.state.admin_credentials


def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: SessionTokenStore = Depends(get_session_store),
    db: Session = Depends(get_db),
) -> SessionToken:
    """
    Dependency for admin-only routes.
    Returns the live session; denied attempts are audit-logged.
    """
    client_ip = get_client_ip(request)

    if credentials is None or not credentials.credentials:
        AuditTrailService(db).record(AuditEventType.ACCESS_DENIED, client_ip, {
            "reason": "missing_token",
            "path": request.url.path,
        })
        raise AuthenticationError("Authentification requise")

    session = store.get(credentials.credentials)
    if session is None:
        AuditTrailService(db).record(AuditEventType.ACCESS_DENIED, client_ip, {
            "reason": "invalid_token",
            "path": request.url.path,
        })
        raise AuthenticationError("Session expirée ou invalide")

    return session
