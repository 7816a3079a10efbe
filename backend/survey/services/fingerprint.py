"""
Submission Fingerprint

Deterministic SHA-256 digest over the normalized identity of a submission:
building | apartment | email (only when consented) | status.

Used for fast exact-duplicate matching. Pure, never raises.
"""
import hashlib
from typing import Optional


def _normalize(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def generate_submission_fingerprint(
    building: Optional[str],
    apartment: Optional[str] = None,
    email: Optional[str] = None,
    status: Optional[str] = None,
) -> str:
    """
    Generate the duplicate-detection fingerprint for a submission.

    Absent or malformed fields contribute an empty string, so the digest
    is always 64 hex characters.
    """
    normalized = "|".join([
        _normalize(building),
        _normalize(apartment),
        _normalize(email),
        _normalize(status),
    ])
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
