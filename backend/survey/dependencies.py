"""
IRVE Survey - Shared Dependencies
Rate limiting and settings access for routers
"""
from fastapi import Request, Response

from .auth import get_client_ip
from .config import Settings
from .errors import RateLimitExceeded, rate_limit_headers
from .services.rate_limiter import RateLimiter


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def enforce_rate_limit(tier: str):
    """
    Build a dependency that charges one request to `tier` for the caller.
    Rejections stop the request before the route body runs.
    """

    def dependency(request: Request, response: Response) -> None:
        decision = get_rate_limiter(request).hit(tier, get_client_ip(request))
        if not decision.allowed:
            raise RateLimitExceeded(decision)
        # The innermost tier wins when several apply
        response.headers.update(rate_limit_headers(decision))

    dependency.__name__ = f"enforce_{tier}_rate_limit"
    return dependency
