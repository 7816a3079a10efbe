"""
IRVE Survey - FastAPI Application

Main entry point for the residents' EV-charging survey backend.

Architecture:
- Submission → RateLimiter → Fingerprint → DuplicateDetector → insert + audit
- Admin → SessionTokenStore (in memory) → audit / duplicates / cleanup / RGPD
- Background → session sweep (5 min), retention sweep (startup + daily)
"""
from contextlib import asynccontextmanager
from datetime import timedelta
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from .auth import AdminCredentials
from .config import Settings, get_settings
from .database import SessionLocal, init_db
from .dependencies import enforce_rate_limit
from .errors import register_exception_handlers
from .routers import survey_router, stats_router, admin_router, rgpd_router
from .services.background import build_maintenance_jobs
from .services.rate_limiter import API_TIER, RateLimiter, build_tiers
from .services.session_store import SessionTokenStore

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(settings: Settings = None, session_factory: sessionmaker = None) -> FastAPI:
    """
    Build the application.

    Ephemeral state (sessions, rate windows) is owned by app.state and
    reset whenever a new app is built.
    """
    settings = settings or get_settings()
    session_factory = session_factory or SessionLocal

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables, hash the admin password, start maintenance jobs."""
        init_db(bind=session_factory.kw["bind"])

        if settings.uses_default_admin_password:
            logger.warning("ADMIN_PASSWORD is not set; using the built-in default password")
        app.state.admin_credentials = AdminCredentials.from_plaintext(
            settings.admin_password, rounds=settings.bcrypt_rounds
        )

        jobs = []
        if settings.background_jobs:
            jobs = build_maintenance_jobs(
                session_store=app.state.session_store,
                rate_limiter=app.state.rate_limiter,
                session_factory=session_factory,
                retention_days=settings.retention_days,
                sweep_interval_seconds=settings.token_sweep_interval_seconds,
                retention_interval_hours=settings.retention_sweep_interval_hours,
            )
            for job in jobs:
                job.start()
        app.state.jobs = jobs

        yield

        for job in jobs:
            job.stop()

    app = FastAPI(
        lifespan=lifespan,
        title="IRVE Survey",
        description="""
    Residents' survey on electric-vehicle charging infrastructure (IRVE).

    ## Guarantees
    - One response per household: 24h fingerprint window, 7-day email + building window
    - Append-only audit log of every submission and admin action
    - Admin sessions live in memory only and expire after a fixed lifetime
    - Tiered rate limits: API, submissions, failed logins, RGPD requests
    - Responses older than the retention horizon are purged daily
    - RGPD access, erasure and consent withdrawal
    """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.session_store = SessionTokenStore(
        ttl=timedelta(minutes=settings.admin_token_ttl_minutes)
    )
    app.state.rate_limiter = RateLimiter(build_tiers(settings))

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers behind the global API tier
    api_limit = [Depends(enforce_rate_limit(API_TIER))]
    app.include_router(survey_router, dependencies=api_limit)
    app.include_router(stats_router, dependencies=api_limit)
    app.include_router(admin_router, dependencies=api_limit)
    app.include_router(rgpd_router, dependencies=api_limit)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "active_sessions": request.app.state.session_store.active_count(),
        }

    return app


app = create_app()


# For running with: python -m survey.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
