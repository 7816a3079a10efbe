"""
Shared fixtures: in-memory SQLite store, a controllable clock and an app
wired to both.
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from survey.config import RateLimitSettings, Settings
from survey.database import build_engine, build_session_factory, init_db
from survey.main import create_app
from survey.models.db_models import SubmissionDB
from survey.services.fingerprint import generate_submission_fingerprint

ADMIN_PASSWORD = "correct horse battery staple"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_response(db):
    """Insert a response directly, bypassing the submission pipeline."""

    def _make(
        building="A",
        apartment="12",
        status="proprietaire",
        email=None,
        consent_contact=None,
        created_at=None,
        **fields,
    ) -> SubmissionDB:
        consent = bool(email) if consent_contact is None else consent_contact
        record = SubmissionDB(
            building=building,
            apartment=apartment,
            status=status,
            has_ev=fields.pop("has_ev", "oui"),
            interested=fields.pop("interested", "oui"),
            email=email if consent else None,
            consent_contact=consent,
            submission_hash=generate_submission_fingerprint(
                building, apartment, email if consent else None, status
            ),
            **fields,
        )
        if created_at is not None:
            record.created_at = created_at
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        admin_password=ADMIN_PASSWORD,
        bcrypt_rounds=4,
        background_jobs=False,
        api_rate_limit=RateLimitSettings(1000, 60),
        survey_rate_limit=RateLimitSettings(5, 3600),
        auth_rate_limit=RateLimitSettings(5, 900),
        rgpd_rate_limit=RateLimitSettings(3, 3600),
    )


@pytest.fixture
def client(settings, session_factory):
    app = create_app(settings=settings, session_factory=session_factory)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/stats/auth", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
