"""
Tests for the in-memory Session Token Store.
"""
import threading
from datetime import timedelta

import pytest

from survey.services.session_store import SessionTokenStore


@pytest.fixture
def store(clock):
    return SessionTokenStore(ttl=timedelta(hours=2), clock=clock)


class TestTokenLifecycle:

    def test_issue_registers_token_with_absolute_expiry(self, store, clock):
        session = store.issue("203.0.113.7")

        assert session.client_ip == "203.0.113.7"
        assert session.created_at == clock.now
        assert session.expires_at == clock.now + timedelta(hours=2)
        assert session.expires_in == 7200
        assert store.validate(session.token)

    def test_tokens_are_unique_and_opaque(self, store):
        tokens = {store.issue("203.0.113.7").token for _ in range(100)}

        assert len(tokens) == 100
        assert all(len(t) >= 32 for t in tokens)

    def test_valid_just_before_expiry(self, store, clock):
        session = store.issue("203.0.113.7")

        clock.advance(hours=1, minutes=59)

        assert store.validate(session.token)

    def test_invalid_just_after_expiry(self, store, clock):
        session = store.issue("203.0.113.7")

        clock.advance(hours=2, minutes=1)

        assert not store.validate(session.token)

    def test_validate_evicts_expired_token(self, store, clock):
        session = store.issue("203.0.113.7")
        clock.advance(hours=3)

        store.validate(session.token)

        assert store.active_count() == 0

    def test_revoke_invalidates_immediately(self, store):
        session = store.issue("203.0.113.7")

        store.revoke(session.token)

        assert not store.validate(session.token)

    def test_revoke_is_idempotent(self, store, clock):
        session = store.issue("203.0.113.7")
        store.revoke(session.token)

        store.revoke(session.token)
        store.revoke("never-issued")
        store.revoke(None)

        clock.advance(hours=5)
        expired = store.issue("203.0.113.7")
        clock.advance(hours=5)
        store.revoke(expired.token)

    def test_unknown_and_empty_tokens_are_invalid(self, store):
        assert not store.validate("never-issued")
        assert not store.validate("")
        assert not store.validate(None)


class TestSweep:

    def test_sweep_removes_only_expired(self, store, clock):
        old = store.issue("203.0.113.7")
        clock.advance(hours=1, minutes=30)
        fresh = store.issue("203.0.113.8")
        clock.advance(minutes=45)

        removed = store.sweep_expired()

        assert removed == 1
        assert not store.validate(old.token)
        assert store.validate(fresh.token)

    def test_sweep_with_nothing_expired(self, store):
        store.issue("203.0.113.7")

        assert store.sweep_expired() == 0
        assert store.active_count() == 1


class TestConcurrency:

    def test_concurrent_issue_validate_and_sweep(self, store):
        """Parallel mutation never corrupts the registry."""
        issued = []
        errors = []

        def worker():
            try:
                for _ in range(200):
                    session = store.issue("203.0.113.7")
                    issued.append(session.token)
                    store.validate(session.token)
                    store.sweep_expired()
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.active_count() == len(issued) == 1600
