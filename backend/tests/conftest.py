"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Session stores
(refresh tokens, tickets, denylist, realtime events) are in-process doubles,
replaced with fresh ones for every test that asks for ``stores``.
"""

from __future__ import annotations

import os

import pytest
from flask_jwt_extended import create_access_token
from juniorhub.core.config import TestingConfig
from juniorhub.core.extensions import db as _db  # Flask-SQLAlchemy instance
from juniorhub.factory import create_app  # application factory under test
from juniorhub.infra import stores as stores_module
from juniorhub.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from juniorhub.services import TokenService
from juniorhub.services._shared.ports import (
    InMemoryDenylistStore,
    InMemoryEphemeralStore,
    InMemoryEventPublisher,
    InMemoryRefreshTokenStore,
    StubTokenProvider,
)
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Both identity providers are configured so their routes exist.
    - Avoids hitting external services.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    GOOGLE_CLIENT_ID = "test-google-client"
    GOOGLE_CALLBACK_URL = "http://localhost/auth/google/callback"
    FACEBOOK_APP_ID = "test-facebook-app"
    FACEBOOK_CALLBACK_URL = "http://localhost/auth/facebook/callback"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    nested = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # Swap db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


# -- Session stores ---------------------------------------------------------------
@pytest.fixture()
def stores(app):
    """Fresh in-memory stores installed on the app for this test."""
    fresh = stores_module.Stores(
        refresh=InMemoryRefreshTokenStore(),
        denylist=InMemoryDenylistStore(),
        ephemeral=InMemoryEphemeralStore(),
        publisher=InMemoryEventPublisher(),
    )
    previous = app.extensions.get(stores_module.EXTENSION_KEY)
    stores_module.init_app(app, fresh)
    yield fresh
    app.extensions[stores_module.EXTENSION_KEY] = previous


@pytest.fixture()
def token_service(stores):
    """TokenService with real JWT signing over the in-memory stores."""
    return TokenService(
        token_provider=JWTTokenProvider(),
        refresh_store=stores.refresh,
        denylist_store=stores.denylist,
    )


@pytest.fixture()
def stub_token_service():
    """TokenService that needs no Flask config at all."""
    return TokenService(
        token_provider=StubTokenProvider(),
        refresh_store=InMemoryRefreshTokenStore(),
        denylist_store=InMemoryDenylistStore(),
    )


@pytest.fixture()
def client(app, stores):
    """Flask test client running against fresh stores.

    A fresh application context keeps ``g`` (request id, claims) from leaking
    between tests.
    """
    with app.app_context():
        yield app.test_client()


@pytest.fixture()
def auth_header(token_service):
    """Build ``Authorization`` headers for an account id and role."""

    def _make(account_id: int, role: str = "junior") -> dict[str, str]:
        pair = token_service.issue(account_id, role)
        return {"Authorization": f"Bearer {pair.access_token}"}

    return _make


@pytest.fixture()
def forged_access_token():
    """Access token signed with the right key but lacking a token family."""

    def _make(account_id: int, role: str = "junior") -> str:
        return create_access_token(identity=str(account_id), additional_claims={"role": role})

    return _make
