"""
Pytest fixtures for testing
"""
import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.infrastructure.db.session import Base
from app.infrastructure.webpush.encryption import raw_public_key
from app.utils.base64url import b64url_encode


@pytest.fixture
def db_engine():
    """In-memory SQLite engine for tests, with JSONB→JSON mapping.

    StaticPool keeps one connection so sessions used from other threads
    (TestClient) see the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite doesn't support JSONB: remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def vapid_material():
    """Fresh VAPID keypair: private key object plus its stored string forms."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    pkcs8 = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return {
        "key": private_key,
        "private": b64url_encode(pkcs8),
        "pem": pem,
        "public": b64url_encode(raw_public_key(private_key.public_key())),
    }


@pytest.fixture
def push_settings(vapid_material) -> Settings:
    """Settings with VAPID keys configured and no .env file."""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        VAPID_PUBLIC_KEY=vapid_material["public"],
        VAPID_PRIVATE_KEY=vapid_material["private"],
        VAPID_SUBJECT="mailto:ops@example.com",
        TIMEZONE="Africa/Lagos",
        PUSH_MAX_WORKERS=4,
        _env_file=None,
    )


@pytest.fixture
def make_recipient():
    """Factory for browser-side subscription keys.

    Returns (private_key, p256dh, auth) where p256dh/auth are base64url
    strings as the browser would register them.
    """
    def _make():
        private_key = ec.generate_private_key(ec.SECP256R1())
        p256dh = b64url_encode(raw_public_key(private_key.public_key()))
        auth = b64url_encode(os.urandom(16))
        return private_key, p256dh, auth

    return _make
