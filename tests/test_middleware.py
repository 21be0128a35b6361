"""Request pipeline pieces: public paths, session descriptors, CORS and config."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from logging.handlers import RotatingFileHandler

from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from classroom.config.settings import DatabaseConfig, settings
from classroom.main import create_app
from classroom.middleware import StructuredLoggingMiddleware, is_public_path, under_prefix


def test_public_paths():
    assert is_public_path("/health")
    assert is_public_path("/api/auth/sign-in/email")
    assert not is_public_path("/api/classes/")
    assert not is_public_path("/api/authors")


def test_under_prefix_matches_whole_segments():
    assert under_prefix("/api/auth", "/api/auth")
    assert under_prefix("/api/auth/sign-out", "/api/auth")
    assert not under_prefix("/api/authz", "/api/auth")


def test_session_descriptor_is_encrypted_with_session_secret():
    token = StructuredLoggingMiddleware._encrypt_session_metadata(
        {"session_id": "abc", "user_id": "u1"}
    )

    secret = settings.security.session_secret.get_secret_value().encode("utf-8")
    key = base64.urlsafe_b64encode(hashlib.sha256(secret).digest())
    decrypted = json.loads(Fernet(key).decrypt(token.encode("utf-8")))

    assert "u1" not in token
    assert decrypted == {"session_id": "abc", "user_id": "u1"}


def test_cors_allows_configured_frontend(client: TestClient):
    response = client.options(
        "/api/classes/",
        headers={
            "Origin": settings.frontend_url,
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == settings.frontend_url
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_other_origins(client: TestClient):
    response = client.options(
        "/api/classes/",
        headers={
            "Origin": "https://evil.example",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


def test_database_url_prefers_dsn():
    assert DatabaseConfig(dsn="sqlite+aiosqlite:///local.db").url == (
        "sqlite+aiosqlite:///local.db"
    )

    config = DatabaseConfig(
        dsn=None,
        host="db",
        port=5433,
        username="app",
        password="p@ss",
        database="school",
    )
    assert config.url == "postgresql+asyncpg://app:p%40ss@db:5433/school"


def _file_handlers() -> list[RotatingFileHandler]:
    return [
        handler
        for handler in logging.getLogger().handlers
        if isinstance(handler, RotatingFileHandler)
    ]


def test_app_factory_replaces_and_closes_log_file_handler(database):
    create_app(database=database)
    previous = _file_handlers()

    create_app(database=database)
    current = _file_handlers()

    assert len(previous) == 1
    assert len(current) == 1
    assert current[0] is not previous[0]
    assert previous[0].stream is None
