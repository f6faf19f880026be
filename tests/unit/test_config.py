"""Unit tests for settings and database URL handling."""

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.database import build_async_url


def _settings(**overrides) -> Settings:
    values = {"DATABASE_URL": "postgresql://u:p@localhost/db", "SECRET_KEY": "k"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_origins_and_methods_parsed():
    s = _settings(ALLOWED_ORIGINS="http://a.test, http://b.test", ALLOWED_METHODS="GET, POST")
    assert s.ALLOWED_ORIGINS == ["http://a.test", "http://b.test"]
    assert s.ALLOWED_METHODS == ["GET", "POST"]


def test_environment_flags():
    assert _settings(ENVIRONMENT="Production").is_production
    assert _settings(ENVIRONMENT="test").is_test
    assert _settings(ENVIRONMENT="development").is_development


def test_firebase_enabled_by_project_or_credentials():
    assert not _settings(FIREBASE_CREDENTIALS_PATH="", FIREBASE_PROJECT_ID="").firebase_enabled
    assert _settings(FIREBASE_PROJECT_ID="skillup-dev").firebase_enabled
    assert _settings(FIREBASE_CREDENTIALS_PATH="/secrets/sa.json").firebase_enabled


def test_student_code_retry_default():
    assert _settings().STUDENT_CODE_MAX_RETRIES == 1


def test_build_async_url_plain():
    url, args = build_async_url("postgresql://u:p@host:5432/db")
    assert url == "postgresql+asyncpg://u:p@host:5432/db"
    assert args == {}


def test_build_async_url_sslmode_require():
    url, args = build_async_url("postgresql://u:p@host/db?sslmode=require")
    assert url == "postgresql+asyncpg://u:p@host/db"
    assert "ssl" in args


def test_build_async_url_keeps_other_params():
    url, args = build_async_url("postgresql://u:p@host/db?sslmode=disable&application_name=skillup")
    assert url == "postgresql+asyncpg://u:p@host/db?application_name=skillup"
    assert args == {}


def test_student_code_retries_cannot_be_negative():
    with pytest.raises(ValidationError):
        _settings(STUDENT_CODE_MAX_RETRIES=-1)
    assert _settings(STUDENT_CODE_MAX_RETRIES=0).STUDENT_CODE_MAX_RETRIES == 0
