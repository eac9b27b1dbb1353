"""Tests for database session management"""
import pytest
from unittest.mock import MagicMock, Mock

import kivee.infrastructure.db.session as session_module
from kivee.config import get_settings


@pytest.fixture
def database_url(monkeypatch):
    """Point settings at a given DATABASE_URL, caches reset around the test"""
    def _set(url):
        monkeypatch.setenv("DATABASE_URL", url)
        get_settings.cache_clear()
        session_module.get_session_factory.cache_clear()

    yield _set
    get_settings.cache_clear()
    session_module.get_session_factory.cache_clear()


def test_get_db_closes_session(monkeypatch):
    session = Mock()
    monkeypatch.setattr(session_module, "get_session_factory", lambda: lambda: session)

    gen = session_module.get_db()
    assert next(gen) is session
    session.close.assert_not_called()
    gen.close()
    session.close.assert_called_once()


def test_session_factory_is_built_once(database_url):
    database_url("sqlite://")
    factory = session_module.get_session_factory()
    assert session_module.get_session_factory() is factory
    assert str(factory.kw["bind"].url) == "sqlite://"


def test_readiness_check_uses_plain_dsn(monkeypatch, database_url):
    database_url("postgresql+psycopg://kivee@db:5432/kivee")
    connect = MagicMock()
    monkeypatch.setattr(session_module.psycopg, "connect", connect)

    session_module.check_db_connection()

    assert connect.call_args.args[0] == "postgresql://kivee@db:5432/kivee"
    conn = connect.return_value.__enter__.return_value
    conn.execute.assert_called_once_with("SELECT 1")
