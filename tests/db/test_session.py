"""Tests for the async database session factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.db import session as session_module
from src.db.session import dispose_engine, get_session_factory


@pytest.fixture(autouse=True)
def _reset_engine():
    """Clear cached engine and factory around each test."""
    session_module._engine = None
    session_module._session_factory = None
    yield
    session_module._engine = None
    session_module._session_factory = None


class TestGetSessionFactory:
    """Factory creation and caching."""

    def test_factory_is_cached(self) -> None:
        """Second call returns the same factory and builds one engine."""
        with patch(
            "src.db.session.create_async_engine", return_value=MagicMock()
        ) as create_engine:
            first = get_session_factory()
            second = get_session_factory()

        assert first is second
        create_engine.assert_called_once()

    def test_engine_uses_pool_settings(self, settings) -> None:
        """Pool size and overflow come from settings."""
        with (
            patch("src.db.session.get_settings", return_value=settings),
            patch(
                "src.db.session.create_async_engine", return_value=MagicMock()
            ) as create_engine,
        ):
            get_session_factory()

        args, kwargs = create_engine.call_args
        assert args[0] == settings.database_url
        assert kwargs["pool_size"] == settings.db_pool_size
        assert kwargs["max_overflow"] == settings.db_max_overflow
        assert kwargs["pool_pre_ping"] is True


class TestDisposeEngine:
    """Shutdown cleanup."""

    async def test_disposes_and_clears(self) -> None:
        engine = MagicMock()
        engine.dispose = AsyncMock()
        session_module._engine = engine
        session_module._session_factory = MagicMock()

        await dispose_engine()

        engine.dispose.assert_awaited_once()
        assert session_module._engine is None
        assert session_module._session_factory is None

    async def test_noop_when_never_connected(self) -> None:
        await dispose_engine()
        assert session_module._engine is None
