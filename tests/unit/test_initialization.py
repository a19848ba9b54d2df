"""Tests for ledger initialization and shutdown."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from referral_ledger import initialization
from referral_ledger.initialization import (
    LedgerRuntime,
    initialize_ledger,
    shutdown_ledger,
)
from referral_ledger.services.mlm.cache import NullMlmCache, RedisMlmCache
from referral_ledger.services.mlm.events import NullEventEmitter, RedisEventEmitter
from referral_ledger.utils.redis_utils import get_redis_url_masked


class TestInitializeLedger:
    """Test service wiring."""

    def test_with_redis(self, mock_redis_client):
        """Test Redis emitter and cache are used when enabled."""
        with (
            patch.object(initialization, "setup_logging"),
            patch.object(initialization, "create_engine", return_value=MagicMock()),
            patch.object(
                initialization, "get_redis_client", return_value=mock_redis_client
            ),
        ):
            runtime = initialize_ledger()

        assert isinstance(runtime.service.emitter, RedisEventEmitter)
        assert isinstance(runtime.service.cache, RedisMlmCache)
        assert runtime.redis is mock_redis_client

    def test_without_redis(self):
        """Test fallback to log-only emitter and no cache."""
        with (
            patch.object(initialization, "setup_logging"),
            patch.object(initialization, "create_engine", return_value=MagicMock()),
        ):
            runtime = initialize_ledger(use_redis=False)

        assert isinstance(runtime.service.emitter, NullEventEmitter)
        assert isinstance(runtime.service.cache, NullMlmCache)
        assert runtime.redis is None


class TestShutdownLedger:
    """Test graceful shutdown."""

    @pytest.mark.asyncio
    async def test_closes_resources(self, mock_redis_client):
        """Test Redis and engine are closed."""
        engine = MagicMock()
        engine.dispose = AsyncMock()
        runtime = LedgerRuntime(
            service=MagicMock(), engine=engine, redis=mock_redis_client
        )

        await shutdown_ledger(runtime)

        mock_redis_client.aclose.assert_awaited_once()
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_error_does_not_block_engine(self, mock_redis_client):
        """Test database is closed even if Redis close fails."""
        mock_redis_client.aclose.side_effect = ConnectionError("gone")
        engine = MagicMock()
        engine.dispose = AsyncMock()
        runtime = LedgerRuntime(
            service=MagicMock(), engine=engine, redis=mock_redis_client
        )

        await shutdown_ledger(runtime)

        engine.dispose.assert_awaited_once()


def test_redis_url_masks_password(monkeypatch):
    """Test password never appears in logged URL."""
    monkeypatch.setattr(initialization.settings, "redis_password", "secret")

    url = get_redis_url_masked()

    assert "secret" not in url
    assert "****" in url
