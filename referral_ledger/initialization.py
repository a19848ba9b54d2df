"""
Ledger initialization.

Module: initialization.py
Wires logging, database and Redis into a ready MlmService.
Handles graceful shutdown of the connections it opened.
"""

from dataclasses import dataclass

from loguru import logger
from redis.asyncio import Redis as AsyncRedis
from sqlalchemy.ext.asyncio import AsyncEngine

from referral_ledger.config.settings import settings
from referral_ledger.services.mlm.cache import RedisMlmCache
from referral_ledger.services.mlm.events import RedisEventEmitter
from referral_ledger.services.mlm_service import MlmService
from referral_ledger.utils.database import create_engine, create_session_maker
from referral_ledger.utils.logging_setup import setup_logging
from referral_ledger.utils.redis_utils import get_redis_client, get_redis_url_masked


@dataclass
class LedgerRuntime:
    """Initialized service with the resources it owns."""

    service: MlmService
    engine: AsyncEngine
    redis: AsyncRedis | None = None


def validate_environment() -> None:
    """Validate critical environment variables."""
    if not settings.database_url or "your_" in settings.database_url.lower():
        logger.error("DATABASE_URL is not properly configured")
    if settings.is_production and settings.database_echo:
        logger.warning("DATABASE_ECHO is enabled in production")


def initialize_ledger(use_redis: bool = True) -> LedgerRuntime:
    """
    Build MlmService from settings.

    Args:
        use_redis: Publish events and cache summaries through Redis;
            without it events are only logged and nothing is cached

    Returns:
        LedgerRuntime
    """
    setup_logging()
    validate_environment()

    engine = create_engine()
    session_maker = create_session_maker(engine)

    redis_client = None
    emitter = None
    cache = None
    if use_redis:
        redis_client = get_redis_client()
        emitter = RedisEventEmitter(redis_client, settings.mlm_events_channel)
        cache = RedisMlmCache(redis_client)
        logger.info(f"MLM events and cache use Redis at {get_redis_url_masked()}")
    else:
        logger.warning("Redis disabled: MLM events are logged only, cache is off")

    service = MlmService(session_maker, emitter=emitter, cache=cache)
    logger.info("MlmService initialized successfully")
    return LedgerRuntime(service=service, engine=engine, redis=redis_client)


async def shutdown_ledger(runtime: LedgerRuntime) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    if runtime.redis is not None:
        try:
            await runtime.redis.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.warning(f"Error closing Redis: {e}")

    try:
        await runtime.engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Graceful shutdown complete")
