#!/usr/bin/env python3
"""Initialize referral ledger tables."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from referral_ledger.config.settings import settings
from referral_ledger.models import Base
from referral_ledger.utils.database import create_engine

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all ledger tables."""
    if not settings.database_url:
        logger.error("DATABASE_URL not set")
        sys.exit(1)

    logger.info("Connecting to database...")
    engine = create_engine()

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(
            Base.metadata.create_all,
            checkfirst=True
        )

    await engine.dispose()
    logger.success("Referral ledger tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
