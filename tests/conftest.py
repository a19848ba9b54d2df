"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_FILE", "")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from referral_ledger.models import Base, MasterProfile, User
from referral_ledger.models.enums import UserRole
from referral_ledger.services.mlm.events import COMMISSION_UPDATED, NETWORK_UPDATED
from referral_ledger.services.mlm_service import MlmService


class RecordingEmitter:
    """Event emitter that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, int, Any]] = []

    async def emit_commission_updated(self, user_id: int, payload: dict) -> None:
        self.events.append((COMMISSION_UPDATED, user_id, payload))

    async def emit_network_updated(self, user_id: int, tree: list) -> None:
        self.events.append((NETWORK_UPDATED, user_id, tree))

    def of_type(self, event_name: str) -> list[tuple[str, int, Any]]:
        return [e for e in self.events if e[0] == event_name]


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for cache and event tests."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock(return_value=2)
    client.publish = AsyncMock(return_value=1)
    return client


@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    SQLite engine on a temporary file.

    Every transaction starts with BEGIN IMMEDIATE so concurrent units of
    work serialize the way row locks make them serialize on PostgreSQL.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest.fixture
def emitter() -> RecordingEmitter:
    """In-memory event emitter."""
    return RecordingEmitter()


@pytest.fixture
def mlm_service(session_maker, emitter) -> MlmService:
    """MLM service wired to the test database."""
    return MlmService(session_maker, emitter=emitter, cache_ttl=0)


@pytest.fixture
def make_user(session_maker):
    """
    Factory creating committed users.

    Usage:
        master = await make_user(role=UserRole.MASTER)
        client = await make_user(referrer=master)
    """
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.CLIENT,
        referrer: User | None = None,
        with_profile: bool = False,
        balance: Decimal | None = None,
    ) -> User:
        counter["n"] += 1
        async with session_maker() as session:
            async with session.begin():
                user = User(
                    email=f"user{counter['n']}@example.com",
                    first_name=f"User{counter['n']}",
                    role=role.value,
                    referrer_id=referrer.id if referrer else None,
                )
                session.add(user)
                await session.flush()
                if with_profile or balance is not None:
                    amount = balance or Decimal("0")
                    session.add(
                        MasterProfile(
                            user_id=user.id,
                            total_commissions=amount,
                            available_balance=amount,
                            total_earnings=Decimal("0"),
                            withdrawn_amount=Decimal("0"),
                            referrals_count=0,
                        )
                    )
        return user

    return _make_user


@pytest.fixture
def get_profile(session_maker):
    """Read a master's ledger record in a fresh session."""
    from referral_ledger.repositories.master_profile_repository import (
        MasterProfileRepository,
    )

    async def _get_profile(user_id: int) -> MasterProfile | None:
        async with session_maker() as session:
            return await MasterProfileRepository(session).get_by_user_id(user_id)

    return _get_profile
