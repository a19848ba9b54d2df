"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- In-memory user lookup for chain traversal
- CommissionCalculator instance
"""

from decimal import Decimal

import pytest

from referral_ledger.models.enums import UserRole
from referral_ledger.services.mlm.commission_calculator import CommissionCalculator
from referral_ledger.services.mlm.lookup import UserInfo


class InMemoryUserLookup:
    """UserLookup over a dict, counting lookups."""

    def __init__(self) -> None:
        self.users: dict[int, UserInfo] = {}
        self.calls = 0

    def add(
        self,
        user_id: int,
        role: UserRole = UserRole.CLIENT,
        referrer_id: int | None = None,
    ) -> UserInfo:
        user = UserInfo(
            id=user_id,
            role=role.value,
            referrer_id=referrer_id,
            email=f"user{user_id}@example.com",
            first_name=f"User{user_id}",
        )
        self.users[user_id] = user
        return user

    async def get_user(self, user_id: int) -> UserInfo | None:
        self.calls += 1
        return self.users.get(user_id)


@pytest.fixture
def lookup():
    """
    Empty in-memory user lookup.

    Returns:
        InMemoryUserLookup: Lookup to populate per test
    """
    return InMemoryUserLookup()


@pytest.fixture
def calculator(lookup):
    """
    Create CommissionCalculator with default 10% / 5% / 3% schedule.

    Args:
        lookup: In-memory user lookup

    Returns:
        CommissionCalculator: Calculator instance for testing
    """
    return CommissionCalculator(lookup)


@pytest.fixture
def order_amount():
    """Standard order amount used across calculator tests."""
    return Decimal("10000.00")
