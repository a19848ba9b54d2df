"""
Tests for referral commission calculation.

The program pays up to three ancestors of the paying client:
level 1 = 10%, level 2 = 5%, level 3 = 3% of the order amount.
Only masters are paid; a non-master ancestor is skipped but still
consumes its level.

Covers:
- Rates per level and the three-level cap
- Skipping non-masters
- Missing referrers and missing ancestors
- Hop limit and cyclic chains
- Rounding to 2 decimal places
"""

from decimal import Decimal

import pytest

from referral_ledger.models.enums import UserRole
from referral_ledger.services.mlm.commission_calculator import CommissionCalculator
from referral_ledger.services.mlm.config import CommissionLevel, CommissionRateTable


class TestCommissionLevels:
    """Test rates applied per chain level."""

    @pytest.mark.asyncio
    async def test_three_master_chain(self, lookup, calculator, order_amount):
        """Test 10% / 5% / 3% for three master ancestors."""
        lookup.add(3, UserRole.MASTER)
        lookup.add(2, UserRole.MASTER, referrer_id=3)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [(l.master_id, l.level, l.amount) for l in lines] == [
            (1, 1, Decimal("1000.00")),
            (2, 2, Decimal("500.00")),
            (3, 3, Decimal("300.00")),
        ]
        assert [l.rate for l in lines] == [
            Decimal("0.10"),
            Decimal("0.05"),
            Decimal("0.03"),
        ]

    @pytest.mark.asyncio
    async def test_fourth_ancestor_not_paid(self, lookup, calculator, order_amount):
        """Test chain longer than three levels stops at level 3."""
        lookup.add(4, UserRole.MASTER)
        lookup.add(3, UserRole.MASTER, referrer_id=4)
        lookup.add(2, UserRole.MASTER, referrer_id=3)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert len(lines) == 3
        assert 4 not in {l.master_id for l in lines}
        # client + 3 ancestors, the 4th is never looked up
        assert lookup.calls == 4

    @pytest.mark.asyncio
    async def test_two_level_chain(self, lookup, calculator, order_amount):
        """Test client -> master1 -> master2 pays 1000 and 500."""
        lookup.add(2, UserRole.MASTER)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [(l.master_id, l.amount) for l in lines] == [
            (1, Decimal("1000.00")),
            (2, Decimal("500.00")),
        ]

    @pytest.mark.asyncio
    async def test_source_user_is_member_below_master(
        self, lookup, calculator, order_amount
    ):
        """Test each line records the chain member directly below the master."""
        lookup.add(2, UserRole.MASTER)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [l.source_user_id for l in lines] == [100, 1]


class TestSkippingNonMasters:
    """Test non-master ancestors consume a level without being paid."""

    @pytest.mark.asyncio
    async def test_master_above_client_paid_at_level_two(
        self, lookup, calculator, order_amount
    ):
        """Test client -> client -> master pays the master the level 2 rate."""
        lookup.add(2, UserRole.MASTER)
        lookup.add(1, UserRole.CLIENT, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert len(lines) == 1
        assert lines[0].master_id == 2
        assert lines[0].level == 2
        assert lines[0].amount == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_admin_ancestor_skipped(self, lookup, calculator, order_amount):
        """Test admin ancestors are not paid."""
        lookup.add(3, UserRole.MASTER)
        lookup.add(2, UserRole.ADMIN, referrer_id=3)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [(l.master_id, l.level) for l in lines] == [(1, 1), (3, 3)]

    @pytest.mark.asyncio
    async def test_master_beyond_third_level_not_paid(
        self, lookup, calculator, order_amount
    ):
        """Test a master at level 4 is not paid even if levels 1-3 were skipped."""
        lookup.add(4, UserRole.MASTER)
        lookup.add(3, UserRole.CLIENT, referrer_id=4)
        lookup.add(2, UserRole.CLIENT, referrer_id=3)
        lookup.add(1, UserRole.CLIENT, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert lines == []


class TestChainTermination:
    """Test traversal stops on missing data, hop limit and cycles."""

    @pytest.mark.asyncio
    async def test_no_referrer(self, lookup, calculator, order_amount):
        """Test client without a referrer produces no lines."""
        lookup.add(100, UserRole.CLIENT)

        assert await calculator.compute(100, order_amount) == []

    @pytest.mark.asyncio
    async def test_unknown_client(self, lookup, calculator, order_amount):
        """Test unknown client produces no lines."""
        assert await calculator.compute(404, order_amount) == []

    @pytest.mark.asyncio
    async def test_missing_ancestor_stops(self, lookup, calculator, order_amount):
        """Test dangling referrer reference stops traversal silently."""
        lookup.add(100, UserRole.CLIENT, referrer_id=999)

        assert await calculator.compute(100, order_amount) == []

    @pytest.mark.asyncio
    async def test_hop_limit(self, lookup, order_amount):
        """Test traversal visits at most max_hops ancestors."""
        lookup.add(2, UserRole.MASTER)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)
        calculator = CommissionCalculator(lookup, max_hops=1)

        lines = await calculator.compute(100, order_amount)

        assert [l.master_id for l in lines] == [1]

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, lookup, calculator, order_amount):
        """Test a corrupted cyclic chain does not loop or pay twice."""
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(2, UserRole.MASTER, referrer_id=1)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [l.master_id for l in lines] == [1, 2]

    @pytest.mark.asyncio
    async def test_cycle_through_client(self, lookup, calculator, order_amount):
        """Test chain pointing back to the paying client stops."""
        lookup.add(1, UserRole.MASTER, referrer_id=100)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, order_amount)

        assert [l.master_id for l in lines] == [1]

    def test_invalid_max_hops(self, lookup):
        """Test max_hops must be positive."""
        with pytest.raises(ValueError):
            CommissionCalculator(lookup, max_hops=0)


class TestRounding:
    """Test commission amounts are 2-digit fixed point."""

    @pytest.mark.asyncio
    async def test_half_up_rounding(self, lookup, calculator):
        """Test 33.33 yields 3.33 / 1.67 / 1.00."""
        lookup.add(3, UserRole.MASTER)
        lookup.add(2, UserRole.MASTER, referrer_id=3)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, Decimal("33.33"))

        assert [l.amount for l in lines] == [
            Decimal("3.33"),
            Decimal("1.67"),
            Decimal("1.00"),
        ]

    @pytest.mark.asyncio
    async def test_zero_commission_not_emitted(self, lookup, calculator):
        """Test amounts rounding to 0.00 produce no line."""
        lookup.add(1, UserRole.MASTER)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        lines = await calculator.compute(100, Decimal("0.04"))

        assert lines == []


class TestPreview:
    """Test preview output used by API callers."""

    @pytest.mark.asyncio
    async def test_preview_includes_master_details(
        self, lookup, calculator, order_amount
    ):
        """Test preview dict contains user details and total."""
        lookup.add(1, UserRole.MASTER)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        preview = await calculator.preview(100, order_amount)
        data = preview.to_dict()

        assert preview.direct_referrer_id == 1
        assert data["total_commissions"] == "1000.00"
        assert data["commissions"][0]["user"]["id"] == 1
        assert data["commissions"][0]["level"] == 1
        assert data["commissions"][0]["commission_rate"] == "0.10"

    @pytest.mark.asyncio
    async def test_preview_direct_referrer_even_if_not_paid(
        self, lookup, calculator, order_amount
    ):
        """Test direct referrer is reported when it is not a master."""
        lookup.add(1, UserRole.CLIENT)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)

        preview = await calculator.preview(100, order_amount)

        assert preview.lines == []
        assert preview.direct_referrer_id == 1
        assert preview.total_commissions == Decimal("0.00")


class TestRateTable:
    """Test commission schedule configuration."""

    @pytest.mark.asyncio
    async def test_custom_two_level_table(self, lookup, order_amount):
        """Test an injected schedule replaces the default one."""
        table = CommissionRateTable(
            levels=(
                CommissionLevel(level=1, rate=Decimal("0.20")),
                CommissionLevel(level=2, rate=Decimal("0.01")),
            ),
            version="test",
        )
        lookup.add(3, UserRole.MASTER)
        lookup.add(2, UserRole.MASTER, referrer_id=3)
        lookup.add(1, UserRole.MASTER, referrer_id=2)
        lookup.add(100, UserRole.CLIENT, referrer_id=1)
        calculator = CommissionCalculator(lookup, rate_table=table)

        lines = await calculator.compute(100, order_amount)

        assert [l.amount for l in lines] == [Decimal("2000.00"), Decimal("100.00")]

    def test_rate_out_of_range(self):
        """Test rates must be in (0, 1]."""
        with pytest.raises(ValueError):
            CommissionRateTable(levels=(CommissionLevel(1, Decimal("1.5")),))
        with pytest.raises(ValueError):
            CommissionRateTable(levels=(CommissionLevel(1, Decimal("0")),))

    def test_duplicate_level(self):
        """Test a level may appear only once."""
        with pytest.raises(ValueError):
            CommissionRateTable(
                levels=(
                    CommissionLevel(1, Decimal("0.10")),
                    CommissionLevel(1, Decimal("0.05")),
                )
            )

    def test_to_list(self):
        """Test schedule serialization for statistics."""
        table = CommissionRateTable(
            levels=(
                CommissionLevel(2, Decimal("0.05")),
                CommissionLevel(1, Decimal("0.10")),
            )
        )

        assert table.max_level == 2
        assert table.rate_for(3) is None
        assert table.to_list() == [
            {"level": 1, "commission_rate": "0.10"},
            {"level": 2, "commission_rate": "0.05"},
        ]
