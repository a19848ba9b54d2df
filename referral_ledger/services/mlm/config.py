"""
MLM commission configuration.

The rate schedule is an explicit value injected into the calculator, so
alternative schedules can be tested or rolled out without touching code.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class CommissionLevel:
    """Rate paid to the ancestor at one chain level."""

    level: int
    rate: Decimal


@dataclass(frozen=True)
class CommissionRateTable:
    """
    Versioned commission schedule.

    Attributes:
        levels: Rates per chain level, level 1 is the payer's direct referrer
        version: Schedule label recorded in logs
    """

    levels: tuple[CommissionLevel, ...]
    version: str = "v1"
    _by_level: dict[int, Decimal] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        by_level: dict[int, Decimal] = {}
        for item in self.levels:
            if item.level < 1:
                raise ValueError(f"Commission level must be >= 1, got {item.level}")
            if not Decimal("0") < item.rate <= Decimal("1"):
                raise ValueError(
                    f"Commission rate must be in (0, 1], got {item.rate} "
                    f"for level {item.level}"
                )
            if item.level in by_level:
                raise ValueError(f"Duplicate commission level {item.level}")
            by_level[item.level] = item.rate
        object.__setattr__(self, "_by_level", by_level)

    @property
    def max_level(self) -> int:
        """Deepest paid level (0 for an empty table)."""
        return max(self._by_level, default=0)

    def rate_for(self, level: int) -> Decimal | None:
        """Rate for level, None if the level is not paid."""
        return self._by_level.get(level)

    def to_list(self) -> list[dict[str, str | int]]:
        """Serialize schedule for statistics output."""
        return [
            {"level": item.level, "commission_rate": str(item.rate)}
            for item in sorted(self.levels, key=lambda i: i.level)
        ]


# 3-level program: 10% / 5% / 3% of the order amount
DEFAULT_RATE_TABLE = CommissionRateTable(
    levels=(
        CommissionLevel(level=1, rate=Decimal("0.10")),
        CommissionLevel(level=2, rate=Decimal("0.05")),
        CommissionLevel(level=3, rate=Decimal("0.03")),
    ),
    version="v1",
)
