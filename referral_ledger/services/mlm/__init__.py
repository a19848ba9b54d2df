"""
MLM services package.

Contains modular services for the referral commission ledger:
- config: Commission rate schedule
- lookup: User lookup capability for chain traversal
- commission_calculator: Chain traversal and commission lines
- ledger_updater: Journal entries and balance credits
- bonus_approval: Pending -> paid transition
- payout_processor: Withdrawals from available balance
- structure_reader: Referral tree for dashboards
- network_manager: Referral edges and codes
- statistics: Summaries and overall statistics
- events / cache: Outbound notifications and read cache
"""

from referral_ledger.services.mlm.bonus_approval import BonusApprovalManager
from referral_ledger.services.mlm.cache import MlmCache, NullMlmCache, RedisMlmCache
from referral_ledger.services.mlm.commission_calculator import (
    CommissionCalculator,
    CommissionLine,
    CommissionPreview,
)
from referral_ledger.services.mlm.config import (
    DEFAULT_RATE_TABLE,
    CommissionLevel,
    CommissionRateTable,
)
from referral_ledger.services.mlm.events import (
    EventEmitter,
    NullEventEmitter,
    RedisEventEmitter,
)
from referral_ledger.services.mlm.ledger_updater import ApplyResult, LedgerUpdater
from referral_ledger.services.mlm.lookup import SqlUserLookup, UserInfo, UserLookup
from referral_ledger.services.mlm.network_manager import (
    ReferralNetworkManager,
    generate_referral_code,
)
from referral_ledger.services.mlm.payout_processor import (
    PayoutProcessor,
    PayoutResult,
)
from referral_ledger.services.mlm.statistics import MlmStatisticsManager
from referral_ledger.services.mlm.structure_reader import (
    ReferralNode,
    StructureReader,
)


__all__ = [
    # Configuration
    "DEFAULT_RATE_TABLE",
    "CommissionLevel",
    "CommissionRateTable",
    # Traversal
    "CommissionCalculator",
    "CommissionLine",
    "CommissionPreview",
    "SqlUserLookup",
    "UserInfo",
    "UserLookup",
    # Ledger
    "ApplyResult",
    "LedgerUpdater",
    "BonusApprovalManager",
    "PayoutProcessor",
    "PayoutResult",
    # Network
    "ReferralNetworkManager",
    "ReferralNode",
    "StructureReader",
    "generate_referral_code",
    "MlmStatisticsManager",
    # Collaborators
    "EventEmitter",
    "NullEventEmitter",
    "RedisEventEmitter",
    "MlmCache",
    "NullMlmCache",
    "RedisMlmCache",
]
