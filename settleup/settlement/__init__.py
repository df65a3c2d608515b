"""Settlement engine package."""

from settleup.settlement.aggregator import aggregate
from settleup.settlement.planner import (
    SettlementLogicError,
    apply_transfers,
    settle,
)
from settleup.settlement.cache import SettlementCache, content_hash
from settleup.settlement.engine import compute_settlement

__all__ = [
    "SettlementCache",
    "SettlementLogicError",
    "aggregate",
    "apply_transfers",
    "compute_settlement",
    "content_hash",
    "settle",
]
