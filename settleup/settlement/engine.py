"""
Settlement Engine

The pure entry point: expenses in, settlement out.

    validate -> aggregate -> settle -> report

No I/O and no shared state. Directories arrive through `resolve`,
tolerance through `epsilon`. Calling this twice with the same input
returns identical results, which is what makes memoization safe.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

import structlog

from settleup.identity.resolver import Resolve
from settleup.models.settlement import SettlementResult
from settleup.reports import ReportAggregator
from settleup.settlement.aggregator import aggregate
from settleup.settlement.planner import settle
from settleup.validation import ExpenseValidator
from settleup.validation.validator import ExpenseInput


logger = structlog.get_logger(__name__)


def compute_settlement(
    expenses: Iterable[ExpenseInput],
    resolve: Optional[Resolve] = None,
    epsilon: Optional[Decimal] = None,
    validator: Optional[ExpenseValidator] = None,
    report_aggregator: Optional[ReportAggregator] = None,
) -> SettlementResult:
    """
    Compute balances, transfers and report for an expense set.

    Invalid expenses are skipped and reported in the result;
    they never abort the computation.

    Args:
        expenses: SharedExpense instances or raw expense mappings
        resolve: Identifier -> display name; identity if omitted
        epsilon: Zero tolerance for the planner
        validator: Override the default ExpenseValidator
        report_aggregator: Override the default ReportAggregator

    Raises:
        SettlementLogicError: If balances fail to net to zero (a bug)
    """
    validator = validator or ExpenseValidator()
    report_aggregator = report_aggregator or ReportAggregator()

    valid, issues, skipped = validator.validate_batch(expenses)
    if skipped:
        logger.warning("expenses_skipped", skipped_count=skipped)

    balances = aggregate(valid, resolve)
    transfers = settle(balances, epsilon)
    report = report_aggregator.build_report(valid, balances, transfers)

    return SettlementResult(
        balances=list(balances.values()),
        transfers=transfers,
        report=report,
        skipped_count=skipped,
        issues=issues,
    )
