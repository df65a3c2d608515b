"""
Report Aggregation

Simple rollups over the expense list, shown next to the settlement
plan: totals, counts, averages and breakdowns.

DESIGN DECISION: Reports are computed from the same validated
expense list the settlement used. A skipped expense never shows up
in a total while being absent from the balances.
"""

from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal
from typing import Optional

from settleup.identity.resolver import Resolve, literal_resolve, resolve_participants
from settleup.models.expense import SharedExpense
from settleup.models.settlement import (
    ExpenseReport,
    ParticipantBalance,
    SettlementTransfer,
)


UNCATEGORIZED = "uncategorized"
UNDATED = "undated"


class ReportAggregator:
    """Builds ExpenseReport rollups. Stateless."""

    def build_report(
        self,
        expenses: Sequence[SharedExpense],
        balances: Mapping[str, ParticipantBalance],
        transfers: Sequence[SettlementTransfer],
    ) -> ExpenseReport:
        """
        Summarize an expense set and its settlement.

        Args:
            expenses: The validated expenses that were settled
            balances: Output of aggregate()
            transfers: Output of settle()
        """
        if not expenses:
            return ExpenseReport(
                participant_count=len(balances),
                pending_transfer_count=len(transfers),
            )

        total = sum((e.total_amount for e in expenses), Decimal("0"))
        largest = max(expenses, key=lambda e: e.total_amount)

        return ExpenseReport(
            total_amount=total,
            expense_count=len(expenses),
            average_amount=total / len(expenses),
            participant_count=len(balances),
            pending_transfer_count=len(transfers),
            largest_expense_id=largest.id,
            largest_expense_amount=largest.total_amount,
            breakdown_by_category=self._group_totals(
                expenses, lambda e: e.category or UNCATEGORIZED
            ),
            breakdown_by_month=self._group_totals(
                expenses,
                lambda e: e.expense_date.strftime("%Y-%m") if e.expense_date else UNDATED,
            ),
        )

    def share_per_participant(
        self,
        expense: SharedExpense,
        resolve: Optional[Resolve] = None,
    ) -> Decimal:
        """What each member of one expense owes for it."""
        members = resolve_participants(expense, resolve or literal_resolve)
        return expense.total_amount / len(members)

    def _group_totals(
        self,
        expenses: Sequence[SharedExpense],
        key: Callable[[SharedExpense], str],
    ) -> dict[str, Decimal]:
        """Sum amounts per group, groups sorted by key."""
        groups: dict[str, Decimal] = {}
        for expense in expenses:
            group = key(expense)
            groups[group] = groups.get(group, Decimal("0")) + expense.total_amount
        return dict(sorted(groups.items()))
