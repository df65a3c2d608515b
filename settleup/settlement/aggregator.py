"""
Balance Aggregation

Folds a list of shared expenses into one balance per participant.

For every expense:
1. The participant set is the payer plus every listed participant,
   after identity resolution. Duplicates collapse.
2. The cost is split EQUALLY across that set. No weighting.
3. The payer is credited with the full amount paid.
4. Every member of the set, payer included, owes one share.

CRITICAL: No rounding happens here. 100 split three ways owes
33.333... each; rounding to cents is a display concern.

Because every unit paid is owed by someone in the same expense,
the net balances of all participants always sum to zero.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

import structlog

from settleup.identity.resolver import Resolve, literal_resolve, resolve_participants
from settleup.models.expense import SharedExpense
from settleup.models.settlement import ParticipantBalance


logger = structlog.get_logger(__name__)


def aggregate(
    expenses: Iterable[SharedExpense],
    resolve: Optional[Resolve] = None,
) -> dict[str, ParticipantBalance]:
    """
    Compute paid/owed/net per participant.

    Args:
        expenses: Validated shared expenses
        resolve: Maps raw identifiers to display names.
                 Defaults to using identifiers as names.

    Returns:
        Balances keyed by participant, in order of first appearance
    """
    resolve = resolve or literal_resolve

    paid: dict[str, Decimal] = {}
    owed: dict[str, Decimal] = {}
    raw_ids: dict[str, set[str]] = {}

    def track(raw_id: str, name: str) -> None:
        known = raw_ids.setdefault(name, set())
        if raw_id not in known:
            if known:
                # Two identifiers, one display name: merged into one participant
                logger.warning(
                    "participant_identity_merged",
                    participant=name,
                    known_ids=sorted(known),
                    new_id=raw_id,
                )
            known.add(raw_id)
        paid.setdefault(name, Decimal("0"))
        owed.setdefault(name, Decimal("0"))

    expense_count = 0
    for expense in expenses:
        expense_count += 1

        for raw_id in [expense.payer_id, *expense.participant_ids]:
            track(raw_id, resolve(raw_id))

        # Payer first, so members[0] is who paid
        members = resolve_participants(expense, resolve)
        payer = members[0]

        share = expense.total_amount / len(members)

        paid[payer] += expense.total_amount
        for member in members:
            owed[member] += share

    logger.debug(
        "balances_aggregated",
        expense_count=expense_count,
        participant_count=len(paid),
    )

    return {
        name: ParticipantBalance(
            participant=name,
            total_paid=paid[name],
            total_owed=owed[name],
        )
        for name in paid
    }
