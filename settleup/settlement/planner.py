"""
Settlement Planning

Turns net balances into a list of direct payments that clears them.

ALGORITHM (greedy largest-first netting):
1. Creditors (net > epsilon) sorted largest first.
   Debtors (net < -epsilon) sorted most negative first.
2. Match the current creditor with the current debtor and transfer
   the smaller of what one is owed and the other owes.
3. Whoever reaches zero (within epsilon) is done; move to the next.
4. Stop when either list runs out.

Every step settles at least one party, so the plan has at most
(#creditors + #debtors - 1) transfers and costs O(n log n).

KNOWN LIMITATION: this is a heuristic. Finding the true minimum
number of transfers is NP-hard in general, and greedy matching can
miss it when a subset of debtors exactly cancels a subset of
creditors. The bound above always holds; optimality does not.

CRITICAL: All comparisons against zero use the epsilon tolerance.
Equal splits produce non-terminating decimals, and exact equality
would leave residue that never reaches zero. Above 1 the tolerance
scales with the largest balance, since the residue is relative to the
amounts involved.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional

import structlog

from settleup.models.settlement import ParticipantBalance, SettlementTransfer


logger = structlog.get_logger(__name__)

DEFAULT_EPSILON = Decimal("0.000001")


class SettlementLogicError(RuntimeError):
    """
    The planner could not clear the balances.

    This means the balances did not sum to zero, which the aggregator
    guarantees. It is a bug upstream, never a user-recoverable state.
    """

    def __init__(self, message: str, residual: Optional[dict[str, Decimal]] = None):
        self.residual = residual or {}
        super().__init__(message)


def settle(
    balances: Mapping[str, ParticipantBalance],
    epsilon: Optional[Decimal] = None,
) -> list[SettlementTransfer]:
    """
    Plan the transfers that bring every balance to zero.

    Args:
        balances: Net balances keyed by participant
        epsilon: Tolerance for treating an amount as zero,
                 relative to the largest balance when that exceeds 1

    Returns:
        Transfers in the order they were matched

    Raises:
        SettlementLogicError: If the balances do not net to zero
    """
    eps = DEFAULT_EPSILON if epsilon is None else epsilon

    # Decimal keeps 28 significant digits, so the residue of an equal
    # split grows with the amounts; the tolerance is relative above 1
    largest = max((abs(b.net_balance) for b in balances.values()), default=Decimal("0"))
    tolerance = eps * max(Decimal("1"), largest)

    # [participant, remaining]; sorted() is stable, so ties keep
    # first-appearance order and the plan is deterministic
    creditors = sorted(
        ([b.participant, b.net_balance] for b in balances.values() if b.net_balance > tolerance),
        key=lambda entry: entry[1],
        reverse=True,
    )
    debtors = sorted(
        ([b.participant, b.net_balance] for b in balances.values() if b.net_balance < -tolerance),
        key=lambda entry: entry[1],
    )

    transfers = []
    max_iterations = len(creditors) + len(debtors)
    iterations = 0
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        iterations += 1
        if iterations > max_iterations:
            raise SettlementLogicError(
                f"Settlement did not converge within {max_iterations} steps",
                residual=_residual(creditors[i:] + debtors[j:]),
            )

        creditor = creditors[i]
        debtor = debtors[j]

        amount = min(creditor[1], abs(debtor[1]))
        if amount > tolerance:
            transfers.append(SettlementTransfer(
                debtor=debtor[0],
                creditor=creditor[0],
                amount=amount,
            ))

        creditor[1] -= amount
        debtor[1] += amount

        if abs(creditor[1]) <= tolerance:
            i += 1
        if abs(debtor[1]) <= tolerance:
            j += 1

    leftover = [
        entry for entry in creditors[i:] + debtors[j:]
        if abs(entry[1]) > tolerance
    ]
    if leftover:
        raise SettlementLogicError(
            "Balances do not sum to zero; "
            f"{len(leftover)} participants left unsettled",
            residual=_residual(leftover),
        )

    logger.debug(
        "settlement_planned",
        creditor_count=len(creditors),
        debtor_count=len(debtors),
        transfer_count=len(transfers),
    )
    return transfers


def apply_transfers(
    balances: Mapping[str, ParticipantBalance],
    transfers: Iterable[SettlementTransfer],
) -> dict[str, Decimal]:
    """
    Net balance left per participant after every transfer is paid.

    A complete plan leaves every entry within epsilon of zero.
    """
    remaining = {name: b.net_balance for name, b in balances.items()}
    for transfer in transfers:
        remaining[transfer.debtor] = remaining.get(transfer.debtor, Decimal("0")) + transfer.amount
        remaining[transfer.creditor] = remaining.get(transfer.creditor, Decimal("0")) - transfer.amount
    return remaining


def _residual(entries: list) -> dict[str, Decimal]:
    return {name: amount for name, amount in entries}
