"""
Tests for settlement planning.
"""

import pytest
from decimal import Decimal

from settleup.models.expense import SharedExpense
from settleup.models.settlement import ParticipantBalance
from settleup.settlement import (
    SettlementLogicError,
    aggregate,
    apply_transfers,
    settle,
)


EPSILON = Decimal("0.000001")


def balances_from(nets):
    """Build balances from {name: net} with nets summing to zero."""
    result = {}
    for name, amount in nets.items():
        amount = Decimal(amount)
        result[name] = ParticipantBalance(
            participant=name,
            total_paid=amount if amount > 0 else Decimal("0"),
            total_owed=-amount if amount < 0 else Decimal("0"),
        )
    return result


def expense(expense_id, amount, payer, participants=()):
    return SharedExpense(
        id=expense_id,
        total_amount=Decimal(amount),
        payer_id=payer,
        participant_ids=list(participants),
    )


def assert_complete(balances, transfers):
    for name, remaining in apply_transfers(balances, transfers).items():
        assert abs(remaining) <= EPSILON, f"{name} left with {remaining}"


class TestSettle:
    """Tests for the greedy netting loop."""

    def test_single_debt(self):
        """B owes A 50 after a 100 expense paid by A."""
        balances = aggregate([expense("e1", "100", "A", ["B"])])
        transfers = settle(balances)

        assert len(transfers) == 1
        assert transfers[0].debtor == "B"
        assert transfers[0].creditor == "A"
        assert transfers[0].amount == Decimal("50")

    def test_one_creditor_two_debtors(self):
        """Exactly two transfers of 30 to the payer."""
        balances = aggregate([expense("e1", "90", "A", ["B", "C"])])
        transfers = settle(balances)

        assert [(t.debtor, t.creditor, t.amount) for t in transfers] == [
            ("B", "A", Decimal("30")),
            ("C", "A", Decimal("30")),
        ]

    def test_non_terminating_split_still_clears(self):
        """100 split three ways settles within tolerance, not exact cents."""
        balances = aggregate([expense("e1", "100", "A", ["B", "C"])])
        transfers = settle(balances)

        assert len(transfers) == 2
        assert_complete(balances, transfers)

    def test_largest_first_matching(self):
        """The largest creditor is paid by the largest debtor first."""
        balances = balances_from({"A": "10", "B": "40", "C": "-45", "D": "-5"})
        transfers = settle(balances)

        assert (transfers[0].debtor, transfers[0].creditor, transfers[0].amount) == (
            "C", "B", Decimal("40"),
        )
        assert_complete(balances, transfers)

    def test_everyone_even(self):
        balances = aggregate([expense("e1", "40", "A")])
        assert settle(balances) == []

    def test_no_balances(self):
        assert settle({}) == []

    def test_dust_below_epsilon_is_ignored(self):
        balances = balances_from({"A": "0.0000001", "B": "-0.0000001"})
        assert settle(balances) == []

    def test_large_amounts_settle(self):
        """Split residue at the limit of Decimal precision is not drift."""
        balances = aggregate([expense("e1", "1e25", "A", ["B", "C"])])
        transfers = settle(balances)

        assert [(t.debtor, t.creditor) for t in transfers] == [("B", "A"), ("C", "A")]
        tolerance = EPSILON * Decimal("1e25")
        for remaining in apply_transfers(balances, transfers).values():
            assert abs(remaining) <= tolerance

    def test_large_unbalanced_input_still_raises(self):
        """The relative tolerance does not hide real drift."""
        balances = balances_from({"A": "1e25", "B": "-9.99e24"})
        with pytest.raises(SettlementLogicError):
            settle(balances)

    def test_custom_epsilon(self):
        """A coarse tolerance treats cent-level balances as settled."""
        balances = balances_from({"A": "0.004", "B": "-0.004"})
        assert settle(balances, epsilon=Decimal("0.01")) == []
        assert len(settle(balances)) == 1


class TestSettleProperties:
    """Invariants that hold for every plan."""

    @pytest.mark.parametrize("nets", [
        {"A": "60", "B": "-30", "C": "-30"},
        {"A": "25", "B": "25", "C": "-10", "D": "-40"},
        {"A": "1", "B": "2", "C": "3", "D": "-1", "E": "-2", "F": "-3"},
        {"A": "100", "B": "-33.33", "C": "-33.33", "D": "-33.34"},
    ])
    def test_transfer_bound_and_completeness(self, nets):
        balances = balances_from(nets)
        transfers = settle(balances)

        non_zero = [b for b in balances.values() if abs(b.net_balance) > EPSILON]
        assert len(transfers) <= max(len(non_zero) - 1, 0)
        assert all(t.amount > 0 for t in transfers)
        assert all(t.debtor != t.creditor for t in transfers)
        assert_complete(balances, transfers)

    def test_creditors_only_receive_and_debtors_only_pay(self):
        balances = balances_from({"A": "25", "B": "25", "C": "-10", "D": "-40"})
        transfers = settle(balances)

        assert {t.creditor for t in transfers} <= {"A", "B"}
        assert {t.debtor for t in transfers} <= {"C", "D"}

    def test_deterministic(self):
        """Same input, same plan; ties keep first-appearance order."""
        balances = balances_from({"A": "10", "B": "10", "C": "-10", "D": "-10"})
        first = settle(balances)
        second = settle(balances)

        assert first == second
        assert [(t.debtor, t.creditor) for t in first] == [("C", "A"), ("D", "B")]

    def test_many_expenses(self):
        expenses = [
            expense(f"e{i}", str(7 * i + 3), "ABCDEF"[i % 6], list("ABCDEF"[: (i % 5) + 1]))
            for i in range(50)
        ]
        balances = aggregate(expenses)
        assert_complete(balances, settle(balances))


class TestSettlementLogicError:
    """Unbalanced input is a bug, reported loudly."""

    def test_unbalanced_input_raises(self):
        balances = balances_from({"A": "50", "B": "-20"})
        with pytest.raises(SettlementLogicError) as exc_info:
            settle(balances)
        assert exc_info.value.residual == {"A": Decimal("30")}

    def test_debt_without_creditor_raises(self):
        with pytest.raises(SettlementLogicError):
            settle(balances_from({"A": "-5"}))


class TestApplyTransfers:
    """Tests for replaying a plan against balances."""

    def test_partial_plan_leaves_remainder(self):
        balances = balances_from({"A": "60", "B": "-30", "C": "-30"})
        transfers = settle(balances)[:1]

        remaining = apply_transfers(balances, transfers)
        assert remaining["A"] == Decimal("30")
        assert remaining["B"] == Decimal("0")
        assert remaining["C"] == Decimal("-30")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
