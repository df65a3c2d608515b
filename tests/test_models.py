"""
Tests for SettleUp

Test strategy:
1. Unit tests for individual components (models, validators, engine)
2. Integration tests for the flow (with in-memory sources)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from settleup.models.expense import (
    Contact,
    FamilyMember,
    SharedExpense,
    TransactionRecord,
    TransactionType,
    ValidationIssue,
)
from settleup.models.settlement import (
    ExpenseReport,
    ParticipantBalance,
    SettlementResult,
    SettlementTransfer,
)
from settleup.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_shared_expense_creation(self):
        """Test SharedExpense model creation."""
        expense = SharedExpense(
            id="e1",
            total_amount=Decimal("90.00"),
            payer_id="alice",
            participant_ids=["bob", "carol"],
            category="food",
            expense_date=date(2024, 12, 15),
        )
        assert expense.total_amount == Decimal("90.00")
        assert expense.participant_ids == ["bob", "carol"]

    def test_shared_expense_accepts_camel_case(self):
        """Test payloads shaped like the web client's."""
        expense = SharedExpense.model_validate({
            "id": "e1",
            "totalAmount": "30",
            "payerId": "alice",
            "participantIds": ["bob"],
        })
        assert expense.total_amount == Decimal("30")
        assert expense.payer_id == "alice"
        assert expense.participant_ids == ["bob"]

    def test_shared_expense_strips_whitespace(self):
        """Test that whitespace is stripped from identifiers."""
        expense = SharedExpense(id="e1", total_amount=Decimal("1"), payer_id="  alice  ")
        assert expense.payer_id == "alice"

    def test_shared_expense_participants_default_empty(self):
        """Test that participants are optional."""
        expense = SharedExpense(id="e1", total_amount=Decimal("1"), payer_id="alice")
        assert expense.participant_ids == []

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_shared_expense_rejects_non_positive_amount(self, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            SharedExpense(id="e1", total_amount=amount, payer_id="alice")

    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    def test_shared_expense_rejects_non_finite_amount(self, amount):
        """Test that NaN and infinity are rejected."""
        with pytest.raises(ValueError):
            SharedExpense(id="e1", total_amount=Decimal(amount), payer_id="alice")

    def test_shared_expense_rejects_blank_participant(self):
        """Test that blank participant identifiers are rejected."""
        with pytest.raises(ValueError, match="cannot be blank"):
            SharedExpense(
                id="e1",
                total_amount=Decimal("10"),
                payer_id="alice",
                participant_ids=["bob", "   "],
            )

    def test_shared_expense_is_frozen(self):
        """Test that expenses cannot be mutated after validation."""
        expense = SharedExpense(id="e1", total_amount=Decimal("1"), payer_id="alice")
        with pytest.raises(ValueError):
            expense.total_amount = Decimal("2")

    def test_transaction_record_splits_shared_with(self):
        """Test comma-separated participant strings from older rows."""
        record = TransactionRecord(
            id="t1",
            amount=Decimal("-50"),
            type=TransactionType.SHARED,
            shared_with="bob@example.com, carol ,",
        )
        assert record.shared_with == ["bob@example.com", "carol"]

    def test_transaction_record_keeps_nan_amount(self):
        """Test that untrusted amounts are kept for the validator to judge."""
        record = TransactionRecord(id="t1", amount=Decimal("NaN"))
        assert record.amount.is_nan()

    def test_transaction_record_date_alias(self):
        """Test that the stored 'date' column populates transaction_date."""
        record = TransactionRecord(id="t1", date=date(2024, 3, 1))
        assert record.transaction_date == date(2024, 3, 1)

    def test_transaction_record_blank_payer_is_none(self):
        """Test that a blank payer means 'not recorded'."""
        record = TransactionRecord(id="t1", payer_id="  ", trip_id="")
        assert record.payer_id is None
        assert record.trip_id is None

    def test_directory_models(self):
        """Test FamilyMember and Contact creation."""
        member = FamilyMember(id="fm-1", name=" Alice ")
        contact = Contact(id="c-1", name="Bob", email="bob@example.com")
        assert member.name == "Alice"
        assert contact.email == "bob@example.com"
        assert contact.phone is None


class TestSettlementModels:
    """Tests for settlement-related models."""

    def test_participant_balance_net(self):
        """Test that net balance is paid minus owed."""
        balance = ParticipantBalance(
            participant="alice",
            total_paid=Decimal("90"),
            total_owed=Decimal("30"),
        )
        assert balance.net_balance == Decimal("60")

    def test_participant_balance_net_is_serialized(self):
        """Test that the computed net balance is part of the dump."""
        balance = ParticipantBalance(participant="bob", total_owed=Decimal("30"))
        assert balance.model_dump()["net_balance"] == Decimal("-30")

    def test_transfer_rejects_self_payment(self):
        """Test that debtor and creditor must differ."""
        with pytest.raises(ValueError, match="must be different"):
            SettlementTransfer(debtor="alice", creditor="alice", amount=Decimal("1"))

    def test_transfer_rejects_zero_amount(self):
        """Test that transfers carry a positive amount."""
        with pytest.raises(ValueError):
            SettlementTransfer(debtor="bob", creditor="alice", amount=Decimal("0"))

    def test_transfer_describe(self):
        """Test the human-readable transfer line."""
        transfer = SettlementTransfer(debtor="bob", creditor="alice", amount=Decimal("30"))
        assert transfer.describe() == "bob owes alice 30"

    def test_settlement_result_helpers(self):
        """Test is_settled, balance_for and next_actions."""
        transfers = [
            SettlementTransfer(debtor=f"d{i}", creditor="alice", amount=Decimal("1"))
            for i in range(5)
        ]
        result = SettlementResult(
            balances=[ParticipantBalance(participant="alice", total_paid=Decimal("5"))],
            transfers=transfers,
        )
        assert result.is_settled is False
        assert result.balance_for("alice").total_paid == Decimal("5")
        assert result.balance_for("nobody") is None
        assert result.next_actions() == transfers[:3]
        assert result.next_actions(limit=1) == transfers[:1]

    def test_empty_settlement_result(self):
        """Test that an empty result is settled with an empty report."""
        result = SettlementResult()
        assert result.is_settled is True
        assert result.report == ExpenseReport()
        assert result.report.largest_expense_id is None


class TestValidationIssue:
    """Tests for ValidationIssue model."""

    def test_default_severity_is_error(self):
        """Test that issues are errors unless stated otherwise."""
        issue = ValidationIssue(field="total_amount", issue_type="missing", message="x")
        assert issue.severity == "error"

    def test_rejects_unknown_severity(self):
        """Test that only error and warning are accepted."""
        with pytest.raises(ValueError):
            ValidationIssue(field="id", issue_type="missing", message="x", severity="fatal")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSES_LOADED,
            description="Loaded 3 shared transactions",
        )
        assert event.event_type == AuditEventType.EXPENSES_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.SETTLEMENT_COMPUTED,
            description="Settlement computed",
            details={"transfer_count": 2},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "settlement_computed"
        assert log_dict["details"]["transfer_count"] == 2

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.SETTLEMENT_FAILED,
            description="Planner failed",
            details={"residual": {"alice": Decimal("1")}},
            error_message="boom",
        )
        row = event.to_sheets_row()
        assert len(row) == 10  # Expected number of columns
        assert row[2] == "settlement_failed"  # event_type
        assert '"alice": "1"' in row[8]  # details_json
        assert row[9] == "boom"

    def test_audit_event_builder_expenses_loaded(self):
        """Test AuditEventBuilder.expenses_loaded."""
        correlation_id = uuid4()

        event = AuditEventBuilder.expenses_loaded(
            trip_id="lisbon",
            transaction_count=4,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSES_LOADED
        assert event.entity_id == "lisbon"
        assert event.correlation_id == correlation_id
        assert event.details["transaction_count"] == 4

    def test_audit_event_builder_settlement_failed(self):
        """Test AuditEventBuilder.settlement_failed."""
        event = AuditEventBuilder.settlement_failed(
            error_message="Balances do not sum to zero",
            correlation_id=uuid4(),
        )

        assert event.severity == AuditSeverity.CRITICAL
        assert event.error_code == "settlement_logic_error"

    def test_audit_event_builder_cache_hit_is_debug(self):
        """Test that cache hits are low-severity events."""
        event = AuditEventBuilder.settlement_cache_hit("abc", uuid4())
        assert event.severity == AuditSeverity.DEBUG
        assert event.entity_id == "abc"


class TestTransactionTypes:
    """Tests for transaction type enum."""

    def test_all_types_exist(self):
        """Test that expected types exist."""
        for value in ["income", "expense", "transfer", "shared"]:
            assert TransactionType(value) is not None

    def test_type_values(self):
        """Test type string values."""
        assert TransactionType.SHARED.value == "shared"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
