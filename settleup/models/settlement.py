"""
Settlement Models for SettleUp

Everything in this module is DERIVED data. Balances, transfers and
reports are recomputed in full from the expense list every time;
nothing here is ever persisted or updated incrementally.
"""

from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from settleup.models.expense import ValidationIssue


class ParticipantBalance(BaseModel):
    """
    What one participant paid, what they owe, and the difference.

    Positive net balance = the participant is owed money (creditor).
    Negative net balance = the participant owes money (debtor).
    """
    model_config = ConfigDict(frozen=True)

    participant: str = Field(..., min_length=1)
    total_paid: Decimal = Field(default=Decimal("0"), ge=0)
    total_owed: Decimal = Field(default=Decimal("0"), ge=0)

    @computed_field
    @property
    def net_balance(self) -> Decimal:
        return self.total_paid - self.total_owed


class SettlementTransfer(BaseModel):
    """A single payment: `debtor` pays `amount` to `creditor`."""
    model_config = ConfigDict(frozen=True)

    debtor: str = Field(..., min_length=1)
    creditor: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False)

    @model_validator(mode='after')
    def validate_parties(self) -> 'SettlementTransfer':
        if self.debtor == self.creditor:
            raise ValueError("Debtor and creditor must be different participants")
        return self

    def describe(self) -> str:
        return f"{self.debtor} owes {self.creditor} {self.amount}"


class ExpenseReport(BaseModel):
    """
    Rollups shown next to the settlement plan.

    Amounts are unrounded; formatting is left to the caller.
    """

    total_amount: Decimal = Decimal("0")
    expense_count: int = Field(default=0, ge=0)
    average_amount: Decimal = Decimal("0")
    participant_count: int = Field(default=0, ge=0)

    # Every transfer is pending: there is no settled state to count
    pending_transfer_count: int = Field(default=0, ge=0)

    largest_expense_id: Optional[str] = None
    largest_expense_amount: Optional[Decimal] = None

    breakdown_by_category: dict[str, Decimal] = Field(default_factory=dict)
    breakdown_by_month: dict[str, Decimal] = Field(default_factory=dict)


class SettlementResult(BaseModel):
    """Everything the presentation layer needs for one expense set."""

    balances: list[ParticipantBalance] = Field(default_factory=list)
    transfers: list[SettlementTransfer] = Field(default_factory=list)
    report: ExpenseReport = Field(default_factory=ExpenseReport)

    # Expenses excluded by validation, and why
    skipped_count: int = Field(default=0, ge=0)
    issues: list[ValidationIssue] = Field(default_factory=list)

    input_hash: Optional[str] = Field(
        default=None,
        description="Content hash of the input snapshot, when computed via the cache"
    )

    @property
    def is_settled(self) -> bool:
        """True when nobody owes anybody anything."""
        return not self.transfers

    def balance_for(self, participant: str) -> Optional[ParticipantBalance]:
        for balance in self.balances:
            if balance.participant == participant:
                return balance
        return None

    def next_actions(self, limit: int = 3) -> list[SettlementTransfer]:
        """The first few payments to make, largest creditors first."""
        return self.transfers[:limit]
