"""
Expense Models for SettleUp

These models define the strict schemas for the data the settlement
engine consumes. They are designed to:
1. Reject impossible amounts at the boundary (NaN, infinity, zero, negative)
2. Provide clear validation error messages
3. Be serializable for hashing, storage and logging

DESIGN DECISION: Amounts are Decimal end to end.
Equal splits still produce non-terminating fractions (100 / 3), so
Decimal does not remove the need for a tolerance, but it keeps the
arithmetic identical on every platform.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Transaction kinds stored by the upstream ledger."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    SHARED = "shared"  # Only these feed the settlement engine


# =============================================================================
# DIRECTORY MODELS (read-only, owned by the surrounding system)
# =============================================================================

class FamilyMember(BaseModel):
    """A family member as stored by the family directory."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)


class Contact(BaseModel):
    """
    A contact as stored by the contact directory.

    Older transactions reference contacts by email or by name,
    so both are lookup keys.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=50)


# =============================================================================
# UPSTREAM TRANSACTION
# =============================================================================

class TransactionRecord(BaseModel):
    """
    A transaction row as read from the upstream store.

    CRITICAL: This is UNTRUSTED data. The amount is kept as read
    (it may be missing, signed, or even NaN) and only becomes a
    SharedExpense after passing the ExpenseValidator.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(
        default=None,
        allow_inf_nan=True,
        description="Signed amount; expenses are stored as negatives"
    )
    type: TransactionType = TransactionType.EXPENSE
    trip_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, max_length=100)
    transaction_date: Optional[date] = Field(default=None, alias="date")
    payer_id: Optional[str] = None
    shared_with: list[str] = Field(default_factory=list)

    @field_validator('shared_with', mode='before')
    @classmethod
    def split_shared_with(cls, v):
        """Older rows store participants as one comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator('payer_id', 'trip_id', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class SharedExpense(BaseModel):
    """
    An expense paid by one person and split equally among several.

    `participant_ids` lists the people splitting the cost. The payer
    always takes a share, whether or not they are listed. An empty
    list makes this a personal expense with no net effect.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    # camelCase aliases accept payloads shaped like the web client's
    total_amount: Decimal = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("total_amount", "totalAmount"),
        description="Total cost, strictly positive"
    )
    payer_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("payer_id", "payerId"),
    )
    participant_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("participant_ids", "participantIds"),
    )

    # Display metadata carried from the source transaction
    description: Optional[str] = None
    category: Optional[str] = None
    expense_date: Optional[date] = None
    trip_id: Optional[str] = None

    @field_validator('participant_ids')
    @classmethod
    def reject_blank_participants(cls, v: list[str]) -> list[str]:
        if any(not pid for pid in v):
            raise ValueError("Participant identifiers cannot be blank")
        return v


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found with an incoming expense."""

    expense_id: Optional[str] = Field(
        default=None,
        description="ID of the offending expense, if it had one"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'non_finite', 'not_positive')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )
