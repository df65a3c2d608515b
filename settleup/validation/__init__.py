"""Expense validation package."""

from settleup.validation.validator import (
    ExpenseValidationError,
    ExpenseValidator,
    summarize_issues,
    transaction_to_expense,
)

__all__ = [
    "ExpenseValidationError",
    "ExpenseValidator",
    "summarize_issues",
    "transaction_to_expense",
]
