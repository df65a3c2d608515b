"""
Two-Stage Expense Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Amount present, numeric, finite and strictly positive
- Payer present
- Participant list well formed
- Failing this stage EXCLUDES the expense from settlement

STAGE 2 - SEMANTIC VALIDATION:
- Duplicate participant identifiers
- Payer listed among the participants
- These are warnings only; the expense is still settled

IMPORTANT: Validation NEVER silently fixes issues.
A bad expense is skipped and reported back to the caller so the
rest of the expense set can still be settled.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import ValidationError

from settleup.models.expense import (
    SharedExpense,
    TransactionRecord,
    ValidationIssue,
)


ExpenseInput = Union[SharedExpense, Mapping[str, Any]]


class ExpenseValidationError(ValueError):
    """An expense failed schema validation and cannot be settled."""

    def __init__(self, expense_id: Optional[str], issues: list[ValidationIssue]):
        self.expense_id = expense_id
        self.issues = issues
        summary = "; ".join(issue.message for issue in issues)
        super().__init__(f"Invalid expense {expense_id or '<no id>'}: {summary}")


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present key, accepting snake_case and camelCase."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _to_decimal(value: Any) -> Decimal:
    """Convert a raw amount; raises InvalidOperation for unusable input."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation("booleans are not amounts")
    if isinstance(value, (int, str)):
        return Decimal(value.strip() if isinstance(value, str) else value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise InvalidOperation(f"unsupported amount type {type(value).__name__}")


def _with_participant_list(data: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Copy of `data` with participants read into a list exactly once.

    Generators would otherwise be exhausted by the schema checks. Sets are
    sorted so first-appearance order, and with it tie-breaking in the
    planner, is the same in every process.
    """
    for key in ("participant_ids", "participantIds"):
        if key not in data:
            continue
        participants = data[key]
        if isinstance(participants, (str, bytes, Mapping)) or not isinstance(participants, Iterable):
            return data
        if isinstance(participants, (set, frozenset)):
            participants = sorted(participants, key=str)
        normalized = dict(data)
        normalized[key] = list(participants)
        return normalized
    return data


def transaction_to_expense(
    record: TransactionRecord,
    default_payer_id: str,
) -> dict[str, Any]:
    """
    Convert an upstream transaction row into expense input.

    The ledger stores expenses as negative amounts, so the expense
    total is the absolute value. Rows that do not name a payer were
    recorded by the current user, who is then the payer.

    The result is NOT validated; pass it through ExpenseValidator.
    """
    amount = record.amount
    if amount is not None and not amount.is_nan():
        amount = abs(amount)

    return {
        "id": record.id,
        "total_amount": amount,
        "payer_id": record.payer_id or default_payer_id,
        "participant_ids": list(record.shared_with),
        "description": record.description,
        "category": record.category,
        "expense_date": record.transaction_date,
        "trip_id": record.trip_id,
    }


class ExpenseValidator:
    """
    Validates incoming expenses before they reach the aggregator.

    Stage 1 failures raise ExpenseValidationError from validate_expense().
    validate_batch() turns those into reported, skipped expenses.
    """

    def _validate_schema(
        self,
        data: Mapping[str, Any],
    ) -> list[ValidationIssue]:
        """
        Stage 1: Schema validation.

        Returns the list of error-level issues (empty if valid).
        """
        issues = []
        expense_id = data.get("id")
        expense_id = str(expense_id) if expense_id not in (None, "") else None

        if expense_id is None:
            issues.append(ValidationIssue(
                field="id",
                issue_type="missing",
                message="Expense has no identifier",
            ))

        raw_amount = _first(data, "total_amount", "totalAmount")
        if raw_amount is None or raw_amount == "":
            issues.append(ValidationIssue(
                expense_id=expense_id,
                field="total_amount",
                issue_type="missing",
                message="Total amount is required",
            ))
        else:
            try:
                amount = _to_decimal(raw_amount)
            except (InvalidOperation, ValueError):
                issues.append(ValidationIssue(
                    expense_id=expense_id,
                    field="total_amount",
                    issue_type="invalid_format",
                    message=f"Total amount is not a number: {raw_amount!r}",
                ))
            else:
                if not amount.is_finite():
                    issues.append(ValidationIssue(
                        expense_id=expense_id,
                        field="total_amount",
                        issue_type="non_finite",
                        message=f"Total amount must be finite, got {amount}",
                    ))
                elif amount <= 0:
                    issues.append(ValidationIssue(
                        expense_id=expense_id,
                        field="total_amount",
                        issue_type="not_positive",
                        message=f"Total amount must be greater than zero, got {amount}",
                    ))

        payer = _first(data, "payer_id", "payerId")
        if not isinstance(payer, str) or not payer.strip():
            issues.append(ValidationIssue(
                expense_id=expense_id,
                field="payer_id",
                issue_type="missing",
                message="Expense has no payer",
            ))

        participants = _first(data, "participant_ids", "participantIds")
        if participants is not None:
            if isinstance(participants, (str, bytes, Mapping)) or not isinstance(participants, Iterable):
                issues.append(ValidationIssue(
                    expense_id=expense_id,
                    field="participant_ids",
                    issue_type="invalid_format",
                    message="Participants must be a list of identifiers",
                ))
            elif any(not isinstance(p, str) or not p.strip() for p in participants):
                issues.append(ValidationIssue(
                    expense_id=expense_id,
                    field="participant_ids",
                    issue_type="invalid_value",
                    message="Participant identifiers must be non-empty strings",
                ))

        return issues

    def _validate_semantic(
        self,
        expense: SharedExpense,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Only warnings; nothing here excludes the expense.
        """
        issues = []

        seen = set()
        duplicates = []
        for pid in expense.participant_ids:
            if pid in seen and pid not in duplicates:
                duplicates.append(pid)
            seen.add(pid)
        if duplicates:
            issues.append(ValidationIssue(
                expense_id=expense.id,
                field="participant_ids",
                issue_type="duplicate_participant",
                message=f"Participants listed more than once: {', '.join(duplicates)}",
                severity="warning",
            ))

        if expense.payer_id in seen:
            issues.append(ValidationIssue(
                expense_id=expense.id,
                field="participant_ids",
                issue_type="payer_listed",
                message="Payer is also listed as a participant; they take one share",
                severity="warning",
            ))

        return issues

    def validate_expense(self, data: ExpenseInput) -> SharedExpense:
        """
        Run stage 1 and build the SharedExpense.

        Raises:
            ExpenseValidationError: If the expense cannot be settled
        """
        if isinstance(data, SharedExpense):
            return data

        if not isinstance(data, Mapping):
            raise ExpenseValidationError(None, [ValidationIssue(
                field="expense",
                issue_type="invalid_format",
                message=f"Expected an expense mapping, got {type(data).__name__}",
            )])

        data = _with_participant_list(data)
        issues = self._validate_schema(data)
        expense_id = issues[0].expense_id if issues else str(data.get("id"))
        if issues:
            raise ExpenseValidationError(expense_id, issues)

        # Amount already checked; hand pydantic the exact Decimal
        normalized = dict(data)
        normalized["total_amount"] = _to_decimal(_first(data, "total_amount", "totalAmount"))

        try:
            return SharedExpense.model_validate(normalized)
        except ValidationError as e:
            # Anything the hand-written checks did not anticipate
            issues = [
                ValidationIssue(
                    expense_id=expense_id,
                    field=".".join(str(part) for part in error["loc"]) or "expense",
                    issue_type=error["type"],
                    message=error["msg"],
                )
                for error in e.errors()
            ]
            raise ExpenseValidationError(expense_id, issues) from e

    def validate_batch(
        self,
        items: Iterable[ExpenseInput],
    ) -> tuple[list[SharedExpense], list[ValidationIssue], int]:
        """
        Validate many expenses, skipping the invalid ones.

        Returns:
            (valid_expenses, all_issues, skipped_count)
        """
        valid = []
        all_issues = []
        skipped = 0

        for item in items:
            try:
                expense = self.validate_expense(item)
            except ExpenseValidationError as e:
                all_issues.extend(e.issues)
                skipped += 1
                continue

            all_issues.extend(self._validate_semantic(expense))
            valid.append(expense)

        return valid, all_issues, skipped


def summarize_issues(issues: list[ValidationIssue], skipped_count: int) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what the presentation layer shows next to the balances.
    """
    if not issues:
        return "✅ All expenses were included in the settlement."

    lines = []

    if skipped_count:
        noun = "expense was" if skipped_count == 1 else "expenses were"
        lines.append(f"❌ {skipped_count} {noun} left out of the settlement:")
        for issue in issues:
            if issue.severity == "error":
                label = issue.expense_id or "unidentified expense"
                lines.append(f"   • {label}: {issue.message}")

    warnings = [issue for issue in issues if issue.severity == "warning"]
    if warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for issue in warnings:
            lines.append(f"   • {issue.expense_id}: {issue.message}")

    return "\n".join(lines)
