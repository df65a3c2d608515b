"""
Main Orchestrator for SettleUp

This module ties together the sources, the pure settlement engine,
the cache and the audit trail:

    source -> convert -> validate -> aggregate -> settle -> report

DESIGN DECISION: The orchestrator owns every side effect.
Reading the sheets, logging, caching: all of it happens here, so the
engine underneath stays a pure function that can be memoized and
tested without fixtures.

There is deliberately no "mark as paid" operation. Transfers are a
plan derived from expenses, not records with a lifecycle.
"""

from typing import Optional
from uuid import UUID

import structlog

from settleup.audit import AuditLogger, create_correlation_id
from settleup.config import SettlementSettings, get_settings
from settleup.identity import DirectoryIdentityResolver
from settleup.models.settlement import SettlementResult
from settleup.settlement import (
    SettlementCache,
    SettlementLogicError,
    compute_settlement,
    content_hash,
)
from settleup.services.storage import (
    ExpenseSourceInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseSource,
    InMemoryExpenseSource,
    StorageError,
)
from settleup.validation import transaction_to_expense


logger = structlog.get_logger(__name__)


class SettlementFlow:
    """
    Orchestrates one settlement run.

    Flow:
    1. Load → shared transactions and both directories from the source
    2. Convert → transactions into expense input (sign, default payer)
    3. Hash → content hash of the snapshot
    4. Compute → via the cache; the engine runs only on a miss
    5. Audit → loaded / skipped / computed / cache-hit / failed

    A SettlementLogicError is audited and re-raised: it is a bug,
    and hiding it would show users a wrong payment plan.
    """

    def __init__(
        self,
        source: ExpenseSourceInterface,
        settings: Optional[SettlementSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        cache: Optional[SettlementCache] = None,
    ):
        self._source = source
        self._settings = settings or get_settings().settlement
        self._audit_logger = audit_logger
        self._cache = cache or SettlementCache(self._settings.cache_max_entries)

    @property
    def cache(self) -> SettlementCache:
        return self._cache

    async def compute_for_trip(
        self,
        trip_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementResult:
        """
        Settle the shared expenses of one trip (or of all trips).

        Returns:
            The settlement result, possibly served from cache

        Raises:
            StorageError: If the source cannot be read
            SettlementLogicError: If the planner detects drift
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            transactions = await self._source.list_shared_transactions(trip_id)
            family_members = await self._source.list_family_members()
            contacts = await self._source.list_contacts()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="expense_source",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_expenses_loaded(
                trip_id=trip_id,
                transaction_count=len(transactions),
                correlation_id=correlation_id,
            )

        expenses = [
            transaction_to_expense(t, self._settings.current_user_id)
            for t in transactions
        ]
        resolver = DirectoryIdentityResolver(family_members, contacts)
        key = content_hash(
            expenses,
            family_members,
            contacts,
            extra={"epsilon": str(self._settings.epsilon)},
        )

        def compute() -> SettlementResult:
            result = compute_settlement(
                expenses,
                resolve=resolver,
                epsilon=self._settings.epsilon,
            )
            return result.model_copy(update={"input_hash": key})

        try:
            result, was_cached = self._cache.get_or_compute(key, compute)
        except SettlementLogicError as e:
            logger.error("settlement_failed", error=str(e), trip_id=trip_id)
            if self._audit_logger:
                await self._audit_logger.log_settlement_failed(
                    error_message=str(e),
                    correlation_id=correlation_id,
                    residual=e.residual,
                )
            raise

        if self._audit_logger:
            if was_cached:
                await self._audit_logger.log_cache_hit(
                    input_hash=key,
                    correlation_id=correlation_id,
                )
            else:
                await self._log_skipped(result, correlation_id)
                await self._audit_logger.log_settlement_computed(
                    input_hash=key,
                    participant_count=len(result.balances),
                    transfer_count=len(result.transfers),
                    skipped_count=result.skipped_count,
                    correlation_id=correlation_id,
                )

        return result

    async def _log_skipped(
        self,
        result: SettlementResult,
        correlation_id: UUID,
    ) -> None:
        """One audit event per excluded expense, with its issues."""
        by_expense: dict[Optional[str], list[dict]] = {}
        for issue in result.issues:
            if issue.severity != "error":
                continue
            by_expense.setdefault(issue.expense_id, []).append({
                "field": issue.field,
                "type": issue.issue_type,
                "message": issue.message,
            })

        for expense_id, issues in by_expense.items():
            await self._audit_logger.log_expense_skipped(
                expense_id=expense_id,
                issues=issues,
                correlation_id=correlation_id,
            )


def create_settlement_flow(
    use_storage: bool = True,
) -> tuple[SettlementFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the settlement flow.

    Args:
        use_storage: Whether to read from Google Sheets.
                    Set to False for running without storage.

    Returns:
        (settlement_flow, sheets_client)
    """
    sheets_client = None
    source: ExpenseSourceInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            source = GoogleSheetsExpenseSource(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            source = InMemoryExpenseSource()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        source = InMemoryExpenseSource()
        audit_logger = AuditLogger()  # Local-only logging

    flow = SettlementFlow(source=source, audit_logger=audit_logger)
    return flow, sheets_client
