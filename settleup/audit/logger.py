"""
Audit Logger

DESIGN DECISION: Every settlement run is logged.
This provides:
1. Traceability from a payment plan back to its inputs
2. A record of every expense that was left out, and why
3. Loud evidence when the planner detects drift

The audit logger:
- Is async to match the flow that calls it
- Gracefully handles sink failures (a broken audit sheet never
  breaks a settlement)
- Supports correlation IDs to tie the events of one run together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from settleup.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from settleup.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage sink, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_method = getattr(self._logger, _LEVELS[event.severity])
        log_method("audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expenses_loaded(
        self,
        trip_id: Optional[str],
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expenses_loaded(
            trip_id=trip_id,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_skipped(
        self,
        expense_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_skipped(
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_settlement_computed(
        self,
        input_hash: str,
        participant_count: int,
        transfer_count: int,
        skipped_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.settlement_computed(
            input_hash=input_hash,
            participant_count=participant_count,
            transfer_count=transfer_count,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_cache_hit(
        self,
        input_hash: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.settlement_cache_hit(
            input_hash=input_hash,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_settlement_failed(
        self,
        error_message: str,
        correlation_id: UUID,
        residual: Optional[dict] = None,
    ) -> None:
        event = AuditEventBuilder.settlement_failed(
            error_message=error_message,
            correlation_id=correlation_id,
            details={"residual": {k: str(v) for k, v in (residual or {}).items()}},
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a settlement run and pass it through.
    """
    return uuid4()
