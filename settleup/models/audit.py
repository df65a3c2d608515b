"""
Audit Models for SettleUp

Every settlement run is logged for audit purposes.
This provides:
1. Traceability from a transfer back to the expenses that produced it
2. Visibility into expenses that were skipped and why
3. Debugging information when the planner detects drift

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Loading
    EXPENSES_LOADED = "expenses_loaded"
    EXPENSE_SKIPPED = "expense_skipped"

    # Computation
    SETTLEMENT_COMPUTED = "settlement_computed"
    SETTLEMENT_CACHE_HIT = "settlement_cache_hit"
    SETTLEMENT_FAILED = "settlement_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'trip', 'expense', 'settlement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one settlement run"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expenses_loaded(trip_id, 12, correlation_id)
        event = AuditEventBuilder.settlement_cache_hit(input_hash, correlation_id)
    """

    @staticmethod
    def expenses_loaded(
        trip_id: Optional[str],
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        scope = f"trip {trip_id}" if trip_id else "all trips"
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_LOADED,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Loaded {transaction_count} shared transactions for {scope}",
            details={
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def expense_skipped(
        expense_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense excluded from settlement with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def settlement_computed(
        input_hash: str,
        participant_count: int,
        transfer_count: int,
        skipped_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_COMPUTED,
            entity_type="settlement",
            entity_id=input_hash,
            correlation_id=correlation_id,
            description=(
                f"Settlement computed: {participant_count} participants, "
                f"{transfer_count} transfers"
            ),
            details={
                "participant_count": participant_count,
                "transfer_count": transfer_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def settlement_cache_hit(
        input_hash: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_CACHE_HIT,
            severity=AuditSeverity.DEBUG,
            entity_type="settlement",
            entity_id=input_hash,
            correlation_id=correlation_id,
            description="Settlement served from cache",
        )

    @staticmethod
    def settlement_failed(
        error_message: str,
        correlation_id: UUID,
        details: Optional[dict] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="settlement",
            correlation_id=correlation_id,
            description="Settlement planner detected unbalanced input",
            error_code="settlement_logic_error",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
