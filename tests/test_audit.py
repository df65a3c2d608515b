"""
Tests for the audit logger.
"""

import asyncio
from uuid import uuid4

import pytest

from settleup.audit import AuditLogger, create_correlation_id
from settleup.models.audit import AuditEvent, AuditEventType, AuditSeverity
from settleup.services.storage import InMemoryAuditStorage


class ExplodingStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise RuntimeError("sheet is read-only")


class TestAuditLogger:
    """Tests for local logging plus optional persistence."""

    def test_local_only(self):
        """Test that logging works with no storage configured."""
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x")
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_persists_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_expenses_loaded("porto", 3, correlation_id))
        asyncio.run(logger.log_cache_hit("abc123", correlation_id))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [
            AuditEventType.EXPENSES_LOADED,
            AuditEventType.SETTLEMENT_CACHE_HIT,
        ]

    def test_storage_failure_never_raises(self):
        """Test that a broken audit sink does not break a settlement."""
        logger = AuditLogger(ExplodingStorage())
        event = AuditEvent(event_type=AuditEventType.EXPENSES_LOADED, description="x")
        assert asyncio.run(logger.log(event)) is False

    def test_settlement_failed_carries_residual(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        asyncio.run(logger.log_settlement_failed("drift", uuid4(), residual={"A": 1}))

        event = asyncio.run(storage.get_recent_events())[0]
        assert event.severity == AuditSeverity.CRITICAL
        assert event.details == {"residual": {"A": "1"}}

    def test_expense_skipped(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        issues = [{"field": "total_amount", "type": "non_finite", "message": "NaN"}]

        asyncio.run(logger.log_expense_skipped("t3", issues, uuid4()))

        event = asyncio.run(storage.get_recent_events())[0]
        assert event.event_type == AuditEventType.EXPENSE_SKIPPED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["issues"] == issues

    def test_log_error(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        asyncio.run(logger.log_error("cache_failure", "out of memory", details={"entries": 128}))

        event = asyncio.run(storage.get_recent_events())[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"entries": 128}
        assert event.correlation_id is None

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
