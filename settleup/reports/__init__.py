"""Expense report package."""

from settleup.reports.aggregator import ReportAggregator

__all__ = ["ReportAggregator"]
