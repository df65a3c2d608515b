"""
Google Sheets Source Implementation

DESIGN DECISION: The finance tracker's data lives in a Google Sheets
spreadsheet, one worksheet per collection:
1. Transactions - every ledger row; only type "shared" is read here
2. FamilyMembers - id/name directory (new participant format)
3. Contacts - name/email directory (old participant format)
4. AuditLog - append-only settlement audit trail

TRADEOFFS:
- Whole-sheet reads, filtered in Python (fine for personal volumes)
- Amounts are parsed leniently; a row with an unreadable amount is
  still returned so the validator can report it instead of it
  silently vanishing
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from settleup.config import GoogleSheetsSettings, get_settings
from settleup.models.audit import AuditEvent, AuditEventType, AuditSeverity
from settleup.models.expense import (
    Contact,
    FamilyMember,
    TransactionRecord,
    TransactionType,
)
from settleup.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseSourceInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for each worksheet
TRANSACTION_COLUMNS = [
    "id",
    "amount",
    "type",
    "trip_id",
    "description",
    "category",
    "date",
    "payer_id",
    "shared_with",
]

FAMILY_COLUMNS = ["id", "name"]

CONTACT_COLUMNS = ["id", "name", "email", "phone"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Cell value, tolerating short rows."""
    try:
        return row[index].strip() if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials. Read access is enough
        for the sources; the audit sheet needs write access.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(NotFoundError),
        reraise=True,
    )
    def read_rows(self, title: str, columns: list[str]) -> list[list[str]]:
        """All data rows of a worksheet, header excluded."""
        return self.get_worksheet(title, columns).get_all_values()[1:]


class GoogleSheetsExpenseSource(ExpenseSourceInterface):
    """
    Google Sheets implementation of the expense source.

    Transactions are one row each; `shared_with` holds a
    comma-separated list of participant identifiers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _parse_amount(self, raw: str) -> Optional[Decimal]:
        """Lenient amount parsing; None when unreadable."""
        if not raw:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            return None

    def _row_to_transaction(self, row: list) -> TransactionRecord:
        """Convert a spreadsheet row to a TransactionRecord."""
        raw_date = _safe_get(row, 6)
        return TransactionRecord(
            id=_safe_get(row, 0),
            amount=self._parse_amount(_safe_get(row, 1)),
            type=TransactionType(_safe_get(row, 2).lower()),
            trip_id=_safe_get(row, 3) or None,
            description=_safe_get(row, 4) or None,
            category=_safe_get(row, 5) or None,
            date=date.fromisoformat(raw_date[:10]) if raw_date else None,
            payer_id=_safe_get(row, 7) or None,
            shared_with=_safe_get(row, 8),
        )

    async def list_shared_transactions(
        self,
        trip_id: Optional[str] = None,
    ) -> list[TransactionRecord]:
        """List shared transactions, optionally for one trip."""
        try:
            rows = self._client.read_rows(
                self._client.settings.transactions_sheet_name,
                TRANSACTION_COLUMNS,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

        transactions = []
        for row in rows:
            if not row or not _safe_get(row, 0):
                continue
            if _safe_get(row, 2).lower() != TransactionType.SHARED.value:
                continue
            if trip_id is not None and _safe_get(row, 3) != trip_id:
                continue

            try:
                transactions.append(self._row_to_transaction(row))
            except (ValueError, TypeError) as e:
                # Unreadable beyond the amount (bad date, bad id): skip, but say so
                logger.warning(
                    "transaction_row_unreadable",
                    transaction_id=_safe_get(row, 0),
                    error=str(e),
                )

        return transactions

    async def list_family_members(self) -> list[FamilyMember]:
        try:
            rows = self._client.read_rows(
                self._client.settings.family_sheet_name,
                FAMILY_COLUMNS,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read family members: {e}")

        return [
            FamilyMember(id=_safe_get(row, 0), name=_safe_get(row, 1))
            for row in rows
            if _safe_get(row, 0) and _safe_get(row, 1)
        ]

    async def list_contacts(self) -> list[Contact]:
        try:
            rows = self._client.read_rows(
                self._client.settings.contacts_sheet_name,
                CONTACT_COLUMNS,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read contacts: {e}")

        return [
            Contact(
                id=_safe_get(row, 0),
                name=_safe_get(row, 1),
                email=_safe_get(row, 2) or None,
                phone=_safe_get(row, 3) or None,
            )
            for row in rows
            if _safe_get(row, 0) and _safe_get(row, 1)
        ]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _audit_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            rows = self._audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning("audit_row_unreadable", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._audit_sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
