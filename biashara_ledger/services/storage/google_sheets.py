"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. Shop owners can view their books directly in Sheets
2. No database setup required
3. Easy to export/migrate to a hosted backend later

gspread is synchronous; every sheet call runs in a worker thread through
asyncio.to_thread so the event loop stays free.

TRADEOFFS:
- Not suitable for high-volume data (fine for a small business)
- No transactions (rows are appended one at a time)
- Limited query capabilities (we filter in Python)
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from biashara_ledger.config import get_settings
from biashara_ledger.errors import ConnectionError, StorageError
from biashara_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from biashara_ledger.models.transaction import CanonicalTransaction, Category
from biashara_ledger.services.storage.interface import (
    AuditStorageInterface,
    TransactionStorageInterface,
)
from biashara_ledger.services.storage.memory import default_categories


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "type",
    "amount",
    "description",
    "category",
    "date",
    "vendor",
    "customer",
    "receipt_url",
    "currency",
    "notes",
    "source",
    "extraction_id",
    "items_json",
]

# Column mappings for Categories sheet; a blank user_id marks a default
CATEGORY_COLUMNS = [
    "user_id",
    "name",
    "type",
]

# Column mappings for Audit sheet
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
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
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

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 1000
        )

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet."""
        return self._get_or_create(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, 200
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000
        )


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    One transaction per row; line items are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(
        self,
        transaction_id: str,
        user_id: str,
        tx: CanonicalTransaction,
    ) -> list:
        """Convert a CanonicalTransaction to a spreadsheet row."""
        return [
            transaction_id,
            user_id,
            datetime.utcnow().isoformat(),
            tx.type.value,
            str(tx.amount),
            tx.description,
            tx.category,
            tx.date.isoformat(),
            tx.vendor or "",
            tx.customer or "",
            tx.receipt_url or "",
            tx.currency or "",
            tx.notes or "",
            tx.source.value,
            str(tx.extraction_id) if tx.extraction_id else "",
            json.dumps([item.model_dump() for item in tx.items or ()]),
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_transaction(
        self,
        transaction: CanonicalTransaction,
        user_id: str,
    ) -> str:
        """Append a transaction row."""
        transaction_id = str(uuid4())
        row = self._transaction_to_row(transaction_id, user_id, transaction)
        try:
            await asyncio.to_thread(self._append_row, row)
            return transaction_id
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

    def _append_row(self, row: list) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _category_rows(self) -> list[list[str]]:
        return self._client.get_categories_sheet().get_all_values()[1:]

    async def list_categories(self, user_id: str) -> list[Category]:
        """User categories first, then sheet defaults (or built-in defaults)."""
        try:
            all_rows = await asyncio.to_thread(self._category_rows)
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}") from e

        user_categories = []
        shared_categories = []
        for row in all_rows:
            if len(row) < 3 or not row[1]:
                continue
            try:
                category = Category(name=row[1], type=row[2])
            except ValueError:
                continue  # Skip malformed rows
            if row[0] == user_id:
                user_categories.append(category)
            elif not row[0]:
                shared_categories.append(category)

        return user_categories + (shared_categories or default_categories())


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported by return value."""
        try:
            await asyncio.to_thread(self._append_row, event.to_sheets_row())
            return True
        except Exception:
            return False

    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _audit_rows(self) -> list[list[str]]:
        return self._client.get_audit_sheet().get_all_values()[1:]

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            all_rows = await asyncio.to_thread(self._audit_rows)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if row and len(row) > 6 and row[6] == str(correlation_id):
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue

        events.sort(key=lambda e: e.timestamp)
        return events
