"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. A household can look at (and fix) its card list directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a household has a handful of cards)
- No transactions: each save rewrites one worksheet wholesale
- Limited query capabilities (aggregation happens in Python anyway)

The implementation follows the abstract interface, so we can swap
backends without changing the billing engine.
"""

import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from crediflow.config import get_settings
from crediflow.models.audit import AuditEvent, AuditEventType, AuditSeverity
from crediflow.models.billing import CARD_COLORS, Card, Payment
from crediflow.services.storage.interface import (
    AuditStorageInterface,
    BillingStorageInterface,
    ConnectionError,
    StorageError,
)


CARD_COLUMNS = [
    "id",
    "name",
    "bank_name",
    "closing_day",
    "payment_day",
    "color",
    "owner",
    "payment_source_owner",
]

PAYMENT_COLUMNS = [
    "id",
    "card_id",
    "amount",
    "month",
    "year",
    "is_confirmed",
    "is_paid",
    "notes",
]

READINESS_COLUMNS = [
    "key",
    "is_ready",
]

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

sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)

logger = structlog.get_logger(__name__)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @sheets_retry
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

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
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

    def get_cards_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.cards_sheet_name, CARD_COLUMNS)

    def get_payments_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.payments_sheet_name, PAYMENT_COLUMNS)

    def get_readiness_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.readiness_sheet_name, READINESS_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for the audit log
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsBillingStorage(BillingStorageInterface):
    """
    Google Sheets implementation of billing storage.

    One worksheet per collection, one record per row. Saving a collection
    clears the worksheet and writes header + rows in a single update.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _card_to_row(card: Card) -> list:
        return [
            card.id,
            card.name,
            card.bank_name,
            str(card.closing_day),
            str(card.payment_day),
            card.color,
            card.owner,
            card.payment_source_owner or "",
        ]

    @staticmethod
    def _row_to_card(row: list) -> Card:
        return Card(
            id=_safe_get(row, 0),
            name=_safe_get(row, 1),
            bank_name=_safe_get(row, 2),
            closing_day=int(_safe_get(row, 3, "1")),
            payment_day=int(_safe_get(row, 4, "27")),
            color=_safe_get(row, 5) or CARD_COLORS[0],
            owner=_safe_get(row, 6),
            payment_source_owner=_safe_get(row, 7) or None,
        )

    @staticmethod
    def _payment_to_row(payment: Payment) -> list:
        return [
            payment.id,
            payment.card_id,
            str(payment.amount),
            str(payment.month),
            str(payment.year),
            str(payment.is_confirmed),
            str(payment.is_paid),
            payment.notes or "",
        ]

    @staticmethod
    def _row_to_payment(row: list) -> Payment:
        return Payment(
            id=_safe_get(row, 0),
            card_id=_safe_get(row, 1),
            amount=int(_safe_get(row, 2, "0")),
            month=int(_safe_get(row, 3)),
            year=int(_safe_get(row, 4)),
            is_confirmed=_safe_get(row, 5).lower() == "true",
            is_paid=_safe_get(row, 6).lower() == "true",
            notes=_safe_get(row, 7) or None,
        )

    def _read_rows(self, sheet: gspread.Worksheet, parse) -> list:
        records = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:
                continue
            try:
                records.append(parse(row))
            except (ValueError, TypeError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    sheet=sheet.title,
                    row=row,
                    error=str(e),
                )
        return records

    def _rewrite(self, sheet: gspread.Worksheet, columns: list[str], rows: list[list]) -> None:
        sheet.clear()
        sheet.update(
            values=[columns] + rows,
            range_name="A1",
            value_input_option="RAW",
        )

    @sheets_retry
    def load_cards(self) -> list[Card]:
        try:
            return self._read_rows(self._client.get_cards_sheet(), self._row_to_card)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load cards: {e}")

    @sheets_retry
    def save_cards(self, cards: Sequence[Card]) -> None:
        try:
            self._rewrite(
                self._client.get_cards_sheet(),
                CARD_COLUMNS,
                [self._card_to_row(card) for card in cards],
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save cards: {e}")

    @sheets_retry
    def load_payments(self) -> list[Payment]:
        try:
            return self._read_rows(self._client.get_payments_sheet(), self._row_to_payment)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load payments: {e}")

    @sheets_retry
    def save_payments(self, payments: Sequence[Payment]) -> None:
        try:
            self._rewrite(
                self._client.get_payments_sheet(),
                PAYMENT_COLUMNS,
                [self._payment_to_row(payment) for payment in payments],
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save payments: {e}")

    @sheets_retry
    def load_readiness(self) -> dict[str, bool]:
        try:
            rows = self._client.get_readiness_sheet().get_all_values()[1:]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load readiness: {e}")
        return {
            row[0]: _safe_get(row, 1).lower() == "true"
            for row in rows
            if row and row[0]
        }

    @sheets_retry
    def save_readiness(self, readiness: Mapping[str, bool]) -> None:
        try:
            self._rewrite(
                self._client.get_readiness_sheet(),
                READINESS_COLUMNS,
                [[key, str(value)] for key, value in readiness.items()],
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save readiness: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

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
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, TypeError):
                continue
        return events

    @sheets_retry
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._load_events(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
