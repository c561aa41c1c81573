"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. The user can look at their ledger directly in a spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each collection lives in its own worksheet, one entity per row.
The settings worksheet has a single data row.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No multi-statement transactions. Commit therefore sends every
  worksheet's values in ONE values.batchUpdate request, padding with
  blank rows to wipe what the previous commit left below. Either the
  whole request is applied or none of it is.
- Limited query capabilities (we load everything and work in Python)
"""

from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.ledger import (
    Asset,
    FutureOperation,
    Goal,
    LedgerSnapshot,
    Transaction,
    UserSettings,
    parse_timestamp,
)
from src.observability import get_logger
from src.services.storage.interface import (
    ConnectionError,
    CorruptDataError,
    LedgerStorageInterface,
    PersistenceError,
)


logger = get_logger(__name__)


# Column mappings, one list per worksheet
SETTINGS_COLUMNS = [
    "name",
    "balance",
    "monthly_income",
    "monthly_expenses",
    "last_budget_check",
    "onboarded",
]

TRANSACTION_COLUMNS = [
    "id",
    "date",
    "type",
    "amount",
    "label",
    "related_goal_id",
    "related_asset_id",
    "related_op_id",
]

GOAL_COLUMNS = [
    "id",
    "name",
    "target_amount",
    "color",
    "icon_key",
    "status",
]

ASSET_COLUMNS = [
    "id",
    "name",
    "value",
    "category",
    "status",
]

FUTURE_OPERATION_COLUMNS = [
    "id",
    "label",
    "amount",
    "type",
    "date",
    "received",
]


def _cell(row: list, index: int) -> str:
    """Read a cell, treating short rows as blank."""
    try:
        return row[index] or ""
    except IndexError:
        return ""


def _optional(row: list, index: int) -> Optional[str]:
    return _cell(row, index) or None


def _is_blank(row: list) -> bool:
    return not any(str(value).strip() for value in row)


# =============================================================================
# Row conversions
# =============================================================================

def settings_to_row(settings: UserSettings, onboarded: bool) -> list:
    return [
        settings.name,
        str(settings.balance),
        str(settings.monthly_income),
        str(settings.monthly_expenses),
        settings.last_budget_check.isoformat() if settings.last_budget_check else "",
        str(onboarded),
    ]


def row_to_settings(row: list) -> tuple[UserSettings, bool]:
    settings = UserSettings(
        name=_cell(row, 0) or "Utilisateur",
        balance=Decimal(_cell(row, 1) or "0"),
        monthly_income=Decimal(_cell(row, 2) or "0"),
        monthly_expenses=Decimal(_cell(row, 3) or "0"),
        last_budget_check=parse_timestamp(_cell(row, 4)),
    )
    return settings, _cell(row, 5).lower() == "true"


def transaction_to_row(transaction: Transaction) -> list:
    return [
        transaction.id,
        transaction.date.isoformat(),
        transaction.type.value,
        str(transaction.amount),
        transaction.label,
        transaction.related_goal_id or "",
        transaction.related_asset_id or "",
        transaction.related_op_id or "",
    ]


def row_to_transaction(row: list) -> Transaction:
    return Transaction(
        id=_cell(row, 0),
        date=parse_timestamp(_cell(row, 1)),
        type=_cell(row, 2),
        amount=Decimal(_cell(row, 3)),
        label=_cell(row, 4),
        related_goal_id=_optional(row, 5),
        related_asset_id=_optional(row, 6),
        related_op_id=_optional(row, 7),
    )


def goal_to_row(goal: Goal) -> list:
    return [
        goal.id,
        goal.name,
        str(goal.target_amount),
        goal.color,
        goal.icon_key.value,
        goal.status.value,
    ]


def row_to_goal(row: list) -> Goal:
    return Goal(
        id=_cell(row, 0),
        name=_cell(row, 1),
        target_amount=Decimal(_cell(row, 2)),
        color=_cell(row, 3) or "bg-slate-900",
        icon_key=_cell(row, 4) or "Target",
        status=_cell(row, 5) or "active",
    )


def asset_to_row(asset: Asset) -> list:
    return [
        asset.id,
        asset.name,
        str(asset.value),
        asset.category.value,
        asset.status.value,
    ]


def row_to_asset(row: list) -> Asset:
    return Asset(
        id=_cell(row, 0),
        name=_cell(row, 1),
        value=Decimal(_cell(row, 2) or "0"),
        category=_cell(row, 3) or "Autre",
        status=_cell(row, 4) or "active",
    )


def future_operation_to_row(operation: FutureOperation) -> list:
    return [
        operation.id,
        operation.label,
        str(operation.amount),
        operation.type.value,
        operation.date.isoformat(),
        str(operation.received),
    ]


def row_to_future_operation(row: list) -> FutureOperation:
    return FutureOperation(
        id=_cell(row, 0),
        label=_cell(row, 1),
        amount=Decimal(_cell(row, 2)),
        type=_cell(row, 3) or "in",
        date=parse_timestamp(_cell(row, 4)),
        received=_cell(row, 5).lower() == "true",
    )


# =============================================================================
# Client
# =============================================================================

class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    Only connection setup is retried: it is idempotent, writes are not.
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

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with its header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


# =============================================================================
# Storage
# =============================================================================

class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """Google Sheets implementation of ledger storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _layout(self) -> list[tuple[str, list[str]]]:
        s = self._client.settings
        return [
            (s.settings_sheet_name, SETTINGS_COLUMNS),
            (s.transactions_sheet_name, TRANSACTION_COLUMNS),
            (s.goals_sheet_name, GOAL_COLUMNS),
            (s.assets_sheet_name, ASSET_COLUMNS),
            (s.future_operations_sheet_name, FUTURE_OPERATION_COLUMNS),
        ]

    def _data_rows(self, title: str, columns: list[str]) -> list[list]:
        """All non-blank rows below the header."""
        try:
            sheet = self._client.get_worksheet(title, columns)
            all_rows = sheet.get_all_values()[1:]
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read worksheet {title}: {e}")
        return [row for row in all_rows if not _is_blank(row)]

    def _read(self, title: str, columns: list[str], parse: Callable[[list], object]) -> list:
        parsed = []
        for number, row in enumerate(self._data_rows(title, columns), start=1):
            try:
                parsed.append(parse(row))
            except (ValueError, TypeError, InvalidOperation, PydanticValidationError) as e:
                raise CorruptDataError(f"Malformed entry {number} in {title}: {e}")
        return parsed

    async def _settings_row(self) -> Optional[tuple[UserSettings, bool]]:
        title = self._client.settings.settings_sheet_name
        rows = self._read(title, SETTINGS_COLUMNS, row_to_settings)
        return rows[0] if rows else None

    async def get_settings(self) -> Optional[UserSettings]:
        row = await self._settings_row()
        return row[0] if row else None

    async def is_onboarded(self) -> bool:
        row = await self._settings_row()
        return row[1] if row else False

    async def list_transactions(self) -> list[Transaction]:
        title = self._client.settings.transactions_sheet_name
        return self._read(title, TRANSACTION_COLUMNS, row_to_transaction)

    async def list_goals(self) -> list[Goal]:
        title = self._client.settings.goals_sheet_name
        return self._read(title, GOAL_COLUMNS, row_to_goal)

    async def list_assets(self) -> list[Asset]:
        title = self._client.settings.assets_sheet_name
        return self._read(title, ASSET_COLUMNS, row_to_asset)

    async def list_future_operations(self) -> list[FutureOperation]:
        title = self._client.settings.future_operations_sheet_name
        return self._read(title, FUTURE_OPERATION_COLUMNS, row_to_future_operation)

    def _build_batch(self, tables: list[tuple[str, list[str], list[list]]]) -> list[dict]:
        """
        Turn each table into one value range starting at A1.

        Rows left over from the previous commit are overwritten with blanks.
        """
        data = []
        for title, columns, rows in tables:
            sheet = self._client.get_worksheet(title, columns)
            previous_height = len(sheet.get_all_values())
            values = [columns] + rows
            blank = [""] * len(columns)
            values.extend([blank] * max(0, previous_height - len(values)))
            if sheet.row_count < len(values):
                sheet.add_rows(len(values) - sheet.row_count)
            data.append({"range": f"'{title}'!A1", "values": values})
        return data

    async def _write(self, tables: list[tuple[str, list[str], list[list]]]) -> None:
        try:
            data = self._build_batch(tables)
            self._client.get_spreadsheet().values_batch_update(
                {"valueInputOption": "RAW", "data": data}
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error("sheets_commit_failed", error=str(e))
            raise PersistenceError(f"Failed to write ledger to Google Sheets: {e}")

    async def commit(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        s = self._client.settings
        await self._write([
            (
                s.settings_sheet_name,
                SETTINGS_COLUMNS,
                [settings_to_row(snapshot.settings, snapshot.onboarded)],
            ),
            (
                s.transactions_sheet_name,
                TRANSACTION_COLUMNS,
                [transaction_to_row(t) for t in snapshot.transactions],
            ),
            (
                s.goals_sheet_name,
                GOAL_COLUMNS,
                [goal_to_row(g) for g in snapshot.goals],
            ),
            (
                s.assets_sheet_name,
                ASSET_COLUMNS,
                [asset_to_row(a) for a in snapshot.assets],
            ),
            (
                s.future_operations_sheet_name,
                FUTURE_OPERATION_COLUMNS,
                [future_operation_to_row(o) for o in snapshot.future_operations],
            ),
        ])
        return snapshot

    async def reset(self) -> None:
        await self._write([(title, columns, []) for title, columns in self._layout()])
