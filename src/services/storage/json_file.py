"""
JSON File Storage Implementation

DESIGN DECISION: The file keeps the layout of the browser version's
"halalFlow_db_v4" local-storage blob, so an export from the browser
can be dropped in as-is:

    {
      "user": {"name": ...},
      "finance": {"balance", "income", "expenses", "lastBudgetCheck"},
      "transactions": [...],
      "goals": [{"id", "name", "target", "color", "iconKey", "status"}],
      "assets": [...],
      "futureOperations": [...]
    }

Older blobs stored planned incomes under "futureIncomes" (no type);
they are read as incoming operations.

Files written here carry an "onboarded" key and list transactions in
creation order. Browser exports have no such key: they were only ever
saved after onboarding and list transactions newest first.

Money is written as JSON numbers (floats), as the browser version
stores it, so files stay interchangeable in both directions. Amounts
with more significant digits than a float holds are rounded on write;
amounts entered as euros and cents round-trip exactly.

Commit writes a temporary file next to the target and renames it over
the target, so a crash mid-write leaves the previous file intact.
"""

import json
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.models.ledger import (
    Asset,
    FutureOperation,
    Goal,
    LedgerSnapshot,
    Transaction,
    TransactionType,
    UserSettings,
    money,
    parse_timestamp,
)
from src.services.storage.interface import (
    CorruptDataError,
    LedgerStorageInterface,
    PersistenceError,
)


def _decimal(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    return Decimal(str(value))


class JsonFileLedgerStorage(LedgerStorageInterface):
    """Ledger storage in a single JSON document on disk."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------------
    # Document <-> models
    # -------------------------------------------------------------------------

    def _read_document(self) -> Optional[dict]:
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"Ledger file is not valid UTF-8 JSON: {e}")
        except OSError as e:
            raise PersistenceError(f"Failed to read ledger file: {e}")
        if not isinstance(document, dict):
            raise CorruptDataError("Ledger file must contain a JSON object")
        return document

    def _parse(self, document: dict) -> LedgerSnapshot:
        try:
            finance = document.get("finance") or {}
            user = document.get("user") or {}
            settings = UserSettings(
                name=user.get("name") or "Utilisateur",
                balance=_decimal(finance.get("balance")),
                monthly_income=_decimal(finance.get("income")),
                monthly_expenses=_decimal(finance.get("expenses")),
                last_budget_check=parse_timestamp(finance.get("lastBudgetCheck")),
            )

            transactions = [
                Transaction(
                    id=raw["id"],
                    type=TransactionType(raw["type"]),
                    amount=_decimal(raw["amount"]),
                    label=raw["label"],
                    date=parse_timestamp(raw["date"]),
                    related_goal_id=raw.get("relatedGoalId"),
                    related_asset_id=raw.get("relatedAssetId"),
                    related_op_id=raw.get("relatedOpId"),
                )
                for raw in document.get("transactions") or []
            ]

            goals = [
                Goal(
                    id=raw["id"],
                    name=raw["name"],
                    target_amount=_decimal(raw.get("target", raw.get("targetAmount"))),
                    color=raw.get("color") or "bg-slate-900",
                    icon_key=raw.get("iconKey") or "Target",
                    status=raw.get("status") or "active",
                )
                for raw in document.get("goals") or []
            ]

            assets = [
                Asset(
                    id=raw["id"],
                    name=raw["name"],
                    value=_decimal(raw.get("value")),
                    category=raw.get("category") or "Autre",
                    status=raw.get("status") or "active",
                )
                for raw in document.get("assets") or []
            ]

            if "futureOperations" in document:
                raw_operations = document.get("futureOperations") or []
            else:
                # v3 blobs only knew planned incomes
                raw_operations = [
                    {**raw, "type": "in"} for raw in document.get("futureIncomes") or []
                ]
            future_operations = [
                FutureOperation(
                    id=raw["id"],
                    label=raw["label"],
                    amount=_decimal(raw["amount"]),
                    type=TransactionType(raw.get("type") or "in"),
                    date=parse_timestamp(raw["date"]),
                    received=bool(raw.get("received", False)),
                )
                for raw in raw_operations
            ]
        except (KeyError, TypeError, ValueError, ArithmeticError, PydanticValidationError) as e:
            raise CorruptDataError(f"Ledger file has malformed entries: {e}")

        if "onboarded" in document:
            onboarded = bool(document["onboarded"])
        else:
            onboarded = True
            transactions.sort(key=lambda t: t.date)

        return LedgerSnapshot(
            settings=settings,
            transactions=transactions,
            goals=goals,
            assets=assets,
            future_operations=future_operations,
            onboarded=onboarded,
        )

    def _serialize(self, snapshot: LedgerSnapshot) -> dict:
        settings = snapshot.settings
        return {
            "onboarded": snapshot.onboarded,
            "user": {"name": settings.name},
            "finance": {
                "balance": money(settings.balance),
                "income": money(settings.monthly_income),
                "expenses": money(settings.monthly_expenses),
                "lastBudgetCheck": (
                    settings.last_budget_check.isoformat()
                    if settings.last_budget_check
                    else None
                ),
            },
            "transactions": [
                {
                    "id": t.id,
                    "date": t.date.isoformat(),
                    "type": t.type.value,
                    "amount": money(t.amount),
                    "label": t.label,
                    "relatedGoalId": t.related_goal_id,
                    "relatedAssetId": t.related_asset_id,
                    "relatedOpId": t.related_op_id,
                }
                for t in snapshot.transactions
            ],
            "goals": [
                {
                    "id": g.id,
                    "name": g.name,
                    "target": money(g.target_amount),
                    "color": g.color,
                    "iconKey": g.icon_key.value,
                    "status": g.status.value,
                }
                for g in snapshot.goals
            ],
            "assets": [
                {
                    "id": a.id,
                    "name": a.name,
                    "value": money(a.value),
                    "category": a.category.value,
                    "status": a.status.value,
                }
                for a in snapshot.assets
            ],
            "futureOperations": [
                {
                    "id": o.id,
                    "label": o.label,
                    "amount": money(o.amount),
                    "type": o.type.value,
                    "date": o.date.isoformat(),
                    "received": o.received,
                }
                for o in snapshot.future_operations
            ],
        }

    # -------------------------------------------------------------------------
    # Interface
    # -------------------------------------------------------------------------

    async def load(self) -> LedgerSnapshot:
        """Parse the file once so every collection comes from the same version."""
        document = self._read_document()
        if document is None:
            return LedgerSnapshot()
        return self._parse(document)

    async def get_settings(self) -> Optional[UserSettings]:
        document = self._read_document()
        if document is None:
            return None
        return self._parse(document).settings

    async def is_onboarded(self) -> bool:
        return (await self.load()).onboarded

    async def list_transactions(self) -> list[Transaction]:
        return (await self.load()).transactions

    async def list_goals(self) -> list[Goal]:
        return (await self.load()).goals

    async def list_assets(self) -> list[Asset]:
        return (await self.load()).assets

    async def list_future_operations(self) -> list[FutureOperation]:
        return (await self.load()).future_operations

    async def commit(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        document = self._serialize(snapshot)
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(document, handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write ledger file: {e}")
        return snapshot

    async def reset(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to delete ledger file: {e}")
