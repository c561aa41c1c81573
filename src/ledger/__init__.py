"""
Ledger rules package.

Pure functions over a LedgerSnapshot; the engine that persists
their results lives in src.orchestrator.
"""

from src.ledger.errors import LedgerError, NotFoundError, ValidationError
from src.ledger.projection import (
    balance_history,
    net_worth,
    project_balance,
    total_active_assets,
)
from src.ledger.settlement import is_settlement_due, plan_settlement
from src.ledger.transactions import apply_delete, apply_record

__all__ = [
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    "apply_delete",
    "apply_record",
    "balance_history",
    "is_settlement_due",
    "net_worth",
    "plan_settlement",
    "project_balance",
    "total_active_assets",
]
