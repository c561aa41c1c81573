"""
Monthly Settlement

Once a new calendar month starts, the user is asked to confirm their
real bank balance. A difference beyond the tolerance is booked as a
single adjustment transaction, so the balance invariant still holds.

This is a manual, user-confirmed correction. Nothing here runs on its own.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.models.ledger import TransactionRequest, TransactionType, UserSettings


DEFAULT_TOLERANCE = Decimal("0.01")
DEFAULT_ADJUSTMENT_LABEL = "Ajustement Solde Mensuel"


def is_settlement_due(settings: UserSettings, now: datetime) -> bool:
    """
    True when the last check happened in another calendar month.

    A user who never confirmed a balance is not asked.
    """
    last = settings.last_budget_check
    if last is None:
        return False
    return (last.year, last.month) != (now.year, now.month)


def plan_settlement(
    settings: UserSettings,
    reported_balance: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
    label: str = DEFAULT_ADJUSTMENT_LABEL,
) -> Optional[TransactionRequest]:
    """
    Work out the adjustment needed to match the reported balance.

    Returns:
        The adjustment to record, or None when the difference is
        within tolerance
    """
    diff = reported_balance - settings.balance
    if abs(diff) <= tolerance:
        return None

    return TransactionRequest(
        type=TransactionType.IN if diff > 0 else TransactionType.OUT,
        amount=abs(diff),
        label=label,
    )
