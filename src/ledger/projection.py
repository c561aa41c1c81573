"""
Balance Projection and Derived Figures

DESIGN DECISION: Everything here is a pure function of a snapshot and
a reference date. Nothing is cached between calls; the projection is a
generator that recomputes from scratch each time it is iterated.

Two curves are projected:
- real: current balance plus monthly savings, nothing else
- potential: also counts active assets and planned operations
  not received yet, matched by calendar month
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterator

from src.models.ledger import (
    AssetStatus,
    BalancePoint,
    LedgerSnapshot,
    ProjectionPoint,
)


MONTH_LABELS = (
    "Jan", "Fév", "Mar", "Avr", "Mai", "Juin",
    "Juil", "Août", "Sep", "Oct", "Nov", "Déc",
)


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return the (year, month) ``offset`` months after the given one."""
    index = month - 1 + offset
    return year + index // 12, index % 12 + 1


def total_active_assets(snapshot: LedgerSnapshot) -> Decimal:
    """Sum of the values of assets not sold yet."""
    return sum(
        (asset.value for asset in snapshot.assets if asset.status == AssetStatus.ACTIVE),
        Decimal("0"),
    )


def net_worth(snapshot: LedgerSnapshot) -> Decimal:
    """Cash balance plus active assets."""
    return snapshot.settings.balance + total_active_assets(snapshot)


def _planned_by_month(snapshot: LedgerSnapshot) -> dict[tuple[int, int], Decimal]:
    planned: dict[tuple[int, int], Decimal] = {}
    for op in snapshot.future_operations:
        if op.received:
            continue
        key = (op.date.year, op.date.month)
        planned[key] = planned.get(key, Decimal("0")) + op.type.signed(op.amount)
    return planned


def project_balance(
    snapshot: LedgerSnapshot,
    now: datetime,
    months: int = 12,
) -> Iterator[ProjectionPoint]:
    """
    Project real and potential balances month by month.

    The first point is the month after ``now``. Planned operations
    dated in the current month or earlier are never counted.

    Args:
        snapshot: Ledger state to project from
        now: Reference date
        months: Number of points to produce

    Yields:
        One ProjectionPoint per upcoming month
    """
    settings = snapshot.settings
    savings = settings.monthly_savings
    planned = _planned_by_month(snapshot)

    real = settings.balance
    potential = settings.balance + total_active_assets(snapshot)

    for index in range(1, months + 1):
        year, month = add_months(now.year, now.month, index)
        real += savings
        potential += savings + planned.get((year, month), Decimal("0"))

        yield ProjectionPoint(
            index=index,
            year=year,
            month=month,
            label=MONTH_LABELS[month - 1],
            real_balance=real,
            potential_balance=potential,
        )


def balance_history(snapshot: LedgerSnapshot) -> list[BalancePoint]:
    """
    Rebuild the balance curve from the ledger.

    Starting from the current balance, transactions are undone newest
    first. The result is in chronological order and ends with the
    current balance.
    """
    balance = snapshot.settings.balance
    points = [BalancePoint(date=None, balance=balance)]

    for transaction in sorted(snapshot.transactions, key=lambda t: t.date, reverse=True):
        balance -= transaction.signed_amount
        points.append(BalancePoint(date=transaction.date, balance=balance))

    points.reverse()
    return points
