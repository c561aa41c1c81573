"""
Transaction Ledger Rules

Pure functions that apply a record or a delete to a snapshot in place.
The engine hands them a private working copy, so a failure halfway
never touches the committed state.

CRITICAL: delete is the exact inverse of record for the balance, and it
reverts ONE linked status, chosen by precedence goal > asset > future
operation. Dangling links (target deleted since) are no-ops.
"""

from datetime import datetime
from typing import Optional

from src.ledger.errors import NotFoundError
from src.models.ledger import (
    AssetStatus,
    GoalStatus,
    LedgerSnapshot,
    LinkKind,
    LinkTarget,
    Transaction,
    TransactionRequest,
)


def _mark_completed(snapshot: LedgerSnapshot, link: LinkTarget) -> bool:
    entity = snapshot.find_linked(link)
    if entity is None:
        return False
    if link.kind is LinkKind.GOAL:
        entity.status = GoalStatus.COMPLETED
    elif link.kind is LinkKind.ASSET:
        entity.status = AssetStatus.SOLD
    else:
        entity.received = True
    return True


def _revert_completed(snapshot: LedgerSnapshot, link: LinkTarget) -> bool:
    entity = snapshot.find_linked(link)
    if entity is None:
        return False
    if link.kind is LinkKind.GOAL:
        entity.status = GoalStatus.ACTIVE
    elif link.kind is LinkKind.ASSET:
        entity.status = AssetStatus.ACTIVE
    else:
        entity.received = False
    return True


def apply_record(
    snapshot: LedgerSnapshot,
    request: TransactionRequest,
    now: datetime,
) -> Transaction:
    """
    Append a transaction and apply its effects.

    Every link set on the request completes its entity.

    Returns:
        The recorded transaction
    """
    transaction = Transaction(
        **request.model_dump(exclude={"date"}),
        date=request.date or now,
    )

    snapshot.transactions.append(transaction)
    snapshot.settings.balance = snapshot.settings.balance + transaction.signed_amount

    for link in transaction.links:
        _mark_completed(snapshot, link)

    return transaction


def apply_delete(
    snapshot: LedgerSnapshot,
    transaction_id: str,
) -> tuple[Transaction, Optional[LinkTarget]]:
    """
    Remove a transaction and reverse its effects.

    Returns:
        The removed transaction and the link whose status was reverted
        (None when it had no link or the target no longer exists)

    Raises:
        NotFoundError: If no transaction has this id
    """
    transaction = snapshot.find_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction", transaction_id)

    snapshot.settings.balance = snapshot.settings.balance - transaction.signed_amount

    reverted = None
    link = transaction.link
    if link is not None and _revert_completed(snapshot, link):
        reverted = link

    snapshot.transactions = [t for t in snapshot.transactions if t.id != transaction_id]
    return transaction, reverted
