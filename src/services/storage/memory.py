"""
In-Memory Storage Implementation

Holds the committed snapshot in process memory. Used by tests and
by the "memory" backend for throwaway sessions.

Commit swaps a single reference, so readers see either the old
snapshot or the new one, never a mix.
"""

from typing import Optional

from src.models.ledger import (
    Asset,
    FutureOperation,
    Goal,
    LedgerSnapshot,
    Transaction,
    UserSettings,
)
from src.services.storage.interface import LedgerStorageInterface


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by a private snapshot copy."""

    def __init__(self, initial: Optional[LedgerSnapshot] = None):
        self._snapshot: Optional[LedgerSnapshot] = (
            initial.model_copy(deep=True) if initial is not None else None
        )

    async def get_settings(self) -> Optional[UserSettings]:
        if self._snapshot is None:
            return None
        return self._snapshot.settings.model_copy(deep=True)

    async def is_onboarded(self) -> bool:
        return self._snapshot is not None and self._snapshot.onboarded

    async def list_transactions(self) -> list[Transaction]:
        if self._snapshot is None:
            return []
        return [t.model_copy(deep=True) for t in self._snapshot.transactions]

    async def list_goals(self) -> list[Goal]:
        if self._snapshot is None:
            return []
        return [g.model_copy(deep=True) for g in self._snapshot.goals]

    async def list_assets(self) -> list[Asset]:
        if self._snapshot is None:
            return []
        return [a.model_copy(deep=True) for a in self._snapshot.assets]

    async def list_future_operations(self) -> list[FutureOperation]:
        if self._snapshot is None:
            return []
        return [o.model_copy(deep=True) for o in self._snapshot.future_operations]

    async def commit(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        self._snapshot = snapshot.model_copy(deep=True)
        return snapshot

    async def reset(self) -> None:
        self._snapshot = None
