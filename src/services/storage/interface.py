"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run the same ledger engine on a JSON file, a spreadsheet or memory
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally coarse: the engine reads a whole
snapshot and commits a whole snapshot. Committing everything at once
is what makes "balance update + linked status update" atomic.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from src.models.ledger import (
    Asset,
    FutureOperation,
    Goal,
    LedgerSnapshot,
    Transaction,
    UserSettings,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (JSON file, Google Sheets, a database...)
    must implement these methods.
    """

    @abstractmethod
    async def get_settings(self) -> Optional[UserSettings]:
        """
        Read the settings row.

        Returns:
            The settings, or None if nothing was ever committed
        """
        pass

    @abstractmethod
    async def is_onboarded(self) -> bool:
        """Has the user completed onboarding?"""
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """Read all transactions, in creation order."""
        pass

    @abstractmethod
    async def list_goals(self) -> list[Goal]:
        """Read all goals."""
        pass

    @abstractmethod
    async def list_assets(self) -> list[Asset]:
        """Read all assets."""
        pass

    @abstractmethod
    async def list_future_operations(self) -> list[FutureOperation]:
        """Read all planned operations."""
        pass

    @abstractmethod
    async def commit(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        """
        Replace the stored state with ``snapshot``.

        Implementations MUST make this all-or-nothing: after a failure,
        subsequent reads see the previous state in full.

        Returns:
            The committed snapshot

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def reset(self) -> None:
        """Erase everything (factory reset)."""
        pass

    async def load(self) -> LedgerSnapshot:
        """
        Compose a full snapshot.

        The reads are independent, so they are issued concurrently.
        A store without settings yields default settings.
        """
        (
            settings,
            onboarded,
            transactions,
            goals,
            assets,
            future_operations,
        ) = await asyncio.gather(
            self.get_settings(),
            self.is_onboarded(),
            self.list_transactions(),
            self.list_goals(),
            self.list_assets(),
            self.list_future_operations(),
        )
        return LedgerSnapshot(
            settings=settings or UserSettings(),
            transactions=transactions,
            goals=goals,
            assets=assets,
            future_operations=future_operations,
            onboarded=onboarded,
        )


class PersistenceError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass


class CorruptDataError(PersistenceError):
    """Stored data could not be parsed back into ledger models."""
    pass
