"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
in-memory, JSON file (browser-compatible layout) and Google Sheets.
"""

from src.services.storage.interface import (
    ConnectionError,
    CorruptDataError,
    LedgerStorageInterface,
    PersistenceError,
)
from src.services.storage.memory import InMemoryLedgerStorage
from src.services.storage.json_file import JsonFileLedgerStorage
from src.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptDataError",
    "PersistenceError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
]
