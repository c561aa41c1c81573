"""Services package."""

from src.services.storage import (
    ConnectionError,
    CorruptDataError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    PersistenceError,
)

__all__ = [
    "ConnectionError",
    "CorruptDataError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "LedgerStorageInterface",
    "PersistenceError",
]
