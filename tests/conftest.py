"""Shared fixtures for the ledger tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from src.config import LedgerSettings
from src.models.ledger import (
    Asset,
    FutureOperation,
    Goal,
    LedgerSnapshot,
    TransactionType,
    UserSettings,
)
from src.orchestrator import LedgerEngine
from src.services.storage import InMemoryLedgerStorage


FIXED_NOW = datetime(2024, 3, 15, 10, 30)


class FixedClock:
    """A clock the test can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        projection_months=12,
        settlement_tolerance=0.01,
        strict_single_link=False,
    )


@pytest.fixture
def snapshot() -> LedgerSnapshot:
    """An onboarded ledger with one entity of each linkable kind."""
    return LedgerSnapshot(
        settings=UserSettings(
            name="Amina",
            balance=Decimal("1000"),
            monthly_income=Decimal("2000"),
            monthly_expenses=Decimal("1500"),
            last_budget_check=FIXED_NOW,
        ),
        goals=[Goal(id="g1", name="Voiture", target_amount=Decimal("3000"))],
        assets=[Asset(id="a1", name="Vélo", value=Decimal("400"))],
        future_operations=[
            FutureOperation(
                id="o1",
                label="Prime",
                amount=Decimal("250"),
                type=TransactionType.IN,
                date=datetime(2024, 5, 10),
            )
        ],
        onboarded=True,
    )


@pytest.fixture
def storage(snapshot) -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage(snapshot)


@pytest.fixture
def engine(storage, clock, ledger_settings) -> LedgerEngine:
    return LedgerEngine(storage, clock=clock, settings=ledger_settings)
