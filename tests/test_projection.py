"""Tests for the balance projection and derived figures."""

from datetime import datetime
from decimal import Decimal

from src.ledger.projection import (
    add_months,
    balance_history,
    net_worth,
    project_balance,
    total_active_assets,
)
from src.models.ledger import (
    Asset,
    AssetStatus,
    FutureOperation,
    LedgerSnapshot,
    Transaction,
    UserSettings,
)


NOW = datetime(2024, 3, 15, 10, 30)


def _ledger(**overrides) -> LedgerSnapshot:
    data = {
        "settings": UserSettings(
            balance=Decimal("1000"),
            monthly_income=Decimal("2000"),
            monthly_expenses=Decimal("1500"),
        ),
    }
    data.update(overrides)
    return LedgerSnapshot(**data)


class TestProjectionBoundary:
    """The reference scenario: 1000 balance, 500 saved each month."""

    def test_first_and_last_month(self):
        points = list(project_balance(_ledger(), NOW))

        assert len(points) == 12
        assert points[0].real_balance == Decimal("1500")
        assert points[0].potential_balance == Decimal("1500")
        assert points[11].real_balance == Decimal("7000")
        assert points[11].potential_balance == Decimal("7000")

    def test_months_start_after_now(self):
        points = list(project_balance(_ledger(), datetime(2024, 11, 30)))

        assert (points[0].year, points[0].month, points[0].label) == (2024, 12, "Déc")
        assert (points[1].year, points[1].month, points[1].label) == (2025, 1, "Jan")
        assert [p.index for p in points] == list(range(1, 13))

    def test_horizon_is_configurable(self):
        assert len(list(project_balance(_ledger(), NOW, months=3))) == 3

    def test_projection_is_restartable(self):
        ledger = _ledger()
        assert list(project_balance(ledger, NOW)) == list(project_balance(ledger, NOW))

    def test_negative_savings(self):
        ledger = _ledger(settings=UserSettings(balance=Decimal("100"), monthly_expenses=Decimal("40")))
        points = list(project_balance(ledger, NOW, months=3))
        assert [p.real_balance for p in points] == [Decimal("60"), Decimal("20"), Decimal("-20")]


class TestPotentialBalance:
    """Assets and planned operations only move the potential curve."""

    def test_planned_expense_three_months_ahead(self):
        planned = FutureOperation(label="Assurance", amount=Decimal("300"), type="out", date=datetime(2024, 6, 3))
        without = list(project_balance(_ledger(), NOW))
        with_op = list(project_balance(_ledger(future_operations=[planned]), NOW))

        assert with_op[2].potential_balance == without[2].potential_balance - Decimal("300")
        assert with_op[2].real_balance == without[2].real_balance
        assert with_op[1].potential_balance == without[1].potential_balance
        # Planned amounts carry over to the following months
        assert with_op[11].potential_balance == without[11].potential_balance - Decimal("300")

    def test_planned_income(self):
        planned = FutureOperation(label="Prime", amount=Decimal("250"), type="in", date=datetime(2024, 4, 28))
        points = list(project_balance(_ledger(future_operations=[planned]), NOW))
        assert points[0].potential_balance == Decimal("1750")
        assert points[0].real_balance == Decimal("1500")

    def test_received_operations_are_ignored(self):
        planned = FutureOperation(
            label="Prime", amount=Decimal("250"), date=datetime(2024, 4, 28), received=True
        )
        points = list(project_balance(_ledger(future_operations=[planned]), NOW))
        assert points[0].potential_balance == Decimal("1500")

    def test_current_month_operations_are_ignored(self):
        planned = FutureOperation(label="Prime", amount=Decimal("250"), date=datetime(2024, 3, 28))
        points = list(project_balance(_ledger(future_operations=[planned]), NOW))
        assert all(p.potential_balance == p.real_balance for p in points)

    def test_same_month_other_year_is_not_matched(self):
        planned = FutureOperation(label="Prime", amount=Decimal("250"), date=datetime(2026, 4, 1))
        points = list(project_balance(_ledger(future_operations=[planned]), NOW))
        assert all(p.potential_balance == p.real_balance for p in points)

    def test_only_active_assets_count(self):
        assets = [
            Asset(name="Voiture", value=Decimal("5000")),
            Asset(name="Console", value=Decimal("200"), status=AssetStatus.SOLD),
        ]
        points = list(project_balance(_ledger(assets=assets), NOW))
        assert points[0].potential_balance == Decimal("6500")
        assert points[0].real_balance == Decimal("1500")


class TestDerivedFigures:
    """Figures shown on the dashboard."""

    def test_add_months(self):
        assert add_months(2024, 12, 1) == (2025, 1)
        assert add_months(2024, 3, 12) == (2025, 3)
        assert add_months(2024, 1, 0) == (2024, 1)

    def test_assets_and_net_worth(self):
        ledger = _ledger(assets=[
            Asset(name="Voiture", value=Decimal("5000")),
            Asset(name="Console", value=Decimal("200"), status=AssetStatus.SOLD),
        ])
        assert total_active_assets(ledger) == Decimal("5000")
        assert net_worth(ledger) == Decimal("6000")

    def test_net_worth_without_assets(self):
        assert total_active_assets(_ledger()) == Decimal("0")
        assert net_worth(_ledger()) == Decimal("1000")


class TestBalanceHistory:
    """The curve rebuilt by undoing transactions."""

    def test_history_points(self):
        ledger = _ledger(
            settings=UserSettings(balance=Decimal("120")),
            transactions=[
                Transaction(type="out", amount=30, label="Courses", date=datetime(2024, 1, 2)),
                Transaction(type="in", amount=50, label="Vente", date=datetime(2024, 1, 1)),
            ],
        )

        points = balance_history(ledger)

        assert [p.date for p in points] == [datetime(2024, 1, 1), datetime(2024, 1, 2), None]
        assert [p.balance for p in points] == [Decimal("100"), Decimal("150"), Decimal("120")]

    def test_history_without_transactions(self):
        points = balance_history(_ledger())
        assert len(points) == 1
        assert points[0].to_presentation() == {"date": "now", "val": 1000.0}
