"""Tests for the monthly settlement rules."""

from datetime import datetime
from decimal import Decimal

from src.ledger.settlement import (
    DEFAULT_ADJUSTMENT_LABEL,
    is_settlement_due,
    plan_settlement,
)
from src.models.ledger import TransactionType, UserSettings


NOW = datetime(2024, 3, 15, 10, 30)


class TestSettlementDue:
    """When to ask the user for their real balance."""

    def test_never_checked(self):
        assert not is_settlement_due(UserSettings(), NOW)

    def test_checked_this_month(self):
        settings = UserSettings(last_budget_check=datetime(2024, 3, 1))
        assert not is_settlement_due(settings, NOW)

    def test_checked_last_month(self):
        settings = UserSettings(last_budget_check=datetime(2024, 2, 29, 23, 59))
        assert is_settlement_due(settings, NOW)

    def test_same_month_last_year(self):
        settings = UserSettings(last_budget_check=datetime(2023, 3, 20))
        assert is_settlement_due(settings, NOW)


class TestPlanSettlement:
    """Adjustment needed to match the reported balance."""

    def test_exact_match(self):
        settings = UserSettings(balance=Decimal("1000"))
        assert plan_settlement(settings, Decimal("1000")) is None

    def test_within_tolerance(self):
        settings = UserSettings(balance=Decimal("1000"))
        assert plan_settlement(settings, Decimal("1000.01")) is None
        assert plan_settlement(settings, Decimal("999.99")) is None

    def test_surplus(self):
        settings = UserSettings(balance=Decimal("1000"))
        adjustment = plan_settlement(settings, Decimal("1050.00"))

        assert adjustment.type == TransactionType.IN
        assert adjustment.amount == Decimal("50.00")
        assert adjustment.label == DEFAULT_ADJUSTMENT_LABEL
        assert adjustment.links == []

    def test_shortfall(self):
        settings = UserSettings(balance=Decimal("1000"))
        adjustment = plan_settlement(settings, Decimal("979.50"))

        assert adjustment.type == TransactionType.OUT
        assert adjustment.amount == Decimal("20.50")

    def test_just_beyond_tolerance(self):
        settings = UserSettings(balance=Decimal("1000"))
        adjustment = plan_settlement(settings, Decimal("1000.02"))
        assert adjustment.amount == Decimal("0.02")

    def test_custom_tolerance_and_label(self):
        settings = UserSettings(balance=Decimal("1000"))
        assert plan_settlement(settings, Decimal("1004"), tolerance=Decimal("5")) is None
        adjustment = plan_settlement(settings, Decimal("990"), label="Correction")
        assert adjustment.label == "Correction"
