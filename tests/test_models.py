"""
Tests for My Halal Flow

Test strategy:
1. Unit tests for individual components (models, validators, ledger rules)
2. Integration tests for the engine (with in-memory storage)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from src.models.ledger import (
    Asset,
    AssetCategory,
    AssetStatus,
    BalancePoint,
    FutureOperation,
    Goal,
    GoalIcon,
    GoalStatus,
    LedgerSnapshot,
    LinkKind,
    ProjectionPoint,
    Transaction,
    TransactionRequest,
    TransactionType,
    UserSettings,
    ValidationIssue,
    ValidationResult,
    local_naive,
    parse_timestamp,
)


class TestTransactionModels:
    """Tests for transaction Pydantic models."""

    def test_transaction_type_signs_amount(self):
        """Incoming money is positive, outgoing money negative."""
        assert TransactionType.IN.signed(Decimal("10")) == Decimal("10")
        assert TransactionType.OUT.signed(Decimal("10")) == Decimal("-10")

    def test_request_creation(self):
        """Test TransactionRequest model creation."""
        request = TransactionRequest(type="out", amount="12.50", label="Courses")
        assert request.type == TransactionType.OUT
        assert request.amount == Decimal("12.50")
        assert request.date is None
        assert request.links == []

    def test_request_strips_whitespace(self):
        """Test that whitespace is stripped from labels."""
        request = TransactionRequest(type="in", amount=1, label="  Salaire  ")
        assert request.label == "Salaire"

    @pytest.mark.parametrize("amount", ["0", "-5", "NaN", "Infinity"])
    def test_request_rejects_bad_amount(self, amount):
        """Amounts must be positive finite numbers."""
        with pytest.raises(ValueError):
            TransactionRequest(type="in", amount=amount, label="Test")

    def test_request_rejects_blank_label(self):
        """A label of only spaces is empty."""
        with pytest.raises(ValueError):
            TransactionRequest(type="in", amount=1, label="   ")

    def test_request_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            TransactionRequest(type="sideways", amount=1, label="Test")

    def test_links_follow_precedence(self):
        """Links are listed goal first, then asset, then operation."""
        request = TransactionRequest(
            type="out",
            amount=1,
            label="Test",
            related_op_id="o1",
            related_asset_id="a1",
            related_goal_id="g1",
        )
        assert [link.kind for link in request.links] == [
            LinkKind.GOAL,
            LinkKind.ASSET,
            LinkKind.FUTURE_OPERATION,
        ]

    def test_numeric_link_ids_become_strings(self):
        """Browser data used timestamps as ids."""
        request = TransactionRequest(type="out", amount=1, label="Test", related_goal_id=1700000000000)
        assert request.related_goal_id == "1700000000000"

    def test_transaction_effective_link(self):
        """The effective link is the first one in precedence order."""
        tx = Transaction(
            type="in",
            amount=5,
            label="Vente",
            date=datetime(2024, 1, 1),
            related_asset_id="a1",
            related_op_id="o1",
        )
        assert tx.link.kind == LinkKind.ASSET
        assert tx.link.target_id == "a1"
        assert tx.signed_amount == Decimal("5")

    def test_transaction_without_link(self):
        tx = Transaction(type="out", amount=5, label="Café", date=datetime(2024, 1, 1))
        assert tx.link is None
        assert tx.signed_amount == Decimal("-5")

    def test_transaction_gets_an_id(self):
        a = Transaction(type="out", amount=5, label="A", date=datetime(2024, 1, 1))
        b = Transaction(type="out", amount=5, label="B", date=datetime(2024, 1, 1))
        assert a.id and b.id and a.id != b.id

    def test_transaction_requires_date(self):
        with pytest.raises(ValueError):
            Transaction(type="out", amount=5, label="A")

    def test_offset_dates_become_naive_local_time(self):
        """Dates with an offset are converted so they sort with naive ones."""
        aware = datetime(2024, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        expected = aware.astimezone().replace(tzinfo=None)

        request = TransactionRequest(type="in", amount=5, label="A", date="2024-03-01T10:00:00+02:00")
        tx = Transaction(type="in", amount=5, label="A", date=aware)

        assert request.date == expected
        assert tx.date == expected
        assert tx.date.tzinfo is None
        assert tx.date < datetime(2024, 3, 3)

    def test_naive_dates_are_kept(self):
        naive = datetime(2024, 3, 1, 10, 0)
        assert local_naive(naive) is naive
        assert local_naive(None) is None
        assert TransactionRequest(type="in", amount=5, label="A").date is None


class TestEntityModels:
    """Tests for goals, assets and settings."""

    def test_goal_defaults(self):
        goal = Goal(name="Voyage", target_amount=1500)
        assert goal.status == GoalStatus.ACTIVE
        assert goal.icon_key == GoalIcon.TARGET
        assert goal.color == "bg-slate-900"

    def test_goal_rejects_zero_target(self):
        with pytest.raises(ValueError):
            Goal(name="Rien", target_amount=0)

    def test_goal_numeric_id(self):
        goal = Goal(id=1, name="Épargne", target_amount=3000)
        assert goal.id == "1"

    def test_asset_defaults(self):
        asset = Asset(name="Téléphone", value=0)
        assert asset.status == AssetStatus.ACTIVE
        assert asset.category == AssetCategory.OTHER

    def test_asset_rejects_negative_value(self):
        with pytest.raises(ValueError):
            Asset(name="Dette", value=-1)

    def test_settings_defaults(self):
        settings = UserSettings()
        assert settings.name == "Utilisateur"
        assert settings.balance == Decimal("0")
        assert settings.last_budget_check is None

    def test_settings_balance_may_be_negative(self):
        settings = UserSettings(balance=Decimal("-250"))
        assert settings.balance == Decimal("-250")

    def test_settings_rejects_negative_income(self):
        with pytest.raises(ValueError):
            UserSettings(monthly_income=-1)

    def test_settings_validates_assignment(self):
        settings = UserSettings()
        with pytest.raises(ValueError):
            settings.monthly_expenses = Decimal("-3")

    def test_monthly_savings(self):
        settings = UserSettings(monthly_income=2000, monthly_expenses=1500)
        assert settings.monthly_savings == Decimal("500")

    def test_offset_dates_on_settings_and_planned_operations(self):
        aware = datetime(2024, 5, 10, 8, 0, tzinfo=timezone.utc)
        expected = aware.astimezone().replace(tzinfo=None)

        settings = UserSettings(last_budget_check=aware)
        operation = FutureOperation(label="Prime", amount=250, date=aware)

        assert settings.last_budget_check == expected
        assert operation.date == expected
        assert operation.date.tzinfo is None

    def test_parse_timestamp(self):
        utc = datetime(2024, 2, 3, 9, 0, tzinfo=timezone.utc)
        assert parse_timestamp("2024-02-03T09:00:00Z") == utc.astimezone().replace(tzinfo=None)
        assert parse_timestamp("2024-02-03T09:00:00") == datetime(2024, 2, 3, 9, 0)
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None


class TestPresentation:
    """Tests for the shape handed to the presentation layer."""

    def test_snapshot_presentation(self):
        older = Transaction(id="t1", type="in", amount="100.5", label="A", date=datetime(2024, 1, 1))
        newer = Transaction(id="t2", type="out", amount="20", label="B", date=datetime(2024, 2, 1))
        snapshot = LedgerSnapshot(
            settings=UserSettings(name="Amina", balance=Decimal("80.5")),
            transactions=[older, newer],
            goals=[Goal(id="g1", name="Voiture", target_amount=3000)],
            onboarded=True,
        )

        data = snapshot.to_presentation()

        assert data["onboarded"] is True
        assert data["settings"]["balance"] == 80.5
        assert isinstance(data["settings"]["monthlyIncome"], float)
        assert [t["id"] for t in data["transactions"]] == ["t2", "t1"]
        assert data["transactions"][1]["amount"] == 100.5
        assert data["transactions"][1]["date"] == "2024-01-01T00:00:00"
        assert data["goals"][0]["targetAmount"] == 3000.0
        assert data["goals"][0]["iconKey"] == "Target"
        assert data["futureOperations"] == []

    def test_projection_point_presentation(self):
        point = ProjectionPoint(
            index=1,
            year=2024,
            month=4,
            label="Avr",
            real_balance=Decimal("1500"),
            potential_balance=Decimal("1900"),
        )
        assert point.to_presentation() == {
            "name": "Avr",
            "year": 2024,
            "month": 4,
            "realBalance": 1500.0,
            "potentialBalance": 1900.0,
        }

    def test_balance_point_presentation(self):
        assert BalancePoint(balance=Decimal("12")).to_presentation() == {"date": "now", "val": 12.0}


class TestValidationModels:
    """Tests for validation-related models."""

    def test_validation_issue_creation(self):
        issue = ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Amount must be greater than zero",
        )
        assert issue.severity == "error"

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_validation_result_splits_issues(self):
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(field="links", issue_type="multiple_links", message="m", severity="warning"),
            ],
        )
        assert result.is_valid
        assert result.errors == []
        assert len(result.warnings) == 1

    def test_validation_result_invalid(self):
        result = ValidationResult(schema_valid=True, semantic_valid=False)
        assert not result.is_valid
