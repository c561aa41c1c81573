"""Tests for the two-stage validator."""

import pytest
from decimal import Decimal

from src.ledger.errors import ValidationError
from src.models.ledger import GoalInput, TransactionRequest
from src.validation import LedgerValidator


class TestSchemaStage:
    """Stage 1: parsing raw requests."""

    def test_parse_builds_model(self):
        request = LedgerValidator().parse(
            TransactionRequest, {"type": "in", "amount": "42", "label": "Salaire"}
        )
        assert isinstance(request, TransactionRequest)
        assert request.amount == Decimal("42")

    def test_parse_passes_instances_through(self):
        request = TransactionRequest(type="in", amount=1, label="A")
        assert LedgerValidator().parse(TransactionRequest, request) is request

    def test_parse_reports_each_field(self):
        with pytest.raises(ValidationError) as exc_info:
            LedgerValidator().parse(TransactionRequest, {"type": "in", "amount": -3, "label": ""})
        fields = {issue.field for issue in exc_info.value.issues}
        assert fields == {"amount", "label"}

    def test_parse_reports_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            LedgerValidator().parse(GoalInput, {"name": "Voyage"})
        issue = exc_info.value.issues[0]
        assert issue.field == "target_amount"
        assert issue.issue_type == "missing"

    def test_parse_amount_accepts_numbers(self):
        validator = LedgerValidator()
        assert validator.parse_amount("12.5") == Decimal("12.5")
        assert validator.parse_amount(-3) == Decimal("-3")
        assert validator.parse_amount(Decimal("7")) == Decimal("7")

    @pytest.mark.parametrize("value", ["abc", float("nan"), float("inf"), None, True])
    def test_parse_amount_rejects_non_finite(self, value):
        with pytest.raises(ValidationError) as exc_info:
            LedgerValidator().parse_amount(value, field="reported_balance")
        assert exc_info.value.issues[0].field == "reported_balance"


class TestSemanticStage:
    """Stage 2: checks against the current ledger."""

    def test_existing_link_is_valid(self, snapshot):
        request = TransactionRequest(type="out", amount=1, label="A", related_goal_id="g1")
        result = LedgerValidator().validate_transaction(request, snapshot)
        assert result.is_valid
        assert result.issues == []

    def test_unknown_link_is_rejected(self, snapshot):
        request = TransactionRequest(type="in", amount=1, label="A", related_asset_id="nope")
        result = LedgerValidator().validate_transaction(request, snapshot)
        assert not result.is_valid
        assert result.errors[0].field == "related_asset_id"
        assert result.errors[0].issue_type == "unknown_link"

    def test_multiple_links_warn_by_default(self, snapshot):
        request = TransactionRequest(
            type="out", amount=1, label="A", related_goal_id="g1", related_asset_id="a1"
        )
        result = LedgerValidator().validate_transaction(request, snapshot)
        assert result.is_valid
        assert result.warnings[0].issue_type == "multiple_links"

    def test_multiple_links_rejected_in_strict_mode(self, snapshot):
        request = TransactionRequest(
            type="out", amount=1, label="A", related_goal_id="g1", related_op_id="o1"
        )
        with pytest.raises(ValidationError) as exc_info:
            LedgerValidator(strict_single_link=True).check_transaction(request, snapshot)
        assert exc_info.value.issues[0].issue_type == "multiple_links"


class TestUserFriendlySummary:
    """The text shown next to a rejected form."""

    def test_summary_lists_fields(self):
        error = ValidationError.from_issues([])
        assert "Invalid request" in LedgerValidator().get_user_friendly_summary(error)

        with pytest.raises(ValidationError) as exc_info:
            LedgerValidator().parse(TransactionRequest, {"type": "in", "amount": 0, "label": "A"})
        summary = LedgerValidator().get_user_friendly_summary(exc_info.value)
        assert "amount" in summary
