"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Positive, finite amounts and non-empty labels
- This catches malformed requests from the UI

STAGE 2 - SEMANTIC VALIDATION:
- Checks against the current ledger
- Linked goal/asset/operation must exist
- A transaction linked to several entities (warning, or error in strict mode)

WHY TWO STAGES:
1. Separation of concerns (structural vs logical)
2. Better error messages (know exactly what kind of issue)
3. Stage 2 needs the snapshot, stage 1 does not

IMPORTANT: Validation NEVER silently fixes issues, and it always
runs before the ledger is touched.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.ledger.errors import ValidationError
from src.models.ledger import (
    LedgerSnapshot,
    LinkKind,
    TransactionRequest,
    ValidationIssue,
    ValidationResult,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

_LINK_FIELDS = {
    LinkKind.GOAL: "related_goal_id",
    LinkKind.ASSET: "related_asset_id",
    LinkKind.FUTURE_OPERATION: "related_op_id",
}


def issues_from_pydantic(error: PydanticValidationError) -> list[ValidationIssue]:
    """Translate pydantic's error list into our issue model."""
    issues = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "request"
        issue_type = "missing" if detail.get("type") == "missing" else "invalid_value"
        issues.append(ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=detail.get("msg", "Invalid value"),
        ))
    return issues


class LedgerValidator:
    """
    Validates requests through a two-stage pipeline.

    Stage 1: Schema validation (no ledger needed)
    Stage 2: Semantic validation (against a snapshot)
    """

    def __init__(self, strict_single_link: bool = False):
        """
        Initialize validator.

        Args:
            strict_single_link: Reject transactions that link to more than
                one entity instead of only warning about them.
        """
        self._strict_single_link = strict_single_link

    def parse(self, model: type[ModelT], data: Any) -> ModelT:
        """
        Stage 1: Schema validation.

        Accepts a model instance or raw data (dict from a form).

        Raises:
            ValidationError: With one issue per invalid field
        """
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_issues(issues_from_pydantic(e))

    def parse_amount(self, value: Any, field: str = "amount") -> Decimal:
        """
        Stage 1 for a bare number (reported balance, final amount).

        Any finite number is accepted here; sign rules belong to the caller.
        """
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            amount = None
        if amount is None or isinstance(value, bool) or not amount.is_finite():
            raise ValidationError.from_issues([ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{value!r} is not a finite number",
            )])
        return amount

    def _validate_links(
        self,
        request: TransactionRequest,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        issues = []
        links = request.links

        for link in links:
            if snapshot.find_linked(link) is None:
                issues.append(ValidationIssue(
                    field=_LINK_FIELDS[link.kind],
                    issue_type="unknown_link",
                    message=f"No {link.kind.value.replace('_', ' ')} with id {link.target_id}",
                ))

        if len(links) > 1:
            issues.append(ValidationIssue(
                field="links",
                issue_type="multiple_links",
                message=(
                    "Transaction is linked to several entities; only the "
                    f"{links[0].kind.value.replace('_', ' ')} will be restored on deletion"
                ),
                severity="error" if self._strict_single_link else "warning",
            ))

        return issues

    def validate_transaction(
        self,
        request: TransactionRequest,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """
        Stage 2: Semantic validation of a parsed transaction request.

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_links(request, snapshot)
        semantic_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            schema_valid=True,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def check_transaction(
        self,
        request: TransactionRequest,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """Run stage 2 and raise if it found errors."""
        result = self.validate_transaction(request, snapshot)
        if not result.is_valid:
            raise ValidationError.from_issues(result.errors)
        return result

    def get_user_friendly_summary(self, error: ValidationError) -> str:
        """
        Generate a user-friendly summary of a rejected request.

        This is what the dashboard shows next to the form.
        """
        if not error.issues:
            return f"❌ {error}"
        lines = ["❌ Please fix the following:"]
        for issue in error.issues:
            lines.append(f"   • {issue.field}: {issue.message}")
        return "\n".join(lines)

