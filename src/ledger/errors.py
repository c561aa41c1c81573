"""
Ledger Exceptions

Every ledger error is raised BEFORE anything is committed,
so catching one means the stored state is exactly as it was.
Storage failures are a separate family (see services.storage).
"""

from typing import Optional

from src.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    The request was rejected before any mutation.

    Carries the individual issues so the UI can point at the faulty field.
    """

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationError":
        message = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        return cls(message or "Invalid request", issues)


class NotFoundError(LedgerError):
    """The targeted transaction or entity does not exist. Nothing was changed."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id
