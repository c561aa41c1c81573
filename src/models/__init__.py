"""
Data Models Package

This package contains all Pydantic models used in My Halal Flow.
All data flowing through the system must conform to these schemas.
"""

from src.models.ledger import (
    DEFAULT_GOAL_COLOR,
    GOAL_COLORS,
    Asset,
    AssetCategory,
    AssetInput,
    AssetStatus,
    BalancePoint,
    FutureOperation,
    FutureOperationInput,
    Goal,
    GoalIcon,
    GoalInput,
    GoalStatus,
    LedgerSnapshot,
    LinkKind,
    LinkTarget,
    PendingConfirmation,
    ProjectionPoint,
    Transaction,
    TransactionRequest,
    TransactionType,
    UserSettings,
    ValidationIssue,
    ValidationResult,
    new_id,
)

__all__ = [
    # Vocabularies
    "DEFAULT_GOAL_COLOR",
    "GOAL_COLORS",
    "AssetCategory",
    "AssetStatus",
    "GoalIcon",
    "GoalStatus",
    "LinkKind",
    "TransactionType",
    # Entities
    "Asset",
    "AssetInput",
    "FutureOperation",
    "FutureOperationInput",
    "Goal",
    "GoalInput",
    "LedgerSnapshot",
    "LinkTarget",
    "Transaction",
    "TransactionRequest",
    "UserSettings",
    # Workflow models
    "BalancePoint",
    "PendingConfirmation",
    "ProjectionPoint",
    "ValidationIssue",
    "ValidationResult",
    "new_id",
]
