"""
Core Data Models for My Halal Flow

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and for the presentation layer
4. Keep money as Decimal internally and as plain numbers at the edges

DESIGN DECISION: Identifiers are strings. New entities get UUIDs, but
data created by the browser version used numeric timestamps as ids,
so those are accepted and kept as their string form.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def new_id() -> str:
    """Generate a fresh entity identifier."""
    return str(uuid4())


def _coerce_id(v: Any) -> Any:
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v))
    return v


def _require_finite(v: Decimal) -> Decimal:
    if not v.is_finite():
        raise ValueError("Amount must be a finite number")
    return v


def local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Express a datetime as naive local time.

    The ledger compares and sorts dates, so offset-aware values
    (e.g. browser timestamps ending in "Z") are converted once here.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO-8601 timestamp into naive local time."""
    if not value:
        return None
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on
    return local_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))


def money(value: Decimal) -> float:
    """Convert a Decimal amount to the plain number the UI expects."""
    return float(value)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a cash movement."""
    IN = "in"
    OUT = "out"

    def signed(self, amount: Decimal) -> Decimal:
        """Return the balance effect of ``amount`` moving in this direction."""
        return amount if self is TransactionType.IN else -amount


class GoalStatus(str, Enum):
    """
    Goal lifecycle.

    CRITICAL: Only a linked transaction completes a goal.
    Editing a goal never changes its status.
    """
    ACTIVE = "active"
    COMPLETED = "completed"


class AssetStatus(str, Enum):
    """Asset lifecycle. Only a linked sale marks an asset as sold."""
    ACTIVE = "active"
    SOLD = "sold"


class GoalIcon(str, Enum):
    """Icons a goal can be displayed with."""
    WALLET = "Wallet"
    HEART = "Heart"
    CAR = "Car"
    HOME = "Home"
    TARGET = "Target"
    BRIEFCASE = "Briefcase"
    PLANE = "Plane"
    SMARTPHONE = "Smartphone"
    PACKAGE = "Package"


class AssetCategory(str, Enum):
    """
    Asset categories offered by the asset form.

    Receivables ("Créance") are money owed to the user.
    """
    OTHER = "Autre"
    VEHICLE = "Véhicule"
    HIGH_TECH = "High-Tech"
    RECEIVABLE = "Créance"


class LinkKind(str, Enum):
    """
    Kinds of entity a transaction can complete.

    Declaration order is the rollback precedence on deletion.
    """
    GOAL = "goal"
    ASSET = "asset"
    FUTURE_OPERATION = "future_operation"


GOAL_COLORS = (
    "bg-emerald-500",
    "bg-blue-600",
    "bg-purple-500",
    "bg-amber-500",
    "bg-pink-500",
    "bg-slate-900",
)

DEFAULT_GOAL_COLOR = "bg-slate-900"


class LinkTarget(BaseModel):
    """A single entity referenced by a transaction."""
    model_config = ConfigDict(frozen=True)

    kind: LinkKind
    target_id: str


# =============================================================================
# SETTINGS
# =============================================================================

class UserSettings(BaseModel):
    """
    The singleton settings row.

    ``balance`` is the modeled cash balance: the opening balance plus
    every transaction still in the ledger.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(
        default="Utilisateur",
        min_length=1,
        max_length=100,
        description="Display name of the user"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current modeled balance (may be negative)"
    )
    monthly_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Recurring monthly income"
    )
    monthly_expenses: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Recurring monthly fixed expenses"
    )
    last_budget_check: Optional[datetime] = Field(
        default=None,
        description="When the balance was last confirmed against the bank"
    )

    @field_validator("balance", "monthly_income", "monthly_expenses")
    @classmethod
    def amounts_must_be_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)

    @field_validator("last_budget_check")
    @classmethod
    def check_in_local_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return local_naive(v)

    @property
    def monthly_savings(self) -> Decimal:
        return self.monthly_income - self.monthly_expenses

    def to_presentation(self) -> dict:
        return {
            "name": self.name,
            "balance": money(self.balance),
            "monthlyIncome": money(self.monthly_income),
            "monthlyExpenses": money(self.monthly_expenses),
            "lastBudgetCheck": (
                self.last_budget_check.isoformat() if self.last_budget_check else None
            ),
        }


# =============================================================================
# LEDGER ENTRIES
# =============================================================================

class TransactionRequest(BaseModel):
    """
    What a caller asks the ledger to record.

    This is validated in full before the ledger is touched.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount moved (always positive, direction is in ``type``)"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    date: Optional[datetime] = Field(
        default=None,
        description="When it happened; defaults to now"
    )
    related_goal_id: Optional[str] = None
    related_asset_id: Optional[str] = None
    related_op_id: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def amount_must_be_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)

    @field_validator("date")
    @classmethod
    def date_in_local_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return local_naive(v)

    @field_validator("related_goal_id", "related_asset_id", "related_op_id", mode="before")
    @classmethod
    def coerce_link_ids(cls, v: Any) -> Any:
        return _coerce_id(v)

    @property
    def links(self) -> list[LinkTarget]:
        """All links set on the request, in rollback precedence order."""
        candidates = (
            (LinkKind.GOAL, self.related_goal_id),
            (LinkKind.ASSET, self.related_asset_id),
            (LinkKind.FUTURE_OPERATION, self.related_op_id),
        )
        return [
            LinkTarget(kind=kind, target_id=target_id)
            for kind, target_id in candidates
            if target_id
        ]


class Transaction(TransactionRequest):
    """
    A recorded ledger entry.

    Transactions are immutable. The only way to undo one is to delete it,
    which reverses its effect on the balance and on the linked entity.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique transaction ID"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @property
    def signed_amount(self) -> Decimal:
        return self.type.signed(self.amount)

    @property
    def link(self) -> Optional[LinkTarget]:
        """
        The link whose status a deletion reverts.

        With several links set, the first one in precedence order
        (goal, asset, future operation) wins.
        """
        links = self.links
        return links[0] if links else None

    def to_presentation(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": money(self.amount),
            "label": self.label,
            "date": self.date.isoformat(),
            "relatedGoalId": self.related_goal_id,
            "relatedAssetId": self.related_asset_id,
            "relatedOpId": self.related_op_id,
        }


# =============================================================================
# LINKABLE ENTITIES
# =============================================================================

class GoalInput(BaseModel):
    """Editable fields of a savings goal."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount the user is saving up for"
    )
    color: str = Field(default=DEFAULT_GOAL_COLOR, min_length=1, max_length=50)
    icon_key: GoalIcon = GoalIcon.TARGET

    @field_validator("target_amount")
    @classmethod
    def target_must_be_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)


class Goal(GoalInput):
    """A savings goal. Completed when a purchase transaction links to it."""

    id: str = Field(default_factory=new_id)
    status: GoalStatus = GoalStatus.ACTIVE

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    def to_presentation(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "targetAmount": money(self.target_amount),
            "color": self.color,
            "iconKey": self.icon_key.value,
            "status": self.status.value,
        }


class AssetInput(BaseModel):
    """Editable fields of an asset."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    value: Decimal = Field(
        ...,
        ge=0,
        description="Estimated resale value"
    )
    category: AssetCategory = AssetCategory.OTHER

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)


class Asset(AssetInput):
    """Something the user owns and may sell. Sold when a sale links to it."""

    id: str = Field(default_factory=new_id)
    status: AssetStatus = AssetStatus.ACTIVE

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    def to_presentation(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "value": money(self.value),
            "category": self.category.value,
            "status": self.status.value,
        }


class FutureOperationInput(BaseModel):
    """Editable fields of a planned operation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    type: TransactionType = TransactionType.IN
    date: datetime = Field(
        ...,
        description="Month in which the operation is expected"
    )

    @field_validator("amount")
    @classmethod
    def amount_must_be_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)

    @field_validator("date")
    @classmethod
    def date_in_local_time(cls, v: datetime) -> datetime:
        return local_naive(v)


class FutureOperation(FutureOperationInput):
    """
    A planned income or expense.

    Until it is received it only moves the potential balance curve,
    never the real one.
    """

    id: str = Field(default_factory=new_id)
    received: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    def to_presentation(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "amount": money(self.amount),
            "type": self.type.value,
            "date": self.date.isoformat(),
            "received": self.received,
        }


# =============================================================================
# SNAPSHOT
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    The whole state of one user's ledger.

    This is the unit the storage layer loads and commits.
    Transactions are kept in creation order.
    """

    settings: UserSettings = Field(default_factory=UserSettings)
    transactions: list[Transaction] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    future_operations: list[FutureOperation] = Field(default_factory=list)
    onboarded: bool = Field(
        default=False,
        description="Has the user configured their space?"
    )

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def find_asset(self, asset_id: str) -> Optional[Asset]:
        return next((a for a in self.assets if a.id == asset_id), None)

    def find_future_operation(self, op_id: str) -> Optional[FutureOperation]:
        return next((o for o in self.future_operations if o.id == op_id), None)

    def find_linked(self, link: LinkTarget):
        """Resolve a link to its entity, or None when it is dangling."""
        if link.kind is LinkKind.GOAL:
            return self.find_goal(link.target_id)
        if link.kind is LinkKind.ASSET:
            return self.find_asset(link.target_id)
        return self.find_future_operation(link.target_id)

    def to_presentation(self) -> dict:
        """
        Shape the snapshot for the presentation layer.

        Money becomes plain numbers, dates ISO-8601 strings,
        and transactions are listed newest first.
        """
        newest_first = sorted(self.transactions, key=lambda t: t.date, reverse=True)
        return {
            "onboarded": self.onboarded,
            "settings": self.settings.to_presentation(),
            "transactions": [t.to_presentation() for t in newest_first],
            "goals": [g.to_presentation() for g in self.goals],
            "assets": [a.to_presentation() for a in self.assets],
            "futureOperations": [o.to_presentation() for o in self.future_operations],
        }


# =============================================================================
# TWO-STEP COMPLETION
# =============================================================================

class PendingConfirmation(BaseModel):
    """
    A completion waiting for the user to enter the real amount.

    ``suggested_amount`` is what was planned (goal target, asset value,
    planned amount). The transaction records whatever the user confirms.
    """
    model_config = ConfigDict(frozen=True)

    link: LinkTarget
    transaction_type: TransactionType
    label: str
    suggested_amount: Decimal
    prompt: str = Field(
        ...,
        description="Question to show the user"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_link')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields, amounts)
    Stage 2: Semantic validation (checks against the current ledger)
    """

    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# PROJECTION MODELS
# =============================================================================

class ProjectionPoint(BaseModel):
    """Projected balances at the end of one upcoming month."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1, description="1 for next month, 2 for the one after...")
    year: int
    month: int = Field(..., ge=1, le=12)
    label: str = Field(..., description="Short month name for charts")
    real_balance: Decimal
    potential_balance: Decimal

    def to_presentation(self) -> dict:
        return {
            "name": self.label,
            "year": self.year,
            "month": self.month,
            "realBalance": money(self.real_balance),
            "potentialBalance": money(self.potential_balance),
        }


class BalancePoint(BaseModel):
    """
    One point of the history curve.

    Dated points carry the balance just before that transaction;
    the undated point is the current balance.
    """
    model_config = ConfigDict(frozen=True)

    date: Optional[datetime] = Field(
        default=None,
        description="None for the current balance"
    )
    balance: Decimal

    def to_presentation(self) -> dict:
        return {
            "date": self.date.isoformat() if self.date else "now",
            "val": money(self.balance),
        }
