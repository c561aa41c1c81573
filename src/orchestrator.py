"""
Main Orchestrator for My Halal Flow

This module ties the ledger rules to a storage backend and defines
every operation the dashboard can perform.

DESIGN DECISION: Single writer, one commit per operation.
Each mutation:
1. Takes the engine lock
2. Loads the committed snapshot
3. Applies the change to a private deep copy
4. Commits the whole copy in ONE storage call

Any error before step 4 leaves storage untouched. A storage failure
during step 4 is surfaced as is, and backends guarantee that a failed
commit is not partially visible. Nothing is retried.

The dashboard shares one engine between browser sessions, each on its
own thread with its own event loop, so the engine lock is a thread lock
that coroutines wait on without blocking their loop.
"""
import asyncio
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.config import LedgerSettings, StorageSettings, get_settings
from src.ledger.completion import build_pending, completion_request
from src.ledger.errors import NotFoundError, ValidationError
from src.ledger.projection import (
    balance_history,
    net_worth,
    project_balance,
    total_active_assets,
)
from src.ledger.settlement import is_settlement_due, plan_settlement
from src.ledger.transactions import apply_delete, apply_record
from src.models.ledger import (
    Asset,
    AssetInput,
    BalancePoint,
    FutureOperation,
    FutureOperationInput,
    Goal,
    GoalIcon,
    GoalInput,
    LedgerSnapshot,
    LinkKind,
    LinkTarget,
    PendingConfirmation,
    ProjectionPoint,
    Transaction,
    TransactionRequest,
    UserSettings,
    ValidationIssue,
    local_naive,
)
from src.observability import create_operation_id, get_logger
from src.services.storage import (
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    PersistenceError,
)
from src.validation import LedgerValidator, issues_from_pydantic


SAFETY_GOAL_NAME = "Épargne de Sécurité"
SAFETY_GOAL_TARGET = Decimal("3000")
SAFETY_GOAL_COLOR = "bg-emerald-500"

LOCK_POLL_SECONDS = 0.01

_SETTINGS_FIELDS = frozenset(UserSettings.model_fields)


class LedgerEngine:
    """
    The ledger consistency engine.

    Keeps the balance, the status of linked goals/assets/planned
    operations and the projection consistent as transactions are
    recorded and deleted.

    GUARANTEES:
    - balance == opening balance + signed sum of recorded transactions
    - record then delete restores balance and linked status
    - validation failures never reach storage
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._storage = storage
        self._clock = clock or datetime.now
        self._settings = settings or get_settings().ledger
        self._validator = validator or LedgerValidator(
            strict_single_link=self._settings.strict_single_link
        )
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @asynccontextmanager
    async def _writer(self):
        """Hold the engine lock; waiting yields to the caller's event loop."""
        while not self._lock.acquire(blocking=False):
            await asyncio.sleep(LOCK_POLL_SECONDS)
        try:
            yield
        finally:
            self._lock.release()

    async def _mutate(
        self,
        operation: str,
        apply: Callable[[LedgerSnapshot, datetime], tuple[Any, dict]],
    ) -> tuple[LedgerSnapshot, Any]:
        """
        Run one mutation under the lock and commit it.

        ``apply`` receives the working copy and the operation time, and
        returns its result plus the fields to log.
        """
        async with self._writer():
            log = self._logger.bind(
                operation=operation,
                operation_id=str(create_operation_id()),
            )
            now = self._now()

            committed = await self._storage.load()
            working = committed.model_copy(deep=True)

            try:
                result, fields = apply(working, now)
            except PydanticValidationError as e:
                raise ValidationError.from_issues(issues_from_pydantic(e))

            try:
                snapshot = await self._storage.commit(working)
            except PersistenceError as e:
                log.error("ledger_commit_failed", error=str(e))
                raise

            log.info("ledger_mutation", balance=str(snapshot.settings.balance), **fields)
            return snapshot, result

    def _now(self) -> datetime:
        return local_naive(self._clock())

    # =========================================================================
    # READS
    # =========================================================================

    async def snapshot(self) -> LedgerSnapshot:
        """Load the current ledger."""
        return await self._storage.load()

    async def presentation(self) -> dict:
        """The current ledger shaped for the presentation layer."""
        return (await self.snapshot()).to_presentation()

    async def projection(self, snapshot: Optional[LedgerSnapshot] = None) -> list[ProjectionPoint]:
        """Projected real and potential balances for the upcoming months."""
        snapshot = snapshot or await self.snapshot()
        return list(project_balance(snapshot, self._now(), self._settings.projection_months))

    async def history(self, snapshot: Optional[LedgerSnapshot] = None) -> list[BalancePoint]:
        """Balance curve rebuilt from the recorded transactions."""
        snapshot = snapshot or await self.snapshot()
        return balance_history(snapshot)

    async def summary(self, snapshot: Optional[LedgerSnapshot] = None) -> dict[str, Decimal]:
        """Headline figures for the dashboard."""
        snapshot = snapshot or await self.snapshot()
        return {
            "balance": snapshot.settings.balance,
            "monthly_savings": snapshot.settings.monthly_savings,
            "total_active_assets": total_active_assets(snapshot),
            "net_worth": net_worth(snapshot),
        }

    # =========================================================================
    # ONBOARDING & SETTINGS
    # =========================================================================

    async def onboard(
        self,
        name: str,
        balance: Any = 0,
        monthly_income: Any = 0,
        monthly_expenses: Any = 0,
    ) -> LedgerSnapshot:
        """
        Configure the user's space.

        Sets the opening figures, starts the settlement cycle and seeds
        the default safety-savings goal.

        Raises:
            ValidationError: If the space is already configured or a figure is invalid
        """
        def apply(working: LedgerSnapshot, now: datetime):
            if working.onboarded:
                raise ValidationError.from_issues([ValidationIssue(
                    field="onboarded",
                    issue_type="already_onboarded",
                    message="This space is already configured",
                )])
            working.settings = self._validator.parse(UserSettings, {
                "name": (name or "").strip() or self._settings.default_user_name,
                "balance": balance,
                "monthly_income": monthly_income,
                "monthly_expenses": monthly_expenses,
                "last_budget_check": now,
            })
            working.goals = [Goal(
                name=SAFETY_GOAL_NAME,
                target_amount=SAFETY_GOAL_TARGET,
                color=SAFETY_GOAL_COLOR,
                icon_key=GoalIcon.WALLET,
            )]
            working.onboarded = True
            return None, {"user": working.settings.name}

        snapshot, _ = await self._mutate("onboard", apply)
        return snapshot

    async def update_settings(self, **changes: Any) -> LedgerSnapshot:
        """
        Partially update the settings row.

        Accepts name, balance, monthly_income, monthly_expenses and
        last_budget_check. Setting ``balance`` directly re-bases the
        ledger; use a transaction or a settlement to move money.
        """
        unknown = sorted(set(changes) - _SETTINGS_FIELDS)
        if unknown:
            raise ValidationError.from_issues([
                ValidationIssue(field=key, issue_type="unknown_field", message="Not a setting")
                for key in unknown
            ])

        def apply(working: LedgerSnapshot, now: datetime):
            merged = working.settings.model_dump()
            merged.update(changes)
            working.settings = self._validator.parse(UserSettings, merged)
            return None, {"fields": sorted(changes)}

        snapshot, _ = await self._mutate("update_settings", apply)
        return snapshot

    async def reset(self) -> LedgerSnapshot:
        """Wipe everything. The next load is an empty, not onboarded ledger."""
        async with self._writer():
            log = self._logger.bind(operation="reset", operation_id=str(create_operation_id()))
            try:
                await self._storage.reset()
            except PersistenceError as e:
                log.error("ledger_reset_failed", error=str(e))
                raise
            log.warning("ledger_reset")
        return await self._storage.load()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def record_transaction(
        self,
        request: Union[TransactionRequest, dict],
    ) -> tuple[LedgerSnapshot, Transaction]:
        """
        Record a transaction and apply all its effects in one commit.

        Raises:
            ValidationError: Bad amount/label, unknown link target,
                or several links in strict mode
        """
        request = self._validator.parse(TransactionRequest, request)

        def apply(working: LedgerSnapshot, now: datetime):
            result = self._validator.check_transaction(request, working)
            for warning in result.warnings:
                self._logger.warning(
                    "transaction_validation_warning",
                    field=warning.field,
                    issue=warning.issue_type,
                    detail=warning.message,
                )
            transaction = apply_record(working, request, now)
            return transaction, {
                "transaction_id": transaction.id,
                "type": transaction.type.value,
                "amount": str(transaction.amount),
                "links": [link.kind.value for link in transaction.links],
            }

        return await self._mutate("record_transaction", apply)

    async def delete_transaction(self, transaction_id: str) -> tuple[LedgerSnapshot, Transaction]:
        """
        Delete a transaction and reverse its effects.

        Raises:
            NotFoundError: If no transaction has this id (nothing changes)
        """
        def apply(working: LedgerSnapshot, now: datetime):
            transaction, reverted = apply_delete(working, str(transaction_id))
            return transaction, {
                "transaction_id": transaction.id,
                "reverted_link": reverted.kind.value if reverted else None,
            }

        return await self._mutate("delete_transaction", apply)

    # =========================================================================
    # GOALS / ASSETS / FUTURE OPERATIONS
    # =========================================================================

    async def _upsert(
        self,
        operation: str,
        collection: str,
        input_model: type,
        entity_model: type,
        data: Any,
        entity_id: Optional[str],
    ):
        fields = self._validator.parse(input_model, data).model_dump()

        def apply(working: LedgerSnapshot, now: datetime):
            entities = getattr(working, collection)
            existing = next((e for e in entities if e.id == str(entity_id)), None) if entity_id else None
            if existing is not None:
                # Status fields are left alone; only linked transactions move them.
                for key, value in fields.items():
                    setattr(existing, key, value)
                return existing, {"entity_id": existing.id, "created": False}

            entity = entity_model(**fields) if entity_id is None else entity_model(id=entity_id, **fields)
            entities.append(entity)
            return entity, {"entity_id": entity.id, "created": True}

        return await self._mutate(operation, apply)

    async def _delete(self, operation: str, collection: str, entity_type: str, entity_id: str):
        entity_id = str(entity_id)

        def apply(working: LedgerSnapshot, now: datetime):
            entities = getattr(working, collection)
            entity = next((e for e in entities if e.id == entity_id), None)
            if entity is None:
                raise NotFoundError(entity_type, entity_id)
            # No cascade: transactions keep their (now dangling) link ids.
            setattr(working, collection, [e for e in entities if e.id != entity_id])
            return entity, {"entity_id": entity_id}

        return await self._mutate(operation, apply)

    async def upsert_goal(self, data: Any, goal_id: Optional[str] = None) -> tuple[LedgerSnapshot, Goal]:
        """Create a goal, or update the editable fields of an existing one."""
        return await self._upsert("upsert_goal", "goals", GoalInput, Goal, data, goal_id)

    async def delete_goal(self, goal_id: str) -> tuple[LedgerSnapshot, Goal]:
        return await self._delete("delete_goal", "goals", "Goal", goal_id)

    async def upsert_asset(self, data: Any, asset_id: Optional[str] = None) -> tuple[LedgerSnapshot, Asset]:
        """Create an asset, or update the editable fields of an existing one."""
        return await self._upsert("upsert_asset", "assets", AssetInput, Asset, data, asset_id)

    async def delete_asset(self, asset_id: str) -> tuple[LedgerSnapshot, Asset]:
        return await self._delete("delete_asset", "assets", "Asset", asset_id)

    async def upsert_future_operation(
        self,
        data: Any,
        op_id: Optional[str] = None,
    ) -> tuple[LedgerSnapshot, FutureOperation]:
        """Plan an operation, or update the editable fields of a planned one."""
        return await self._upsert(
            "upsert_future_operation",
            "future_operations",
            FutureOperationInput,
            FutureOperation,
            data,
            op_id,
        )

    async def delete_future_operation(self, op_id: str) -> tuple[LedgerSnapshot, FutureOperation]:
        return await self._delete(
            "delete_future_operation", "future_operations", "FutureOperation", op_id
        )

    # =========================================================================
    # TWO-STEP COMPLETION
    # =========================================================================

    async def request_final_amount(
        self,
        kind: Union[LinkKind, str],
        target_id: str,
    ) -> PendingConfirmation:
        """
        Step 1: describe the completion and suggest an amount.

        Nothing is written.

        Raises:
            NotFoundError: If the goal/asset/operation does not exist
        """
        link = LinkTarget(kind=LinkKind(kind), target_id=str(target_id))
        return build_pending(await self.snapshot(), link)

    async def confirm_final_amount(
        self,
        pending: PendingConfirmation,
        amount: Any,
    ) -> tuple[LedgerSnapshot, Transaction]:
        """
        Step 2: record the amount actually realized, linked to the entity.

        The entity's target/value/planned amount stays as it was.
        """
        return await self.record_transaction(completion_request(pending, amount))

    # =========================================================================
    # MONTHLY SETTLEMENT
    # =========================================================================

    async def settlement_due(self, snapshot: Optional[LedgerSnapshot] = None) -> bool:
        """Should the user confirm their bank balance for the new month?"""
        snapshot = snapshot or await self.snapshot()
        return is_settlement_due(snapshot.settings, self._now())

    async def confirm_settlement(
        self,
        reported_balance: Any,
    ) -> tuple[LedgerSnapshot, Optional[Transaction]]:
        """
        Reconcile the modeled balance with the real one.

        Within tolerance only the check date moves. Otherwise one
        adjustment transaction is recorded in the same commit.

        Raises:
            ValidationError: If the reported balance is not a finite number
        """
        reported = self._validator.parse_amount(reported_balance, field="reported_balance")
        tolerance = Decimal(str(self._settings.settlement_tolerance))

        def apply(working: LedgerSnapshot, now: datetime):
            adjustment = plan_settlement(
                working.settings,
                reported,
                tolerance=tolerance,
                label=self._settings.adjustment_label,
            )
            transaction = None
            if adjustment is not None:
                transaction = apply_record(working, adjustment.model_copy(update={"date": now}), now)
            working.settings.last_budget_check = now
            return transaction, {
                "reported_balance": str(reported),
                "adjustment": str(transaction.signed_amount) if transaction else None,
            }

        return await self._mutate("confirm_settlement", apply)


def create_storage(settings: Optional[StorageSettings] = None) -> LedgerStorageInterface:
    """
    Build the storage backend selected by configuration.

    The Google Sheets backend connects lazily, on first read or commit.
    """
    settings = settings or get_settings().storage

    if settings.backend == "memory":
        return InMemoryLedgerStorage()
    if settings.backend == "google_sheets":
        return GoogleSheetsLedgerStorage()
    return JsonFileLedgerStorage(settings.json_path)


def create_ledger_engine(
    storage: Optional[LedgerStorageInterface] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> LedgerEngine:
    """
    Factory function to create a configured engine.

    Args:
        storage: Backend to use. Defaults to the configured one.
        clock: Source of "now". Defaults to the local wall clock.
    """
    storage = storage or create_storage()
    logger = get_logger(__name__)
    logger.info("ledger_engine_created", storage=type(storage).__name__)
    return LedgerEngine(storage, clock=clock)
