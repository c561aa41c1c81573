"""
Two-Step Completion

Completing a goal, selling an asset or validating a planned operation
is a transaction with a link. The real amount often differs from the
planned one, so the flow is split:

1. ``build_pending`` describes what will be recorded and suggests an amount
2. the caller asks the user and hands back the amount actually realized

The entity's own target/value/planned amount is never modified.
"""

from src.ledger.errors import NotFoundError
from src.models.ledger import (
    LedgerSnapshot,
    LinkKind,
    LinkTarget,
    PendingConfirmation,
    TransactionType,
)


_LINK_FIELD = {
    LinkKind.GOAL: "related_goal_id",
    LinkKind.ASSET: "related_asset_id",
    LinkKind.FUTURE_OPERATION: "related_op_id",
}

_ENTITY_NAMES = {
    LinkKind.GOAL: "Goal",
    LinkKind.ASSET: "Asset",
    LinkKind.FUTURE_OPERATION: "FutureOperation",
}


def build_pending(snapshot: LedgerSnapshot, link: LinkTarget) -> PendingConfirmation:
    """
    Describe the completion of a linked entity.

    Raises:
        NotFoundError: If the entity does not exist
    """
    entity = snapshot.find_linked(link)
    if entity is None:
        raise NotFoundError(_ENTITY_NAMES[link.kind], link.target_id)

    if link.kind is LinkKind.GOAL:
        return PendingConfirmation(
            link=link,
            transaction_type=TransactionType.OUT,
            label=f"Achat : {entity.name}",
            suggested_amount=entity.target_amount,
            prompt=f'Génial ! Tu as acheté "{entity.name}".\nCombien as-tu payé exactement ?',
        )

    if link.kind is LinkKind.ASSET:
        return PendingConfirmation(
            link=link,
            transaction_type=TransactionType.IN,
            label=f"Vente : {entity.name}",
            suggested_amount=entity.value,
            prompt=f"Prix de vente final pour {entity.name} (€) :",
        )

    prefix = "Revenu" if entity.type is TransactionType.IN else "Dépense"
    return PendingConfirmation(
        link=link,
        transaction_type=entity.type,
        label=f"{prefix} : {entity.label}",
        suggested_amount=entity.amount,
        prompt=f'Confirmer "{entity.label}" ?\nMontant réel (€) :',
    )


def completion_request(pending: PendingConfirmation, amount) -> dict:
    """Raw transaction fields for a confirmed completion, validated by the caller."""
    return {
        "type": pending.transaction_type,
        "amount": amount,
        "label": pending.label,
        _LINK_FIELD[pending.link.kind]: pending.link.target_id,
    }

