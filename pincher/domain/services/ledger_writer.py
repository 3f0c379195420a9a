"""
Ledger writes: a transaction with its splits, and for transfers the
inverted counterpart on the target account plus the link between the two.

Every public function here is one all-or-nothing unit. Helpers prefixed
with an underscore, and `remove_transactions`, only flush and expect the
caller to own the unit.
"""
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories.transaction_repository import (
    TransactionORM,
    delete_splits,
    delete_transactions,
    get_linked_transaction_id,
    get_split_amounts,
    get_transaction_row,
    get_transfer_link,
    insert_splits,
    insert_transaction,
    insert_transfer,
    update_transaction_row,
)
from pincher.domain.errors import NotFoundError, StoreError, ValidationError
from pincher.domain.helpers.transaction_validator import invert_amounts
from pincher.domain.models import BudgetScope, ResolvedTransaction, TransactionType
from pincher.domain.services.clearance_service import ensure_in_scope

logger = structlog.get_logger(__name__)

Leg = Tuple[int, TransactionType]


def order_transfer_legs(first: Leg, second: Leg) -> Tuple[int, int]:
    """
    Return (from_id, to_id) for two transfer legs, decided by type and
    never by insertion order.
    """
    legs = {first[1]: first[0], second[1]: second[0]}
    if set(legs) != {TransactionType.TRANSFER_FROM, TransactionType.TRANSFER_TO}:
        raise ValidationError("transfer legs must be one TRANSFER_FROM and one TRANSFER_TO")
    return legs[TransactionType.TRANSFER_FROM], legs[TransactionType.TRANSFER_TO]


def _insert_leg(
    db: Session,
    scope: BudgetScope,
    account_id: int,
    txn_type: TransactionType,
    txn: ResolvedTransaction,
    amounts: Dict[Optional[int], int],
    payee_id: Optional[int],
) -> int:
    row = insert_transaction(
        db,
        budget_id=scope.budget_id,
        logger_id=scope.user_id,
        account_id=account_id,
        txn_type=txn_type,
        txn_date=txn.txn_date,
        payee_id=payee_id,
        notes=txn.notes,
        cleared=txn.cleared,
    )
    insert_splits(db, row.id, amounts)
    return row.id


def _replace_splits(db: Session, transaction_id: int, amounts: Dict[Optional[int], int]):
    if get_split_amounts(db, transaction_id) == amounts:
        return
    delete_splits(db, transaction_id)
    insert_splits(db, transaction_id, amounts)


def _scoped_row(db: Session, scope: BudgetScope, transaction_id: int) -> TransactionORM:
    row = get_transaction_row(db, transaction_id)
    if row is None:
        raise NotFoundError(f"transaction {transaction_id} not found")
    ensure_in_scope(scope, row.budget_id)
    return row


def write_transaction(db: Session, scope: BudgetScope, txn: ResolvedTransaction) -> int:
    """Log a new transaction (and its transfer counterpart). Returns its id."""
    with atomic_unit(db, "transaction log"):
        payee_id = None if txn.is_transfer else txn.payee_id
        txn_id = _insert_leg(
            db, scope, txn.account_id, txn.txn_type, txn, txn.amounts, payee_id
        )
        counterpart_id = None
        if txn.is_transfer:
            counterpart_type = txn.txn_type.invert()
            counterpart_id = _insert_leg(
                db,
                scope,
                txn.transfer_account_id,
                counterpart_type,
                txn,
                invert_amounts(txn.amounts),
                None,
            )
            from_id, to_id = order_transfer_legs(
                (txn_id, txn.txn_type), (counterpart_id, counterpart_type)
            )
            insert_transfer(db, from_id, to_id)
    logger.info(
        "transaction_logged",
        budget_id=scope.budget_id,
        transaction_id=txn_id,
        transaction_type=txn.txn_type.value,
        counterpart_id=counterpart_id,
    )
    return txn_id


def rewrite_transaction(
    db: Session, scope: BudgetScope, transaction_id: int, txn: ResolvedTransaction
) -> int:
    """
    Replace a stored transaction with `txn`. Transfer-ness is fixed at
    creation; a transfer's counterpart and link follow the new values.
    """
    with atomic_unit(db, "transaction update"):
        row = _scoped_row(db, scope, transaction_id)
        if row.transaction_type.is_transfer != txn.is_transfer:
            raise ValidationError(
                "cannot change a transfer into a non-transfer transaction or vice versa"
            )
        update_transaction_row(
            db,
            row,
            account_id=txn.account_id,
            transaction_type=txn.txn_type,
            transaction_date=txn.txn_date,
            payee_id=None if txn.is_transfer else txn.payee_id,
            notes=txn.notes,
            cleared=txn.cleared,
        )
        _replace_splits(db, row.id, txn.amounts)

        if txn.is_transfer:
            link = get_transfer_link(db, row.id)
            counterpart = None
            if link is not None:
                counterpart_id = (
                    link.to_transaction_id
                    if link.from_transaction_id == row.id
                    else link.from_transaction_id
                )
                counterpart = get_transaction_row(db, counterpart_id)
            if counterpart is None:
                raise StoreError(f"transfer {row.id} has no linked counterpart")
            counterpart_type = txn.txn_type.invert()
            update_transaction_row(
                db,
                counterpart,
                account_id=txn.transfer_account_id,
                transaction_type=counterpart_type,
                transaction_date=txn.txn_date,
                payee_id=None,
                notes=txn.notes,
                cleared=txn.cleared,
            )
            _replace_splits(db, counterpart.id, invert_amounts(txn.amounts))
            link.from_transaction_id, link.to_transaction_id = order_transfer_legs(
                (row.id, txn.txn_type), (counterpart.id, counterpart_type)
            )
            db.flush()
    logger.info(
        "transaction_updated", budget_id=scope.budget_id, transaction_id=transaction_id
    )
    return transaction_id


def remove_transactions(db: Session, transaction_ids: List[int]) -> List[int]:
    """Delete transactions together with their transfer counterparts."""
    ids = []
    for transaction_id in transaction_ids:
        for candidate in (transaction_id, get_linked_transaction_id(db, transaction_id)):
            if candidate is not None and candidate not in ids:
                ids.append(candidate)
    delete_transactions(db, ids)
    return ids


def delete_transaction(db: Session, scope: BudgetScope, transaction_id: int) -> List[int]:
    with atomic_unit(db, "transaction delete"):
        row = _scoped_row(db, scope, transaction_id)
        deleted = remove_transactions(db, [row.id])
    logger.info(
        "transaction_deleted", budget_id=scope.budget_id, transaction_ids=deleted
    )
    return deleted
