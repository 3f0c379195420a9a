from collections import defaultdict
from typing import List, Optional

from sqlalchemy.orm import Session

from pincher.data.repositories import transaction_repository
from pincher.domain.errors import NotFoundError
from pincher.domain.helpers.dates import parse_optional_date
from pincher.domain.helpers.transaction_validator import validate_transaction_input
from pincher.domain.models import (
    TRANSFER_AMOUNT,
    UNCATEGORIZED,
    BudgetScope,
    ResolvedTransaction,
    ResourceKind,
    Transaction,
    TransactionInput,
    TransactionSplit,
    TransactionType,
    ValidatedTransaction,
)
from pincher.domain.services import ledger_writer
from pincher.domain.services.clearance_service import ensure_in_scope
from pincher.domain.services.name_resolver import resolve


def _is_sentinel(name: str, txn_type: TransactionType) -> bool:
    if name == TRANSFER_AMOUNT:
        return True
    return name == UNCATEGORIZED and txn_type is TransactionType.DEPOSIT


def resolve_transaction(
    db: Session, scope: BudgetScope, validated: ValidatedTransaction
) -> ResolvedTransaction:
    """
    Turn every name in a validated transaction into an identifier.

    Sentinel keys become the None ("no category") key; several sentinel
    keys are summed into it. Transfers never carry a payee.
    """
    budget_id = scope.budget_id
    account_id = resolve(db, budget_id, ResourceKind.ACCOUNT, validated.account_name)

    transfer_account_id = None
    payee_id = None
    if validated.is_transfer:
        transfer_account_id = resolve(
            db, budget_id, ResourceKind.ACCOUNT, validated.transfer_account_name
        )
    elif validated.payee_name:
        payee_id = resolve(db, budget_id, ResourceKind.PAYEE, validated.payee_name)

    amounts = defaultdict(int)
    for name, amount in validated.amounts.items():
        if _is_sentinel(name, validated.txn_type):
            amounts[None] += amount
        else:
            amounts[resolve(db, budget_id, ResourceKind.CATEGORY, name)] += amount

    return ResolvedTransaction(
        txn_type=validated.txn_type,
        txn_date=validated.txn_date,
        account_id=account_id,
        amounts=dict(amounts),
        transfer_account_id=transfer_account_id,
        payee_id=payee_id,
        notes=validated.notes,
        cleared=validated.cleared,
    )


def log_transaction(db: Session, scope: BudgetScope, raw: TransactionInput) -> Transaction:
    validated = validate_transaction_input(raw)
    resolved = resolve_transaction(db, scope, validated)
    transaction_id = ledger_writer.write_transaction(db, scope, resolved)
    return transaction_repository.get_transaction(db, transaction_id)


def update_transaction(
    db: Session, scope: BudgetScope, transaction_id: int, raw: TransactionInput
) -> Transaction:
    get_transaction(db, scope, transaction_id)
    validated = validate_transaction_input(raw)
    resolved = resolve_transaction(db, scope, validated)
    ledger_writer.rewrite_transaction(db, scope, transaction_id, resolved)
    return transaction_repository.get_transaction(db, transaction_id)


def delete_transaction(db: Session, scope: BudgetScope, transaction_id: int) -> List[int]:
    return ledger_writer.delete_transaction(db, scope, transaction_id)


def get_transaction(db: Session, scope: BudgetScope, transaction_id: int) -> Transaction:
    txn = transaction_repository.get_transaction(db, transaction_id)
    if txn is None:
        raise NotFoundError(f"transaction {transaction_id} not found")
    ensure_in_scope(scope, txn.budget_id)
    return txn


def get_transaction_splits(
    db: Session, scope: BudgetScope, transaction_id: int
) -> List[TransactionSplit]:
    return get_transaction(db, scope, transaction_id).splits


def list_transactions(
    db: Session,
    scope: BudgetScope,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    payee_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[Transaction]:
    return transaction_repository.list_transactions(
        db,
        scope.budget_id,
        account_id=account_id,
        category_id=category_id,
        payee_id=payee_id,
        start_date=parse_optional_date(start_date, "start date"),
        end_date=parse_optional_date(end_date, "end date"),
    )
