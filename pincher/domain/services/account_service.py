from typing import List

import structlog
from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories import account_repository
from pincher.data.repositories.account_repository import AccountORM, account_to_domain
from pincher.data.repositories.transaction_repository import (
    get_transaction_ids_for_account,
    sum_capital,
)
from pincher.domain.errors import ConflictError, NotFoundError, ValidationError
from pincher.domain.models import Account, BudgetScope
from pincher.domain.services.clearance_service import ensure_in_scope
from pincher.domain.services.ledger_writer import remove_transactions

logger = structlog.get_logger(__name__)


def _scoped_account(db: Session, scope: BudgetScope, account_id: int) -> AccountORM:
    account = account_repository.get_account(db, account_id)
    if account is None:
        raise NotFoundError(f"account {account_id} not found")
    ensure_in_scope(scope, account.budget_id)
    return account


def create_account(
    db: Session, scope: BudgetScope, name: str, account_type: str = "", notes: str = ""
) -> Account:
    if not name:
        raise ValidationError("account name not provided")
    if account_repository.get_account_by_name(db, scope.budget_id, name):
        raise ConflictError(f"account '{name}' already exists")
    with atomic_unit(db, "account creation", conflict=f"account '{name}' already exists"):
        account = account_repository.insert_account(
            db, scope.budget_id, name, account_type or "", notes or ""
        )
        created = account_to_domain(account)
    return created


def list_accounts(
    db: Session, scope: BudgetScope, include_deleted: bool = False
) -> List[Account]:
    return [
        account_to_domain(a)
        for a in account_repository.list_accounts(db, scope.budget_id, include_deleted)
    ]


def get_account(db: Session, scope: BudgetScope, account_id: int) -> Account:
    return account_to_domain(_scoped_account(db, scope, account_id))


def get_account_capital(db: Session, scope: BudgetScope, account_id: int) -> int:
    account = _scoped_account(db, scope, account_id)
    return sum_capital(db, scope.budget_id, account_id=account.id)


def update_account(
    db: Session,
    scope: BudgetScope,
    account_id: int,
    name: str = "",
    account_type: str = "",
    notes: str = "",
) -> Account:
    account = _scoped_account(db, scope, account_id)
    if name and name != account.name:
        if account_repository.get_account_by_name(db, scope.budget_id, name):
            raise ConflictError(f"account '{name}' already exists")
    with atomic_unit(db, "account update", conflict=f"account '{name}' already exists"):
        account_repository.update_account(db, account, name, account_type, notes or "")
        updated = account_to_domain(account)
    return updated


def restore_account(db: Session, scope: BudgetScope, account_id: int) -> Account:
    account = _scoped_account(db, scope, account_id)
    with atomic_unit(db, "account restore"):
        account_repository.set_account_deleted(db, account, False)
        restored = account_to_domain(account)
    return restored


def delete_account(
    db: Session, scope: BudgetScope, account_id: int, confirm_name: str = ""
) -> Account:
    """
    Soft-delete an account, or hard-delete one that is already soft-deleted
    when `confirm_name` matches its stored name.

    A hard delete removes every transaction on the account, transfer
    counterparts on other accounts included.
    """
    account = _scoped_account(db, scope, account_id)
    if not confirm_name:
        with atomic_unit(db, "account soft delete"):
            account_repository.set_account_deleted(db, account, True)
            deleted = account_to_domain(account)
        return deleted

    if not account.is_deleted:
        raise ValidationError("account must be soft-deleted before it can be hard-deleted")
    if confirm_name != account.name:
        raise ValidationError("supplied name does not match the account name")
    deleted = account_to_domain(account)
    with atomic_unit(db, "account hard delete"):
        removed = remove_transactions(db, get_transaction_ids_for_account(db, account.id))
        account_repository.delete_account_row(db, account.id)
    logger.info(
        "account_hard_deleted",
        budget_id=scope.budget_id,
        account_id=account_id,
        transactions_deleted=len(removed),
    )
    return deleted
