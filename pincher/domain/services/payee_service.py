from typing import List

from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories import payee_repository
from pincher.data.repositories.payee_repository import payee_to_domain
from pincher.data.repositories.transaction_repository import (
    is_payee_in_use,
    reassign_payee,
)
from pincher.domain.errors import ConflictError, NotFoundError, ValidationError
from pincher.domain.models import BudgetScope, Payee, ResourceKind
from pincher.domain.services.name_resolver import resolve


def _scoped_payee(db: Session, scope: BudgetScope, payee_id: int):
    payee = payee_repository.get_payee(db, scope.budget_id, payee_id)
    if payee is None:
        raise NotFoundError(f"payee {payee_id} not found")
    return payee


def create_payee(db: Session, scope: BudgetScope, name: str, notes: str = "") -> Payee:
    if not name:
        raise ValidationError("payee name not provided")
    if payee_repository.get_payee_id_by_name(db, scope.budget_id, name):
        raise ConflictError(f"payee '{name}' already exists")
    with atomic_unit(db, "payee creation", conflict=f"payee '{name}' already exists"):
        created = payee_to_domain(
            payee_repository.insert_payee(db, scope.budget_id, name, notes or "")
        )
    return created


def list_payees(db: Session, scope: BudgetScope) -> List[Payee]:
    return [payee_to_domain(p) for p in payee_repository.list_payees(db, scope.budget_id)]


def get_payee(db: Session, scope: BudgetScope, payee_id: int) -> Payee:
    return payee_to_domain(_scoped_payee(db, scope, payee_id))


def update_payee(
    db: Session, scope: BudgetScope, payee_id: int, name: str = "", notes: str = ""
) -> Payee:
    payee = _scoped_payee(db, scope, payee_id)
    if name and name != payee.name:
        if payee_repository.get_payee_id_by_name(db, scope.budget_id, name):
            raise ConflictError(f"payee '{name}' already exists")
    with atomic_unit(db, "payee update", conflict=f"payee '{name}' already exists"):
        updated = payee_to_domain(
            payee_repository.update_payee(db, payee, name, notes or "")
        )
    return updated


def delete_payee(
    db: Session, scope: BudgetScope, payee_id: int, new_payee_name: str = ""
) -> bool:
    """
    Delete a payee. A payee still referenced by transactions needs a
    replacement; the references move to it in the same unit.
    """
    payee = _scoped_payee(db, scope, payee_id)
    replacement_id = None
    if is_payee_in_use(db, payee.id):
        if not new_payee_name:
            raise ValidationError(
                "payee is in use by transactions, a replacement payee name is required"
            )
        replacement_id = resolve(db, scope.budget_id, ResourceKind.PAYEE, new_payee_name)
        if replacement_id == payee.id:
            raise ValidationError("replacement payee must differ from the deleted payee")
    with atomic_unit(db, "payee deletion"):
        if replacement_id is not None:
            reassign_payee(db, payee.id, replacement_id)
        deleted = payee_repository.delete_payee(db, payee.id)
    return deleted
