from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories import budget_repository
from pincher.data.repositories.budget_repository import budget_to_domain
from pincher.data.repositories.transaction_repository import sum_capital
from pincher.data.repositories.user_repository import get_user_by_username
from pincher.domain.errors import (
    ConflictError,
    NotFoundError,
    ResolutionError,
    ValidationError,
)
from pincher.domain.models import Budget, BudgetMembership, BudgetScope, MemberRole

logger = structlog.get_logger(__name__)


def create_budget(db: Session, user_id: int, name: str, notes: str = "") -> Budget:
    """Create a budget and its creator's ADMIN membership as one unit."""
    if not name:
        raise ValidationError("budget name not provided")
    with atomic_unit(db, "budget creation"):
        budget = budget_repository.insert_budget(db, user_id, name, notes or "")
        budget_repository.insert_membership(db, budget.id, user_id, MemberRole.ADMIN)
        created = budget_to_domain(budget)
    logger.info("budget_created", budget_id=created.id, admin_id=user_id)
    return created


def list_user_budgets(
    db: Session, user_id: int, roles: Optional[List[MemberRole]] = None
) -> List[Budget]:
    return [
        budget_to_domain(b)
        for b in budget_repository.get_user_budgets(db, user_id, roles)
    ]


def get_budget(db: Session, scope: BudgetScope) -> Budget:
    budget = budget_repository.get_budget(db, scope.budget_id)
    if not budget:
        raise NotFoundError("budget not found")
    return budget_to_domain(budget)


def update_budget(db: Session, scope: BudgetScope, name: str, notes: str) -> Budget:
    with atomic_unit(db, "budget update"):
        budget = budget_repository.update_budget(db, scope.budget_id, name, notes or "")
        if not budget:
            raise NotFoundError("budget not found")
        updated = budget_to_domain(budget)
    return updated


def delete_budget(db: Session, scope: BudgetScope) -> bool:
    with atomic_unit(db, "budget deletion"):
        deleted = budget_repository.delete_budget(db, scope.budget_id)
    if not deleted:
        raise NotFoundError("budget not found")
    logger.info("budget_deleted", budget_id=scope.budget_id, user_id=scope.user_id)
    return deleted


def add_member(
    db: Session, scope: BudgetScope, username: str, role: MemberRole
) -> BudgetMembership:
    # ADMIN is granted only by budget creation
    if role is MemberRole.ADMIN:
        raise ConflictError("cannot assign ADMIN role to a budget member")
    user = get_user_by_username(db, (username or "").lower())
    if user is None:
        raise ResolutionError(f"could not find user '{username}'")
    if budget_repository.get_membership(db, scope.budget_id, user.id):
        raise ConflictError(f"user '{user.username}' is already a member of this budget")
    with atomic_unit(
        db, "member add", conflict=f"user '{user.username}' is already a member of this budget"
    ):
        membership = budget_repository.insert_membership(
            db, scope.budget_id, user.id, role
        )
        added = budget_repository.membership_to_domain(membership)
    logger.info(
        "budget_member_added",
        budget_id=scope.budget_id,
        user_id=user.id,
        role=role.value,
    )
    return added


def remove_member(db: Session, scope: BudgetScope, user_id: int) -> bool:
    role = budget_repository.get_member_role(db, scope.budget_id, user_id)
    if role is None:
        raise NotFoundError("user is not a member of this budget")
    if role is MemberRole.ADMIN:
        raise ConflictError("cannot remove the ADMIN of a budget")
    with atomic_unit(db, "member removal"):
        removed = budget_repository.delete_membership(db, scope.budget_id, user_id)
    return removed


def get_budget_capital(db: Session, scope: BudgetScope) -> int:
    return sum_capital(db, scope.budget_id)
