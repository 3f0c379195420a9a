from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories import category_repository
from pincher.data.repositories.assignment_repository import delete_category_assignments
from pincher.data.repositories.category_repository import (
    category_to_domain,
    group_to_domain,
)
from pincher.data.repositories.transaction_repository import uncategorize_splits
from pincher.domain.errors import ConflictError, NotFoundError, ValidationError
from pincher.domain.models import (
    TRANSFER_AMOUNT,
    UNCATEGORIZED,
    BudgetScope,
    Category,
    Group,
    ResourceKind,
)
from pincher.domain.services.name_resolver import resolve

logger = structlog.get_logger(__name__)

RESERVED_CATEGORY_NAMES = (UNCATEGORIZED, TRANSFER_AMOUNT)


# --- Groups ---


def _scoped_group(db: Session, scope: BudgetScope, group_id: int):
    group = category_repository.get_group(db, scope.budget_id, group_id)
    if group is None:
        raise NotFoundError(f"group {group_id} not found")
    return group


def create_group(db: Session, scope: BudgetScope, name: str, notes: str = "") -> Group:
    if not name:
        raise ValidationError("group name not provided")
    if category_repository.get_group_id_by_name(db, scope.budget_id, name):
        raise ConflictError(f"group '{name}' already exists")
    with atomic_unit(db, "group creation", conflict=f"group '{name}' already exists"):
        created = group_to_domain(
            category_repository.insert_group(db, scope.budget_id, name, notes or "")
        )
    return created


def list_groups(db: Session, scope: BudgetScope) -> List[Group]:
    return [group_to_domain(g) for g in category_repository.list_groups(db, scope.budget_id)]


def get_group(db: Session, scope: BudgetScope, group_id: int) -> Group:
    return group_to_domain(_scoped_group(db, scope, group_id))


def update_group(
    db: Session, scope: BudgetScope, group_id: int, name: str = "", notes: str = ""
) -> Group:
    group = _scoped_group(db, scope, group_id)
    if name and name != group.name:
        if category_repository.get_group_id_by_name(db, scope.budget_id, name):
            raise ConflictError(f"group '{name}' already exists")
    with atomic_unit(db, "group update", conflict=f"group '{name}' already exists"):
        updated = group_to_domain(
            category_repository.update_group(db, group, name, notes or "")
        )
    return updated


def delete_group(db: Session, scope: BudgetScope, group_id: int) -> bool:
    group = _scoped_group(db, scope, group_id)
    with atomic_unit(db, "group deletion"):
        deleted = category_repository.delete_group(db, group.id)
    return deleted


# --- Categories ---


def _scoped_category(db: Session, scope: BudgetScope, category_id: int):
    category = category_repository.get_category(db, scope.budget_id, category_id)
    if category is None:
        raise NotFoundError(f"category {category_id} not found")
    return category


def _check_category_name(db: Session, scope: BudgetScope, name: str):
    if name in RESERVED_CATEGORY_NAMES:
        raise ValidationError(f"'{name}' is a reserved category name")
    if category_repository.get_category_id_by_name(db, scope.budget_id, name):
        raise ConflictError(f"category '{name}' already exists")


def create_category(
    db: Session,
    scope: BudgetScope,
    name: str,
    group_name: str = "",
    notes: str = "",
) -> Category:
    if not name:
        raise ValidationError("category name not provided")
    _check_category_name(db, scope, name)
    group_id = None
    if group_name:
        group_id = resolve(db, scope.budget_id, ResourceKind.GROUP, group_name)
    with atomic_unit(
        db, "category creation", conflict=f"category '{name}' already exists"
    ):
        created = category_to_domain(
            category_repository.insert_category(
                db, scope.budget_id, name, group_id, notes or ""
            )
        )
    return created


def list_categories(
    db: Session, scope: BudgetScope, group_id: Optional[int] = None
) -> List[Category]:
    return [
        category_to_domain(c)
        for c in category_repository.list_categories(db, scope.budget_id, group_id)
    ]


def get_category(db: Session, scope: BudgetScope, category_id: int) -> Category:
    return category_to_domain(_scoped_category(db, scope, category_id))


def update_category(
    db: Session,
    scope: BudgetScope,
    category_id: int,
    name: str = "",
    notes: str = "",
    group_name: Optional[str] = None,
) -> Category:
    """
    `group_name` None keeps the current group, "" ungroups the category,
    anything else moves it to the named group.
    """
    category = _scoped_category(db, scope, category_id)
    if name and name != category.name:
        _check_category_name(db, scope, name)
    group_id = None
    if group_name:
        group_id = resolve(db, scope.budget_id, ResourceKind.GROUP, group_name)
    with atomic_unit(
        db, "category update", conflict=f"category '{name}' already exists"
    ):
        updated = category_to_domain(
            category_repository.update_category(
                db,
                category,
                name,
                notes or "",
                group_id,
                clear_group=group_name == "",
            )
        )
    return updated


def delete_category(db: Session, scope: BudgetScope, category_id: int) -> bool:
    """Delete a category; its splits become uncategorized, its assignments go."""
    category = _scoped_category(db, scope, category_id)
    with atomic_unit(db, "category deletion"):
        uncategorized = uncategorize_splits(db, category.id)
        delete_category_assignments(db, category.id)
        deleted = category_repository.delete_category(db, category.id)
    logger.info(
        "category_deleted",
        budget_id=scope.budget_id,
        category_id=category_id,
        splits_uncategorized=uncategorized,
    )
    return deleted
