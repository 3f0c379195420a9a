from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import UniqueConstraint

from pincher.data.base import Base
from pincher.domain.models import Category, Group


class GroupORM(Base):
    __tablename__ = "category_groups"
    __table_args__ = (UniqueConstraint("budget_id", "name"),)
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    budget_id = Column(
        Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class CategoryORM(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("budget_id", "name"),)
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    budget_id = Column(
        Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    group_id = Column(
        Integer, ForeignKey("category_groups.id", ondelete="SET NULL"), nullable=True
    )
    name = Column(String, nullable=False)
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


def group_to_domain(group_orm: GroupORM) -> Group:
    return Group(
        id=group_orm.id,
        budget_id=group_orm.budget_id,
        name=group_orm.name,
        notes=group_orm.notes or "",
    )


def category_to_domain(category_orm: CategoryORM) -> Category:
    return Category(
        id=category_orm.id,
        budget_id=category_orm.budget_id,
        name=category_orm.name,
        group_id=category_orm.group_id,
        notes=category_orm.notes or "",
    )


# --- Groups ---


def insert_group(db, budget_id: int, name: str, notes: str = "") -> GroupORM:
    group = GroupORM(budget_id=budget_id, name=name, notes=notes)
    db.add(group)
    db.flush()
    return group


def get_group(db, budget_id: int, group_id: int) -> Optional[GroupORM]:
    return (
        db.query(GroupORM)
        .filter(GroupORM.budget_id == budget_id, GroupORM.id == group_id)
        .first()
    )


def get_group_id_by_name(db, budget_id: int, name: str) -> Optional[int]:
    row = (
        db.query(GroupORM.id)
        .filter(GroupORM.budget_id == budget_id, GroupORM.name == name)
        .first()
    )
    return row[0] if row else None


def list_groups(db, budget_id: int) -> List[GroupORM]:
    return (
        db.query(GroupORM)
        .filter(GroupORM.budget_id == budget_id)
        .order_by(GroupORM.id)
        .all()
    )


def update_group(db, group: GroupORM, name: str, notes: str) -> GroupORM:
    if name:
        group.name = name
    group.notes = notes
    db.flush()
    return group


def delete_group(db, group_id: int) -> bool:
    db.query(CategoryORM).filter(CategoryORM.group_id == group_id).update(
        {"group_id": None}, synchronize_session=False
    )
    deleted = (
        db.query(GroupORM)
        .filter(GroupORM.id == group_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0


# --- Categories ---


def insert_category(
    db, budget_id: int, name: str, group_id: Optional[int] = None, notes: str = ""
) -> CategoryORM:
    category = CategoryORM(
        budget_id=budget_id, name=name, group_id=group_id, notes=notes
    )
    db.add(category)
    db.flush()
    return category


def get_category(db, budget_id: int, category_id: int) -> Optional[CategoryORM]:
    return (
        db.query(CategoryORM)
        .filter(CategoryORM.budget_id == budget_id, CategoryORM.id == category_id)
        .first()
    )


def get_category_id_by_name(db, budget_id: int, name: str) -> Optional[int]:
    row = (
        db.query(CategoryORM.id)
        .filter(CategoryORM.budget_id == budget_id, CategoryORM.name == name)
        .first()
    )
    return row[0] if row else None


def list_categories(
    db, budget_id: int, group_id: Optional[int] = None
) -> List[CategoryORM]:
    query = db.query(CategoryORM).filter(CategoryORM.budget_id == budget_id)
    if group_id is not None:
        query = query.filter(CategoryORM.group_id == group_id)
    return query.order_by(CategoryORM.id).all()


def update_category(
    db,
    category: CategoryORM,
    name: str,
    notes: str,
    group_id: Optional[int],
    clear_group: bool = False,
) -> CategoryORM:
    if name:
        category.name = name
    category.notes = notes
    if group_id is not None or clear_group:
        category.group_id = group_id
    db.flush()
    return category


def delete_category(db, category_id: int) -> bool:
    deleted = (
        db.query(CategoryORM)
        .filter(CategoryORM.id == category_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0
