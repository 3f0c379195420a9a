from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text

from pincher.data.base import Base
from pincher.domain.models import Budget, BudgetMembership, MemberRole


class BudgetORM(Base):
    __tablename__ = "budgets"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    admin_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class BudgetMembershipORM(Base):
    __tablename__ = "budget_memberships"
    budget_id = Column(
        Integer, ForeignKey("budgets.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role = Column(SAEnum(MemberRole), nullable=False)


def budget_to_domain(budget_orm: BudgetORM) -> Budget:
    return Budget(
        id=budget_orm.id,
        admin_id=budget_orm.admin_id,
        name=budget_orm.name,
        notes=budget_orm.notes or "",
        created_at=budget_orm.created_at,
        updated_at=budget_orm.updated_at,
    )


def membership_to_domain(row: BudgetMembershipORM) -> BudgetMembership:
    return BudgetMembership(budget_id=row.budget_id, user_id=row.user_id, role=row.role)


def insert_budget(db, admin_id: int, name: str, notes: str = "") -> BudgetORM:
    budget = BudgetORM(admin_id=admin_id, name=name, notes=notes)
    db.add(budget)
    db.flush()
    return budget


def insert_membership(
    db, budget_id: int, user_id: int, role: MemberRole
) -> BudgetMembershipORM:
    membership = BudgetMembershipORM(budget_id=budget_id, user_id=user_id, role=role)
    db.add(membership)
    db.flush()
    return membership


def get_budget(db, budget_id: int) -> Optional[BudgetORM]:
    return db.query(BudgetORM).filter(BudgetORM.id == budget_id).first()


def get_user_budgets(
    db, user_id: int, roles: Optional[List[MemberRole]] = None
) -> List[BudgetORM]:
    query = (
        db.query(BudgetORM)
        .join(BudgetMembershipORM, BudgetMembershipORM.budget_id == BudgetORM.id)
        .filter(BudgetMembershipORM.user_id == user_id)
    )
    if roles:
        query = query.filter(BudgetMembershipORM.role.in_(roles))
    return query.order_by(BudgetORM.created_at, BudgetORM.id).all()


def update_budget(db, budget_id: int, name: str, notes: str) -> Optional[BudgetORM]:
    budget = get_budget(db, budget_id)
    if not budget:
        return None
    if name:
        budget.name = name
    budget.notes = notes
    db.flush()
    return budget


def delete_budget(db, budget_id: int) -> bool:
    deleted = (
        db.query(BudgetORM)
        .filter(BudgetORM.id == budget_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0


def get_budget_ids_administered_by(db, user_id: int) -> List[int]:
    rows = db.query(BudgetORM.id).filter(BudgetORM.admin_id == user_id).all()
    return [r[0] for r in rows]


def get_membership(db, budget_id: int, user_id: int) -> Optional[BudgetMembershipORM]:
    return (
        db.query(BudgetMembershipORM)
        .filter(
            BudgetMembershipORM.budget_id == budget_id,
            BudgetMembershipORM.user_id == user_id,
        )
        .first()
    )


def get_member_role(db, budget_id: int, user_id: int) -> Optional[MemberRole]:
    membership = get_membership(db, budget_id, user_id)
    return membership.role if membership else None


def delete_membership(db, budget_id: int, user_id: int) -> bool:
    deleted = (
        db.query(BudgetMembershipORM)
        .filter(
            BudgetMembershipORM.budget_id == budget_id,
            BudgetMembershipORM.user_id == user_id,
        )
        .delete(synchronize_session=False)
    )
    return deleted > 0
