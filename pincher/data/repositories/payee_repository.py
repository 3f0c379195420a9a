from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import UniqueConstraint

from pincher.data.base import Base
from pincher.domain.models import Payee


class PayeeORM(Base):
    __tablename__ = "payees"
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


def payee_to_domain(payee_orm: PayeeORM) -> Payee:
    return Payee(
        id=payee_orm.id,
        budget_id=payee_orm.budget_id,
        name=payee_orm.name,
        notes=payee_orm.notes or "",
    )


def insert_payee(db, budget_id: int, name: str, notes: str = "") -> PayeeORM:
    payee = PayeeORM(budget_id=budget_id, name=name, notes=notes)
    db.add(payee)
    db.flush()
    return payee


def get_payee(db, budget_id: int, payee_id: int) -> Optional[PayeeORM]:
    return (
        db.query(PayeeORM)
        .filter(PayeeORM.budget_id == budget_id, PayeeORM.id == payee_id)
        .first()
    )


def get_payee_id_by_name(db, budget_id: int, name: str) -> Optional[int]:
    row = (
        db.query(PayeeORM.id)
        .filter(PayeeORM.budget_id == budget_id, PayeeORM.name == name)
        .first()
    )
    return row[0] if row else None


def list_payees(db, budget_id: int) -> List[PayeeORM]:
    return (
        db.query(PayeeORM)
        .filter(PayeeORM.budget_id == budget_id)
        .order_by(PayeeORM.id)
        .all()
    )


def update_payee(db, payee: PayeeORM, name: str, notes: str) -> PayeeORM:
    if name:
        payee.name = name
    payee.notes = notes
    db.flush()
    return payee


def delete_payee(db, payee_id: int) -> bool:
    deleted = (
        db.query(PayeeORM)
        .filter(PayeeORM.id == payee_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0
