from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import UniqueConstraint

from pincher.data.base import Base
from pincher.domain.models import Account


class AccountORM(Base):
    __tablename__ = "accounts"
    __table_args__ = (UniqueConstraint("budget_id", "name"),)
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    budget_id = Column(
        Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    account_type = Column(String, default="")
    name = Column(String, nullable=False)
    notes = Column(Text, default="")
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


def account_to_domain(account_orm: AccountORM) -> Account:
    return Account(
        id=account_orm.id,
        budget_id=account_orm.budget_id,
        name=account_orm.name,
        account_type=account_orm.account_type or "",
        notes=account_orm.notes or "",
        is_deleted=account_orm.is_deleted,
    )


def insert_account(
    db, budget_id: int, name: str, account_type: str = "", notes: str = ""
) -> AccountORM:
    account = AccountORM(
        budget_id=budget_id, name=name, account_type=account_type, notes=notes
    )
    db.add(account)
    db.flush()
    return account


def get_account(db, account_id: int) -> Optional[AccountORM]:
    return db.query(AccountORM).filter(AccountORM.id == account_id).first()


def get_account_by_name(db, budget_id: int, name: str) -> Optional[AccountORM]:
    return (
        db.query(AccountORM)
        .filter(AccountORM.budget_id == budget_id, AccountORM.name == name)
        .first()
    )


def get_active_account_id_by_name(db, budget_id: int, name: str) -> Optional[int]:
    row = (
        db.query(AccountORM.id)
        .filter(
            AccountORM.budget_id == budget_id,
            AccountORM.name == name,
            AccountORM.is_deleted.is_(False),
        )
        .first()
    )
    return row[0] if row else None


def list_accounts(db, budget_id: int, include_deleted: bool = False) -> List[AccountORM]:
    query = db.query(AccountORM).filter(AccountORM.budget_id == budget_id)
    if not include_deleted:
        query = query.filter(AccountORM.is_deleted.is_(False))
    return query.order_by(AccountORM.id).all()


def update_account(
    db, account: AccountORM, name: str, account_type: str, notes: str
) -> AccountORM:
    if name:
        account.name = name
    if account_type:
        account.account_type = account_type
    account.notes = notes
    db.flush()
    return account


def set_account_deleted(db, account: AccountORM, is_deleted: bool) -> AccountORM:
    account.is_deleted = is_deleted
    db.flush()
    return account


def delete_account_row(db, account_id: int) -> bool:
    deleted = (
        db.query(AccountORM)
        .filter(AccountORM.id == account_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0
