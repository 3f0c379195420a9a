from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import BigInteger, Boolean, Column, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Text, func, or_, select

from pincher.data.base import Base
from pincher.data.repositories.category_repository import CategoryORM
from pincher.domain.errors import ValidationError
from pincher.domain.models import Transaction, TransactionSplit, TransactionType


class TransactionORM(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    budget_id = Column(
        Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    logger_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    account_id = Column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    transaction_type = Column(SAEnum(TransactionType), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey("payees.id", ondelete="SET NULL"))
    notes = Column(Text, default="")
    cleared = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class TransactionSplitORM(Base):
    __tablename__ = "transaction_splits"
    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    amount = Column(BigInteger, nullable=False)


class TransferORM(Base):
    __tablename__ = "transfers"
    id = Column(Integer, primary_key=True, autoincrement=True)
    from_transaction_id = Column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    to_transaction_id = Column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )


# --- Writes (callers own the commit) ---


def insert_transaction(
    db,
    budget_id: int,
    logger_id: int,
    account_id: int,
    txn_type: TransactionType,
    txn_date: date,
    payee_id: Optional[int],
    notes: str,
    cleared: bool,
) -> TransactionORM:
    if txn_type is TransactionType.NONE:
        raise ValidationError("transaction type could not be inferred")
    txn = TransactionORM(
        budget_id=budget_id,
        logger_id=logger_id,
        account_id=account_id,
        transaction_type=txn_type,
        transaction_date=txn_date,
        payee_id=payee_id,
        notes=notes,
        cleared=cleared,
    )
    db.add(txn)
    db.flush()
    return txn


def update_transaction_row(db, txn: TransactionORM, **fields) -> TransactionORM:
    if fields.get("transaction_type") is TransactionType.NONE:
        raise ValidationError("transaction type could not be inferred")
    for name, value in fields.items():
        setattr(txn, name, value)
    db.flush()
    return txn


def insert_splits(db, transaction_id: int, amounts: Dict[Optional[int], int]) -> int:
    """Insert one split per nonzero amount. Zero amounts are never stored."""
    splits = [
        TransactionSplitORM(
            transaction_id=transaction_id, category_id=category_id, amount=amount
        )
        for category_id, amount in amounts.items()
        if amount != 0
    ]
    if not splits:
        raise ValidationError("no non-zero amount specified for transaction")
    db.add_all(splits)
    db.flush()
    return len(splits)


def delete_splits(db, transaction_id: int) -> int:
    deleted = (
        db.query(TransactionSplitORM)
        .filter(TransactionSplitORM.transaction_id == transaction_id)
        .delete(synchronize_session=False)
    )
    db.flush()
    return deleted


def insert_transfer(db, from_transaction_id: int, to_transaction_id: int) -> TransferORM:
    link = TransferORM(
        from_transaction_id=from_transaction_id, to_transaction_id=to_transaction_id
    )
    db.add(link)
    db.flush()
    return link


def delete_transactions(db, ids: Iterable[int]) -> int:
    ids = list(ids)
    if not ids:
        return 0
    # links and splits first, then the transactions
    db.query(TransferORM).filter(
        or_(
            TransferORM.from_transaction_id.in_(ids),
            TransferORM.to_transaction_id.in_(ids),
        )
    ).delete(synchronize_session=False)
    db.query(TransactionSplitORM).filter(
        TransactionSplitORM.transaction_id.in_(ids)
    ).delete(synchronize_session=False)
    deleted = (
        db.query(TransactionORM)
        .filter(TransactionORM.id.in_(ids))
        .delete(synchronize_session=False)
    )
    db.flush()
    return deleted


def reassign_payee(db, old_payee_id: int, new_payee_id: int) -> int:
    return (
        db.query(TransactionORM)
        .filter(TransactionORM.payee_id == old_payee_id)
        .update({"payee_id": new_payee_id}, synchronize_session=False)
    )


def uncategorize_splits(db, category_id: int) -> int:
    return (
        db.query(TransactionSplitORM)
        .filter(TransactionSplitORM.category_id == category_id)
        .update({"category_id": None}, synchronize_session=False)
    )


# --- Reads ---


def get_transaction_row(db, transaction_id: int) -> Optional[TransactionORM]:
    return db.query(TransactionORM).filter(TransactionORM.id == transaction_id).first()


def get_transfer_link(db, transaction_id: int) -> Optional[TransferORM]:
    return (
        db.query(TransferORM)
        .filter(
            or_(
                TransferORM.from_transaction_id == transaction_id,
                TransferORM.to_transaction_id == transaction_id,
            )
        )
        .first()
    )


def get_linked_transaction_id(db, transaction_id: int) -> Optional[int]:
    link = get_transfer_link(db, transaction_id)
    if not link:
        return None
    if link.from_transaction_id == transaction_id:
        return link.to_transaction_id
    return link.from_transaction_id


def get_split_amounts(db, transaction_id: int) -> Dict[Optional[int], int]:
    rows = (
        db.query(TransactionSplitORM.category_id, TransactionSplitORM.amount)
        .filter(TransactionSplitORM.transaction_id == transaction_id)
        .all()
    )
    amounts = defaultdict(int)
    for category_id, amount in rows:
        amounts[category_id] += amount
    return dict(amounts)


def get_transaction_ids_for_account(db, account_id: int) -> List[int]:
    rows = (
        db.query(TransactionORM.id)
        .filter(TransactionORM.account_id == account_id)
        .all()
    )
    return [r[0] for r in rows]


def is_payee_in_use(db, payee_id: int) -> bool:
    return (
        db.query(TransactionORM.id)
        .filter(TransactionORM.payee_id == payee_id)
        .first()
        is not None
    )


def _splits_by_transaction(db, ids: List[int]) -> Dict[int, List[TransactionSplit]]:
    result = defaultdict(list)
    if not ids:
        return result
    rows = (
        db.query(
            TransactionSplitORM.transaction_id,
            TransactionSplitORM.category_id,
            TransactionSplitORM.amount,
            CategoryORM.name,
        )
        .outerjoin(CategoryORM, CategoryORM.id == TransactionSplitORM.category_id)
        .filter(TransactionSplitORM.transaction_id.in_(ids))
        .order_by(TransactionSplitORM.id)
        .all()
    )
    for txn_id, category_id, amount, category_name in rows:
        result[txn_id].append(
            TransactionSplit(
                category_id=category_id, amount=amount, category_name=category_name
            )
        )
    return result


def _links_by_transaction(db, ids: List[int]) -> Dict[int, int]:
    if not ids:
        return {}
    links = (
        db.query(TransferORM)
        .filter(
            or_(
                TransferORM.from_transaction_id.in_(ids),
                TransferORM.to_transaction_id.in_(ids),
            )
        )
        .all()
    )
    linked = {}
    for link in links:
        linked[link.from_transaction_id] = link.to_transaction_id
        linked[link.to_transaction_id] = link.from_transaction_id
    return linked


def transactions_to_domain(db, rows: List[TransactionORM]) -> List[Transaction]:
    ids = [r.id for r in rows]
    splits = _splits_by_transaction(db, ids)
    links = _links_by_transaction(db, ids)
    return [
        Transaction(
            id=r.id,
            budget_id=r.budget_id,
            logger_id=r.logger_id,
            account_id=r.account_id,
            transaction_type=r.transaction_type,
            transaction_date=r.transaction_date,
            payee_id=r.payee_id,
            notes=r.notes or "",
            cleared=r.cleared,
            splits=splits.get(r.id, []),
            transfer_transaction_id=links.get(r.id),
        )
        for r in rows
    ]


def get_transaction(db, transaction_id: int) -> Optional[Transaction]:
    row = get_transaction_row(db, transaction_id)
    if not row:
        return None
    return transactions_to_domain(db, [row])[0]


def list_transactions(
    db,
    budget_id: int,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    payee_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Transaction]:
    query = db.query(TransactionORM).filter(TransactionORM.budget_id == budget_id)
    if account_id is not None:
        query = query.filter(TransactionORM.account_id == account_id)
    if payee_id is not None:
        query = query.filter(TransactionORM.payee_id == payee_id)
    if category_id is not None:
        with_category = select(TransactionSplitORM.transaction_id).where(
            TransactionSplitORM.category_id == category_id
        )
        query = query.filter(TransactionORM.id.in_(with_category))
    if start_date:
        query = query.filter(TransactionORM.transaction_date >= start_date)
    if end_date:
        query = query.filter(TransactionORM.transaction_date <= end_date)
    rows = query.order_by(
        TransactionORM.transaction_date.desc(), TransactionORM.id.desc()
    ).all()
    return transactions_to_domain(db, rows)


# --- Aggregates ---


def sum_capital(
    db,
    budget_id: int,
    account_id: Optional[int] = None,
    through: Optional[date] = None,
) -> int:
    """Sum of every split in the scope, cleared or not."""
    query = (
        db.query(func.coalesce(func.sum(TransactionSplitORM.amount), 0))
        .join(TransactionORM, TransactionORM.id == TransactionSplitORM.transaction_id)
        .filter(TransactionORM.budget_id == budget_id)
    )
    if account_id is not None:
        query = query.filter(TransactionORM.account_id == account_id)
    if through is not None:
        query = query.filter(TransactionORM.transaction_date <= through)
    return int(query.scalar() or 0)


def activity_rows(
    db, budget_id: int, through: date, category_id: Optional[int] = None
) -> list:
    """(category_id, transaction_date, summed amount) for categorized splits."""
    query = (
        db.query(
            TransactionSplitORM.category_id,
            TransactionORM.transaction_date,
            func.sum(TransactionSplitORM.amount),
        )
        .join(TransactionORM, TransactionORM.id == TransactionSplitORM.transaction_id)
        .filter(
            TransactionORM.budget_id == budget_id,
            TransactionORM.transaction_date <= through,
            TransactionSplitORM.category_id.isnot(None),
        )
    )
    if category_id is not None:
        query = query.filter(TransactionSplitORM.category_id == category_id)
    rows = query.group_by(
        TransactionSplitORM.category_id, TransactionORM.transaction_date
    ).all()
    return [(cat, day, int(total or 0)) for cat, day, total in rows]
