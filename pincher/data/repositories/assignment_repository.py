from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, Column, Date, DateTime, ForeignKey, Integer
from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from pincher.data.base import Base
from pincher.data.repositories.category_repository import CategoryORM
from pincher.domain.models import Assignment

UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class AssignmentORM(Base):
    __tablename__ = "assignments"
    __table_args__ = (UniqueConstraint("category_id", "month"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )
    month = Column(Date, nullable=False)  # always the first day of the month
    assigned = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


def assignment_to_domain(row: AssignmentORM) -> Assignment:
    return Assignment(category_id=row.category_id, month=row.month, assigned=row.assigned)


def increment_assignment(db, category_id: int, month: date, amount: int) -> Assignment:
    """
    Add `amount` to the (category, month) assignment inside the database,
    creating the row on first use. The increment happens in a single
    statement, so concurrent callers never overwrite each other.
    """
    insert = UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(AssignmentORM).values(
            category_id=category_id,
            month=month,
            assigned=amount,
            updated_at=datetime.utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AssignmentORM.category_id, AssignmentORM.month],
            set_={
                "assigned": AssignmentORM.assigned + stmt.excluded.assigned,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        db.execute(stmt)
    else:
        updated = (
            db.query(AssignmentORM)
            .filter(
                AssignmentORM.category_id == category_id, AssignmentORM.month == month
            )
            .update(
                {"assigned": AssignmentORM.assigned + amount},
                synchronize_session=False,
            )
        )
        if not updated:
            db.add(AssignmentORM(category_id=category_id, month=month, assigned=amount))
    db.flush()
    row = (
        db.query(AssignmentORM)
        .populate_existing()
        .filter(AssignmentORM.category_id == category_id, AssignmentORM.month == month)
        .one()
    )
    return assignment_to_domain(row)


def delete_category_assignments(db, category_id: int) -> int:
    return (
        db.query(AssignmentORM)
        .filter(AssignmentORM.category_id == category_id)
        .delete(synchronize_session=False)
    )


def assigned_rows(
    db, budget_id: int, through: date, category_id: Optional[int] = None
) -> list:
    """(category_id, month, assigned) for assignments up to `through`."""
    query = (
        db.query(AssignmentORM.category_id, AssignmentORM.month, AssignmentORM.assigned)
        .join(CategoryORM, CategoryORM.id == AssignmentORM.category_id)
        .filter(CategoryORM.budget_id == budget_id, AssignmentORM.month <= through)
    )
    if category_id is not None:
        query = query.filter(AssignmentORM.category_id == category_id)
    return [(cat, month, int(amount)) for cat, month, amount in query.all()]
