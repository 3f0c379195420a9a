"""
Envelope reads and the assignment write.

Reports are always recomputed from assignments and splits; nothing here
is cached or stored.
"""
from datetime import date
from typing import Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from pincher.data.base import atomic_unit
from pincher.data.repositories import category_repository
from pincher.data.repositories.assignment_repository import (
    assigned_rows,
    increment_assignment,
)
from pincher.data.repositories.transaction_repository import activity_rows, sum_capital
from pincher.domain.errors import NotFoundError, ValidationError
from pincher.domain.helpers.dates import month_bounds, parse_month
from pincher.domain.helpers.envelope import EnvelopeMonth, envelope_totals
from pincher.domain.models import Assignment, BudgetScope, CategoryReport, MonthReport

logger = structlog.get_logger(__name__)


def _scoped_category(db: Session, scope: BudgetScope, category_id: int):
    category = category_repository.get_category(db, scope.budget_id, category_id)
    if category is None:
        raise NotFoundError(f"category {category_id} not found")
    return category


def assign_to_category(
    db: Session,
    scope: BudgetScope,
    category_id: int,
    month: str,
    amount: int,
    from_category_id: Optional[int] = None,
) -> Assignment:
    """
    Add `amount` to a category's envelope for `month`. With a source
    category, the same amount is taken out of it in the same unit.
    """
    month_start = parse_month(month)
    if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
        raise ValidationError("assigned amount must be a non-zero integer")
    category = _scoped_category(db, scope, category_id)
    if from_category_id is not None:
        if from_category_id == category.id:
            raise ValidationError("cannot move money from a category to itself")
        _scoped_category(db, scope, from_category_id)

    with atomic_unit(db, "assignment"):
        assignment = increment_assignment(db, category.id, month_start, amount)
        if from_category_id is not None:
            increment_assignment(db, from_category_id, month_start, -amount)
    logger.info(
        "category_assigned",
        budget_id=scope.budget_id,
        category_id=category.id,
        from_category_id=from_category_id,
        month=month_start.isoformat(),
        amount=amount,
    )
    return assignment


def _envelopes(
    db: Session, scope: BudgetScope, month_start: date, category_id: Optional[int] = None
) -> Dict[int, EnvelopeMonth]:
    _, month_end = month_bounds(month_start)
    return envelope_totals(
        assigned_rows(db, scope.budget_id, month_end, category_id),
        activity_rows(db, scope.budget_id, month_end, category_id),
        month_start,
    )


def _category_report(category, month_start: date, envelope: EnvelopeMonth) -> CategoryReport:
    return CategoryReport(
        category_id=category.id,
        name=category.name,
        month=month_start,
        assigned=envelope.assigned,
        activity=envelope.activity,
        balance=envelope.balance,
    )


def month_report(db: Session, scope: BudgetScope, month: str) -> MonthReport:
    month_start = parse_month(month)
    _, month_end = month_bounds(month_start)
    envelopes = _envelopes(db, scope, month_start).values()
    return MonthReport(
        month=month_start,
        assigned=sum(e.assigned for e in envelopes),
        activity=sum(e.activity for e in envelopes),
        balance=sum(e.balance for e in envelopes),
        capital=sum_capital(db, scope.budget_id, through=month_end),
    )


def month_category_reports(
    db: Session, scope: BudgetScope, month: str
) -> List[CategoryReport]:
    month_start = parse_month(month)
    envelopes = _envelopes(db, scope, month_start)
    return [
        _category_report(c, month_start, envelopes.get(c.id, EnvelopeMonth()))
        for c in category_repository.list_categories(db, scope.budget_id)
    ]


def month_category_report(
    db: Session, scope: BudgetScope, month: str, category_id: int
) -> CategoryReport:
    month_start = parse_month(month)
    category = _scoped_category(db, scope, category_id)
    envelopes = _envelopes(db, scope, month_start, category.id)
    return _category_report(
        category, month_start, envelopes.get(category.id, EnvelopeMonth())
    )
