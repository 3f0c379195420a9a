from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictInt
from sqlalchemy.orm import Session

from pincher.domain.models import BudgetScope, CategoryReport, MemberRole, MonthReport
from pincher.domain.services.report_service import (
    assign_to_category,
    month_category_report,
    month_category_reports,
    month_report,
)
from pincher.presentation.dependencies import get_db, require_role


class AssignRequest(BaseModel):
    amount: StrictInt
    from_category_id: Optional[int] = None


class AssignmentResponse(BaseModel):
    category_id: int
    month: date
    assigned: int


class MonthReportResponse(BaseModel):
    month: date
    assigned: int
    activity: int
    balance: int
    capital: int
    assignable: int

    @staticmethod
    def from_domain(r: MonthReport) -> "MonthReportResponse":
        return MonthReportResponse(
            month=r.month,
            assigned=r.assigned,
            activity=r.activity,
            balance=r.balance,
            capital=r.capital,
            assignable=r.assignable,
        )


class CategoryReportResponse(BaseModel):
    category_id: int
    name: str
    month: date
    assigned: int
    activity: int
    balance: int

    @staticmethod
    def from_domain(r: CategoryReport) -> "CategoryReportResponse":
        return CategoryReportResponse(
            category_id=r.category_id,
            name=r.name,
            month=r.month,
            assigned=r.assigned,
            activity=r.activity,
            balance=r.balance,
        )


router = APIRouter(prefix="/api/budgets/{budget_id}/months", tags=["months"])


@router.get("/{month}", response_model=MonthReportResponse)
def get_month_report_endpoint(
    month: str,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    return MonthReportResponse.from_domain(month_report(db, scope, month))


@router.get("/{month}/categories", response_model=List[CategoryReportResponse])
def get_month_category_reports_endpoint(
    month: str,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    reports = month_category_reports(db, scope, month)
    return [CategoryReportResponse.from_domain(r) for r in reports]


@router.get("/{month}/categories/{category_id}", response_model=CategoryReportResponse)
def get_month_category_report_endpoint(
    month: str,
    category_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    report = month_category_report(db, scope, month, category_id)
    return CategoryReportResponse.from_domain(report)


@router.post("/{month}/categories/{category_id}", response_model=AssignmentResponse)
def assign_to_category_endpoint(
    month: str,
    category_id: int,
    req: AssignRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    assignment = assign_to_category(
        db, scope, category_id, month, req.amount, req.from_category_id
    )
    return AssignmentResponse(
        category_id=assignment.category_id,
        month=assignment.month,
        assigned=assignment.assigned,
    )
