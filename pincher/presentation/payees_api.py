from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pincher.domain.models import BudgetScope, MemberRole, Payee
from pincher.domain.services.payee_service import (
    create_payee,
    delete_payee,
    get_payee,
    list_payees,
    update_payee,
)
from pincher.presentation.dependencies import get_db, require_role


class PayeeRequest(BaseModel):
    name: str
    notes: str = ""


class PayeeUpdateRequest(BaseModel):
    name: str = ""
    notes: str = ""


class PayeeResponse(BaseModel):
    id: int
    budget_id: int
    name: str
    notes: str = ""

    @staticmethod
    def from_domain(p: Payee) -> "PayeeResponse":
        return PayeeResponse(id=p.id, budget_id=p.budget_id, name=p.name, notes=p.notes)


router = APIRouter(prefix="/api/budgets/{budget_id}/payees", tags=["payees"])


@router.post("", response_model=PayeeResponse, status_code=201)
def create_payee_endpoint(
    req: PayeeRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.CONTRIBUTOR)),
):
    return PayeeResponse.from_domain(create_payee(db, scope, req.name, req.notes))


@router.get("", response_model=List[PayeeResponse])
def list_payees_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return [PayeeResponse.from_domain(p) for p in list_payees(db, scope)]


@router.get("/{payee_id}", response_model=PayeeResponse)
def get_payee_endpoint(
    payee_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return PayeeResponse.from_domain(get_payee(db, scope, payee_id))


@router.patch("/{payee_id}", response_model=PayeeResponse)
def update_payee_endpoint(
    payee_id: int,
    req: PayeeUpdateRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    payee = update_payee(db, scope, payee_id, req.name, req.notes)
    return PayeeResponse.from_domain(payee)


@router.delete("/{payee_id}")
def delete_payee_endpoint(
    payee_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.CONTRIBUTOR)),
    new_payee_name: str = Query("", description="Replacement for a payee still in use"),
):
    delete_payee(db, scope, payee_id, new_payee_name)
    return {"deleted": True}
