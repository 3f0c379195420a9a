from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pincher.domain.models import Budget, BudgetMembership, BudgetScope, MemberRole
from pincher.domain.services.auth_service import get_current_user
from pincher.domain.services.budget_service import (
    add_member,
    create_budget,
    delete_budget,
    get_budget,
    get_budget_capital,
    list_user_budgets,
    remove_member,
    update_budget,
)
from pincher.presentation.dependencies import get_db, require_role


class BudgetRequest(BaseModel):
    name: str
    notes: str = ""


class BudgetUpdateRequest(BaseModel):
    name: str = ""
    notes: str = ""


class AddMemberRequest(BaseModel):
    username: str
    role: str


class BudgetResponse(BaseModel):
    id: int
    admin_id: int
    name: str
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def from_domain(b: Budget) -> "BudgetResponse":
        return BudgetResponse(
            id=b.id,
            admin_id=b.admin_id,
            name=b.name,
            notes=b.notes,
            created_at=b.created_at,
            updated_at=b.updated_at,
        )


class MembershipResponse(BaseModel):
    budget_id: int
    user_id: int
    role: str

    @staticmethod
    def from_domain(m: BudgetMembership) -> "MembershipResponse":
        return MembershipResponse(
            budget_id=m.budget_id, user_id=m.user_id, role=m.role.value
        )


class CapitalResponse(BaseModel):
    capital: int


router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.post("", response_model=BudgetResponse, status_code=201)
def create_budget_endpoint(
    req: BudgetRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return BudgetResponse.from_domain(
        create_budget(db, current_user.id, req.name, req.notes)
    )


@router.get("", response_model=List[BudgetResponse])
def list_budgets_endpoint(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    role: Optional[List[str]] = Query(None, description="Only budgets with these roles"),
):
    roles = [MemberRole.parse(r) for r in role] if role else None
    return [
        BudgetResponse.from_domain(b)
        for b in list_user_budgets(db, current_user.id, roles)
    ]


@router.get("/{budget_id}", response_model=BudgetResponse)
def get_budget_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return BudgetResponse.from_domain(get_budget(db, scope))


@router.patch("/{budget_id}", response_model=BudgetResponse)
def update_budget_endpoint(
    req: BudgetUpdateRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    return BudgetResponse.from_domain(update_budget(db, scope, req.name, req.notes))


@router.delete("/{budget_id}")
def delete_budget_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.ADMIN)),
):
    delete_budget(db, scope)
    return {"deleted": True}


@router.get("/{budget_id}/capital", response_model=CapitalResponse)
def get_budget_capital_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return CapitalResponse(capital=get_budget_capital(db, scope))


@router.post("/{budget_id}/members", response_model=MembershipResponse, status_code=201)
def add_member_endpoint(
    req: AddMemberRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    membership = add_member(db, scope, req.username, MemberRole.parse(req.role))
    return MembershipResponse.from_domain(membership)


@router.delete("/{budget_id}/members/{user_id}")
def remove_member_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    remove_member(db, scope, user_id)
    return {"deleted": True}
