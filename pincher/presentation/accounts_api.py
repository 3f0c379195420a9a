from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pincher.domain.models import Account, BudgetScope, MemberRole
from pincher.domain.services.account_service import (
    create_account,
    delete_account,
    get_account,
    get_account_capital,
    list_accounts,
    restore_account,
    update_account,
)
from pincher.presentation.dependencies import get_db, require_role


class AccountRequest(BaseModel):
    name: str
    account_type: str = ""
    notes: str = ""


class AccountUpdateRequest(BaseModel):
    name: str = ""
    account_type: str = ""
    notes: str = ""


class AccountResponse(BaseModel):
    id: int
    budget_id: int
    name: str
    account_type: str = ""
    notes: str = ""
    is_deleted: bool = False

    @staticmethod
    def from_domain(a: Account) -> "AccountResponse":
        return AccountResponse(
            id=a.id,
            budget_id=a.budget_id,
            name=a.name,
            account_type=a.account_type,
            notes=a.notes,
            is_deleted=a.is_deleted,
        )


router = APIRouter(prefix="/api/budgets/{budget_id}/accounts", tags=["accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def create_account_endpoint(
    req: AccountRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    account = create_account(db, scope, req.name, req.account_type, req.notes)
    return AccountResponse.from_domain(account)


@router.get("", response_model=List[AccountResponse])
def list_accounts_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
    include: Optional[str] = Query(None, description="'deleted' to list soft-deleted too"),
):
    accounts = list_accounts(db, scope, include_deleted=include == "deleted")
    return [AccountResponse.from_domain(a) for a in accounts]


@router.get("/{account_id}", response_model=AccountResponse)
def get_account_endpoint(
    account_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return AccountResponse.from_domain(get_account(db, scope, account_id))


@router.get("/{account_id}/capital")
def get_account_capital_endpoint(
    account_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return {"capital": get_account_capital(db, scope, account_id)}


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account_endpoint(
    account_id: int,
    req: AccountUpdateRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    account = update_account(
        db, scope, account_id, req.name, req.account_type, req.notes
    )
    return AccountResponse.from_domain(account)


@router.post("/{account_id}/restore", response_model=AccountResponse)
def restore_account_endpoint(
    account_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    return AccountResponse.from_domain(restore_account(db, scope, account_id))


@router.delete("/{account_id}", response_model=AccountResponse)
def delete_account_endpoint(
    account_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.CONTRIBUTOR)),
    name: str = Query("", description="Current account name, confirms a hard delete"),
):
    return AccountResponse.from_domain(delete_account(db, scope, account_id, name))
