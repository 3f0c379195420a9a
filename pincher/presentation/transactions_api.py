from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, StrictInt
from sqlalchemy.orm import Session

from pincher.domain.models import (
    BudgetScope,
    MemberRole,
    Transaction,
    TransactionInput,
    TransactionSplit,
)
from pincher.domain.services import transaction_service
from pincher.presentation.dependencies import get_db, require_role


class TransactionRequest(BaseModel):
    account_name: str
    transaction_date: str = Field(..., description="YYYY-MM-DD")
    amounts: Dict[str, StrictInt] = Field(
        ..., description="Category name (or UNCATEGORIZED / TRANSFER AMOUNT) to cents"
    )
    transfer_account_name: str = ""
    payee_name: str = ""
    notes: str = ""
    cleared: bool = False

    def to_input(self) -> TransactionInput:
        return TransactionInput(
            account_name=self.account_name,
            transaction_date=self.transaction_date,
            amounts=dict(self.amounts),
            transfer_account_name=self.transfer_account_name,
            payee_name=self.payee_name,
            notes=self.notes,
            cleared=self.cleared,
        )


class SplitResponse(BaseModel):
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    amount: int

    @staticmethod
    def from_domain(s: TransactionSplit) -> "SplitResponse":
        return SplitResponse(
            category_id=s.category_id, category_name=s.category_name, amount=s.amount
        )


class TransactionResponse(BaseModel):
    id: int
    budget_id: int
    logger_id: Optional[int] = None
    account_id: int
    transaction_type: str
    transaction_date: date
    payee_id: Optional[int] = None
    notes: str = ""
    cleared: bool = False
    total_amount: int
    splits: List[SplitResponse]
    transfer_transaction_id: Optional[int] = None

    @staticmethod
    def from_domain(t: Transaction) -> "TransactionResponse":
        return TransactionResponse(
            id=t.id,
            budget_id=t.budget_id,
            logger_id=t.logger_id,
            account_id=t.account_id,
            transaction_type=t.transaction_type.value,
            transaction_date=t.transaction_date,
            payee_id=t.payee_id,
            notes=t.notes,
            cleared=t.cleared,
            total_amount=t.total_amount,
            splits=[SplitResponse.from_domain(s) for s in t.splits],
            transfer_transaction_id=t.transfer_transaction_id,
        )


router = APIRouter(
    prefix="/api/budgets/{budget_id}/transactions", tags=["transactions"]
)


@router.post("", response_model=TransactionResponse, status_code=201)
def log_transaction_endpoint(
    req: TransactionRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.CONTRIBUTOR)),
):
    txn = transaction_service.log_transaction(db, scope, req.to_input())
    return TransactionResponse.from_domain(txn)


@router.get("", response_model=List[TransactionResponse])
def list_transactions_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    payee_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
):
    transactions = transaction_service.list_transactions(
        db,
        scope,
        account_id=account_id,
        category_id=category_id,
        payee_id=payee_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [TransactionResponse.from_domain(t) for t in transactions]


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction_endpoint(
    transaction_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    txn = transaction_service.get_transaction(db, scope, transaction_id)
    return TransactionResponse.from_domain(txn)


@router.get("/{transaction_id}/splits", response_model=List[SplitResponse])
def get_transaction_splits_endpoint(
    transaction_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    splits = transaction_service.get_transaction_splits(db, scope, transaction_id)
    return [SplitResponse.from_domain(s) for s in splits]


@router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction_endpoint(
    transaction_id: int,
    req: TransactionRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    txn = transaction_service.update_transaction(
        db, scope, transaction_id, req.to_input()
    )
    return TransactionResponse.from_domain(txn)


@router.delete("/{transaction_id}")
def delete_transaction_endpoint(
    transaction_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.CONTRIBUTOR)),
):
    deleted = transaction_service.delete_transaction(db, scope, transaction_id)
    return {"deleted": deleted}
