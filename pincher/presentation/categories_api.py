from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pincher.domain.models import BudgetScope, Category, Group, MemberRole
from pincher.domain.services import category_service
from pincher.presentation.dependencies import get_db, require_role


# --- Group models ---
class GroupRequest(BaseModel):
    name: str
    notes: str = ""


class GroupUpdateRequest(BaseModel):
    name: str = ""
    notes: str = ""


class GroupResponse(BaseModel):
    id: int
    budget_id: int
    name: str
    notes: str = ""

    @staticmethod
    def from_domain(g: Group) -> "GroupResponse":
        return GroupResponse(id=g.id, budget_id=g.budget_id, name=g.name, notes=g.notes)


# --- Category models ---
class CategoryRequest(BaseModel):
    name: str
    group_name: str = ""
    notes: str = ""


class CategoryUpdateRequest(BaseModel):
    name: str = ""
    notes: str = ""
    # None keeps the group, "" ungroups
    group_name: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    budget_id: int
    name: str
    group_id: Optional[int] = None
    notes: str = ""

    @staticmethod
    def from_domain(c: Category) -> "CategoryResponse":
        return CategoryResponse(
            id=c.id,
            budget_id=c.budget_id,
            name=c.name,
            group_id=c.group_id,
            notes=c.notes,
        )


router = APIRouter(prefix="/api/budgets/{budget_id}", tags=["categories"])


@router.post("/groups", response_model=GroupResponse, status_code=201)
def create_group_endpoint(
    req: GroupRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    group = category_service.create_group(db, scope, req.name, req.notes)
    return GroupResponse.from_domain(group)


@router.get("/groups", response_model=List[GroupResponse])
def list_groups_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return [GroupResponse.from_domain(g) for g in category_service.list_groups(db, scope)]


@router.get("/groups/{group_id}", response_model=GroupResponse)
def get_group_endpoint(
    group_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    return GroupResponse.from_domain(category_service.get_group(db, scope, group_id))


@router.patch("/groups/{group_id}", response_model=GroupResponse)
def update_group_endpoint(
    group_id: int,
    req: GroupUpdateRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    group = category_service.update_group(db, scope, group_id, req.name, req.notes)
    return GroupResponse.from_domain(group)


@router.delete("/groups/{group_id}")
def delete_group_endpoint(
    group_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    category_service.delete_group(db, scope, group_id)
    return {"deleted": True}


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category_endpoint(
    req: CategoryRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    category = category_service.create_category(
        db, scope, req.name, req.group_name, req.notes
    )
    return CategoryResponse.from_domain(category)


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories_endpoint(
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
    group_id: Optional[int] = None,
):
    categories = category_service.list_categories(db, scope, group_id)
    return [CategoryResponse.from_domain(c) for c in categories]


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category_endpoint(
    category_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.VIEWER)),
):
    category = category_service.get_category(db, scope, category_id)
    return CategoryResponse.from_domain(category)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category_endpoint(
    category_id: int,
    req: CategoryUpdateRequest,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    category = category_service.update_category(
        db, scope, category_id, req.name, req.notes, req.group_name
    )
    return CategoryResponse.from_domain(category)


@router.delete("/categories/{category_id}")
def delete_category_endpoint(
    category_id: int,
    db: Session = Depends(get_db),
    scope: BudgetScope = Depends(require_role(MemberRole.MANAGER)),
):
    category_service.delete_category(db, scope, category_id)
    return {"deleted": True}
