from fastapi import Depends
from sqlalchemy.orm import Session

from pincher.data.base import SessionLocal
from pincher.domain.models import BudgetScope, MemberRole
from pincher.domain.services.auth_service import get_current_user
from pincher.domain.services.clearance_service import check_clearance


def get_db():
    # closing an uncommitted session rolls it back
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_role(required: MemberRole):
    """
    Route dependency gating a budget-scoped endpoint on `required`.

    The budget id comes from the `{budget_id}` path parameter; the
    resulting BudgetScope is what the endpoint hands to the services.
    """

    def clearance(
        budget_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_user),
    ) -> BudgetScope:
        return check_clearance(db, current_user.id, budget_id, required)

    return clearance
