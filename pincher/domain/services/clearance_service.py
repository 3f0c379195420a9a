import structlog
from sqlalchemy.orm import Session

from pincher.data.repositories.budget_repository import get_member_role
from pincher.domain.errors import AuthorizationError
from pincher.domain.helpers.roles import has_clearance
from pincher.domain.models import BudgetScope, MemberRole

logger = structlog.get_logger(__name__)


def check_clearance(
    db: Session, user_id: int, budget_id: int, required: MemberRole
) -> BudgetScope:
    """
    Gate a budget-scoped operation on the caller's membership role.

    A missing membership and an insufficient role both raise
    AuthorizationError, so callers cannot tell a budget they may not see
    from one that does not exist. The returned scope is the only source
    of budget identity for downstream writes.
    """
    role = get_member_role(db, budget_id, user_id)
    if role is None:
        logger.warning(
            "clearance_denied", reason="not_a_member", user_id=user_id, budget_id=budget_id
        )
        raise AuthorizationError("user does not have clearance for this budget")
    if not has_clearance(role, required):
        logger.warning(
            "clearance_denied",
            reason="insufficient_role",
            user_id=user_id,
            budget_id=budget_id,
            role=role.value,
            required=required.value,
        )
        raise AuthorizationError("user does not have clearance for action")
    return BudgetScope(budget_id=budget_id, user_id=user_id, role=role)


def ensure_in_scope(scope: BudgetScope, resource_budget_id: int) -> None:
    """Reject a resource fetched by identifier that belongs to another budget."""
    if resource_budget_id != scope.budget_id:
        raise AuthorizationError("resource does not belong to this budget")
