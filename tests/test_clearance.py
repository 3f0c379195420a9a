import pytest

from pincher.domain.errors import AuthorizationError
from pincher.domain.models import MemberRole
from pincher.domain.services import budget_service
from pincher.domain.services.clearance_service import check_clearance


class TestClearanceGate:
    """Membership lookup plus role comparison for a budget scope."""

    def test_admin_passes_every_gate(self, db, users, budget):
        for required in MemberRole:
            scope = check_clearance(db, users["alice"].id, budget.id, required)
            assert scope.budget_id == budget.id
            assert scope.role is MemberRole.ADMIN

    def test_non_member_is_forbidden(self, db, users, budget):
        with pytest.raises(AuthorizationError):
            check_clearance(db, users["carol"].id, budget.id, MemberRole.VIEWER)

    def test_unknown_budget_is_forbidden_not_missing(self, db, users):
        with pytest.raises(AuthorizationError):
            check_clearance(db, users["alice"].id, 9999, MemberRole.VIEWER)

    def test_contributor_cannot_pass_manager_gate(self, db, users, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.CONTRIBUTOR)
        with pytest.raises(AuthorizationError):
            check_clearance(db, users["bob"].id, scope.budget_id, MemberRole.MANAGER)
        granted = check_clearance(
            db, users["bob"].id, scope.budget_id, MemberRole.CONTRIBUTOR
        )
        assert granted.user_id == users["bob"].id
        assert granted.role is MemberRole.CONTRIBUTOR
