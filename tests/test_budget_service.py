import pytest

from pincher.data.base import SessionLocal
from pincher.data.repositories import (
    account_repository,
    budget_repository,
    payee_repository,
)
from pincher.data.repositories.budget_repository import (
    BudgetMembershipORM,
    get_member_role,
)
from pincher.data.repositories.transaction_repository import TransactionORM
from pincher.domain.errors import (
    ConflictError,
    NotFoundError,
    ResolutionError,
    ValidationError,
)
from pincher.domain.models import MemberRole
from pincher.domain.services import (
    account_service,
    budget_service,
    category_service,
    payee_service,
    transaction_service,
)
from pincher.domain.services.auth_service import delete_user_account


def _admin_count(db, budget_id):
    return (
        db.query(BudgetMembershipORM)
        .filter(
            BudgetMembershipORM.budget_id == budget_id,
            BudgetMembershipORM.role == MemberRole.ADMIN,
        )
        .count()
    )


@pytest.fixture
def second_session(db):
    """Another connection writing to the same database, as a concurrent request would."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


class TestBudgets:
    """Budget lifecycle and membership rules."""

    def test_creation_grants_exactly_one_admin(self, db, users, budget):
        assert _admin_count(db, budget.id) == 1
        assert get_member_role(db, budget.id, users["alice"].id) is MemberRole.ADMIN
        assert budget.admin_id == users["alice"].id

    def test_name_required(self, db, users):
        with pytest.raises(ValidationError):
            budget_service.create_budget(db, users["alice"].id, "")

    def test_list_with_role_filter(self, db, users, scope, budget):
        own = budget_service.create_budget(db, users["bob"].id, "Bob's")
        budget_service.add_member(db, scope, "bob", MemberRole.VIEWER)

        all_for_bob = budget_service.list_user_budgets(db, users["bob"].id)
        assert {b.id for b in all_for_bob} == {budget.id, own.id}
        viewer_only = budget_service.list_user_budgets(
            db, users["bob"].id, [MemberRole.VIEWER]
        )
        assert [b.id for b in viewer_only] == [budget.id]

    def test_admin_cannot_be_added(self, db, scope):
        with pytest.raises(ConflictError):
            budget_service.add_member(db, scope, "bob", MemberRole.ADMIN)
        assert _admin_count(db, scope.budget_id) == 1

    def test_unknown_user_cannot_be_added(self, db, scope):
        with pytest.raises(ResolutionError, match="nobody"):
            budget_service.add_member(db, scope, "nobody", MemberRole.VIEWER)

    def test_duplicate_membership_conflicts(self, db, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.VIEWER)
        with pytest.raises(ConflictError):
            budget_service.add_member(db, scope, "bob", MemberRole.MANAGER)

    def test_admin_cannot_be_removed(self, db, users, scope):
        with pytest.raises(ConflictError):
            budget_service.remove_member(db, scope, users["alice"].id)

    def test_remove_member(self, db, users, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.CONTRIBUTOR)
        assert budget_service.remove_member(db, scope, users["bob"].id)
        assert get_member_role(db, scope.budget_id, users["bob"].id) is None

    def test_update(self, db, scope):
        updated = budget_service.update_budget(db, scope, "Home", "renamed")
        assert (updated.name, updated.notes) == ("Home", "renamed")

    def test_delete_cascades(self, db, scope, seeded, make_input):
        transaction_service.log_transaction(db, scope, make_input({"Rent": -100}))
        budget_service.delete_budget(db, scope)
        assert db.query(TransactionORM).count() == 0
        assert db.query(BudgetMembershipORM).count() == 0
        with pytest.raises(NotFoundError):
            budget_service.get_budget(db, scope)

    def test_deleting_a_user_deletes_administered_budgets(self, db, users, budget):
        alice_id = users["alice"].id
        delete_user_account(db, alice_id)
        assert budget_service.list_user_budgets(db, alice_id) == []
        assert db.query(BudgetMembershipORM).count() == 0


class TestAccounts:
    """Soft and hard account deletion."""

    def test_duplicate_name_conflicts(self, db, scope, seeded):
        with pytest.raises(ConflictError):
            account_service.create_account(db, scope, "Checking")

    def test_soft_delete_hides_and_restore_shows(self, db, scope, seeded):
        account_service.delete_account(db, scope, seeded["savings"].id)
        names = [a.name for a in account_service.list_accounts(db, scope)]
        assert names == ["Checking"]
        with_deleted = account_service.list_accounts(db, scope, include_deleted=True)
        assert len(with_deleted) == 2

        restored = account_service.restore_account(db, scope, seeded["savings"].id)
        assert not restored.is_deleted

    def test_hard_delete_requires_soft_delete_first(self, db, scope, seeded):
        with pytest.raises(ValidationError, match="soft-deleted"):
            account_service.delete_account(db, scope, seeded["savings"].id, "Savings")

    def test_hard_delete_requires_matching_name(self, db, scope, seeded):
        account_service.delete_account(db, scope, seeded["savings"].id)
        with pytest.raises(ValidationError, match="does not match"):
            account_service.delete_account(db, scope, seeded["savings"].id, "savings")

    def test_hard_delete_removes_transfer_counterparts(
        self, db, scope, seeded, make_input
    ):
        transaction_service.log_transaction(
            db,
            scope,
            make_input({"TRANSFER AMOUNT": -300}, transfer_account_name="Savings"),
        )
        kept = transaction_service.log_transaction(db, scope, make_input({"Rent": -50}))

        account_service.delete_account(db, scope, seeded["savings"].id)
        account_service.delete_account(db, scope, seeded["savings"].id, "Savings")

        remaining = transaction_service.list_transactions(db, scope)
        assert [t.id for t in remaining] == [kept.id]
        with pytest.raises(NotFoundError):
            account_service.get_account(db, scope, seeded["savings"].id)


class TestCategoriesAndGroups:
    """Groups, categories and what happens to their references."""

    def test_duplicate_group_conflicts(self, db, scope, seeded):
        with pytest.raises(ConflictError):
            category_service.create_group(db, scope, "Essentials")

    def test_unknown_group_name_fails_resolution(self, db, scope, seeded):
        with pytest.raises(ResolutionError, match="group"):
            category_service.create_category(db, scope, "Fun", "Leisure")

    def test_sentinel_names_are_reserved(self, db, scope):
        with pytest.raises(ValidationError):
            category_service.create_category(db, scope, "UNCATEGORIZED")

    def test_deleting_group_ungroups_categories(self, db, scope, seeded):
        category_service.delete_group(db, scope, seeded["group"].id)
        category = category_service.get_category(db, scope, seeded["rent"].id)
        assert category.group_id is None

    def test_update_category_group(self, db, scope, seeded):
        moved = category_service.update_category(
            db, scope, seeded["rent"].id, group_name=""
        )
        assert moved.group_id is None
        kept = category_service.update_category(
            db, scope, seeded["groceries"].id, notes="food"
        )
        assert kept.group_id == seeded["group"].id
        assert kept.notes == "food"

    def test_list_by_group(self, db, scope, seeded):
        category_service.create_category(db, scope, "Fun")
        grouped = category_service.list_categories(db, scope, seeded["group"].id)
        assert {c.name for c in grouped} == {"Groceries", "Rent"}

    def test_deleting_category_uncategorizes_splits(
        self, db, scope, seeded, make_input
    ):
        txn = transaction_service.log_transaction(
            db, scope, make_input({"Groceries": -100})
        )
        category_service.delete_category(db, scope, seeded["groceries"].id)
        splits = transaction_service.get_transaction_splits(db, scope, txn.id)
        assert [(s.category_id, s.amount) for s in splits] == [(None, -100)]


class TestPayees:
    """Payee deletion with reassignment."""

    def test_in_use_payee_needs_replacement(self, db, scope, seeded, make_input):
        transaction_service.log_transaction(
            db, scope, make_input({"Rent": -100}, payee_name="Market")
        )
        with pytest.raises(ValidationError, match="replacement"):
            payee_service.delete_payee(db, scope, seeded["market"].id)

    def test_delete_reassigns_transactions(self, db, scope, seeded, make_input):
        txn = transaction_service.log_transaction(
            db, scope, make_input({"Rent": -100}, payee_name="Market")
        )
        landlord = payee_service.create_payee(db, scope, "Landlord")
        payee_service.delete_payee(db, scope, seeded["market"].id, "Landlord")

        assert transaction_service.get_transaction(db, scope, txn.id).payee_id == landlord.id
        assert [p.name for p in payee_service.list_payees(db, scope)] == ["Landlord"]

    def test_unused_payee_deletes_directly(self, db, scope, seeded):
        assert payee_service.delete_payee(db, scope, seeded["market"].id)


class TestLostUniquenessRaces:
    """
    A writer whose existence check ran before a concurrent insert committed
    hits the database constraint; that must surface as a conflict.
    """

    def test_member_added_twice(self, db, users, scope, second_session, monkeypatch):
        budget_service.add_member(db, scope, "bob", MemberRole.VIEWER)
        monkeypatch.setattr(budget_repository, "get_membership", lambda *args: None)

        with pytest.raises(ConflictError, match="already a member"):
            budget_service.add_member(second_session, scope, "bob", MemberRole.MANAGER)
        assert get_member_role(db, scope.budget_id, users["bob"].id) is MemberRole.VIEWER

    def test_account_created_twice(self, db, scope, seeded, second_session, monkeypatch):
        monkeypatch.setattr(account_repository, "get_account_by_name", lambda *args: None)

        with pytest.raises(ConflictError, match="Checking"):
            account_service.create_account(second_session, scope, "Checking")
        assert len(account_service.list_accounts(db, scope)) == 2

    def test_payee_created_twice(self, db, scope, seeded, second_session, monkeypatch):
        monkeypatch.setattr(payee_repository, "get_payee_id_by_name", lambda *args: None)

        with pytest.raises(ConflictError, match="Market"):
            payee_service.create_payee(second_session, scope, "Market")
        assert [p.name for p in payee_service.list_payees(db, scope)] == ["Market"]

