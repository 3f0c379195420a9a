"""
Pytest Configuration and Shared Fixtures

Points the application at a throwaway SQLite database before any pincher
module is imported, and rebuilds the schema for every test.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="pincher-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/pincher.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("LOG_FORMAT", "console")

import pytest  # noqa: E402

from pincher.data.base import SessionLocal, create_tables, drop_tables  # noqa: E402
from pincher.data.repositories.user_repository import create_user  # noqa: E402
from pincher.domain.models import (  # noqa: E402
    BudgetScope,
    MemberRole,
    TransactionInput,
)
from pincher.domain.services import (  # noqa: E402
    account_service,
    budget_service,
    category_service,
    payee_service,
)


@pytest.fixture
def db():
    """A session on a freshly created schema."""
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def users(db):
    """Four users; password hashes are placeholders, nothing logs in with them."""
    return {
        name: create_user(db, name, "not-a-real-hash")
        for name in ("alice", "bob", "carol", "dave")
    }


@pytest.fixture
def budget(db, users):
    """A budget administered by alice."""
    return budget_service.create_budget(db, users["alice"].id, "Household", "shared")


@pytest.fixture
def scope(budget, users):
    """alice's ADMIN scope on the household budget."""
    return BudgetScope(budget_id=budget.id, user_id=users["alice"].id, role=MemberRole.ADMIN)


@pytest.fixture
def other_scope(db, users):
    """dave's ADMIN scope on a second, unrelated budget."""
    other = budget_service.create_budget(db, users["dave"].id, "Dave's")
    return BudgetScope(budget_id=other.id, user_id=users["dave"].id, role=MemberRole.ADMIN)


@pytest.fixture
def seeded(db, scope):
    """Accounts, a group, categories and a payee inside the household budget."""
    checking = account_service.create_account(db, scope, "Checking", "checking")
    savings = account_service.create_account(db, scope, "Savings", "savings")
    group = category_service.create_group(db, scope, "Essentials")
    groceries = category_service.create_category(db, scope, "Groceries", "Essentials")
    rent = category_service.create_category(db, scope, "Rent", "Essentials")
    market = payee_service.create_payee(db, scope, "Market")
    return {
        "checking": checking,
        "savings": savings,
        "group": group,
        "groceries": groceries,
        "rent": rent,
        "market": market,
    }


@pytest.fixture
def make_input():
    """Factory for raw transaction requests with sensible defaults."""

    def _make(amounts, account="Checking", date="2024-11-05", **kwargs):
        return TransactionInput(
            account_name=account,
            transaction_date=date,
            amounts=amounts,
            **kwargs,
        )

    return _make
