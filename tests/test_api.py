import pytest
from fastapi.testclient import TestClient

from pincher.domain.models import MemberRole
from pincher.domain.services import budget_service
from pincher.domain.services.auth_service import create_access_token
from pincher.main import app


@pytest.fixture
def client(db):
    return TestClient(app)


def _auth(username):
    token = create_access_token(data={"sub": username})
    return {"Authorization": f"Bearer {token}"}


class TestAuthentication:
    """Identity endpoints and bearer tokens."""

    def test_register_login_and_me(self, client):
        resp = client.post(
            "/api/auth/register", json={"username": "Erin", "password": "long-enough"}
        )
        assert resp.status_code == 200
        assert resp.json()["username"] == "erin"

        resp = client.post(
            "/api/auth/token", data={"username": "erin", "password": "long-enough"}
        )
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["username"] == "erin"

    def test_short_password_rejected(self, client):
        resp = client.post(
            "/api/auth/register", json={"username": "erin", "password": "short"}
        )
        assert resp.status_code == 400

    def test_budget_routes_need_a_token(self, client):
        assert client.get("/api/budgets").status_code == 401

    def test_bad_token_rejected(self, client):
        resp = client.get("/api/budgets", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestBudgetRoutes:
    """Clearance applied to budget-scoped routes."""

    def test_create_and_list(self, client, users):
        resp = client.post(
            "/api/budgets", json={"name": "Trip"}, headers=_auth("alice")
        )
        assert resp.status_code == 201
        budget_id = resp.json()["id"]

        resp = client.get("/api/budgets", headers=_auth("alice"))
        assert [b["id"] for b in resp.json()] == [budget_id]

        resp = client.get(
            "/api/budgets", params={"role": "viewer"}, headers=_auth("alice")
        )
        assert resp.json() == []

    def test_non_member_is_forbidden(self, client, budget, users):
        resp = client.get(f"/api/budgets/{budget.id}", headers=_auth("carol"))
        assert resp.status_code == 403

    def test_unknown_budget_is_forbidden(self, client, users):
        resp = client.get("/api/budgets/9999", headers=_auth("alice"))
        assert resp.status_code == 403

    def test_contributor_rejected_on_manager_route(self, db, client, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.CONTRIBUTOR)
        resp = client.post(
            f"/api/budgets/{scope.budget_id}/accounts",
            json={"name": "Cash"},
            headers=_auth("bob"),
        )
        assert resp.status_code == 403

    def test_only_admin_deletes_budget(self, db, client, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.MANAGER)
        url = f"/api/budgets/{scope.budget_id}"
        assert client.delete(url, headers=_auth("bob")).status_code == 403
        assert client.delete(url, headers=_auth("alice")).status_code == 200

    def test_adding_admin_conflicts(self, client, scope):
        resp = client.post(
            f"/api/budgets/{scope.budget_id}/members",
            json={"username": "bob", "role": "admin"},
            headers=_auth("alice"),
        )
        assert resp.status_code == 409

    def test_invalid_role_is_bad_request(self, client, scope):
        resp = client.post(
            f"/api/budgets/{scope.budget_id}/members",
            json={"username": "bob", "role": "owner"},
            headers=_auth("alice"),
        )
        assert resp.status_code == 400


class TestTransactionRoutes:
    """Logging and reading transactions over HTTP."""

    def test_log_transfer_and_read_back(self, client, scope, seeded):
        base = f"/api/budgets/{scope.budget_id}"
        resp = client.post(
            f"{base}/transactions",
            json={
                "account_name": "Checking",
                "transfer_account_name": "Savings",
                "transaction_date": "2024-11-05",
                "amounts": {"TRANSFER AMOUNT": -5000},
            },
            headers=_auth("alice"),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["transaction_type"] == "TRANSFER_FROM"
        assert body["total_amount"] == -5000

        resp = client.get(
            f"{base}/transactions/{body['transfer_transaction_id']}/splits",
            headers=_auth("alice"),
        )
        assert [s["amount"] for s in resp.json()] == [5000]

        resp = client.get(
            f"{base}/accounts/{seeded['savings'].id}/capital", headers=_auth("alice")
        )
        assert resp.json() == {"capital": 5000}

    def test_mixed_signs_are_bad_request(self, client, scope, seeded):
        resp = client.post(
            f"/api/budgets/{scope.budget_id}/transactions",
            json={
                "account_name": "Checking",
                "transaction_date": "2024-11-05",
                "amounts": {"Groceries": -100, "Rent": 100},
            },
            headers=_auth("alice"),
        )
        assert resp.status_code == 400
        assert "inconsistent signage" in resp.json()["detail"]

    def test_unknown_account_names_the_resource(self, client, scope, seeded):
        resp = client.post(
            f"/api/budgets/{scope.budget_id}/transactions",
            json={
                "account_name": "Wallet",
                "transaction_date": "2024-11-05",
                "amounts": {"Groceries": -100},
            },
            headers=_auth("alice"),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "could not find account 'Wallet'"

    @pytest.mark.parametrize("amount", [True, "-500", -5.5])
    def test_non_integer_amounts_rejected(self, client, scope, seeded, amount):
        base = f"/api/budgets/{scope.budget_id}/transactions"
        resp = client.post(
            base,
            json={
                "account_name": "Checking",
                "transaction_date": "2024-11-05",
                "amounts": {"Rent": amount},
            },
            headers=_auth("alice"),
        )
        assert resp.status_code == 422
        assert client.get(base, headers=_auth("alice")).json() == []


class TestMonthRoutes:
    """Assignment and month reports over HTTP."""

    def test_assign_then_report(self, client, scope, seeded):
        base = f"/api/budgets/{scope.budget_id}/months/2024-11-01"
        resp = client.post(
            f"{base}/categories/{seeded['rent'].id}",
            json={"amount": 1500},
            headers=_auth("alice"),
        )
        assert resp.status_code == 200
        assert resp.json()["assigned"] == 1500

        report = client.get(base, headers=_auth("alice")).json()
        assert report["balance"] == 1500
        assert report["assignable"] == -1500

    @pytest.mark.parametrize("amount", [True, "500"])
    def test_non_integer_assignment_rejected(self, client, scope, seeded, amount):
        url = f"/api/budgets/{scope.budget_id}/months/2024-11-01/categories/{seeded['rent'].id}"
        resp = client.post(url, json={"amount": amount}, headers=_auth("alice"))
        assert resp.status_code == 422
        assert client.get(url, headers=_auth("alice")).json()["assigned"] == 0

    def test_viewer_cannot_read_month_reports(self, db, client, scope):
        budget_service.add_member(db, scope, "bob", MemberRole.VIEWER)
        resp = client.get(
            f"/api/budgets/{scope.budget_id}/months/2024-11-01", headers=_auth("bob")
        )
        assert resp.status_code == 403
