import threading
from datetime import date

import pytest

from pincher.data.base import SessionLocal
from pincher.domain.errors import NotFoundError, ValidationError
from pincher.domain.services import account_service, budget_service, report_service
from pincher.domain.services import transaction_service


def _report_for(db, scope, month, category_id):
    return report_service.month_category_report(db, scope, month, category_id)


class TestCapitalAndBalanceScenario:
    """Deposit, withdraw, then transfer within one month."""

    def test_deposit_withdraw_transfer(self, db, scope, seeded, make_input):
        groceries = seeded["groceries"].id

        transaction_service.log_transaction(
            db, scope, make_input({"Groceries": 10000}, date="2024-11-02")
        )
        assert budget_service.get_budget_capital(db, scope) == 10000
        assert _report_for(db, scope, "2024-11-01", groceries).balance == 10000

        transaction_service.log_transaction(
            db, scope, make_input({"Groceries": -5000}, date="2024-11-09")
        )
        assert budget_service.get_budget_capital(db, scope) == 5000
        assert _report_for(db, scope, "2024-11-01", groceries).balance == 5000

        transaction_service.log_transaction(
            db,
            scope,
            make_input(
                {"TRANSFER AMOUNT": -5000},
                transfer_account_name="Savings",
                date="2024-11-15",
            ),
        )
        assert budget_service.get_budget_capital(db, scope) == 5000
        checking = account_service.get_account_capital(db, scope, seeded["checking"].id)
        savings = account_service.get_account_capital(db, scope, seeded["savings"].id)
        assert checking == 0
        assert savings == 5000
        # transfers carry no category
        assert _report_for(db, scope, "2024-11-01", groceries).balance == 5000


class TestAssignmentScenario:
    """Assigning into envelopes and spending from them."""

    def test_assign_and_spend_next_month(self, db, scope, seeded, make_input):
        groceries, rent = seeded["groceries"].id, seeded["rent"].id
        report_service.assign_to_category(db, scope, groceries, "2024-12-01", 4000)
        report_service.assign_to_category(db, scope, rent, "2024-12-01", 5000)
        transaction_service.log_transaction(
            db, scope, make_input({"Groceries": -4000}, date="2024-12-10")
        )

        c1 = _report_for(db, scope, "2024-12-01", groceries)
        c2 = _report_for(db, scope, "2024-12-01", rent)
        assert (c1.assigned, c1.activity, c1.balance) == (4000, -4000, 0)
        assert (c2.assigned, c2.activity, c2.balance) == (5000, 0, 5000)

    def test_balance_carries_into_later_months(self, db, scope, seeded, make_input):
        rent = seeded["rent"].id
        report_service.assign_to_category(db, scope, rent, "2024-11-01", 3000)
        transaction_service.log_transaction(
            db, scope, make_input({"Rent": -1000}, date="2024-11-20")
        )
        report = _report_for(db, scope, "2025-01-01", rent)
        assert (report.assigned, report.activity, report.balance) == (0, 0, 2000)

    def test_overspending_is_visible(self, db, scope, seeded, make_input):
        rent = seeded["rent"].id
        report_service.assign_to_category(db, scope, rent, "2024-11-01", 1000)
        transaction_service.log_transaction(
            db, scope, make_input({"Rent": -2500}, date="2024-11-20")
        )
        assert _report_for(db, scope, "2024-11-01", rent).balance == -1500

    def test_assignments_accumulate(self, db, scope, seeded):
        rent = seeded["rent"].id
        report_service.assign_to_category(db, scope, rent, "2024-11-01", 1000)
        assignment = report_service.assign_to_category(
            db, scope, rent, "2024-11-17", 250
        )
        assert assignment.month == date(2024, 11, 1)
        assert assignment.assigned == 1250

    def test_concurrent_assignments_all_land(self, db, scope, seeded):
        rent = seeded["rent"].id
        workers, rounds = 4, 20
        errors = []

        def assign_repeatedly():
            session = SessionLocal()
            try:
                for _ in range(rounds):
                    report_service.assign_to_category(
                        session, scope, rent, "2024-11-01", 1
                    )
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=assign_repeatedly) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert _report_for(db, scope, "2024-11-01", rent).assigned == workers * rounds

    def test_moving_money_between_categories(self, db, scope, seeded):
        groceries, rent = seeded["groceries"].id, seeded["rent"].id
        report_service.assign_to_category(db, scope, rent, "2024-11-01", 1000)
        report_service.assign_to_category(
            db, scope, groceries, "2024-11-01", 400, from_category_id=rent
        )
        assert _report_for(db, scope, "2024-11-01", rent).assigned == 600
        assert _report_for(db, scope, "2024-11-01", groceries).assigned == 400

    def test_zero_assignment_rejected(self, db, scope, seeded):
        with pytest.raises(ValidationError):
            report_service.assign_to_category(
                db, scope, seeded["rent"].id, "2024-11-01", 0
            )

    def test_category_of_another_budget_not_found(self, db, other_scope, seeded):
        with pytest.raises(NotFoundError):
            report_service.assign_to_category(
                db, other_scope, seeded["rent"].id, "2024-11-01", 100
            )


class TestMonthReport:
    """Budget-wide month totals and assignable money."""

    def test_over_assignment_shows_negative_assignable(
        self, db, scope, seeded, make_input
    ):
        transaction_service.log_transaction(
            db, scope, make_input({"UNCATEGORIZED": 11000}, date="2024-11-01")
        )
        report_service.assign_to_category(
            db, scope, seeded["rent"].id, "2024-11-01", 12000
        )

        report = report_service.month_report(db, scope, "2024-11-01")
        assert report.capital == 11000
        assert report.assigned == 12000
        assert report.activity == 0
        assert report.balance == 12000
        assert report.assignable == -1000

    def test_capital_counts_only_through_month_end(self, db, scope, seeded, make_input):
        transaction_service.log_transaction(
            db, scope, make_input({"UNCATEGORIZED": 500}, date="2024-11-30")
        )
        transaction_service.log_transaction(
            db, scope, make_input({"UNCATEGORIZED": 700}, date="2024-12-01")
        )
        assert report_service.month_report(db, scope, "2024-11-01").capital == 500
        assert report_service.month_report(db, scope, "2024-12-01").capital == 1200

    def test_category_reports_cover_every_category(self, db, scope, seeded):
        report_service.assign_to_category(
            db, scope, seeded["groceries"].id, "2024-11-01", 300
        )
        reports = report_service.month_category_reports(db, scope, "2024-11-01")
        by_name = {r.name: r for r in reports}
        assert set(by_name) == {"Groceries", "Rent"}
        assert by_name["Groceries"].balance == 300
        assert by_name["Rent"].balance == 0

    def test_bad_month_rejected(self, db, scope):
        with pytest.raises(ValidationError):
            report_service.month_report(db, scope, "2024-11")
