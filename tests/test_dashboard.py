"""
Dashboard view tests against a throwaway SQLite database.
Run from the project root: python -m pytest tests/test_dashboard.py -v
"""
import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from services.dashboard import (
    DashboardContext,
    DashboardView,
    format_status,
    initials,
    is_active,
    load_ledger,
    loan_details,
    next_payment_date,
    render_view,
)
from services.documents import DocumentRow
from services.errors import NotFound
from tests.support import OTHER_USER_ID, USER, TempDatabase, application, loan, payment, profile, schedule

TODAY = date(2024, 4, 15)


class TestHelpers(unittest.TestCase):
    def test_format_status(self):
        self.assertEqual(format_status("paid_off"), "Paid Off")
        self.assertEqual(format_status("under_review"), "Under Review")
        self.assertEqual(format_status(None), "")

    def test_next_payment_date_this_month(self):
        self.assertEqual(next_payment_date(date(2024, 1, 20), TODAY), date(2024, 4, 20))

    def test_next_payment_date_is_strictly_after_today(self):
        self.assertEqual(next_payment_date(date(2024, 1, 15), TODAY), date(2024, 5, 15))

    def test_next_payment_date_clamps_short_month(self):
        self.assertEqual(next_payment_date(date(2024, 1, 31), TODAY), date(2024, 4, 30))
        self.assertEqual(next_payment_date(date(2024, 1, 31), date(2024, 2, 1)), date(2024, 2, 29))

    def test_next_payment_date_rolls_year(self):
        self.assertEqual(next_payment_date(date(2024, 1, 10), date(2024, 12, 20)), date(2025, 1, 10))

    def test_initials(self):
        self.assertEqual(initials("Juan Dela Cruz"), "JD")
        self.assertEqual(initials(""), "LH")


class FakeDocuments:
    async def list_documents(self, user_id):
        return [DocumentRow("ID", f"{user_id}/2024__ID.png", datetime(2024, 1, 1, tzinfo=timezone.utc))]


class TestDashboardViews(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db = TempDatabase()
        await self.db.create()
        await self.db.add(
            profile(),
            loan(),
            loan("loan-old", status="paid_off", current_balance=Decimal("0.00")),
            loan("loan-other", user_id=OTHER_USER_ID),
            application(),
        )
        await self.db.add(
            schedule(1, date(2024, 2, 29), status="paid"),
            schedule(2, date(2024, 3, 31)),
            schedule(3, date(2024, 4, 30)),
            schedule(4, date(2024, 5, 31)),
        )
        await self.db.add(
            payment("p1", date(2024, 2, 29), schedule_id="loan-1-s1"),
            payment("p2", date(2024, 4, 2), amount="2000.00"),
        )

    async def asyncTearDown(self):
        await self.db.dispose()

    def _ctx(self, **kw):
        return DashboardContext(user=USER, session_factory=self.db.factory, today=TODAY, **kw)

    async def test_overview_counts_active_loans(self):
        body = await render_view(DashboardView.OVERVIEW, self._ctx())
        self.assertEqual(body["view"], "overview")
        self.assertEqual(len(body["loans"]), 2)
        self.assertEqual(body["activeLoanCount"], 1)
        self.assertEqual(body["totalActiveBalance"], "20000.00")
        self.assertEqual(body["nextPayment"]["dueDate"], "2024-04-30")
        self.assertEqual(body["nextPayment"]["amountDisplay"], "₱5,300.00")

    async def test_loans_view_reads_loans_and_applications(self):
        body = await render_view(DashboardView.LOANS, self._ctx())
        self.assertEqual({l["id"] for l in body["loans"]}, {"loan-1", "loan-old"})
        self.assertEqual(body["applicationCount"], 1)
        self.assertEqual(body["totalMonthlyPayment"], "5300.00")
        self.assertEqual(body["applications"][0]["statusLabel"], "Submitted")

    async def test_ledger_defaults_to_active_loan(self):
        body = await load_ledger(self._ctx(page_size=3))
        self.assertEqual(body["loanId"], "loan-1")
        ledger = body["ledger"]
        self.assertEqual(ledger["total"], 6)
        self.assertEqual(ledger["totalPages"], 2)
        rows = ledger["rows"]
        self.assertEqual([r["type"] for r in rows], ["Installment", "Payment", "Installment"])
        self.assertEqual(rows[2]["runningBalance"], "5300.00")
        self.assertTrue(rows[2]["isOverdue"])
        self.assertEqual(rows[2]["remainingAmount"], "3300.00")

    async def test_ledger_second_page_and_summary(self):
        body = await load_ledger(self._ctx(page=2, page_size=3))
        rows = body["ledger"]["rows"]
        self.assertEqual(rows[0]["type"], "Payment")
        self.assertEqual(rows[0]["runningBalance"], "3300.00")
        self.assertTrue(rows[1]["isNextDue"])
        summary = body["summary"]
        self.assertEqual(summary["totalPaid"], "7300.00")
        self.assertEqual(summary["thisMonthCount"], 1)
        self.assertFalse(summary["isFullyPaid"])

    async def test_ledger_for_someone_elses_loan(self):
        with self.assertRaises(NotFound):
            await load_ledger(self._ctx(loan_id="loan-other"))

    async def test_ledger_for_paid_off_loan(self):
        body = await load_ledger(self._ctx(loan_id="loan-old"))
        self.assertEqual(body["ledger"]["rows"], [])
        self.assertTrue(body["summary"]["isFullyPaid"])

    async def test_loan_details(self):
        body = await loan_details(self._ctx(), "loan-1")
        self.assertEqual(body["loan"]["statusLabel"], "Active")
        self.assertEqual(body["nextPayment"]["dueDate"], "2024-03-31")
        self.assertEqual([p["id"] for p in body["recentPayments"]], ["p2", "p1"])
        self.assertEqual(body["displayName"], "Juan Dela Cruz")
        self.assertEqual(body["initials"], "JD")

    async def test_loan_details_not_found(self):
        with self.assertRaises(NotFound):
            await loan_details(self._ctx(), "loan-other")

    async def test_profile_view(self):
        body = await render_view(DashboardView.PROFILE, self._ctx())
        self.assertEqual(body["profile"]["firstName"], "Juan")
        self.assertEqual(body["profile"]["zipCode"], None)
        self.assertFalse(body["profile"]["phoneVerified"])
        self.assertEqual(body["latestApplication"]["id"], "app-1")

    async def test_apply_and_invite_views(self):
        apply = await render_view(DashboardView.APPLY, self._ctx())
        self.assertEqual(len(apply["steps"]), 5)
        self.assertEqual(apply["minLoanAmount"], 5000)
        invite = await render_view(DashboardView.INVITE, self._ctx())
        self.assertEqual(invite["referralCode"], "CASHEW2024USER")
        self.assertIn("ref=CASHEW2024USER", invite["referralLink"])

    async def test_documents_view(self):
        body = await render_view(DashboardView.DOCUMENTS, self._ctx(documents=FakeDocuments()))
        self.assertEqual(body["documents"][0]["name"], "ID")
        self.assertEqual(body["documents"][0]["createdAt"], "2024-01-01T00:00:00+00:00")


class TestLoanStatusCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db = TempDatabase()
        await self.db.create()
        await self.db.add(loan(status="Active"), loan("loan-2", status="paid_off"))

    async def asyncTearDown(self):
        await self.db.dispose()

    def test_is_active_ignores_case(self):
        self.assertTrue(is_active(loan(status="ACTIVE")))
        self.assertFalse(is_active(loan(status=None)))

    async def test_overview_and_loans_agree(self):
        ctx = DashboardContext(user=USER, session_factory=self.db.factory, today=TODAY)
        overview = await render_view(DashboardView.OVERVIEW, ctx)
        loans = await render_view(DashboardView.LOANS, ctx)
        self.assertEqual(overview["activeLoanCount"], 1)
        self.assertEqual(loans["totalMonthlyPayment"], "5300.00")


class TestProfileFallback(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db = TempDatabase()
        await self.db.create()

    async def asyncTearDown(self):
        await self.db.dispose()

    async def test_profile_from_metadata(self):
        ctx = DashboardContext(user=USER, session_factory=self.db.factory, today=TODAY)
        body = await render_view(DashboardView.PROFILE, ctx)
        self.assertEqual(body["profile"]["lastName"], "Dela Cruz")
        self.assertEqual(body["profile"]["email"], "juan@example.com")
        self.assertIsNone(body["latestApplication"])

    async def test_empty_ledger(self):
        ctx = DashboardContext(user=USER, session_factory=self.db.factory, today=TODAY)
        body = await load_ledger(ctx)
        self.assertIsNone(body["loanId"])
        self.assertEqual(body["ledger"]["totalPages"], 0)


if __name__ == "__main__":
    unittest.main()
