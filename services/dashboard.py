"""
Borrower dashboard views.

Each view is one entry in ``_RENDERERS``; ``render_view`` is the only
dispatch point. Independent reads run concurrently, each in its own
session, and each result stands on its own: a page may show loans and
applications read at slightly different moments.
"""
from __future__ import annotations

import asyncio
import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import async_sessionmaker

from config import settings
from integrations.supabase import AuthUser
from models import Application, Loan, LoanStatus, Payment, PaymentSchedule, Profile
from services import applications as application_queries
from services import loans as loan_queries
from services.application_form import EMPLOYMENT_LENGTHS, EMPLOYMENT_STATUSES, LOAN_PURPOSES, LOAN_TERMS, step_catalogue
from services.documents import DocumentRow, DocumentService
from services.errors import NotFound
from services.ledger import CENT, LedgerPage, LedgerRow, LedgerSummary, build_ledger, format_currency, paginate, summarize
from services.referrals import invite_view
from utils.case import dict_keys_to_camel, row_to_camel

T = TypeVar("T")


class DashboardView(str, enum.Enum):
    OVERVIEW = "overview"
    PROFILE = "profile"
    LOANS = "loans"
    TRANSACTIONS = "transactions"
    INVITE = "invite"
    APPLY = "apply"
    DOCUMENTS = "documents"


@dataclass
class DashboardContext:
    user: AuthUser
    session_factory: async_sessionmaker
    today: date
    documents: Optional[DocumentService] = None
    page: int = 1
    page_size: int = settings.ledger_page_size
    loan_id: Optional[str] = None
    newest_first: bool = False


async def _read(factory: async_sessionmaker, query: Callable[..., Awaitable[T]], *args: Any) -> T:
    async with factory() as session:
        return await query(session, *args)


def format_status(status: Optional[str]) -> str:
    """``paid_off`` -> ``Paid Off``."""
    return (status or "").replace("_", " ").title()


def next_payment_date(origination_date: Optional[date], today: date) -> date:
    """
    Next monthly due date on the origination day-of-month, strictly after
    today. Days past the end of a short month fall on its last day.
    """
    day = (origination_date or today).day

    def on_day(year: int, month: int) -> date:
        return date(year, month, min(day, calendar.monthrange(year, month)[1]))

    tentative = on_day(today.year, today.month)
    if tentative > today:
        return tentative
    year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    return on_day(year, month)


def is_active(loan: Loan) -> bool:
    return (loan.status or "").lower() == LoanStatus.ACTIVE.value


def money(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT))


def _iso(value: Optional[date | datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _loan_to_response(loan: Loan) -> dict[str, Any]:
    return {
        "id": loan.id,
        "loanType": loan.loan_type,
        "principalAmount": money(loan.principal_amount),
        "currentBalance": money(loan.current_balance),
        "interestRate": str(loan.interest_rate),
        "termMonths": loan.term_months,
        "monthlyPayment": money(loan.monthly_payment),
        "status": loan.status,
        "statusLabel": format_status(loan.status),
        "originationDate": _iso(loan.origination_date),
        "maturityDate": _iso(loan.maturity_date),
    }


def _application_to_response(app: Application) -> dict[str, Any]:
    return {
        "id": app.id,
        "loanType": app.loan_type,
        "loanAmount": money(app.loan_amount),
        "loanPurpose": app.loan_purpose,
        "employmentStatus": app.employment_status,
        "employerName": app.employer_name,
        "jobTitle": app.job_title,
        "monthlyIncome": money(app.monthly_income),
        "yearsEmployed": str(app.years_employed) if app.years_employed is not None else None,
        "status": app.status,
        "statusLabel": format_status(app.status),
        "submittedAt": _iso(app.submitted_at),
        "createdAt": _iso(app.created_at),
    }


def _row_to_response(row: LedgerRow) -> dict[str, Any]:
    shown = -row.amount if row.is_payment else row.amount
    return {
        "id": row.id,
        "loanId": row.loan_id,
        "type": row.type.value,
        "date": row.date.isoformat(),
        "amount": money(row.amount),
        "signedAmount": money(row.signed_amount),
        "runningBalance": money(row.running_balance),
        "remainingAmount": money(row.remaining_amount),
        "scheduleId": row.schedule_id,
        "paymentId": row.payment_id,
        "status": row.status,
        "isOverdue": row.is_overdue,
        "daysOverdue": row.days_overdue,
        "isNextDue": row.is_next_due,
        "display": {
            "amount": format_currency(shown),
            "runningBalance": format_currency(row.running_balance),
        },
    }


def page_to_response(page: LedgerPage) -> dict[str, Any]:
    return {
        "rows": [_row_to_response(r) for r in page.rows],
        "page": page.page,
        "pageSize": page.page_size,
        "total": page.total,
        "totalPages": page.total_pages,
        "hasNext": page.has_next,
        "hasPrevious": page.has_previous,
    }


def summary_to_response(summary: LedgerSummary) -> dict[str, Any]:
    return {
        "latestBalance": money(summary.latest_balance),
        "isFullyPaid": summary.is_fully_paid,
        "totalPaid": money(summary.total_paid),
        "paymentCount": summary.payment_count,
        "thisMonthTotal": money(summary.this_month_total),
        "thisMonthCount": summary.this_month_count,
        "display": {
            "latestBalance": format_currency(summary.latest_balance),
            "totalPaid": format_currency(summary.total_paid),
            "thisMonthTotal": format_currency(summary.this_month_total),
        },
    }


def display_name(profile: Optional[Profile], user: AuthUser) -> str:
    if profile is not None and (profile.first_name or profile.last_name):
        return f"{profile.first_name or ''} {profile.last_name or ''}".strip()
    meta = user.user_metadata
    if meta.get("first_name") or meta.get("last_name"):
        return f"{meta.get('first_name') or ''} {meta.get('last_name') or ''}".strip()
    return user.email or "Loan Holder"


def initials(name: str) -> str:
    if not name:
        return "LH"
    return "".join(part[0] for part in name.split(" ") if part)[:2].upper()


async def load_ledger(ctx: DashboardContext) -> dict[str, Any]:
    """Ledger page plus summary for ``ctx.loan_id`` or the borrower's current loan."""
    factory, user_id = ctx.session_factory, ctx.user.id
    if ctx.loan_id:
        loan = await _read(factory, loan_queries.get_loan_for_user, ctx.loan_id, user_id)
        if loan is None:
            raise NotFound("Loan not found")
    else:
        loan = await _read(factory, loan_queries.default_ledger_loan, user_id)

    schedules: list[PaymentSchedule] = []
    payments: list[Payment] = []
    if loan is not None:
        schedules, payments = await asyncio.gather(
            _read(factory, loan_queries.list_schedules, loan.id),
            _read(factory, loan_queries.list_payments, loan.id),
        )
    rows = build_ledger(schedules, payments, ctx.today)
    page = paginate(rows, ctx.page, ctx.page_size, newest_first=ctx.newest_first)
    summary = summarize(rows, ctx.today, loan.status if loan is not None else None)
    return {
        "loanId": loan.id if loan is not None else None,
        "ledger": page_to_response(page),
        "summary": summary_to_response(summary),
    }


async def render_overview(ctx: DashboardContext) -> dict[str, Any]:
    user_id = settings.local_test_user_id or ctx.user.id
    loans = await _read(ctx.session_factory, loan_queries.list_loans, user_id)
    active = [l for l in loans if is_active(l)]

    next_payment = None
    if active:
        loan, due = min(
            ((l, next_payment_date(l.origination_date, ctx.today)) for l in active),
            key=lambda pair: pair[1],
        )
        next_payment = {
            "loanId": loan.id,
            "amount": money(loan.monthly_payment),
            "amountDisplay": format_currency(loan.monthly_payment),
            "dueDate": due.isoformat(),
            "loanType": loan.loan_type,
        }

    total_active = sum((l.current_balance for l in active), Decimal("0"))
    return {
        "loans": [_loan_to_response(l) for l in loans],
        "activeLoanCount": len(active),
        "totalActiveBalance": money(total_active),
        "totalActiveBalanceDisplay": format_currency(total_active),
        "nextPayment": next_payment,
    }


async def render_loans(ctx: DashboardContext) -> dict[str, Any]:
    loans, apps = await asyncio.gather(
        _read(ctx.session_factory, loan_queries.list_loans, ctx.user.id),
        _read(ctx.session_factory, application_queries.list_applications, ctx.user.id),
    )
    total_balance = sum((l.current_balance for l in loans), Decimal("0"))
    monthly = sum((l.monthly_payment for l in loans if is_active(l)), Decimal("0"))
    return {
        "loans": [_loan_to_response(l) for l in loans],
        "applications": [_application_to_response(a) for a in apps],
        "totalBalance": money(total_balance),
        "totalMonthlyPayment": money(monthly),
        "applicationCount": len(apps),
    }


async def render_transactions(ctx: DashboardContext) -> dict[str, Any]:
    return await load_ledger(ctx)


PROFILE_FIELDS = ("first_name", "last_name", "email", "phone", "address", "city", "state", "zip_code")
DOCUMENT_FIELDS = ("name", "path", "created_at")


def profile_to_response(profile: Optional[Profile], user: AuthUser) -> dict[str, Any]:
    """Stored profile, or one derived from sign-up metadata before the first save."""
    if profile is None:
        meta = user.user_metadata
        body = dict_keys_to_camel({f: None for f in PROFILE_FIELDS})
        body.update(
            firstName=meta.get("first_name") or "",
            lastName=meta.get("last_name") or "",
            email=user.email or "",
            phoneVerified=False,
        )
        return body
    body = row_to_camel(profile, PROFILE_FIELDS)
    body["phoneVerified"] = bool(profile.phone_verified)
    return body


def documents_to_response(rows: list[DocumentRow]) -> list[dict[str, Any]]:
    return [row_to_camel(r, DOCUMENT_FIELDS) for r in rows]


async def render_profile(ctx: DashboardContext) -> dict[str, Any]:
    profile, latest = await asyncio.gather(
        _read(ctx.session_factory, loan_queries.get_profile, ctx.user.id),
        _read(ctx.session_factory, application_queries.latest_application, ctx.user.id),
    )
    return {
        "profile": profile_to_response(profile, ctx.user),
        "latestApplication": _application_to_response(latest) if latest is not None else None,
    }


async def render_invite(ctx: DashboardContext) -> dict[str, Any]:
    return invite_view()


async def render_apply(ctx: DashboardContext) -> dict[str, Any]:
    return {
        "steps": step_catalogue(),
        "minLoanAmount": settings.min_loan_amount,
        "options": {
            "employmentStatus": EMPLOYMENT_STATUSES,
            "employmentLength": EMPLOYMENT_LENGTHS,
            "loanTerm": {k: f"{v} months" for k, v in LOAN_TERMS.items()},
            "loanPurpose": LOAN_PURPOSES,
        },
    }


async def render_documents(ctx: DashboardContext) -> dict[str, Any]:
    if ctx.documents is None:
        return {"documents": []}
    rows = await ctx.documents.list_documents(ctx.user.id)
    return {"documents": documents_to_response(rows)}


_RENDERERS: dict[DashboardView, Callable[[DashboardContext], Awaitable[dict[str, Any]]]] = {
    DashboardView.OVERVIEW: render_overview,
    DashboardView.PROFILE: render_profile,
    DashboardView.LOANS: render_loans,
    DashboardView.TRANSACTIONS: render_transactions,
    DashboardView.INVITE: render_invite,
    DashboardView.APPLY: render_apply,
    DashboardView.DOCUMENTS: render_documents,
}


async def render_view(view: DashboardView, ctx: DashboardContext) -> dict[str, Any]:
    body = await _RENDERERS[view](ctx)
    return {"view": view.value, **body}


async def loan_details(ctx: DashboardContext, loan_id: str) -> dict[str, Any]:
    factory, user_id = ctx.session_factory, ctx.user.id
    loan, next_due, payments, profile = await asyncio.gather(
        _read(factory, loan_queries.get_loan_for_user, loan_id, user_id),
        _read(factory, loan_queries.next_unpaid_schedule, loan_id),
        _read(factory, loan_queries.recent_payments, loan_id),
        _read(factory, loan_queries.get_profile, user_id),
    )
    if loan is None:
        raise NotFound("Loan not found")
    name = display_name(profile, ctx.user)
    return {
        "loan": _loan_to_response(loan),
        "nextPayment": (
            {
                "dueDate": next_due.due_date.isoformat(),
                "amountDue": money(next_due.amount_due),
                "status": next_due.status,
            }
            if next_due is not None
            else None
        ),
        "recentPayments": [
            {"id": p.id, "amount": money(p.amount), "paymentDate": p.payment_date.isoformat()} for p in payments
        ],
        "displayName": name,
        "initials": initials(name),
    }


def today_utc() -> date:
    return datetime.now(timezone.utc).date()
