"""
Transaction ledger for one loan: installments due and payments posted, merged
chronologically with a running balance and overdue annotations.

Balances are folded over the whole ledger before any pagination, so the
balance shown on page N already reflects every row on pages 1..N-1. All
arithmetic is Decimal; floats never enter the fold.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Callable, Iterable, Optional

from logging_config import get_logger
from models.enums import LoanStatus, PaymentStatus
from services.errors import CashewError

logger = get_logger("ledger")

CENT = Decimal("0.01")
CURRENCY_SYMBOL = "₱"


class EntryType(str, enum.Enum):
    INSTALLMENT = "Installment"
    PAYMENT = "Payment"


# Same-day installments sort before payments
_TYPE_ORDER = {EntryType.INSTALLMENT: 0, EntryType.PAYMENT: 1}


@dataclass
class LedgerRow:
    id: str
    loan_id: str
    type: EntryType
    date: date
    amount: Decimal
    signed_amount: Decimal
    running_balance: Decimal = Decimal("0")
    schedule_id: Optional[str] = None
    payment_id: Optional[str] = None
    status: Optional[str] = None
    remaining_amount: Decimal = Decimal("0")
    is_overdue: bool = False
    days_overdue: int = 0
    is_next_due: bool = False

    @property
    def is_payment(self) -> bool:
        return self.type is EntryType.PAYMENT


@dataclass(frozen=True)
class LedgerPage:
    rows: list[LedgerRow]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1 and self.total > 0


@dataclass(frozen=True)
class LedgerSummary:
    latest_balance: Decimal
    is_fully_paid: bool
    total_paid: Decimal
    payment_count: int
    this_month_total: Decimal
    this_month_count: int


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # via str() so 0.1 stays 0.1
    return Decimal(str(value))


def _covered_amounts(schedules: list[Any], payments: list[Any], today: date) -> dict[str, Decimal]:
    """How much of each installment has been paid as of ``today``."""
    covered: dict[str, Decimal] = {s.id: Decimal("0") for s in schedules}
    pool = Decimal("0")
    for p in payments:
        if p.payment_date > today:
            continue
        amount = to_decimal(p.amount)
        if p.payment_schedule_id and p.payment_schedule_id in covered:
            covered[p.payment_schedule_id] += amount
        else:
            pool += amount

    # Unlinked payments settle the oldest installments first
    for s in sorted(schedules, key=lambda s: (s.due_date, s.payment_number or 0)):
        due = to_decimal(s.amount_due)
        # Overpayment on a linked installment spills into the pool
        if covered[s.id] > due:
            pool += covered[s.id] - due
            covered[s.id] = due
        shortfall = due - covered[s.id]
        if s.status == PaymentStatus.PAID.value:
            # Marked paid: whatever the linked payments left is drawn from the pool
            pool -= min(pool, shortfall)
            covered[s.id] = due
            continue
        if shortfall > 0 and pool > 0:
            applied = min(shortfall, pool)
            covered[s.id] += applied
            pool -= applied
    return covered


def build_ledger(schedules: Iterable[Any], payments: Iterable[Any], today: date) -> list[LedgerRow]:
    """
    Merge installment and payment rows of one loan into a chronological ledger.
    A payment linked to a later installment is listed after that installment
    (its ``date`` stays the real payment date).

    ``schedules`` need ``id, loan_id, payment_number, due_date, amount_due,
    status``; ``payments`` need ``id, loan_id, payment_schedule_id, amount,
    payment_date`` (ORM rows work as-is).
    """
    schedules = list(schedules)
    payments = list(payments)
    covered = _covered_amounts(schedules, payments, today)

    keyed: list[tuple[tuple, LedgerRow]] = []
    for seq, s in enumerate(schedules):
        due = to_decimal(s.amount_due)
        remaining = max(due - covered.get(s.id, Decimal("0")), Decimal("0"))
        overdue = remaining > 0 and s.due_date < today
        row = LedgerRow(
            id=f"installment-{s.id}",
            loan_id=s.loan_id,
            type=EntryType.INSTALLMENT,
            date=s.due_date,
            amount=due,
            signed_amount=due,
            schedule_id=s.id,
            status=PaymentStatus.OVERDUE.value if overdue else s.status,
            remaining_amount=remaining,
            is_overdue=overdue,
            days_overdue=(today - s.due_date).days if overdue else 0,
        )
        keyed.append(((s.due_date, _TYPE_ORDER[row.type], s.payment_number or 0, seq), row))

    by_id = {s.id: s for s in schedules}
    for seq, p in enumerate(payments):
        amount = to_decimal(p.amount)
        row = LedgerRow(
            id=f"payment-{p.id}",
            loan_id=p.loan_id,
            type=EntryType.PAYMENT,
            date=p.payment_date,
            amount=amount,
            signed_amount=-amount,
            schedule_id=p.payment_schedule_id,
            payment_id=p.id,
            status=PaymentStatus.PAID.value,
        )
        # A payment folds no earlier than the installment it is linked to
        linked = by_id.get(p.payment_schedule_id) if p.payment_schedule_id else None
        fold_date, number = p.payment_date, 0
        if linked is not None:
            fold_date = max(p.payment_date, linked.due_date)
            number = linked.payment_number or 0
        keyed.append(((fold_date, _TYPE_ORDER[row.type], number, seq), row))

    keyed.sort(key=lambda item: item[0])
    rows = [row for _, row in keyed]

    balance = Decimal("0")
    next_due_marked = False
    for row in rows:
        balance += row.signed_amount
        row.running_balance = balance
        if (
            not next_due_marked
            and row.type is EntryType.INSTALLMENT
            and row.remaining_amount > 0
            and row.date >= today
        ):
            row.is_next_due = True
            next_due_marked = True
    return rows


def paginate(rows: list[LedgerRow], page: int, page_size: int, newest_first: bool = False) -> LedgerPage:
    """Slice an already-folded ledger; pages are 1-based."""
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be >= 1")
    ordered = list(reversed(rows)) if newest_first else rows
    start = (page - 1) * page_size
    return LedgerPage(rows=ordered[start:start + page_size], page=page, page_size=page_size, total=len(rows))


def summarize(rows: list[LedgerRow], today: date, loan_status: Optional[str] = None) -> LedgerSummary:
    payments = [r for r in rows if r.is_payment]
    this_month = [r for r in payments if r.date.year == today.year and r.date.month == today.month]
    latest_balance = rows[-1].running_balance if rows else Decimal("0")
    if loan_status is not None:
        fully_paid = loan_status == LoanStatus.PAID_OFF.value
    else:
        fully_paid = bool(rows) and latest_balance <= 0 and all(
            r.remaining_amount == 0 for r in rows if not r.is_payment
        )
    return LedgerSummary(
        latest_balance=latest_balance,
        is_fully_paid=fully_paid,
        total_paid=sum((r.amount for r in payments), Decimal("0")),
        payment_count=len(payments),
        this_month_total=sum((r.amount for r in this_month), Decimal("0")),
        this_month_count=len(this_month),
    )


def format_currency(amount: Any, symbol: str = CURRENCY_SYMBOL) -> str:
    """``Decimal("1234.5")`` -> ``₱1,234.50`` (half-up to the centavo)."""
    value = to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


PageFetcher = Callable[[int, int], Awaitable[LedgerPage]]


@dataclass
class LedgerViewModel:
    """
    Page-at-a-time ledger state for a long-lived consumer.

    A failed fetch sets ``error`` and keeps the last good page in ``current``;
    there are no retries.
    """

    fetch_page: PageFetcher
    page_size: int = 6
    state: LoadState = LoadState.IDLE
    current: Optional[LedgerPage] = None
    error: Optional[str] = None
    requested_page: Optional[int] = field(default=None)

    async def load(self, page: int) -> Optional[LedgerPage]:
        self.state = LoadState.LOADING
        self.requested_page = page
        try:
            result = await self.fetch_page(page, self.page_size)
        except CashewError as e:
            logger.error("Ledger page %s failed to load: %s", page, e.message)
            self.state = LoadState.ERROR
            self.error = e.message
            return self.current
        except Exception as e:
            logger.error("Ledger page %s failed to load: %s", page, e)
            self.state = LoadState.ERROR
            self.error = "Unable to load transactions"
            raise
        self.current = result
        self.error = None
        self.state = LoadState.LOADED
        return result

    async def next_page(self) -> Optional[LedgerPage]:
        if self.current is None:
            return await self.load(1)
        if not self.current.has_next:
            return self.current
        return await self.load(self.current.page + 1)

    async def previous_page(self) -> Optional[LedgerPage]:
        if self.current is None or not self.current.has_previous:
            return self.current
        return await self.load(self.current.page - 1)
