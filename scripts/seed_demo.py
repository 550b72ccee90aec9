"""
Seed a demo borrower: profile, one submitted application, and an active loan
with its installment schedule and a few payments.
Run: python -m scripts.seed_demo (from the project root).
"""
import asyncio
import os
import sys
from datetime import date, datetime, timezone
from decimal import Decimal

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from config import settings
from database import AsyncSessionLocal, init_db
from models import (
    Application,
    ApplicationStatus,
    Loan,
    LoanStatus,
    LoanType,
    Payment,
    PaymentSchedule,
    PaymentStatus,
    Profile,
)
from services.ledger import CENT

DEMO_USER_ID = settings.local_test_user_id or "demo-user"
DEMO_LOAN_ID = "demo-loan-1"

PRINCIPAL = Decimal("30000.00")
RATE = Decimal("12.000")
TERM_MONTHS = 6


def add_months(d: date, months: int) -> date:
    month = d.month - 1 + months
    year = d.year + month // 12
    return date(year, month % 12 + 1, min(d.day, 28))


def installment_rows(loan_id: str, start: date) -> list[dict]:
    """Flat-interest monthly installments; the last one absorbs rounding."""
    interest = (PRINCIPAL * RATE / Decimal("100") * TERM_MONTHS / Decimal("12")).quantize(CENT)
    principal_part = (PRINCIPAL / TERM_MONTHS).quantize(CENT)
    interest_part = (interest / TERM_MONTHS).quantize(CENT)
    rows = []
    for n in range(1, TERM_MONTHS + 1):
        p, i = principal_part, interest_part
        if n == TERM_MONTHS:
            p = PRINCIPAL - principal_part * (TERM_MONTHS - 1)
            i = interest - interest_part * (TERM_MONTHS - 1)
        rows.append(
            {
                "id": f"{loan_id}-s{n}",
                "payment_number": n,
                "due_date": add_months(start, n),
                "principal_amount": p,
                "interest_amount": i,
                "amount_due": p + i,
            }
        )
    return rows


async def seed():
    await init_db()
    today = datetime.now(timezone.utc).date()
    start = add_months(today, -3)
    async with AsyncSessionLocal() as session:
        existing = await session.execute(select(Loan).where(Loan.id == DEMO_LOAN_ID))
        if existing.scalar_one_or_none():
            print(f"Loan {DEMO_LOAN_ID} already exists, skipping")
            return

        if await session.get(Profile, DEMO_USER_ID) is None:
            session.add(
                Profile(
                    id=DEMO_USER_ID,
                    first_name="Juan",
                    last_name="Dela Cruz",
                    email="juan@example.com",
                    phone="+639171234567",
                )
            )

        session.add(
            Application(
                id="demo-app-1",
                user_id=DEMO_USER_ID,
                status=ApplicationStatus.APPROVED.value,
                loan_type=LoanType.PERSONAL.value,
                loan_amount=PRINCIPAL,
                loan_purpose="business",
                employment_status="employed",
                employer_name="Acme Manila",
                job_title="Analyst",
                monthly_income=Decimal("45000.00"),
                years_employed=Decimal("4"),
                submitted_at=datetime.now(timezone.utc),
            )
        )

        schedules = installment_rows(DEMO_LOAN_ID, start)
        total_due = sum((s["amount_due"] for s in schedules), Decimal("0"))
        paid = schedules[:2]
        balance = total_due - sum((s["amount_due"] for s in paid), Decimal("0"))
        session.add(
            Loan(
                id=DEMO_LOAN_ID,
                user_id=DEMO_USER_ID,
                application_id="demo-app-1",
                loan_type=LoanType.PERSONAL.value,
                principal_amount=PRINCIPAL,
                current_balance=balance,
                interest_rate=RATE,
                term_months=TERM_MONTHS,
                monthly_payment=schedules[0]["amount_due"],
                status=LoanStatus.ACTIVE.value,
                origination_date=start,
                maturity_date=schedules[-1]["due_date"],
            )
        )
        await session.flush()

        for s in schedules:
            is_paid = s in paid
            session.add(
                PaymentSchedule(
                    loan_id=DEMO_LOAN_ID,
                    status=PaymentStatus.PAID.value if is_paid else PaymentStatus.PENDING.value,
                    paid_amount=s["amount_due"] if is_paid else None,
                    paid_date=s["due_date"] if is_paid else None,
                    **s,
                )
            )
        await session.flush()
        for s in paid:
            session.add(
                Payment(
                    id=f"{s['id']}-p",
                    loan_id=DEMO_LOAN_ID,
                    payment_schedule_id=s["id"],
                    amount=s["amount_due"],
                    payment_date=s["due_date"],
                    payment_method="gcash",
                )
            )
        await session.commit()
    print(f"Seeded demo borrower {DEMO_USER_ID} with loan {DEMO_LOAN_ID}.")


if __name__ == "__main__":
    asyncio.run(seed())
