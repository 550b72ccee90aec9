"""Shared test scaffolding: a throwaway SQLite database and seed rows."""
import asyncio
import os
import tempfile
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from database import Base
from integrations.supabase import AuthUser
from models import Application, Loan, Payment, PaymentSchedule, Profile

USER = AuthUser(id="user-1", email="juan@example.com", user_metadata={"first_name": "Juan", "last_name": "Dela Cruz"})
OTHER_USER_ID = "user-2"


class TempDatabase:
    """File-backed SQLite so concurrent sessions each get their own connection."""

    def __init__(self):
        self._dir = tempfile.TemporaryDirectory()
        self.url = f"sqlite+aiosqlite:///{os.path.join(self._dir.name, 'test.db')}"
        self.engine = create_async_engine(self.url, poolclass=NullPool)
        self.factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def create(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def add(self, *rows):
        async with self.factory() as session:
            session.add_all(rows)
            await session.commit()

    async def dispose(self):
        await self.engine.dispose()
        self._dir.cleanup()

    def run(self, coro):
        """Drive a coroutine from synchronous test code."""
        return asyncio.run(coro)


def loan(loan_id="loan-1", user_id=USER.id, status="active", origination=date(2024, 1, 31), **kw):
    values = dict(
        id=loan_id,
        user_id=user_id,
        application_id="app-1",
        loan_type="personal",
        principal_amount=Decimal("30000.00"),
        current_balance=Decimal("20000.00"),
        interest_rate=Decimal("12.000"),
        term_months=6,
        monthly_payment=Decimal("5300.00"),
        status=status,
        origination_date=origination,
        maturity_date=date(2024, 7, 31),
    )
    values.update(kw)
    return Loan(**values)


def schedule(n, due, loan_id="loan-1", amount="5300.00", status="pending"):
    return PaymentSchedule(
        id=f"{loan_id}-s{n}",
        loan_id=loan_id,
        payment_number=n,
        due_date=due,
        amount_due=Decimal(amount),
        principal_amount=Decimal("5000.00"),
        interest_amount=Decimal(amount) - Decimal("5000.00"),
        status=status,
    )


def payment(pid, paid_on, loan_id="loan-1", amount="5300.00", schedule_id=None):
    return Payment(
        id=pid,
        loan_id=loan_id,
        payment_schedule_id=schedule_id,
        amount=Decimal(amount),
        payment_date=paid_on,
        payment_method="gcash",
    )


def application(app_id="app-1", user_id=USER.id, status="submitted"):
    return Application(
        id=app_id,
        user_id=user_id,
        status=status,
        loan_type="personal",
        loan_amount=Decimal("30000.00"),
        loan_purpose="business",
        employment_status="employed",
        monthly_income=Decimal("45000.00"),
        years_employed=Decimal("4"),
    )


def profile(user_id=USER.id, phone="+639171234567", **kw):
    values = dict(id=user_id, first_name="Juan", last_name="Dela Cruz", email="juan@example.com", phone=phone)
    values.update(kw)
    return Profile(**values)
