from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Loan, LoanStatus, Payment, PaymentSchedule, PaymentStatus, Profile


async def list_loans(db: AsyncSession, user_id: str) -> list[Loan]:
    result = await db.execute(select(Loan).where(Loan.user_id == user_id).order_by(Loan.created_at.desc()))
    return list(result.scalars().all())


async def get_loan_for_user(db: AsyncSession, loan_id: str, user_id: str) -> Optional[Loan]:
    result = await db.execute(select(Loan).where(Loan.id == loan_id, Loan.user_id == user_id))
    return result.scalar_one_or_none()


async def default_ledger_loan(db: AsyncSession, user_id: str) -> Optional[Loan]:
    """Most recent active loan, else the most recent loan of any status."""
    loans = await list_loans(db, user_id)
    active = [l for l in loans if l.status == LoanStatus.ACTIVE.value]
    return (active or loans or [None])[0]


async def list_schedules(db: AsyncSession, loan_id: str) -> list[PaymentSchedule]:
    result = await db.execute(
        select(PaymentSchedule)
        .where(PaymentSchedule.loan_id == loan_id)
        .order_by(PaymentSchedule.due_date, PaymentSchedule.payment_number)
    )
    return list(result.scalars().all())


async def list_payments(db: AsyncSession, loan_id: str) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.loan_id == loan_id).order_by(Payment.payment_date, Payment.created_at)
    )
    return list(result.scalars().all())


async def next_unpaid_schedule(db: AsyncSession, loan_id: str) -> Optional[PaymentSchedule]:
    result = await db.execute(
        select(PaymentSchedule)
        .where(PaymentSchedule.loan_id == loan_id, PaymentSchedule.status != PaymentStatus.PAID.value)
        .order_by(PaymentSchedule.due_date)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def recent_payments(db: AsyncSession, loan_id: str, limit: int = 5) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.loan_id == loan_id).order_by(Payment.payment_date.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def get_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()
