from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from database import Base
from models.enums import LoanStatus, PaymentStatus


class Loan(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    application_id = Column(String(64), nullable=False)
    loan_type = Column(String(16), nullable=False)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    current_balance = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment = Column(Numeric(14, 2), nullable=False)
    status = Column(String(32), nullable=False, default=LoanStatus.PENDING.value, index=True)
    origination_date = Column(Date, nullable=True)
    maturity_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    schedules = relationship("PaymentSchedule", back_populates="loan", order_by="PaymentSchedule.due_date")
    payments = relationship("Payment", back_populates="loan", order_by="Payment.payment_date")


class PaymentSchedule(Base):
    """Installment generated by the platform; read-only here."""

    __tablename__ = "payment_schedules"

    id = Column(String(64), primary_key=True, index=True)
    loan_id = Column(String(64), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_due = Column(Numeric(14, 2), nullable=False)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    interest_amount = Column(Numeric(14, 2), nullable=False)
    paid_amount = Column(Numeric(14, 2), nullable=True)
    paid_date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    loan = relationship("Loan", back_populates="schedules")


class Payment(Base):
    """Append-only payment ledger row."""

    __tablename__ = "payments"

    id = Column(String(64), primary_key=True, index=True)
    loan_id = Column(String(64), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_schedule_id = Column(String(64), ForeignKey("payment_schedules.id"), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(32), nullable=True)
    transaction_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    loan = relationship("Loan", back_populates="payments")
