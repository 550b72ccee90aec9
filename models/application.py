from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, func

from database import Base
from models.enums import ApplicationStatus


class Application(Base):
    """Dashboard-facing application row (one per borrower submission)."""

    __tablename__ = "applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=ApplicationStatus.DRAFT.value, index=True)
    loan_type = Column(String(16), nullable=False)
    loan_amount = Column(Numeric(14, 2), nullable=False)
    loan_purpose = Column(String(64), nullable=True)
    employment_status = Column(String(32), nullable=False)
    employer_name = Column(String(256), nullable=True)
    job_title = Column(String(128), nullable=True)
    monthly_income = Column(Numeric(14, 2), nullable=False)
    years_employed = Column(Numeric(4, 1), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class LoanApplicationRecord(Base):
    """Flat row written by the public submit-loan-application function."""

    __tablename__ = "loan_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(64), unique=True, nullable=False, index=True)
    first_name = Column(String(128), nullable=False)
    middle_name = Column(String(128), nullable=True)
    last_name = Column(String(128), nullable=False)
    email = Column(String(256), nullable=False, index=True)
    phone = Column(String(32), nullable=False)
    date_of_birth = Column(String(16), nullable=True)
    address = Column(Text, nullable=False)
    # Schema-required placeholders the public form does not collect
    city = Column(String(128), nullable=False, default="Not specified")
    state = Column(String(128), nullable=False, default="Not specified")
    zip_code = Column(String(16), nullable=False, default="Not specified")
    loan_amount = Column(Numeric(14, 2), nullable=False)
    loan_term = Column(Integer, nullable=False)
    loan_purpose = Column(String(64), nullable=False)
    promo_code = Column(String(64), nullable=True)
    monthly_income = Column(Numeric(14, 2), nullable=False)
    years_employed = Column(Numeric(4, 1), nullable=False)
    employment_status = Column(String(32), nullable=True)
    employer_name = Column(String(256), nullable=False)
    job_title = Column(String(128), nullable=False)
    agreed_to_terms = Column(Boolean, nullable=False, default=False)
    id_image = Column(String(256), nullable=False, default="pending")
    signature = Column(String(256), nullable=False, default="pending")
    status = Column(String(32), nullable=False, default=ApplicationStatus.SUBMITTED.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
