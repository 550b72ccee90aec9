"""
Public submit-loan-application function: clean the form, open an account
with the auth provider, store the flat application row, send a confirmation.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from integrations.resend import EmailClient
from integrations.supabase import USER_ALREADY_REGISTERED, AuthClient
from logging_config import get_logger
from models import Application, ApplicationStatus, LoanApplicationRecord
from schemas.application import ApplicationForm
from services.application_form import is_valid_email, parse_amount
from services.errors import CashewError, PersistenceError, RemoteServiceError, ValidationFailed

logger = get_logger("applications")

NOT_SPECIFIED = "Not specified"
SUBMITTED_MESSAGE = "Application submitted successfully. Please check your email to verify your account."

YEARS_EMPLOYED = {
    "less-than-1": 0.5,
    "1-2": 1.5,
    "3-5": 4,
}
YEARS_EMPLOYED_DEFAULT = 5

# Status only moves forward
_FORWARD_TRANSITIONS = {
    ApplicationStatus.DRAFT: {ApplicationStatus.SUBMITTED},
    ApplicationStatus.SUBMITTED: {ApplicationStatus.UNDER_REVIEW},
    ApplicationStatus.UNDER_REVIEW: {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED},
}


def can_transition(current: str, new: str) -> bool:
    try:
        return ApplicationStatus(new) in _FORWARD_TRANSITIONS.get(ApplicationStatus(current), set())
    except ValueError:
        return False


def clean_phone(phone: str) -> str:
    return re.sub(r"[^\d+]", "", phone or "")


def years_employed(employment_length: str) -> float:
    return YEARS_EMPLOYED.get(employment_length, YEARS_EMPLOYED_DEFAULT)


def confirmation_email_html(first_name: str, application_id: str) -> str:
    return f"""
        <h1>Welcome to Cashew Philippines!</h1>
        <p>Dear {first_name},</p>
        <p>Thank you for submitting your loan application. To complete your registration, please check your email for a verification link.</p>
        <p><strong>Application Reference:</strong> {application_id}</p>
        <p>Once verified, we'll review your application within 24 hours.</p>
        <p>Best regards,<br>The Cashew Philippines Team</p>
    """


@dataclass(frozen=True)
class SubmissionResult:
    application_id: str
    message: str = SUBMITTED_MESSAGE


async def submit_loan_application(
    db: AsyncSession,
    auth: AuthClient,
    mailer: Optional[EmailClient],
    form: ApplicationForm,
) -> SubmissionResult:
    personal = form.personal_info
    employment = form.employment_info
    loan = form.loan_info

    loan_amount = parse_amount(loan.loan_amount)
    if loan_amount is None or loan_amount < settings.min_loan_amount:
        raise ValidationFailed(f"Minimum loan amount is PHP {settings.min_loan_amount:,}")
    monthly_income = parse_amount(employment.monthly_income)
    if monthly_income is None:
        raise ValidationFailed("Monthly income is required")

    email = personal.email.lower().strip()
    if not is_valid_email(email):
        raise ValidationFailed("Invalid email address")

    term_digits = re.sub(r"[^0-9]", "", loan.loan_term)
    if not term_digits:
        raise ValidationFailed("Invalid loan term")

    application_id = str(uuid.uuid4())

    try:
        await auth.sign_up(
            email,
            # Throwaway password; the borrower sets one after verifying their email
            str(uuid.uuid4()),
            metadata={
                "first_name": personal.first_name,
                "last_name": personal.last_name,
                "application_id": application_id,
            },
            redirect_to=f"{settings.supabase_url}/auth/v1/verify",
        )
    except RemoteServiceError as e:
        if e.message != USER_ALREADY_REGISTERED:
            raise ValidationFailed(f"Failed to create account: {e.message}") from e
        logger.info("Applicant already registered; attaching application %s", application_id)

    record = LoanApplicationRecord(
        application_id=application_id,
        first_name=personal.first_name.strip(),
        middle_name=personal.middle_name.strip() or None,
        last_name=personal.last_name.strip(),
        email=email,
        phone=clean_phone(personal.phone),
        date_of_birth=personal.date_of_birth or None,
        address=personal.address.strip(),
        city=personal.city.strip() or NOT_SPECIFIED,
        state=NOT_SPECIFIED,
        zip_code=NOT_SPECIFIED,
        loan_amount=loan_amount,
        loan_term=int(term_digits),
        loan_purpose=loan.loan_purpose,
        promo_code=loan.promo_code.strip() or None,
        monthly_income=monthly_income,
        years_employed=years_employed(employment.employment_length),
        employment_status=employment.employment_status or None,
        employer_name=employment.company.strip() or NOT_SPECIFIED,
        job_title=employment.position.strip() or NOT_SPECIFIED,
        agreed_to_terms=True,
        id_image="pending",
        signature="pending",
        status=ApplicationStatus.SUBMITTED.value,
    )
    db.add(record)
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Insert of application %s failed: %s", application_id, e)
        raise PersistenceError(f"Failed to submit application: {e}") from e

    if mailer is not None:
        try:
            await mailer.send(
                [email],
                "Complete Your Loan Application Registration",
                confirmation_email_html(personal.first_name, application_id),
            )
        except CashewError as e:
            # Already stored; email failure is logged only
            logger.error("Confirmation email for %s failed: %s", application_id, e.message)

    logger.info("Application %s submitted", application_id, extra={"action": "application.submit"})
    return SubmissionResult(application_id=application_id)


async def list_applications(db: AsyncSession, user_id: str) -> list[Application]:
    result = await db.execute(
        select(Application).where(Application.user_id == user_id).order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def latest_application(db: AsyncSession, user_id: str) -> Optional[Application]:
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
