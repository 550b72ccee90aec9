"""
Multi-step loan application form: the step catalogue, pure per-step
predicates, and a wizard that gates navigation on them.

Predicates never mutate the snapshot they are given, so validating the same
snapshot twice always yields the same answer.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Optional
from urllib.parse import parse_qs

from config import settings
from services.errors import CashewError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"

EMPLOYMENT_STATUSES = {
    "employed": "Employed",
    "self-employed": "Self-Employed",
    "freelancer": "Freelancer",
    "business-owner": "Business Owner",
}

EMPLOYMENT_LENGTHS = {
    "less-than-1": "Less than 1 year",
    "1-2": "1-2 years",
    "3-5": "3-5 years",
    "more-than-5": "More than 5 years",
}

LOAN_TERMS = {
    "6-months": 6,
    "12-months": 12,
    "18-months": 18,
    "24-months": 24,
    "36-months": 36,
}

LOAN_PURPOSES = {
    "business": "Business Capital",
    "personal": "Personal Use",
    "education": "Education",
    "medical": "Medical Expenses",
    "home-improvement": "Home Improvement",
    "debt-consolidation": "Debt Consolidation",
    "other": "Other",
}


@dataclass(frozen=True)
class PersonalInfo:
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    address: str = ""
    city: str = ""


@dataclass(frozen=True)
class EmploymentInfo:
    employment_status: str = ""
    company: str = ""
    position: str = ""
    monthly_income: str = ""
    employment_length: str = ""


@dataclass(frozen=True)
class LoanInfo:
    loan_amount: str = ""
    loan_purpose: str = ""
    loan_term: str = ""
    promo_code: str = ""
    additional_info: str = ""


@dataclass(frozen=True)
class FormSnapshot:
    personal: PersonalInfo = field(default_factory=PersonalInfo)
    employment: EmploymentInfo = field(default_factory=EmploymentInfo)
    loan: LoanInfo = field(default_factory=LoanInfo)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip())) if value else False


def parse_amount(value: str) -> Optional[Decimal]:
    """``"100,000"`` -> ``Decimal("100000")``; keeps digits and the decimal point only."""
    cleaned = re.sub(r"[^0-9.]", "", value or "")
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def parse_birth_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def personal_complete(snapshot: FormSnapshot, today: Optional[date] = None) -> bool:
    p = snapshot.personal
    if not all(v.strip() for v in (p.first_name, p.middle_name, p.last_name, p.phone)):
        return False
    if not is_valid_email(p.email):
        return False
    born = parse_birth_date(p.date_of_birth)
    return born is not None and born <= (today or date.today())


def employment_complete(snapshot: FormSnapshot, today: Optional[date] = None) -> bool:
    e = snapshot.employment
    return e.employment_status in EMPLOYMENT_STATUSES and parse_amount(e.monthly_income) is not None


def loan_complete(snapshot: FormSnapshot, today: Optional[date] = None) -> bool:
    amount = parse_amount(snapshot.loan.loan_amount)
    return (
        amount is not None
        and amount >= settings.min_loan_amount
        and snapshot.loan.loan_term in LOAN_TERMS
        and snapshot.loan.loan_purpose in LOAN_PURPOSES
    )


def review_complete(snapshot: FormSnapshot, today: Optional[date] = None) -> bool:
    return all(step.predicate(snapshot, today) for step in STEPS[:REVIEW_STEP])


Predicate = Callable[[FormSnapshot, Optional[date]], bool]


@dataclass(frozen=True)
class FormStep:
    name: str
    title: str
    description: str
    predicate: Optional[Predicate]
    fields: tuple[str, ...] = ()


STEPS: tuple[FormStep, ...] = (
    FormStep(
        "personal",
        "Personal Information",
        "Please provide your personal information",
        personal_complete,
        ("firstName", "middleName", "lastName", "email", "phone", "dateOfBirth", "city", "address"),
    ),
    FormStep(
        "employment",
        "Employment Details",
        "Tell us about your employment status",
        employment_complete,
        ("employmentStatus", "monthlyIncome", "company", "position", "employmentLength"),
    ),
    FormStep(
        "loan",
        "Loan Information",
        "Specify your loan requirements",
        loan_complete,
        ("loanAmount", "loanTerm", "loanPurpose", "promoCode", "additionalInfo"),
    ),
    FormStep("review", "Review", "Check your details before submitting", review_complete),
    FormStep("confirmation", "Confirmation", "Your application has been submitted", None),
)

# Indexes into STEPS
REVIEW_STEP = 3
CONFIRMATION_STEP = 4


def validate_step(index: int, snapshot: FormSnapshot, today: Optional[date] = None) -> bool:
    predicate = STEPS[index].predicate
    return predicate is not None and predicate(snapshot, today)


def step_catalogue() -> list[dict]:
    return [
        {"index": i, "name": s.name, "title": s.title, "description": s.description, "fields": list(s.fields)}
        for i, s in enumerate(STEPS)
    ]


Submitter = Callable[[FormSnapshot], Awaitable[str]]


class FormWizard:
    """
    Holds the current step and snapshot. ``submit`` is only allowed from the
    review step; a failed submit keeps every field so the user can resubmit.
    """

    def __init__(self, snapshot: Optional[FormSnapshot] = None, today: Optional[date] = None):
        self.snapshot = snapshot or FormSnapshot()
        self.step = 0
        self.message: Optional[str] = None
        self.application_id: Optional[str] = None
        self.submitting = False
        self._today = today

    @property
    def current(self) -> FormStep:
        return STEPS[self.step]

    def update(self, section: str, **values: str) -> None:
        self.snapshot = replace(self.snapshot, **{section: replace(getattr(self.snapshot, section), **values)})

    def prefill_promo_code(self, query_string: str) -> None:
        codes = parse_qs(query_string.lstrip("?")).get("promo_code")
        if codes and codes[0]:
            self.update("loan", promo_code=codes[0])

    def next(self) -> bool:
        if self.step >= REVIEW_STEP:
            return False
        if not validate_step(self.step, self.snapshot, self._today):
            self.message = REQUIRED_FIELDS_MESSAGE
            return False
        self.message = None
        self.step += 1
        return True

    def back(self) -> None:
        if 0 < self.step < CONFIRMATION_STEP:
            self.step -= 1
            self.message = None

    async def submit(self, submitter: Submitter) -> bool:
        if self.step != REVIEW_STEP or self.submitting:
            return False
        if not review_complete(self.snapshot, self._today):
            self.message = REQUIRED_FIELDS_MESSAGE
            return False
        self.submitting = True
        try:
            self.application_id = await submitter(self.snapshot)
        except CashewError as e:
            self.message = e.message
            return False
        finally:
            self.submitting = False
        self.message = None
        self.step = CONFIRMATION_STEP
        return True
