"""
Application form tests: step predicates, the amount threshold, and the wizard.
Run from the project root: python -m pytest tests/test_application_form.py -v
"""
import unittest
from dataclasses import replace
from datetime import date
from decimal import Decimal

from schemas.application import ApplicationForm
from services.application_form import (
    CONFIRMATION_STEP,
    REQUIRED_FIELDS_MESSAGE,
    REVIEW_STEP,
    STEPS,
    EmploymentInfo,
    FormSnapshot,
    FormWizard,
    LoanInfo,
    PersonalInfo,
    is_valid_email,
    loan_complete,
    parse_amount,
    personal_complete,
    step_catalogue,
    validate_step,
)
from services.errors import ValidationFailed

TODAY = date(2024, 6, 15)


def _complete_snapshot(**loan_overrides):
    loan = LoanInfo(loan_amount="50,000", loan_purpose="business", loan_term="12-months")
    return FormSnapshot(
        personal=PersonalInfo(
            first_name="Juan",
            middle_name="Santos",
            last_name="Dela Cruz",
            email="juan@example.com",
            phone="+63 917 123 4567",
            date_of_birth="1990-04-01",
            address="123 Rizal St",
            city="Makati",
        ),
        employment=EmploymentInfo(
            employment_status="employed",
            company="Acme",
            position="Analyst",
            monthly_income="45,000",
            employment_length="3-5",
        ),
        loan=replace(loan, **loan_overrides),
    )


class TestEmail(unittest.TestCase):
    def test_accepts_minimal_address(self):
        self.assertTrue(is_valid_email("a@b.c"))

    def test_rejects_missing_parts(self):
        self.assertFalse(is_valid_email("a@b"))
        self.assertFalse(is_valid_email("a.com"))
        self.assertFalse(is_valid_email("a b@c.d"))
        self.assertFalse(is_valid_email(""))


class TestParseAmount(unittest.TestCase):
    def test_strips_grouping_and_symbols(self):
        self.assertEqual(parse_amount("₱100,000.50"), Decimal("100000.50"))

    def test_blank_or_garbage(self):
        self.assertIsNone(parse_amount(""))
        self.assertIsNone(parse_amount("abc"))
        self.assertIsNone(parse_amount("1.2.3"))


class TestStepPredicates(unittest.TestCase):
    def test_complete_snapshot_passes_every_input_step(self):
        snapshot = _complete_snapshot()
        for index in range(REVIEW_STEP + 1):
            self.assertTrue(validate_step(index, snapshot, TODAY), STEPS[index].name)

    def test_validation_is_idempotent(self):
        snapshot = _complete_snapshot(loan_amount="4999")
        first = [validate_step(i, snapshot, TODAY) for i in range(len(STEPS))]
        second = [validate_step(i, snapshot, TODAY) for i in range(len(STEPS))]
        self.assertEqual(first, second)
        self.assertEqual(snapshot.loan.loan_amount, "4999")

    def test_amount_threshold_is_inclusive(self):
        self.assertFalse(loan_complete(_complete_snapshot(loan_amount="4999"), TODAY))
        self.assertTrue(loan_complete(_complete_snapshot(loan_amount="5000"), TODAY))
        self.assertTrue(loan_complete(_complete_snapshot(loan_amount="5,000.00"), TODAY))

    def test_unknown_term_or_purpose(self):
        self.assertFalse(loan_complete(_complete_snapshot(loan_term="7-months"), TODAY))
        self.assertFalse(loan_complete(_complete_snapshot(loan_purpose="vacation"), TODAY))

    def test_personal_requires_middle_name(self):
        snapshot = _complete_snapshot()
        snapshot = replace(snapshot, personal=replace(snapshot.personal, middle_name="  "))
        self.assertFalse(personal_complete(snapshot, TODAY))

    def test_birth_date_in_future(self):
        snapshot = _complete_snapshot()
        snapshot = replace(snapshot, personal=replace(snapshot.personal, date_of_birth="2024-06-16"))
        self.assertFalse(personal_complete(snapshot, TODAY))

    def test_confirmation_step_never_validates(self):
        self.assertFalse(validate_step(CONFIRMATION_STEP, _complete_snapshot(), TODAY))

    def test_catalogue_lists_five_steps(self):
        names = [s["name"] for s in step_catalogue()]
        self.assertEqual(names, ["personal", "employment", "loan", "review", "confirmation"])


class TestSchemaSnapshot(unittest.TestCase):
    def test_camel_case_payload_to_snapshot(self):
        form = ApplicationForm.model_validate(
            {
                "personalInfo": {"firstName": "Ana", "dateOfBirth": "1995-01-01"},
                "employmentInfo": {"monthlyIncome": 30000},
                "loanInfo": {"loanAmount": "20000", "promoCode": "SAVE5"},
            }
        )
        snapshot = form.to_snapshot()
        self.assertEqual(snapshot.personal.first_name, "Ana")
        self.assertEqual(snapshot.employment.monthly_income, "30000")
        self.assertEqual(snapshot.loan.promo_code, "SAVE5")
        self.assertEqual(ApplicationForm.from_snapshot(snapshot).personal_info.first_name, "Ana")


class TestFormWizard(unittest.IsolatedAsyncioTestCase):
    async def test_next_blocked_with_message(self):
        wizard = FormWizard(today=TODAY)
        self.assertFalse(wizard.next())
        self.assertEqual(wizard.step, 0)
        self.assertEqual(wizard.message, REQUIRED_FIELDS_MESSAGE)

    async def test_walks_to_review_and_back(self):
        wizard = FormWizard(_complete_snapshot(), today=TODAY)
        self.assertTrue(wizard.next())
        self.assertTrue(wizard.next())
        self.assertTrue(wizard.next())
        self.assertEqual(wizard.step, REVIEW_STEP)
        self.assertFalse(wizard.next())
        wizard.back()
        self.assertEqual(wizard.current.name, "loan")

    async def test_update_keeps_other_fields(self):
        wizard = FormWizard(_complete_snapshot(), today=TODAY)
        wizard.update("loan", loan_amount="4999")
        self.assertEqual(wizard.snapshot.loan.loan_amount, "4999")
        self.assertEqual(wizard.snapshot.loan.loan_term, "12-months")
        self.assertEqual(wizard.snapshot.personal.first_name, "Juan")

    async def test_prefill_promo_code(self):
        wizard = FormWizard()
        wizard.prefill_promo_code("?promo_code=WELCOME10&utm=x")
        self.assertEqual(wizard.snapshot.loan.promo_code, "WELCOME10")
        wizard.prefill_promo_code("?utm=x")
        self.assertEqual(wizard.snapshot.loan.promo_code, "WELCOME10")

    async def test_submit_only_from_review(self):
        wizard = FormWizard(_complete_snapshot(), today=TODAY)

        async def submitter(snapshot):
            return "app-1"

        self.assertFalse(await wizard.submit(submitter))
        self.assertIsNone(wizard.application_id)

    async def test_successful_submit_moves_to_confirmation(self):
        wizard = FormWizard(_complete_snapshot(), today=TODAY)
        wizard.step = REVIEW_STEP
        seen = []

        async def submitter(snapshot):
            seen.append(snapshot)
            return "app-1"

        self.assertTrue(await wizard.submit(submitter))
        self.assertEqual(wizard.step, CONFIRMATION_STEP)
        self.assertEqual(wizard.application_id, "app-1")
        self.assertEqual(seen, [wizard.snapshot])
        wizard.back()
        self.assertEqual(wizard.step, CONFIRMATION_STEP)

    async def test_failed_submit_keeps_fields_on_review(self):
        snapshot = _complete_snapshot()
        wizard = FormWizard(snapshot, today=TODAY)
        wizard.step = REVIEW_STEP

        async def submitter(_):
            raise ValidationFailed("Failed to create account: Signups not allowed")

        self.assertFalse(await wizard.submit(submitter))
        self.assertEqual(wizard.step, REVIEW_STEP)
        self.assertEqual(wizard.snapshot, snapshot)
        self.assertEqual(wizard.message, "Failed to create account: Signups not allowed")
        self.assertFalse(wizard.submitting)


if __name__ == "__main__":
    unittest.main()
