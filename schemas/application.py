from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from services.application_form import EmploymentInfo, FormSnapshot, LoanInfo, PersonalInfo

_FORM_CONFIG = {"populate_by_name": True, "coerce_numbers_to_str": True}


class PersonalInfoSchema(BaseModel):
    first_name: str = Field("", alias="firstName")
    middle_name: str = Field("", alias="middleName")
    last_name: str = Field("", alias="lastName")
    email: str = ""
    phone: str = ""
    date_of_birth: str = Field("", alias="dateOfBirth")
    address: str = ""
    city: str = ""

    model_config = _FORM_CONFIG


class EmploymentInfoSchema(BaseModel):
    employment_status: str = Field("", alias="employmentStatus")
    company: str = ""
    position: str = ""
    monthly_income: str = Field("", alias="monthlyIncome")
    employment_length: str = Field("", alias="employmentLength")

    model_config = _FORM_CONFIG


class LoanInfoSchema(BaseModel):
    loan_amount: str = Field("", alias="loanAmount")
    loan_purpose: str = Field("", alias="loanPurpose")
    loan_term: str = Field("", alias="loanTerm")
    promo_code: str = Field("", alias="promoCode")
    additional_info: str = Field("", alias="additionalInfo")

    model_config = _FORM_CONFIG


class ApplicationForm(BaseModel):
    """Nested form snapshot as the browser sends it (camelCase)."""

    personal_info: PersonalInfoSchema = Field(default_factory=PersonalInfoSchema, alias="personalInfo")
    employment_info: EmploymentInfoSchema = Field(default_factory=EmploymentInfoSchema, alias="employmentInfo")
    loan_info: LoanInfoSchema = Field(default_factory=LoanInfoSchema, alias="loanInfo")

    model_config = {"populate_by_name": True}

    def to_snapshot(self) -> FormSnapshot:
        return FormSnapshot(
            personal=PersonalInfo(**self.personal_info.model_dump(by_alias=False)),
            employment=EmploymentInfo(**self.employment_info.model_dump(by_alias=False)),
            loan=LoanInfo(**self.loan_info.model_dump(by_alias=False)),
        )

    @classmethod
    def from_snapshot(cls, snapshot: FormSnapshot) -> "ApplicationForm":
        return cls(
            personal_info=PersonalInfoSchema(**vars(snapshot.personal)),
            employment_info=EmploymentInfoSchema(**vars(snapshot.employment)),
            loan_info=LoanInfoSchema(**vars(snapshot.loan)),
        )


class StepValidationRequest(BaseModel):
    step: int = Field(..., ge=0)
    form: ApplicationForm = Field(default_factory=ApplicationForm)


class SubmissionResponse(BaseModel):
    success: bool
    application_id: str = Field(..., alias="applicationId")
    message: str

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")

    model_config = {"populate_by_name": True}
