from schemas.application import (
    ApplicationForm,
    EmploymentInfoSchema,
    ErrorResponse,
    LoanInfoSchema,
    PersonalInfoSchema,
    ProfileUpdate,
    StepValidationRequest,
    SubmissionResponse,
)
from schemas.auth import InviteRequest, OtpRequest, OtpVerify, PasswordChange, PasswordSignIn, SignUpRequest

__all__ = [
    "ApplicationForm",
    "EmploymentInfoSchema",
    "ErrorResponse",
    "InviteRequest",
    "LoanInfoSchema",
    "OtpRequest",
    "OtpVerify",
    "PasswordChange",
    "PasswordSignIn",
    "PersonalInfoSchema",
    "ProfileUpdate",
    "SignUpRequest",
    "StepValidationRequest",
    "SubmissionResponse",
]
