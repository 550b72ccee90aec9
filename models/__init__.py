from models.application import Application, LoanApplicationRecord
from models.enums import ApplicationStatus, LoanStatus, LoanType, PaymentStatus
from models.loan import Loan, Payment, PaymentSchedule
from models.profile import Profile

__all__ = [
    "Application",
    "ApplicationStatus",
    "Loan",
    "LoanApplicationRecord",
    "LoanStatus",
    "LoanType",
    "Payment",
    "PaymentSchedule",
    "PaymentStatus",
    "Profile",
]
