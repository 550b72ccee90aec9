"""
Public function endpoints: the loan application submit function and the SMS
provider's phone-verification webhook. Both answer in their own formats
(``{"error": ...}`` JSON and TwiML XML) rather than FastAPI's ``detail``.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_admin_auth_client, get_email_client
from config import settings
from database import get_db
from integrations.resend import EmailClient
from integrations.supabase import AuthClient
from logging_config import get_logger
from schemas.application import ApplicationForm, ErrorResponse, SubmissionResponse
from services.applications import submit_loan_application
from services.errors import CashewError, PersistenceError
from services.phone_verification import (
    REPLY_UNAVAILABLE,
    REPLY_UNEXPECTED,
    REPLY_UNSUPPORTED,
    twiml,
    verify_phone,
)

logger = get_logger("functions")

router = APIRouter(prefix="/functions/v1", tags=["functions"])

XML_MEDIA_TYPE = "text/xml"


def _xml(message: str, status_code: int = 200) -> Response:
    return Response(content=twiml(message), status_code=status_code, media_type=XML_MEDIA_TYPE)


@router.post(
    "/submit-loan-application",
    response_model=SubmissionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def submit_application(
    body: ApplicationForm,
    db: AsyncSession = Depends(get_db),
    auth: AuthClient = Depends(get_admin_auth_client),
    mailer: Optional[EmailClient] = Depends(get_email_client),
):
    try:
        result = await submit_loan_application(db, auth, mailer, body)
    except PersistenceError as e:
        await db.rollback()
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except CashewError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception:
        logger.exception("Unexpected error submitting application")
        await db.rollback()
        return JSONResponse({"error": "An unexpected error occurred"}, status_code=500)
    return SubmissionResponse(success=True, application_id=result.application_id, message=result.message)


@router.post("/verify-phone-webhook")
async def verify_phone_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    if not settings.has_service_credentials:
        logger.error("Missing platform credentials for phone verification webhook")
        return _xml(REPLY_UNAVAILABLE, 500)

    if "application/x-www-form-urlencoded" not in request.headers.get("content-type", ""):
        return _xml(REPLY_UNSUPPORTED, 400)

    try:
        form = await request.form()
        reply = await verify_phone(db, str(form.get("From") or ""), str(form.get("Body") or ""))
    except Exception:
        logger.exception("Unexpected error while verifying phone number")
        return _xml(REPLY_UNEXPECTED, 500)
    return _xml(reply.message, reply.status_code)
