from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.deps import (
    get_current_user,
    get_document_service,
    get_email_client,
    get_session_factory,
    get_today,
    http_error,
)
from config import settings
from database import get_db
from integrations.resend import EmailClient
from integrations.supabase import AuthUser
from schemas.application import ProfileUpdate, StepValidationRequest
from schemas.auth import InviteRequest
from services.application_form import REQUIRED_FIELDS_MESSAGE, STEPS, validate_step
from services.dashboard import (
    DashboardContext,
    DashboardView,
    load_ledger,
    loan_details,
    profile_to_response,
    render_view,
)
from services.documents import DocumentService
from services.errors import CashewError
from services.profiles import upsert_profile
from services.referrals import send_invite

router = APIRouter(prefix="/api", tags=["dashboard"])


def _context(
    user: AuthUser,
    factory: async_sessionmaker,
    today: date,
    documents: Optional[DocumentService] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    loan_id: Optional[str] = None,
    newest_first: bool = False,
) -> DashboardContext:
    return DashboardContext(
        user=user,
        session_factory=factory,
        today=today,
        documents=documents,
        page=page,
        page_size=page_size or settings.ledger_page_size,
        loan_id=loan_id,
        newest_first=newest_first,
    )


@router.get("/dashboard/{view}")
async def dashboard_view(
    view: DashboardView,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, le=100),
    loan_id: Optional[str] = Query(None, alias="loanId"),
    newest_first: bool = Query(False, alias="newestFirst"),
    user: AuthUser = Depends(get_current_user),
    factory: async_sessionmaker = Depends(get_session_factory),
    documents: DocumentService = Depends(get_document_service),
    today: date = Depends(get_today),
):
    ctx = _context(user, factory, today, documents, page, page_size, loan_id, newest_first)
    try:
        return await render_view(view, ctx)
    except CashewError as e:
        raise http_error(e) from e


@router.get("/ledger")
async def ledger(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, le=100),
    loan_id: Optional[str] = Query(None, alias="loanId"),
    newest_first: bool = Query(False, alias="newestFirst"),
    user: AuthUser = Depends(get_current_user),
    factory: async_sessionmaker = Depends(get_session_factory),
    today: date = Depends(get_today),
):
    ctx = _context(user, factory, today, page=page, page_size=page_size, loan_id=loan_id, newest_first=newest_first)
    try:
        return await load_ledger(ctx)
    except CashewError as e:
        raise http_error(e) from e


@router.get("/loans/{loan_id}")
async def get_loan_details(
    loan_id: str,
    user: AuthUser = Depends(get_current_user),
    factory: async_sessionmaker = Depends(get_session_factory),
    today: date = Depends(get_today),
):
    try:
        return await loan_details(_context(user, factory, today), loan_id)
    except CashewError as e:
        raise http_error(e) from e


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await upsert_profile(db, user, body)
    return profile_to_response(profile, user)


@router.post("/referrals/invite")
async def invite(
    body: InviteRequest,
    user: AuthUser = Depends(get_current_user),
    mailer: Optional[EmailClient] = Depends(get_email_client),
):
    try:
        await send_invite(mailer, body.email)
    except CashewError as e:
        raise http_error(e) from e
    return {"sent": True, "message": f"Invitation sent to {body.email.strip()}"}


@router.post("/apply/validate")
async def validate_application_step(body: StepValidationRequest, today: date = Depends(get_today)):
    if body.step >= len(STEPS):
        raise HTTPException(status_code=400, detail="Unknown step")
    valid = validate_step(body.step, body.form.to_snapshot(), today)
    return {
        "step": body.step,
        "name": STEPS[body.step].name,
        "valid": valid,
        "message": None if valid else REQUIRED_FIELDS_MESSAGE,
    }
