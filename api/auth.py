from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_access_token, get_auth_flow, get_current_user, http_error
from integrations.supabase import AuthSession, AuthUser
from schemas.auth import OtpRequest, OtpVerify, PasswordChange, PasswordSignIn, SignUpRequest
from services.auth_flow import AuthFlow, next_form
from services.errors import CashewError

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_to_response(user: AuthUser) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "phone": user.phone,
        "userMetadata": user.user_metadata,
    }


def _session_to_response(session: AuthSession) -> dict[str, Any]:
    return {
        "accessToken": session.access_token,
        "refreshToken": session.refresh_token,
        "user": _user_to_response(session.user),
        "next": next_form(session.user),
    }


@router.post("/otp")
async def send_otp(body: OtpRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        if body.email:
            masked = await flow.send_otp(body.email)
            return {"sent": True, "maskedEmail": masked, "resendIn": flow.resend_seconds}
        await flow.send_phone_otp(body.phone or "")
        return {"sent": True, "resendIn": flow.resend_seconds}
    except CashewError as e:
        raise http_error(e) from e


@router.post("/otp/verify")
async def verify_otp(body: OtpVerify, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        session = await flow.verify_otp(body.token, email=body.email, phone=body.phone)
    except CashewError as e:
        raise http_error(e) from e
    return _session_to_response(session)


@router.post("/sign-in")
async def sign_in(body: PasswordSignIn, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        session = await flow.sign_in_with_password(body.email, body.password)
    except CashewError as e:
        raise http_error(e) from e
    return _session_to_response(session)


@router.post("/sign-up", status_code=201)
async def sign_up(body: SignUpRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        user = await flow.sign_up(body.email, body.password, body.first_name, body.last_name)
    except CashewError as e:
        raise http_error(e) from e
    return {
        "user": _user_to_response(user) if user else None,
        "message": "Check your email for a verification link.",
    }


@router.post("/sign-out", status_code=204)
async def sign_out(token: str = Depends(get_access_token), flow: AuthFlow = Depends(get_auth_flow)):
    try:
        await flow.sign_out(token)
    except CashewError as e:
        raise http_error(e) from e
    return None


@router.get("/oauth/{provider}")
async def oauth_redirect(provider: str, flow: AuthFlow = Depends(get_auth_flow)):
    if provider not in {"google", "facebook", "apple"}:
        raise HTTPException(status_code=400, detail="Unsupported provider")
    return {"url": flow.oauth_url(provider)}


@router.get("/user")
async def current_user(user: AuthUser = Depends(get_current_user)):
    return {"user": _user_to_response(user), "next": next_form(user)}


@router.post("/password")
async def change_password(
    body: PasswordChange,
    token: str = Depends(get_access_token),
    flow: AuthFlow = Depends(get_auth_flow),
):
    try:
        user = await flow.change_password(token, body.password)
    except CashewError as e:
        raise http_error(e) from e
    return {"user": _user_to_response(user), "next": next_form(user)}
