"""Shared route dependencies: platform clients, sessions, and the signed-in user."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker

from config import settings
from database import AsyncSessionLocal
from integrations.resend import EmailClient
from integrations.supabase import AuthClient, AuthUser, StorageClient
from services.auth_flow import AuthFlow, ResendCooldown
from services.dashboard import today_utc
from services.documents import DocumentService
from services.errors import CashewError, RateLimited, RemoteServiceError
from services.session import SessionChannel

_auth_client: Optional[AuthClient] = None
_admin_auth_client: Optional[AuthClient] = None
_storage_client: Optional[StorageClient] = None
_email_client: Optional[EmailClient] = None
_resend_cooldown: Optional[ResendCooldown] = None


def get_auth_client() -> AuthClient:
    """Auth client with the public key, acting on behalf of the caller."""
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient(settings.supabase_url, settings.supabase_anon_key)
    return _auth_client


def get_admin_auth_client() -> AuthClient:
    """Auth client with the service key, for server-side sign-up."""
    global _admin_auth_client
    if _admin_auth_client is None:
        _admin_auth_client = AuthClient(settings.supabase_url, settings.supabase_service_role_key)
    return _admin_auth_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client is None:
        _storage_client = StorageClient(settings.supabase_url, settings.supabase_service_role_key)
    return _storage_client


def get_email_client() -> Optional[EmailClient]:
    global _email_client
    if _email_client is None and settings.resend_api_key:
        _email_client = EmailClient(settings.resend_api_key, settings.email_from)
    return _email_client


def get_resend_cooldown() -> ResendCooldown:
    global _resend_cooldown
    if _resend_cooldown is None:
        _resend_cooldown = ResendCooldown(settings.otp_resend_seconds)
    return _resend_cooldown


def get_auth_flow(
    client: AuthClient = Depends(get_auth_client),
    cooldown: ResendCooldown = Depends(get_resend_cooldown),
) -> AuthFlow:
    """A flow per request: each caller gets its own session channel."""
    return AuthFlow(client, SessionChannel(), cooldown=cooldown)


def get_session_factory() -> async_sessionmaker:
    return AsyncSessionLocal


def get_document_service(storage: StorageClient = Depends(get_storage_client)) -> DocumentService:
    return DocumentService(storage)


def get_today() -> date:
    return today_utc()


async def close_clients() -> None:
    global _auth_client, _admin_auth_client, _storage_client, _email_client, _resend_cooldown
    for client in (_auth_client, _admin_auth_client, _storage_client, _email_client):
        if client is not None:
            await client.aclose()
    _auth_client = _admin_auth_client = _storage_client = _email_client = None
    _resend_cooldown = None


def http_error(e: CashewError) -> HTTPException:
    """Translate a service error into the response the route returns."""
    if isinstance(e, RateLimited):
        return HTTPException(status_code=429, detail=e.message, headers={"Retry-After": str(e.retry_after)})
    if isinstance(e, RemoteServiceError) and e.status is not None and 400 <= e.status < 500:
        # Provider rejected the input (bad OTP, wrong password)
        return HTTPException(status_code=400, detail=e.message)
    return HTTPException(status_code=e.status_code, detail=e.message)


async def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not signed in")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not signed in")
    return token


async def get_current_user(
    token: str = Depends(get_access_token),
    auth: AuthClient = Depends(get_auth_client),
) -> AuthUser:
    try:
        return await auth.get_user(token)
    except RemoteServiceError as e:
        raise HTTPException(status_code=401, detail=e.message or "Session expired") from e
