"""
REST clients for the hosted platform's auth (GoTrue) and object storage APIs.

Both clients share one httpx.AsyncClient per instance; pass ``transport`` to
route requests through ``httpx.MockTransport`` in tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote, urlencode

import httpx

from logging_config import get_logger
from services.errors import RemoteServiceError

logger = get_logger("platform")

USER_ALREADY_REGISTERED = "User already registered"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    user_metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuthUser":
        return cls(
            id=payload["id"],
            email=payload.get("email") or None,
            phone=payload.get("phone") or None,
            user_metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: Optional[str]
    user: AuthUser

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuthSession":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            user=AuthUser.from_payload(payload["user"]),
        )


@dataclass(frozen=True)
class StorageObject:
    name: str
    created_at: Optional[datetime] = None


def error_message(response: httpx.Response) -> str:
    """Pull the provider's message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class _PlatformClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        merged = self._headers(token)
        if headers:
            merged.update(headers)
        try:
            response = await self._client.request(method, path, headers=merged, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Platform request %s %s failed: %s", method, path, e)
            raise RemoteServiceError(str(e) or "Platform unreachable") from e
        if response.is_error:
            message = error_message(response)
            logger.error("Platform request %s %s returned %s: %s", method, path, response.status_code, message)
            raise RemoteServiceError(message, status=response.status_code)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()


class AuthClient(_PlatformClient):
    """Email/phone OTP, password and OAuth flows; verification stays with the provider."""

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict[str, Any]] = None,
        redirect_to: Optional[str] = None,
    ) -> Optional[AuthUser]:
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            params=params,
            json={"email": email, "password": password, "data": metadata or {}},
        )
        body = response.json()
        # With email confirmation on, the provider returns the bare user
        user_payload = body.get("user") if "user" in body else body
        return AuthUser.from_payload(user_payload) if user_payload and user_payload.get("id") else None

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return AuthSession.from_payload(response.json())

    async def send_otp(
        self,
        *,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        redirect_to: Optional[str] = None,
        create_user: bool = True,
    ) -> None:
        if not email and not phone:
            raise ValueError("send_otp needs an email or a phone")
        payload: dict[str, Any] = {"create_user": create_user}
        if email:
            payload["email"] = email
        else:
            payload["phone"] = phone
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/auth/v1/otp", params=params, json=payload)

    async def verify_otp(
        self,
        token: str,
        *,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> AuthSession:
        if email:
            payload = {"type": "email", "email": email, "token": token}
        elif phone:
            payload = {"type": "sms", "phone": phone, "token": token}
        else:
            raise ValueError("verify_otp needs an email or a phone")
        response = await self._request("POST", "/auth/v1/verify", json=payload)
        return AuthSession.from_payload(response.json())

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", token=access_token)

    async def get_user(self, access_token: str) -> AuthUser:
        response = await self._request("GET", "/auth/v1/user", token=access_token)
        return AuthUser.from_payload(response.json())

    async def update_user(self, access_token: str, data: dict[str, Any]) -> AuthUser:
        """``data`` may hold ``password``, ``email``, ``phone`` and/or ``data`` (metadata)."""
        response = await self._request("PUT", "/auth/v1/user", token=access_token, json=data)
        return AuthUser.from_payload(response.json())

    def authorize_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        params = {"provider": provider}
        if redirect_to:
            params["redirect_to"] = redirect_to
        return f"{self.base_url}/auth/v1/authorize?{urlencode(params)}"


class StorageClient(_PlatformClient):
    async def list_objects(self, bucket: str, prefix: str, limit: int = 100) -> list[StorageObject]:
        response = await self._request(
            "POST",
            f"/storage/v1/object/list/{bucket}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "created_at", "order": "desc"},
            },
        )
        out: list[StorageObject] = []
        for item in response.json() or []:
            created = item.get("created_at")
            out.append(
                StorageObject(
                    name=item.get("name") or "",
                    created_at=datetime.fromisoformat(created.replace("Z", "+00:00")) if created else None,
                )
            )
        return out

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> str:
        response = await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            content=content,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )
        return response.json().get("Key", f"{bucket}/{path}")

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        response = await self._request(
            "POST",
            f"/storage/v1/object/sign/{bucket}/{quote(path)}",
            json={"expiresIn": expires_in},
        )
        signed = response.json().get("signedURL")
        if not signed:
            raise RemoteServiceError("Storage did not return a signed URL")
        return f"{self.base_url}/storage/v1{signed}"
