"""
Credential collection and routing around the hosted auth provider.

No credential is verified here: every check is the provider's. This module
adds the resend cooldown, email masking, the forced-password-change branch,
and relays each outcome through the session channel.
"""
from __future__ import annotations

import time
from threading import RLock
from typing import Callable, Optional

from config import settings
from integrations.supabase import AuthClient, AuthSession, AuthUser
from logging_config import get_logger
from services.errors import RateLimited, ValidationFailed
from services.session import SessionChannel, SessionEvent

logger = get_logger("auth")

MUST_CHANGE_PASSWORD = "must_change_password"
NEXT_DASHBOARD = "dashboard"
NEXT_CHANGE_PASSWORD = "change_password"


def mask_email(email: str) -> str:
    """``juan@example.com`` -> ``j••n@example.com``."""
    if "@" not in email:
        return email
    name, domain = email.split("@", 1)
    if not name:
        return email
    if len(name) <= 2:
        masked = f"{name[0]}•"
    else:
        masked = f"{name[0]}{'•' * max(1, len(name) - 2)}{name[-1]}"
    return f"{masked}@{domain}"


def next_form(user: AuthUser) -> str:
    """Which form the client renders after sign-in."""
    if user.user_metadata.get(MUST_CHANGE_PASSWORD):
        return NEXT_CHANGE_PASSWORD
    return NEXT_DASHBOARD


class ResendCooldown:
    """
    Last OTP send per email or phone, shared across requests.

    Entries older than the cooldown are dropped whenever one is looked up
    or recorded, so the table only holds targets still waiting.
    """

    def __init__(self, seconds: int = settings.otp_resend_seconds, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._last_sent: dict[str, float] = {}
        self._lock = RLock()

    def __len__(self) -> int:
        return len(self._last_sent)

    def _prune(self, now: float) -> None:
        expired = [key for key, sent in self._last_sent.items() if now - sent >= self.seconds]
        for key in expired:
            del self._last_sent[key]

    def remaining(self, target: str) -> int:
        now = self._clock()
        with self._lock:
            self._prune(now)
            sent = self._last_sent.get(target.lower())
        if sent is None:
            return 0
        return max(0, int(self.seconds - (now - sent) + 0.999))

    def mark(self, target: str) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            self._last_sent[target.lower()] = now

    def clear(self, target: str) -> None:
        with self._lock:
            self._last_sent.pop(target.lower(), None)


class AuthFlow:
    """
    One client's sign-in flow. ``channel`` belongs to that client alone;
    only ``cooldown`` is shared between flows.
    """

    def __init__(
        self,
        client: AuthClient,
        channel: SessionChannel,
        resend_seconds: int = settings.otp_resend_seconds,
        clock: Callable[[], float] = time.monotonic,
        cooldown: Optional[ResendCooldown] = None,
    ):
        self.client = client
        self.channel = channel
        self.cooldown = cooldown if cooldown is not None else ResendCooldown(resend_seconds, clock)

    @property
    def resend_seconds(self) -> int:
        return self.cooldown.seconds

    @property
    def dashboard_url(self) -> str:
        return f"{settings.public_site_url.rstrip('/')}/dashboard"

    def seconds_until_resend(self, target: str) -> int:
        return self.cooldown.remaining(target)

    def _check_cooldown(self, target: str) -> None:
        wait = self.seconds_until_resend(target)
        if wait > 0:
            raise RateLimited(f"Please wait {wait}s before requesting another code.", retry_after=wait)

    async def send_otp(self, email: str) -> str:
        """Email a one-time code; returns the masked address for display."""
        email = email.strip()
        if not email:
            raise ValidationFailed("Email is required")
        self._check_cooldown(email)
        await self.client.send_otp(email=email, redirect_to=self.dashboard_url)
        self.cooldown.mark(email)
        logger.info("OTP sent", extra={"action": "auth.otp.send"})
        return mask_email(email)

    async def send_phone_otp(self, phone: str) -> None:
        phone = phone.strip()
        if not phone:
            raise ValidationFailed("Phone number is required")
        self._check_cooldown(phone)
        await self.client.send_otp(phone=phone)
        self.cooldown.mark(phone)

    async def verify_otp(self, token: str, *, email: Optional[str] = None, phone: Optional[str] = None) -> AuthSession:
        session = await self.client.verify_otp(token, email=email, phone=phone)
        self.cooldown.clear(email or phone or "")
        self.channel.publish(SessionEvent.SIGNED_IN, session)
        logger.info("OTP verified", extra={"action": "auth.otp.verify", "user_id": session.user.id})
        return session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = await self.client.sign_in_with_password(email.strip(), password)
        event = (
            SessionEvent.PASSWORD_RECOVERY
            if next_form(session.user) == NEXT_CHANGE_PASSWORD
            else SessionEvent.SIGNED_IN
        )
        self.channel.publish(event, session)
        return session

    async def sign_up(self, email: str, password: str, first_name: str = "", last_name: str = "") -> Optional[AuthUser]:
        return await self.client.sign_up(
            email.strip().lower(),
            password,
            metadata={"first_name": first_name, "last_name": last_name},
            redirect_to=self.dashboard_url,
        )

    async def change_password(self, access_token: str, new_password: str) -> AuthUser:
        user = await self.client.update_user(
            access_token,
            {"password": new_password, "data": {MUST_CHANGE_PASSWORD: False}},
        )
        current = self.channel.current
        refresh_token = current.refresh_token if current is not None and current.user.id == user.id else None
        self.channel.publish(SessionEvent.USER_UPDATED, AuthSession(access_token, refresh_token, user))
        return user

    async def sign_out(self, access_token: str) -> None:
        await self.client.sign_out(access_token)
        self.channel.publish(SessionEvent.SIGNED_OUT, None)

    def oauth_url(self, provider: str) -> str:
        return self.client.authorize_url(provider, redirect_to=self.dashboard_url)
