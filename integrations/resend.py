"""Transactional email through the Resend REST API."""
from __future__ import annotations

from typing import Optional

import httpx

from logging_config import get_logger
from services.errors import RemoteServiceError

logger = get_logger("email")

RESEND_API_URL = "https://api.resend.com"


class EmailClient:
    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = RESEND_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sender = sender
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def send(self, to: list[str], subject: str, html: str) -> Optional[str]:
        """Send one message; returns the provider's message id."""
        try:
            response = await self._client.post(
                "/emails",
                json={"from": self.sender, "to": to, "subject": subject, "html": html},
            )
        except httpx.HTTPError as e:
            raise RemoteServiceError(str(e) or "Email provider unreachable") from e
        if response.is_error:
            raise RemoteServiceError(f"Email provider returned {response.status_code}", status=response.status_code)
        message_id = response.json().get("id")
        logger.info("Sent email %s", message_id, extra={"action": "email.send"})
        return message_id

    async def aclose(self) -> None:
        await self._client.aclose()
