"""SMS provider callback that marks a borrower's phone number as verified."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from xml.sax.saxutils import escape

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from logging_config import get_logger
from models import Profile

logger = get_logger("phone")

VERIFY_KEYWORD = "VERIFY"

REPLY_UNREADABLE = "We could not read your message. Please reply VERIFY."
REPLY_WRONG_KEYWORD = "Please reply with the word VERIFY to confirm your number."
REPLY_UPDATE_FAILED = "We could not verify your number at this time. Please try again later."
REPLY_NO_PROFILE = "We could not find your Cashew profile. Please contact support."
REPLY_VERIFIED = "Thank you! Your number is now verified."
REPLY_UNAVAILABLE = "We are unable to verify your number right now. Please contact support."
REPLY_UNSUPPORTED = "Unsupported payload."
REPLY_UNEXPECTED = "Something went wrong. Please try again later."


@dataclass(frozen=True)
class WebhookReply:
    message: str
    status_code: int = 200


def twiml(message: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8"?><Response><Message>{escape(message)}</Message></Response>'


async def verify_phone(db: AsyncSession, from_number: str, body: str) -> WebhookReply:
    phone = re.sub(r"\s+", "", from_number or "")
    keyword = (body or "").strip().upper()

    if not phone or not keyword:
        return WebhookReply(REPLY_UNREADABLE)
    if keyword != VERIFY_KEYWORD:
        return WebhookReply(REPLY_WRONG_KEYWORD)

    now = datetime.now(timezone.utc)
    try:
        result = await db.execute(select(Profile).where(Profile.phone == phone))
        profiles = list(result.scalars().all())
        for profile in profiles:
            profile.phone_verified = True
            profile.phone_verified_at = now
            profile.updated_at = now
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Failed to update profile for phone verification: %s", e)
        await db.rollback()
        return WebhookReply(REPLY_UPDATE_FAILED)

    if not profiles:
        logger.warning("No matching profile found for phone number %s", phone)
        return WebhookReply(REPLY_NO_PROFILE)

    logger.info("Verified phone for %d profile(s)", len(profiles), extra={"action": "phone.verify"})
    return WebhookReply(REPLY_VERIFIED)
