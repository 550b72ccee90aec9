from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urlencode

from config import settings
from integrations.resend import EmailClient
from logging_config import get_logger
from services.application_form import is_valid_email
from services.errors import RemoteServiceError, ValidationFailed

logger = get_logger("referrals")

SHARE_SUBJECT = "Join Cashew - Fast and Simple Loans"

PERKS = [
    "Get $50 credit for each successful referral",
    "Your friends get 0.5% off their first loan",
    "Share via email, social media, or direct link",
]


def referral_link(code: str = settings.referral_code) -> str:
    return f"{settings.public_site_url.rstrip('/')}/?{urlencode({'ref': code})}"


def share_body(link: str) -> str:
    return (
        "Hi there!\n\n"
        "I wanted to share Cashew with you - it's an amazing platform for fast and simple loans.\n\n"
        f"Use my referral link to get special benefits: {link}\n\n"
        "Best regards!"
    )


def share_links(link: str) -> dict[str, str]:
    whatsapp = f"Check out Cashew - fast and simple loans! Use my referral link: {link}"
    return {
        "email": f"mailto:?subject={quote(SHARE_SUBJECT)}&body={quote(share_body(link))}",
        "whatsapp": f"https://wa.me/?text={quote(whatsapp)}",
    }


def invite_view(code: str = settings.referral_code) -> dict:
    link = referral_link(code)
    return {
        "referralCode": code,
        "referralLink": link,
        "share": share_links(link),
        "perks": PERKS,
    }


async def send_invite(mailer: Optional[EmailClient], email: str, code: str = settings.referral_code) -> None:
    email = email.strip()
    if not is_valid_email(email):
        raise ValidationFailed("Invalid email address")
    if mailer is None:
        raise RemoteServiceError("Invitations are not configured")
    link = referral_link(code)
    html = "<p>" + share_body(link).replace("\n\n", "</p><p>") + "</p>"
    await mailer.send([email], SHARE_SUBJECT, html)
    logger.info("Referral invitation sent", extra={"action": "referrals.invite"})
