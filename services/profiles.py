from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from integrations.supabase import AuthUser
from logging_config import get_logger
from models import Profile
from schemas.application import ProfileUpdate
from services.loans import get_profile

logger = get_logger("profiles")

# Names are NOT NULL in the profiles table; the rest clear to null when blanked
_NAME_FIELDS = ("first_name", "last_name")
_NULLABLE_FIELDS = ("phone", "address", "city", "state", "zip_code")


async def upsert_profile(db: AsyncSession, user: AuthUser, body: ProfileUpdate) -> Profile:
    profile = await get_profile(db, user.id)
    if profile is None:
        meta = user.user_metadata
        profile = Profile(
            id=user.id,
            email=user.email or "",
            first_name=meta.get("first_name") or "",
            last_name=meta.get("last_name") or "",
            phone_verified=False,
        )
        db.add(profile)

    changes = body.model_dump(exclude_unset=True, by_alias=False)
    for name in _NAME_FIELDS:
        if name in changes:
            setattr(profile, name, (changes[name] or "").strip())
    for name in _NULLABLE_FIELDS:
        if name in changes:
            value = (changes[name] or "").strip() or None
            if name == "phone" and value != profile.phone:
                profile.phone_verified = False
                profile.phone_verified_at = None
            setattr(profile, name, value)

    await db.flush()
    logger.info("Profile saved", extra={"action": "profile.upsert", "user_id": user.id})
    return profile
