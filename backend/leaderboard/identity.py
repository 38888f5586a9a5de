"""
Display identity for leaderboard rows.

Resolution order: an identity supplied with the submission, then the
profile cached under ``user:{id}:profile``, then a fallback derived from the
id itself. Resolution is best-effort and never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from leaderboard.models import Identity, IdentitySource, Profile
from shared.kv import StoreUnavailableError

if TYPE_CHECKING:
    from shared.kv import KeyValueStore

logger = structlog.get_logger()

GUEST_PREFIX = "guest_"
GUEST_DISPLAY_NAME = "Guest"


def profile_key(user_id: str) -> str:
    return f"user:{user_id}:profile"


def fallback_identity(user_id: str) -> Identity:
    """``Guest`` for guest ids, otherwise the id truncated to ``0x1234...abcd``."""
    if user_id.startswith(GUEST_PREFIX):
        return Identity(display_name=GUEST_DISPLAY_NAME, source=IdentitySource.GUEST)
    if len(user_id) <= 10:
        return Identity(display_name=user_id)
    return Identity(display_name=f"{user_id[:6]}...{user_id[-4:]}")


async def cached_profile(kv: KeyValueStore, user_id: str) -> Profile | None:
    try:
        raw = await kv.get(profile_key(user_id))
    except StoreUnavailableError:
        return None
    if raw is None:
        return None
    try:
        return Profile.model_validate_json(raw)
    except ValidationError:
        logger.warning("ignoring unreadable profile", user_id=user_id)
        return None


async def resolve_identity(kv: KeyValueStore, user_id: str, explicit: Identity | None = None) -> Identity:
    if explicit is not None:
        return explicit
    profile = await cached_profile(kv, user_id)
    if profile is not None:
        return Identity(display_name=profile.display_name, avatar_url=profile.avatar_url, source=profile.source)
    return fallback_identity(user_id)


async def cache_profile(kv: KeyValueStore, user_id: str, identity: Identity, now_ms: int) -> None:
    """Store the identity with no expiry. Raises StoreUnavailableError."""
    profile = Profile(
        display_name=identity.display_name,
        avatar_url=identity.avatar_url,
        source=identity.source,
        updated_at=now_ms,
    )
    await kv.set(profile_key(user_id), profile.model_dump_json(by_alias=True))
