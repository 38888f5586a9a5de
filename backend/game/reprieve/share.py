"""
Share-to-reprieve tokens and social post verification.

Flow:
1. ``initiate``: the player is offered a share reprieve; a short-lived token
   is issued and the client opens a pre-filled compose URL.
2. ``verify``: after posting, the client asks the server to check the post.
   The configured ShareVerifier looks for a matching post made after the
   token was issued; success marks the token verified.
3. ``resume``: the run manager consumes the verified token (one-way ``used``
   latch) and grants the reprieve.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from game.logic.types import WireModel

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from shared.kv import KeyValueStore

logger = structlog.get_logger()

DEFAULT_SHARE_TOKEN_TTL_SECONDS = 600
USED_TOKEN_TTL_SECONDS = 60
DEFAULT_SHARE_KEYWORDS = ("streakarena", "streak arena")
NEYNAR_BASE_URL = "https://api.neynar.com/v2"
COMPOSE_URL = "https://warpcast.com/~/compose"
SITE_URL = "streakarena.xyz"

_VERIFY_TIMEOUT_SECONDS = 5.0
_RECENT_POSTS_LIMIT = 5


def _now_ms() -> int:
    return int(time.time() * 1000)


def share_key(token: str) -> str:
    return f"share:{token}"


class ShareToken(WireModel):
    token: str
    user_id: str
    run_id: str
    streak: int
    platform_id: int | None = None  # social account id, when known at issue time
    created_at: int
    expires_at: int
    verified: bool = False
    used: bool = False


class ShareTokenStore:
    """``share:{token}`` records with a short expiry."""

    def __init__(self, kv: KeyValueStore, ttl_seconds: int = DEFAULT_SHARE_TOKEN_TTL_SECONDS) -> None:
        self._kv = kv
        self._ttl_seconds = ttl_seconds

    async def issue(
        self,
        *,
        user_id: str,
        run_id: str,
        streak: int,
        platform_id: int | None = None,
        now_ms: int | None = None,
    ) -> ShareToken:
        created_at = now_ms if now_ms is not None else _now_ms()
        token = ShareToken(
            token=f"share_{secrets.token_urlsafe(12)}",
            user_id=user_id,
            run_id=run_id,
            streak=streak,
            platform_id=platform_id,
            created_at=created_at,
            expires_at=created_at + self._ttl_seconds * 1000,
        )
        await self._write(token, self._ttl_seconds)
        return token

    async def get(self, token: str, now_ms: int | None = None) -> ShareToken | None:
        """The live token, or None when absent, unreadable or past its expiry."""
        raw = await self._kv.get(share_key(token))
        if raw is None:
            return None
        try:
            share_token = ShareToken.model_validate_json(raw)
        except ValidationError:
            logger.warning("discarding unreadable share token", token=token)
            return None
        now = now_ms if now_ms is not None else _now_ms()
        if now > share_token.expires_at:
            return None
        return share_token

    async def mark_verified(self, share_token: ShareToken) -> ShareToken:
        verified = share_token.model_copy(update={"verified": True})
        await self._write(verified, self._ttl_seconds)
        return verified

    async def consume(self, share_token: ShareToken) -> ShareToken:
        """Latch ``used``; the record lingers briefly so replays read as used rather than missing."""
        used = share_token.model_copy(update={"used": True})
        await self._write(used, USED_TOKEN_TTL_SECONDS)
        return used

    async def _write(self, share_token: ShareToken, ttl_seconds: int) -> None:
        await self._kv.set(
            share_key(share_token.token),
            share_token.model_dump_json(by_alias=True),
            ttl_seconds=ttl_seconds,
        )


def cast_text(streak: int, last_symbol: str | None = None) -> str:
    base = f"Just lost my streak at {streak} on Streak Arena 💀"
    if last_symbol:
        return f"{base}\n\nThought {last_symbol} was the play... 😭\n\n{SITE_URL}"
    return f"{base}\n\n{SITE_URL}"


def compose_url(text: str) -> str:
    return f"{COMPOSE_URL}?text={quote(text, safe='')}"


class ShareProvider(StrEnum):
    MOCK = "mock"
    NEYNAR = "neynar"


@dataclass(frozen=True, slots=True)
class ShareVerification:
    verified: bool
    post_id: str | None = None
    error: str | None = None


class ShareVerifier(Protocol):
    async def verify_share(self, *, platform_id: int | None, since_ms: int) -> ShareVerification: ...


class MockShareVerifier:
    def __init__(self, *, accept: bool = True) -> None:
        self._accept = accept

    async def verify_share(self, *, platform_id: int | None, since_ms: int) -> ShareVerification:  # noqa: ARG002
        if self._accept:
            return ShareVerification(verified=True, post_id="mock")
        return ShareVerification(verified=False, error="no matching post found")


class NeynarShareVerifier:
    """Looks through a user's most recent casts for one that mentions the game."""

    def __init__(
        self,
        api_key: str,
        *,
        keywords: Sequence[str] = DEFAULT_SHARE_KEYWORDS,
        base_url: str = NEYNAR_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._keywords = tuple(keyword.lower() for keyword in keywords)
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def verify_share(self, *, platform_id: int | None, since_ms: int) -> ShareVerification:
        if platform_id is None:
            return ShareVerification(verified=False, error="no social account linked")

        url = f"{self._base_url}/farcaster/feed/user/{platform_id}/casts"
        headers = {"accept": "application/json", "api_key": self._api_key}
        async with httpx.AsyncClient(timeout=_VERIFY_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                response = await client.get(url, params={"limit": _RECENT_POSTS_LIMIT}, headers=headers)
            except httpx.RequestError as e:
                logger.warning("share verification request failed", platform_id=platform_id, error=str(e))
                return ShareVerification(verified=False, error="verification failed")

        if response.status_code != HTTPStatus.OK:
            logger.warning("share verification rejected", platform_id=platform_id, status=response.status_code)
            return ShareVerification(verified=False, error="verification failed")

        try:
            casts = response.json().get("casts", [])
        except ValueError:
            logger.warning("share verification returned invalid JSON", platform_id=platform_id)
            return ShareVerification(verified=False, error="verification failed")

        for cast in casts:
            if self._matches(cast, since_ms):
                return ShareVerification(verified=True, post_id=cast.get("hash"))
        return ShareVerification(verified=False, error="no matching post found")

    def _matches(self, cast: dict, since_ms: int) -> bool:
        try:
            posted_ms = int(datetime.fromisoformat(cast["timestamp"]).timestamp() * 1000)
        except (KeyError, TypeError, ValueError):
            return False
        if posted_ms < since_ms:
            return False
        text = str(cast.get("text", "")).lower()
        return any(keyword in text for keyword in self._keywords)


def _build_mock(api_key: str | None, keywords: Sequence[str]) -> ShareVerifier:  # noqa: ARG001
    return MockShareVerifier()


def _build_neynar(api_key: str | None, keywords: Sequence[str]) -> ShareVerifier:
    if not api_key:
        raise ValueError("neynar_api_key is required for the neynar share provider")
    return NeynarShareVerifier(api_key, keywords=keywords)


SHARE_VERIFIERS: dict[ShareProvider, Callable[[str | None, Sequence[str]], ShareVerifier]] = {
    ShareProvider.MOCK: _build_mock,
    ShareProvider.NEYNAR: _build_neynar,
}


def create_share_verifier(
    provider: ShareProvider,
    api_key: str | None = None,
    keywords: Sequence[str] = DEFAULT_SHARE_KEYWORDS,
) -> ShareVerifier:
    return SHARE_VERIFIERS[provider](api_key, keywords)
