"""
Ranked leaderboards and overtake detection.

Key space:
- ``leaderboard:global``: all-time ranked set
- ``leaderboard:weekly:{ISO year}-W{week}``: rolling ranked set with its own expiry
- ``user:{id}:best``: best-ever streak, no expiry
- ``user:{id}:profile``: cached display identity, no expiry
- ``leaderboard:seq``: write counter used to order ties

Ranked-set scores encode ``streak * 2**32 + seq`` so equal streaks order by
write sequence, most recent first, on every backend. There are no
transactions: overtakes are computed from a read taken before the write and
can be slightly stale under concurrent submissions.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from leaderboard.identity import cache_profile, cached_profile, fallback_identity, resolve_identity
from leaderboard.models import BoardKind, Identity, LeaderboardEntry, LeaderboardPage, OvertakeEvent, SubmitResult
from shared.kv import StoreUnavailableError

if TYPE_CHECKING:
    from shared.kv import KeyValueStore, ScoredMember

logger = structlog.get_logger()

GLOBAL_KEY = "leaderboard:global"
SEQ_KEY = "leaderboard:seq"
SCORE_SHIFT = 2**32
DEFAULT_ROLLING_TTL_SECONDS = 14 * 24 * 3600
DEFAULT_SUBMIT_OVERTAKE_CAP = 5
DEFAULT_LIVE_OVERTAKE_CAP = 3
MAX_PAGE_SIZE = 100


def weekly_key(now: datetime) -> str:
    iso_year, iso_week, _ = now.isocalendar()
    return f"leaderboard:weekly:{iso_year}-W{iso_week:02d}"


def best_key(user_id: str) -> str:
    return f"user:{user_id}:best"


def encode_score(streak: int, seq: int) -> float:
    return float(streak * SCORE_SHIFT + seq % SCORE_SHIFT)


def decode_streak(score: float) -> int:
    return int(score) // SCORE_SHIFT


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LeaderboardStore:
    def __init__(
        self,
        kv: KeyValueStore,
        *,
        rolling_ttl_seconds: int = DEFAULT_ROLLING_TTL_SECONDS,
        submit_overtake_cap: int = DEFAULT_SUBMIT_OVERTAKE_CAP,
        live_overtake_cap: int = DEFAULT_LIVE_OVERTAKE_CAP,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._kv = kv
        self._rolling_ttl_seconds = rolling_ttl_seconds
        self._submit_overtake_cap = submit_overtake_cap
        self._live_overtake_cap = live_overtake_cap
        self._clock = clock

    def board_key(self, board: BoardKind) -> str:
        if board == BoardKind.WEEKLY:
            return weekly_key(self._clock())
        return GLOBAL_KEY

    async def best_of(self, user_id: str) -> int | None:
        raw = await self._kv.get(best_key(user_id))
        return int(raw) if raw is not None else None

    async def rank_of(self, user_id: str, board: BoardKind = BoardKind.GLOBAL) -> int | None:
        """1-indexed rank, or None when the user is not on the board."""
        position = await self._kv.zrevrank(self.board_key(board), user_id)
        return position + 1 if position is not None else None

    async def submit_score(self, user_id: str, streak: int, identity: Identity | None = None) -> SubmitResult:
        """Record a final streak if it beats the user's best.

        A streak at or below the stored best (0 when none) changes nothing. An improvement
        reports everyone whose streak lies in ``[previous best, streak)`` as
        overtaken, highest first, capped. When the store is unavailable the
        result is empty and marked degraded instead of raising.
        """
        try:
            return await self._submit(user_id, streak, identity)
        except StoreUnavailableError as e:
            logger.warning("leaderboard unavailable, score not recorded", user_id=user_id, streak=streak, error=str(e))
            return SubmitResult(is_new_best=False, degraded=True)

    async def _submit(self, user_id: str, streak: int, identity: Identity | None) -> SubmitResult:
        previous_best = await self.best_of(user_id)
        previous_rank = await self.rank_of(user_id)
        if streak <= (previous_best or 0):
            return SubmitResult(
                is_new_best=False,
                best_streak=previous_best,
                previous_rank=previous_rank,
                new_rank=previous_rank,
            )

        overtaken = await self._streaks_between(user_id, previous_best or 0, streak, self._submit_overtake_cap)

        seq = await self._kv.incr(SEQ_KEY)
        score = encode_score(streak, seq)
        now = self._clock()
        await self._kv.set(best_key(user_id), str(streak))
        await self._kv.zadd(GLOBAL_KEY, user_id, score)
        rolling_key = weekly_key(now)
        await self._kv.zadd(rolling_key, user_id, score)
        await self._kv.expire(rolling_key, self._rolling_ttl_seconds)

        resolved = await resolve_identity(self._kv, user_id, identity)
        await cache_profile(self._kv, user_id, resolved, int(now.timestamp() * 1000))

        new_rank = await self.rank_of(user_id)
        overtakes = [await self._overtake_event(member, their_streak, streak) for member, their_streak in overtaken]
        logger.info(
            "new best recorded",
            user_id=user_id,
            streak=streak,
            previous_best=previous_best,
            new_rank=new_rank,
            overtakes=len(overtakes),
        )
        return SubmitResult(
            is_new_best=True,
            best_streak=streak,
            previous_rank=previous_rank,
            new_rank=new_rank,
            overtakes=overtakes,
        )

    async def live_overtakes(self, user_id: str, previous_streak: int, current_streak: int) -> list[OvertakeEvent]:
        """Players passed by an in-progress run. Read-only; empty when the store is unavailable."""
        if current_streak <= previous_streak:
            return []
        try:
            passed = await self._streaks_between(user_id, previous_streak, current_streak, self._live_overtake_cap)
            return [await self._overtake_event(member, their, current_streak) for member, their in passed]
        except StoreUnavailableError as e:
            logger.warning("leaderboard unavailable, no live overtakes", user_id=user_id, error=str(e))
            return []

    async def _streaks_between(self, user_id: str, low: int, high: int, cap: int) -> list[tuple[str, int]]:
        """Other members with ``low <= streak < high``, highest first, at most ``cap``."""
        if high <= low or cap <= 0:
            return []
        rows: list[ScoredMember] = await self._kv.zrevrangebyscore(
            GLOBAL_KEY,
            max_score=high * SCORE_SHIFT - 1,
            min_score=low * SCORE_SHIFT,
            count=cap + 1,
        )
        return [(member, decode_streak(score)) for member, score in rows if member != user_id][:cap]

    async def _overtake_event(self, member: str, their_streak: int, your_streak: int) -> OvertakeEvent:
        return OvertakeEvent(
            overtaken_user_id=member,
            overtaken_user=await resolve_identity(self._kv, member),
            their_streak=their_streak,
            your_streak=your_streak,
        )

    async def top_entries(self, board: BoardKind, limit: int) -> list[LeaderboardEntry]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        rows = await self._kv.zrevrange(self.board_key(board), 0, limit - 1)
        entries: list[LeaderboardEntry] = []
        for index, (member, score) in enumerate(rows):
            profile = await cached_profile(self._kv, member)
            identity = fallback_identity(member) if profile is None else Identity(
                display_name=profile.display_name,
                avatar_url=profile.avatar_url,
                source=profile.source,
            )
            entries.append(
                LeaderboardEntry(
                    rank=index + 1,
                    user_id=member,
                    identity=identity,
                    best_streak=decode_streak(score),
                    updated_at=profile.updated_at if profile is not None else None,
                )
            )
        return entries

    async def page(self, board: BoardKind, limit: int, user_id: str | None = None) -> LeaderboardPage:
        """Top entries plus the caller's rank; an empty degraded page when the store is unavailable."""
        try:
            entries = await self.top_entries(board, limit)
            user_rank = await self.rank_of(user_id, board) if user_id else None
        except StoreUnavailableError as e:
            logger.warning("leaderboard unavailable, returning empty page", board=board.value, error=str(e))
            return LeaderboardPage(board=board, degraded=True)
        return LeaderboardPage(board=board, entries=entries, user_rank=user_rank)
