from enum import StrEnum

from game.logic.types import WireModel


class BoardKind(StrEnum):
    WEEKLY = "weekly"  # rolling window, one ranked set per ISO week
    GLOBAL = "global"  # all-time


class IdentitySource(StrEnum):
    ENS = "ens"
    FARCASTER = "farcaster"
    BASENAME = "basename"
    ADDRESS = "address"
    GUEST = "guest"


class Identity(WireModel):
    """Display identity shown next to a score."""

    display_name: str
    avatar_url: str | None = None
    source: IdentitySource = IdentitySource.ADDRESS


class Profile(Identity):
    """Identity as cached under ``user:{id}:profile``."""

    updated_at: int | None = None


class LeaderboardEntry(WireModel):
    rank: int  # 1-indexed
    user_id: str
    identity: Identity
    best_streak: int
    updated_at: int | None = None


class OvertakeEvent(WireModel):
    overtaken_user_id: str
    overtaken_user: Identity
    their_streak: int
    your_streak: int


class SubmitResult(WireModel):
    is_new_best: bool
    best_streak: int | None = None
    previous_rank: int | None = None
    new_rank: int | None = None
    overtakes: list[OvertakeEvent] = []
    degraded: bool = False  # store unavailable; nothing was recorded


class LeaderboardPage(WireModel):
    board: BoardKind
    entries: list[LeaderboardEntry] = []
    user_rank: int | None = None
    degraded: bool = False
