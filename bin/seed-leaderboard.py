"""Seed the leaderboard with demo players.

Usage: uv run python bin/seed-leaderboard.py

Uses the store configured by GAME_STORE_BACKEND / GAME_REDIS_URL. Seeding is
idempotent: a player whose stored best already meets the demo streak is
left unchanged.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from game.server.settings import GameServerSettings
from leaderboard.models import Identity, IdentitySource
from leaderboard.store import LeaderboardStore
from shared.kv import StoreBackend, create_store

DEMO_PLAYERS: list[tuple[str, str, IdentitySource, int]] = [
    ("0x1234567890abcdef1234567890abcdef12345678", "satoshi-fan.eth", IdentitySource.ENS, 15),
    ("0xabcdef1234567890abcdef1234567890abcdef12", "chartwizard.eth", IdentitySource.ENS, 14),
    ("0x9876543210fedcba9876543210fedcba98765432", "@mooncaller", IdentitySource.FARCASTER, 12),
    ("0xfedcba9876543210fedcba9876543210fedcba98", "gmgn.eth", IdentitySource.ENS, 11),
    ("0x1111222233334444555566667777888899990000", "@onchainjane", IdentitySource.FARCASTER, 10),
    ("0x2222333344445555666677778888999900001111", "degenlab.base.eth", IdentitySource.BASENAME, 9),
    ("0x3333444455556666777788889999000011112222", "@capcomparer", IdentitySource.FARCASTER, 8),
    ("0x4444555566667777888899990000111122223333", "paperhands.eth", IdentitySource.ENS, 7),
    ("0x5555666677778888999900001111222233334444", "@wagmiwill", IdentitySource.FARCASTER, 6),
    ("0x6666777788889999000011112222333344445555", "lowcapgem.eth", IdentitySource.ENS, 5),
]


async def main() -> None:
    settings = GameServerSettings()
    if settings.store_backend == StoreBackend.MEMORY:
        print("Warning: GAME_STORE_BACKEND is memory, seeded data disappears when this script exits.")

    store = create_store(settings.store_backend, settings.redis_url)
    leaderboard = LeaderboardStore(store, rolling_ttl_seconds=settings.rolling_board_ttl_seconds)
    try:
        for user_id, display_name, source, streak in DEMO_PLAYERS:
            identity = Identity(display_name=display_name, source=source)
            result = await leaderboard.submit_score(user_id, streak, identity)
            if result.degraded:
                print("Error: key-value store unavailable")
                sys.exit(1)
            status = "seeded" if result.is_new_best else "unchanged"
            print(f"{identity.display_name:<20} streak {streak:>3}  rank {result.new_rank}  ({status})")
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
