"""In-process key-value store for tests and single-process local play."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from shared.kv.base import KeyValueStore, ScoredMember


@dataclass
class _Slot:
    value: str | None = None
    members: dict[str, float] | None = None  # set for sorted-set keys
    expires_at: float | None = None  # time.monotonic() deadline, None = no expiry


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store with lazy expiry.

    Expired keys are dropped when next touched, matching the observable
    behaviour of the remote service (an expired key reads as absent).
    Sorted sets order ties the way Redis does: by member, descending.
    """

    _slots: dict[str, _Slot] = field(default_factory=dict)

    def _live(self, key: str) -> _Slot | None:
        slot = self._slots.get(key)
        if slot is None:
            return None
        if slot.expires_at is not None and time.monotonic() >= slot.expires_at:
            del self._slots[key]
            return None
        return slot

    def _sorted(self, key: str) -> list[ScoredMember]:
        slot = self._live(key)
        if slot is None or slot.members is None:
            return []
        return sorted(slot.members.items(), key=lambda item: (item[1], item[0]), reverse=True)

    async def get(self, key: str) -> str | None:
        slot = self._live(key)
        return slot.value if slot is not None else None

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds is not None else None
        self._slots[key] = _Slot(value=value, expires_at=expires_at)

    async def incr(self, key: str) -> int:
        slot = self._live(key)
        current = int(slot.value) if slot is not None and slot.value is not None else 0
        new_value = current + 1
        expires_at = slot.expires_at if slot is not None else None
        self._slots[key] = _Slot(value=str(new_value), expires_at=expires_at)
        return new_value

    async def expire(self, key: str, ttl_seconds: int) -> None:
        slot = self._live(key)
        if slot is not None:
            slot.expires_at = time.monotonic() + ttl_seconds

    async def zadd(self, key: str, member: str, score: float) -> None:
        slot = self._live(key)
        if slot is not None and slot.members is not None:
            slot.members[member] = float(score)
            return
        members = {member: float(score)}
        self._slots[key] = _Slot(members=members, expires_at=slot.expires_at if slot is not None else None)

    async def zscore(self, key: str, member: str) -> float | None:
        slot = self._live(key)
        if slot is None or slot.members is None:
            return None
        return slot.members.get(member)

    async def zrevrank(self, key: str, member: str) -> int | None:
        for index, (candidate, _score) in enumerate(self._sorted(key)):
            if candidate == member:
                return index
        return None

    async def zrevrange(self, key: str, start: int, stop: int) -> list[ScoredMember]:
        ordered = self._sorted(key)
        end = len(ordered) if stop == -1 else stop + 1
        return ordered[start:end]

    async def zrevrangebyscore(
        self,
        key: str,
        max_score: float,
        min_score: float,
        count: int | None = None,
    ) -> list[ScoredMember]:
        matching = [(m, s) for m, s in self._sorted(key) if min_score <= s <= max_score]
        return matching if count is None else matching[:count]

    async def ping(self) -> None:
        return None
