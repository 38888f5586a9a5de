"""
Deterministic item sequencing.

Given the same catalog snapshot, seed and round number, both selectors
return the same item on every call. The server relies on this to recompute
a round's item after a cache miss instead of storing every future pair.

Selection for a round:
1. Candidates are every catalog item except the one currently shown.
2. Candidates are narrowed to the round's target tier (by value ratio to the
   current item); an empty tier falls back to all candidates.
3. Recently shown items are down-weighted rather than excluded, so small
   catalogs never starve: 1.0 for items not seen recently, otherwise
   RECENCY_WEIGHT_FLOOR + (index / len(recent)) * RECENCY_WEIGHT_SPAN where
   index 0 is the most recently shown item.
4. One candidate is drawn from the run's seeded stream.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from game.logic.difficulty import (
    Difficulty,
    TargetDifficulty,
    is_boss_round,
    pair_difficulty,
    target_difficulty,
)
from game.logic.exceptions import CatalogExhaustedError
from game.logic.rng import StreamDomain, bounded, derive_stream, uniform

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from game.logic.catalog import Item
    from game.logic.rng import PCG64DXSM

RECENT_HISTORY_LIMIT = 10
RECENCY_WEIGHT_FLOOR = 0.3
RECENCY_WEIGHT_SPAN = 0.5

_MIXED_TIERS = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)
_FIXED_TIERS = {
    TargetDifficulty.EASY: Difficulty.EASY,
    TargetDifficulty.MEDIUM: Difficulty.MEDIUM,
    TargetDifficulty.HARD: Difficulty.HARD,
}


def select_initial_pair(items: Sequence[Item], seed: str) -> tuple[Item, Item]:
    """Pick the opening (current, next) pair.

    One item comes from the top third of the catalog by value and one from
    the bottom third, so the first call is an easy, visible contrast. The
    stream then decides which of the two is shown first.
    """
    if len(items) < 2:
        raise CatalogExhaustedError(len(items))

    ordered = sorted(items, key=lambda item: item.value, reverse=True)
    third = math.ceil(len(ordered) / 3)
    top = ordered[:third]
    bottom = ordered[-third:]

    stream = derive_stream(seed, 0, StreamDomain.INITIAL_PAIR)
    high = top[bounded(stream, len(top))]
    low_choices = [item for item in bottom if item.id != high.id] or [item for item in ordered if item.id != high.id]
    if not low_choices:
        raise CatalogExhaustedError(len(items))
    low = low_choices[bounded(stream, len(low_choices))]

    if bounded(stream, 2) == 1:
        return low, high
    return high, low


def resolve_target_tier(seed: str, round_number: int, streak: int) -> Difficulty:
    """Concrete tier for a round: boss rounds are hard, mixed streak bands draw a tier."""
    if is_boss_round(round_number):
        return Difficulty.HARD
    target = target_difficulty(streak)
    if target == TargetDifficulty.MIXED:
        stream = derive_stream(seed, round_number, StreamDomain.MIXED_TIER)
        return _MIXED_TIERS[bounded(stream, len(_MIXED_TIERS))]
    return _FIXED_TIERS[target]


def recency_weight(item_id: str, recent_ids: Sequence[str]) -> float:
    if item_id not in recent_ids:
        return 1.0
    index = recent_ids.index(item_id)
    return RECENCY_WEIGHT_FLOOR + (index / len(recent_ids)) * RECENCY_WEIGHT_SPAN


def recent_item_ids(shown_pairs: Iterable[tuple[str, str]], limit: int = RECENT_HISTORY_LIMIT) -> list[str]:
    """Most-recent-first distinct item ids from a run's (current, next) history."""
    recent: list[str] = []
    for current_id, next_id in reversed(list(shown_pairs)):
        for item_id in (next_id, current_id):
            if item_id not in recent:
                recent.append(item_id)
            if len(recent) >= limit:
                return recent
    return recent


def _weighted_pick(candidates: Sequence[Item], weights: Sequence[float], stream: PCG64DXSM) -> Item:
    total = sum(weights)
    target = uniform(stream) * total
    cumulative = 0.0
    for candidate, weight in zip(candidates, weights, strict=True):
        cumulative += weight
        if target < cumulative:
            return candidate
    return candidates[-1]


def select_next(
    items: Sequence[Item],
    seed: str,
    round_number: int,
    recent_ids: Sequence[str],
    *,
    current_item_id: str,
    streak: int,
    avoid_ids: Iterable[str] = (),
    domain: StreamDomain = StreamDomain.NEXT_ITEM,
) -> Item:
    """Select the item to compare against ``current_item_id`` in ``round_number``.

    ``avoid_ids`` are hard-excluded when at least one other candidate remains
    (used to guarantee a reprieve replaces the failed item).
    """
    if len(items) < 2:
        raise CatalogExhaustedError(len(items))

    current = next((item for item in items if item.id == current_item_id), None)
    candidates = [item for item in items if item.id != current_item_id]
    avoid = set(avoid_ids)
    if avoid:
        candidates = [item for item in candidates if item.id not in avoid] or candidates
    if not candidates:
        raise CatalogExhaustedError(len(items))

    # A current item that left the catalog cannot be tiered against; draw from everything.
    if current is not None:
        tier = resolve_target_tier(seed, round_number, streak)
        tiered = [item for item in candidates if pair_difficulty(current, item) == tier]
        if tiered:
            candidates = tiered

    weights = [recency_weight(item.id, recent_ids) for item in candidates]
    return _weighted_pick(candidates, weights, derive_stream(seed, round_number, domain))
