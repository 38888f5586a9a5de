"""
Pair difficulty and streak-driven difficulty targets.

A pair's difficulty is the ratio of the larger to the smaller value:
- easy: more than 10x apart (an obvious call)
- medium: more than 3x and up to 10x
- hard: 3x or closer

The target tier rises with the streak; every fifth round is a boss round
that is always hard.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from game.logic.catalog import Item

EASY_RATIO_THRESHOLD = 10.0
MEDIUM_RATIO_THRESHOLD = 3.0
BOSS_ROUND_INTERVAL = 5


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TargetDifficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    MIXED = "mixed"  # tier is drawn per round
    HARD = "hard"


_DIFFICULTY_LABELS: dict[Difficulty, str] = {
    Difficulty.EASY: "Warmup",
    Difficulty.MEDIUM: "Challenge",
    Difficulty.HARD: "Expert",
}


def value_ratio(a: Item, b: Item) -> float:
    """Larger value over smaller value; infinite when the smaller value is zero."""
    larger = max(a.value, b.value)
    smaller = min(a.value, b.value)
    return larger / smaller if smaller > 0 else math.inf


def pair_difficulty(a: Item, b: Item) -> Difficulty:
    ratio = value_ratio(a, b)
    if ratio > EASY_RATIO_THRESHOLD:
        return Difficulty.EASY
    if ratio > MEDIUM_RATIO_THRESHOLD:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def target_difficulty(streak: int) -> TargetDifficulty:
    """Streak 0-4 easy, 5-9 medium, 10-14 mixed, 15+ hard."""
    if streak < 5:
        return TargetDifficulty.EASY
    if streak < 10:
        return TargetDifficulty.MEDIUM
    if streak < 15:
        return TargetDifficulty.MIXED
    return TargetDifficulty.HARD


def is_boss_round(round_number: int) -> bool:
    return round_number > 0 and round_number % BOSS_ROUND_INTERVAL == 0


def difficulty_label(difficulty: Difficulty) -> str:
    return _DIFFICULTY_LABELS[difficulty]


def _format_value(value: float) -> str:
    if value >= 1e9:
        return f"${value / 1e9:.1f}B"
    if value >= 1e6:
        return f"${value / 1e6:.0f}M"
    return f"${value / 1e3:.0f}K"


def difficulty_insight(a: Item, b: Item) -> str:
    """Loss-screen line comparing the two items of the failed round."""
    larger, smaller = (a, b) if a.value > b.value else (b, a)
    comparison = f"{larger.symbol}: {_format_value(larger.value)} vs {smaller.symbol}: {_format_value(smaller.value)}"
    difficulty = pair_difficulty(a, b)
    if difficulty == Difficulty.EASY:
        return comparison
    ratio = value_ratio(a, b)
    if difficulty == Difficulty.HARD:
        return f"Close one! {comparison} ({ratio:.1f}x)"
    return f"{comparison} ({ratio:.1f}x)"
