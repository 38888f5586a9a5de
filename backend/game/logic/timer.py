"""
Per-round think-time budgets.

The budget is a non-increasing step function of the streak. It is advisory
metadata for the client countdown; the server enforces nothing beyond the
minimum inter-guess interval in the validator.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

REPRIEVE_GRACE_SECONDS = 10
MAX_TIMER_SECONDS = 60


class TimerTier(BaseModel):
    """One streak band of the timer schedule.

    The warning and critical fractions are the share of the budget remaining
    at which the client switches the countdown colour.
    """

    model_config = ConfigDict(frozen=True)

    min_streak: int = Field(ge=0)
    duration_seconds: int = Field(gt=0, le=MAX_TIMER_SECONDS)
    name: str
    warning_fraction: float = 0.5
    critical_fraction: float = 0.25


# Ascending by min_streak; the last band with min_streak <= streak applies.
TIMER_TIERS: tuple[TimerTier, ...] = (
    TimerTier(min_streak=0, duration_seconds=60, name="Warmup"),
    TimerTier(min_streak=5, duration_seconds=45, name="Challenge"),
    TimerTier(min_streak=10, duration_seconds=30, name="Pressure"),
    TimerTier(min_streak=15, duration_seconds=20, name="Intense", critical_fraction=0.3),
    TimerTier(min_streak=20, duration_seconds=12, name="Legendary", critical_fraction=0.33),
)


def timer_tier(streak: int) -> TimerTier:
    tier = TIMER_TIERS[0]
    for candidate in TIMER_TIERS:
        if streak >= candidate.min_streak:
            tier = candidate
    return tier


def timer_budget(streak: int) -> int:
    """Seconds the player has to answer at this streak."""
    return timer_tier(streak).duration_seconds


def tier_label(streak: int) -> str:
    return timer_tier(streak).name


def timer_budget_after_reprieve(streak: int) -> int:
    """Budget for the first round after a reprieve: a fixed grace, capped at the maximum."""
    return min(timer_budget(streak) + REPRIEVE_GRACE_SECONDS, MAX_TIMER_SECONDS)
