"""
Guess and submission checks against a stored run record.

All functions are pure: they read a record and a claim and never mutate.
The checks are a tamper deterrent, not a proof system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from game.logic.exceptions import (
    RateLimitedError,
    RequestRejectedError,
    RunOverError,
    TokenMismatchError,
    UnauthorizedError,
)
from game.logic.types import Guess

if TYPE_CHECKING:
    from game.logic.catalog import Item
    from game.logic.state import RunRecord

DEFAULT_MIN_GUESS_INTERVAL_MS = 300
DEFAULT_STREAK_TOLERANCE = 1


class GuessCheck(StrEnum):
    OK = "ok"
    UNAUTHORIZED = "unauthorized"
    TOKEN_MISMATCH = "token_mismatch"
    RUN_OVER = "run_over"
    RATE_LIMITED = "rate_limited"


_REJECTIONS: dict[GuessCheck, tuple[type[RequestRejectedError], str]] = {
    GuessCheck.UNAUTHORIZED: (UnauthorizedError, "run belongs to another user"),
    GuessCheck.TOKEN_MISMATCH: (TokenMismatchError, "item pair does not match the current round"),
    GuessCheck.RUN_OVER: (RunOverError, "run is already over"),
    GuessCheck.RATE_LIMITED: (RateLimitedError, "guesses are arriving too quickly"),
}


def correct_answer(current: Item, revealed: Item) -> Guess:
    """UP when the revealed value is at least the current one; equal values count as UP."""
    return Guess.UP if revealed.value >= current.value else Guess.DOWN


def validate_guess(
    record: RunRecord,
    *,
    claimed_user_id: str,
    current_item_id: str,
    next_item_id: str,
    now_ms: int,
    min_interval_ms: int = DEFAULT_MIN_GUESS_INTERVAL_MS,
) -> GuessCheck:
    """Check one guess claim. The first failing check wins, in this order:
    ownership, item pair, lost run, rate limit.
    """
    if record.user_id != claimed_user_id:
        return GuessCheck.UNAUTHORIZED
    if record.current_item_id != current_item_id or record.next_item_id != next_item_id:
        return GuessCheck.TOKEN_MISMATCH
    if record.is_lost:
        return GuessCheck.RUN_OVER
    if record.last_guess_timestamp is not None and now_ms - record.last_guess_timestamp < min_interval_ms:
        return GuessCheck.RATE_LIMITED
    return GuessCheck.OK


def rejection_for(check: GuessCheck) -> RequestRejectedError | None:
    """The exception to raise for a failed check, or None for OK."""
    if check == GuessCheck.OK:
        return None
    error_cls, message = _REJECTIONS[check]
    return error_cls(message)


@dataclass(frozen=True, slots=True)
class ScoreDrift:
    claimed: int
    recorded: int
    tolerance: int

    @property
    def drift(self) -> int:
        return abs(self.claimed - self.recorded)

    @property
    def within_tolerance(self) -> bool:
        return self.drift <= self.tolerance


def check_score_consistency(
    record: RunRecord,
    claimed_streak: int,
    tolerance: int = DEFAULT_STREAK_TOLERANCE,
) -> ScoreDrift:
    """Compare a submitted terminal streak with the recorded one.

    The result is advisory: callers log drift beyond the tolerance and
    let the submission proceed.
    """
    return ScoreDrift(claimed=claimed_streak, recorded=record.current_streak, tolerance=tolerance)


def check_run_integrity(record: RunRecord) -> list[str]:
    """Structural problems in a stored record; empty when consistent."""
    problems: list[str] = []
    if record.round_number != len(record.guess_log):
        problems.append(f"round_number {record.round_number} != guess_log length {len(record.guess_log)}")
    if record.current_item_id == record.next_item_id:
        problems.append(f"current and next item are both {record.current_item_id!r}")
    correct = sum(1 for entry in record.guess_log if entry.correct)
    if record.current_streak > correct:
        problems.append(f"streak {record.current_streak} exceeds {correct} correct guesses")
    for expected_round, entry in enumerate(record.guess_log):
        if entry.round_number != expected_round:
            problems.append(f"guess_log entry {expected_round} has round_number {entry.round_number}")
            break
    return problems
