"""
Run record model and its pure transitions.

A RunRecord is immutable; every transition returns a new record via
``model_copy`` and the session layer persists it as a full replacement.
Timestamps are epoch milliseconds.

Invariants maintained by the transitions:
- ``round_number == len(guess_log)``
- ``current_item_id != next_item_id``
- ``has_used_reprieve`` only ever goes from False to True
- ``current_streak`` never decreases within a run
"""

from __future__ import annotations

from game.logic.types import Guess, WireModel


class GuessEntry(WireModel):
    round_number: int
    current_item_id: str
    next_item_id: str
    guess: Guess
    timestamp: int
    correct: bool = True


class RunRecord(WireModel):
    run_id: str
    seed: str
    user_id: str
    started_at: int
    current_item_id: str
    next_item_id: str
    round_number: int = 0
    current_streak: int = 0
    guess_log: tuple[GuessEntry, ...] = ()
    has_used_reprieve: bool = False
    last_guess_timestamp: int | None = None
    lost_at_round: int | None = None  # set while the run is lost and awaiting a reprieve or submission

    @property
    def is_lost(self) -> bool:
        return self.lost_at_round is not None

    def shown_pairs(self) -> list[tuple[str, str]]:
        """(current, next) pairs in the order they were played."""
        return [(entry.current_item_id, entry.next_item_id) for entry in self.guess_log]


def record_correct_guess(record: RunRecord, guess: Guess, next_item_id: str, now_ms: int) -> RunRecord:
    """Streak and round advance; the revealed item becomes the shown one."""
    entry = GuessEntry(
        round_number=record.round_number,
        current_item_id=record.current_item_id,
        next_item_id=record.next_item_id,
        guess=guess,
        timestamp=now_ms,
    )
    return record.model_copy(
        update={
            "round_number": record.round_number + 1,
            "current_streak": record.current_streak + 1,
            "current_item_id": record.next_item_id,
            "next_item_id": next_item_id,
            "guess_log": (*record.guess_log, entry),
            "last_guess_timestamp": now_ms,
        }
    )


def record_incorrect_guess(record: RunRecord, guess: Guess, now_ms: int) -> RunRecord:
    """The run is over for the player; the pair and streak are kept for validation and reprieve."""
    entry = GuessEntry(
        round_number=record.round_number,
        current_item_id=record.current_item_id,
        next_item_id=record.next_item_id,
        guess=guess,
        timestamp=now_ms,
        correct=False,
    )
    return record.model_copy(
        update={
            "round_number": record.round_number + 1,
            "guess_log": (*record.guess_log, entry),
            "last_guess_timestamp": now_ms,
            "lost_at_round": record.round_number,
        }
    )


def record_reprieve(record: RunRecord, next_item_id: str) -> RunRecord:
    """Discard the failed comparison: fresh next item, streak and current item unchanged."""
    return record.model_copy(
        update={
            "next_item_id": next_item_id,
            "has_used_reprieve": True,
            "lost_at_round": None,
        }
    )
