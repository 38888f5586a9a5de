from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.types import Guess
from game.logic.validator import correct_answer

if TYPE_CHECKING:
    from game.logic.catalog import Item
    from game.session.manager import RunManager
    from game.session.models import GuessOutcome, StartedRun
    from game.tests.helpers.clock import FakeClock

USER = "0x1234567890abcdef1234567890abcdef12345678"
OTHER_USER = "0xfedcba9876543210fedcba9876543210fedcba98"


def winning_guess(current: Item, upcoming: Item) -> Guess:
    return correct_answer(current, upcoming)


def losing_guess(current: Item, upcoming: Item) -> Guess:
    return Guess.DOWN if correct_answer(current, upcoming) == Guess.UP else Guess.UP


async def play_streak(
    manager: RunManager,
    started: StartedRun,
    rounds: int,
    clock: FakeClock,
    user_id: str = USER,
) -> tuple[Item, Item]:
    """Guess correctly ``rounds`` times and return the pair now on screen."""
    current, upcoming = started.current_item, started.next_item
    for _ in range(rounds):
        clock.advance(1_000)
        outcome = await manager.submit_guess(
            started.run_id,
            user_id,
            winning_guess(current, upcoming),
            current.id,
            upcoming.id,
        )
        assert outcome.correct
        current, upcoming = outcome.current_item, outcome.next_item
    return current, upcoming


async def lose_round(
    manager: RunManager,
    run_id: str,
    pair: tuple[Item, Item],
    clock: FakeClock,
    user_id: str = USER,
) -> GuessOutcome:
    current, upcoming = pair
    clock.advance(1_000)
    outcome = await manager.submit_guess(run_id, user_id, losing_guess(current, upcoming), current.id, upcoming.id)
    assert not outcome.correct
    return outcome
