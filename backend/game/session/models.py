from game.logic.catalog import Item
from game.logic.difficulty import Difficulty
from game.logic.reprieve import ReprieveState
from game.logic.types import Guess, WireModel


class StartedRun(WireModel):
    """Opening state of a run as returned to the client."""

    run_id: str
    seed: str
    current_item: Item
    next_item: Item
    round_number: int = 0
    timer_budget: int
    tier_label: str
    difficulty: Difficulty
    difficulty_label: str
    boss_round: bool = False
    started_at: int
    degraded: bool = False  # run record was not persisted; guesses will be judged statelessly


class GuessOutcome(WireModel):
    """Result of one guess.

    Correct guesses carry the next round (``new_streak``, the shifted pair,
    timer budget). Incorrect guesses keep the failed pair and carry
    ``final_streak``, ``correct_answer`` and the reprieve offer.
    """

    correct: bool
    current_item: Item
    next_item: Item
    revealed_value: float
    round_number: int
    new_streak: int | None = None
    previous_streak: int | None = None
    timer_budget: int | None = None
    tier_label: str | None = None
    difficulty: Difficulty | None = None  # of the upcoming pair, correct guesses only
    difficulty_label: str | None = None
    boss_round: bool = False
    final_streak: int | None = None
    correct_answer: Guess | None = None
    insight: str | None = None
    reprieve: ReprieveState | None = None
    degraded: bool = False


class ResumedRun(WireModel):
    run_id: str
    current_item: Item
    next_item: Item
    streak: int
    round_number: int
    timer_budget: int
    has_used_reprieve: bool = True
