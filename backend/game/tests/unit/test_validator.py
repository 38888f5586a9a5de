import pytest

from game.logic.exceptions import RateLimitedError, RunOverError, TokenMismatchError, UnauthorizedError
from game.logic.state import RunRecord, record_correct_guess, record_incorrect_guess
from game.logic.types import Guess
from game.logic.validator import (
    GuessCheck,
    check_run_integrity,
    check_score_consistency,
    correct_answer,
    rejection_for,
    validate_guess,
)
from game.tests.helpers.catalog import make_item


def _record(**overrides) -> RunRecord:
    fields = {
        "run_id": "run-1",
        "seed": "s1",
        "user_id": "0xabc",
        "started_at": 1_000,
        "current_item_id": "alpha",
        "next_item_id": "bravo",
    }
    fields.update(overrides)
    return RunRecord(**fields)


def _check(record: RunRecord, **overrides) -> GuessCheck:
    claim = {
        "claimed_user_id": record.user_id,
        "current_item_id": record.current_item_id,
        "next_item_id": record.next_item_id,
        "now_ms": 10_000,
        "min_interval_ms": 300,
    }
    claim.update(overrides)
    return validate_guess(record, **claim)


class TestCorrectAnswer:
    def test_higher_is_up(self):
        assert correct_answer(make_item("a", 1.0), make_item("b", 2.0)) == Guess.UP

    def test_lower_is_down(self):
        assert correct_answer(make_item("a", 2.0), make_item("b", 1.0)) == Guess.DOWN

    def test_equal_counts_as_up(self):
        assert correct_answer(make_item("a", 2.0), make_item("b", 2.0)) == Guess.UP


class TestValidateGuess:
    def test_ok(self):
        assert _check(_record()) == GuessCheck.OK

    def test_other_user(self):
        assert _check(_record(), claimed_user_id="0xdef") == GuessCheck.UNAUTHORIZED

    @pytest.mark.parametrize(
        "overrides",
        [{"current_item_id": "charlie"}, {"next_item_id": "charlie"}, {"current_item_id": "bravo"}],
    )
    def test_pair_mismatch(self, overrides):
        assert _check(_record(), **overrides) == GuessCheck.TOKEN_MISMATCH

    def test_lost_run(self):
        lost = record_incorrect_guess(_record(), Guess.UP, now_ms=1_000)
        assert _check(lost) == GuessCheck.RUN_OVER

    def test_too_fast(self):
        played = record_correct_guess(_record(), Guess.UP, "charlie", now_ms=9_900)
        assert _check(played, now_ms=10_000) == GuessCheck.RATE_LIMITED
        assert _check(played, now_ms=10_200) == GuessCheck.OK

    def test_first_guess_never_rate_limited(self):
        assert _check(_record(), now_ms=0) == GuessCheck.OK

    def test_ownership_checked_before_pair(self):
        assert _check(_record(), claimed_user_id="0xdef", next_item_id="zzz") == GuessCheck.UNAUTHORIZED


class TestRejectionFor:
    @pytest.mark.parametrize(
        ("check", "error_cls", "code"),
        [
            (GuessCheck.UNAUTHORIZED, UnauthorizedError, "unauthorized"),
            (GuessCheck.TOKEN_MISMATCH, TokenMismatchError, "token_mismatch"),
            (GuessCheck.RUN_OVER, RunOverError, "run_over"),
            (GuessCheck.RATE_LIMITED, RateLimitedError, "rate_limited"),
        ],
    )
    def test_maps_check_to_error(self, check, error_cls, code):
        error = rejection_for(check)
        assert isinstance(error, error_cls)
        assert error.code == code

    def test_ok_has_no_error(self):
        assert rejection_for(GuessCheck.OK) is None


class TestScoreConsistency:
    def test_exact_match(self):
        drift = check_score_consistency(_record(current_streak=7), 7)
        assert drift.drift == 0
        assert drift.within_tolerance

    def test_within_tolerance(self):
        assert check_score_consistency(_record(current_streak=7), 8, tolerance=1).within_tolerance

    def test_beyond_tolerance(self):
        drift = check_score_consistency(_record(current_streak=7), 12, tolerance=1)
        assert drift.drift == 5
        assert not drift.within_tolerance


class TestRunIntegrity:
    def test_consistent_record(self):
        record = record_correct_guess(_record(), Guess.UP, "charlie", now_ms=1_000)
        assert check_run_integrity(record) == []

    def test_inflated_streak(self):
        problems = check_run_integrity(_record(current_streak=3))
        assert any("exceeds" in problem for problem in problems)

    def test_round_log_mismatch(self):
        problems = check_run_integrity(_record(round_number=4))
        assert any("guess_log length" in problem for problem in problems)

    def test_same_current_and_next(self):
        problems = check_run_integrity(_record(next_item_id="alpha"))
        assert any("both 'alpha'" in problem for problem in problems)
