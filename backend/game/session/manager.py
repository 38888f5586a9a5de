from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from game.logic.difficulty import difficulty_insight, difficulty_label, is_boss_round, pair_difficulty
from game.logic.exceptions import (
    CatalogExhaustedError,
    InvalidItemError,
    ReprieveNotEligibleError,
    TokenMismatchError,
    UnauthorizedError,
)
from game.logic.reprieve import ReprieveOffer, ReprievePolicy
from game.logic.rng import StreamDomain, generate_seed
from game.logic.sequencing import recent_item_ids, resolve_target_tier, select_initial_pair, select_next
from game.logic.state import RunRecord, record_correct_guess, record_incorrect_guess, record_reprieve
from game.logic.timer import tier_label, timer_budget, timer_budget_after_reprieve
from game.logic.validator import (
    DEFAULT_MIN_GUESS_INTERVAL_MS,
    DEFAULT_STREAK_TOLERANCE,
    check_run_integrity,
    check_score_consistency,
    correct_answer,
    rejection_for,
    validate_guess,
)
from game.session.models import GuessOutcome, ResumedRun, StartedRun
from shared.kv import StoreUnavailableError

if TYPE_CHECKING:
    from game.logic.catalog import Catalog, Item
    from game.logic.types import Guess
    from game.reprieve.payments import PaymentVerifier
    from game.reprieve.share import ShareToken, ShareTokenStore
    from game.session.run_store import RunRecordStore

logger = structlog.get_logger()


def _now_ms() -> int:
    return int(time.time() * 1000)


def fallback_seed(run_id: str) -> str:
    """Seed used to sequence a run whose record is unavailable."""
    return f"fallback_{run_id}"


class RunManager:
    """Run lifecycle: start, guess, reprieve resume and submission cross-check.

    The run record is the only state. When the store is unreachable or the
    record has expired, starts and guesses degrade to stateless answers
    computed from the catalog instead of failing.
    """

    def __init__(  # noqa: PLR0913
        self,
        catalog: Catalog,
        runs: RunRecordStore,
        *,
        share_tokens: ShareTokenStore,
        payment_verifier: PaymentVerifier,
        policy: ReprievePolicy | None = None,
        min_guess_interval_ms: int = DEFAULT_MIN_GUESS_INTERVAL_MS,
        streak_tolerance: int = DEFAULT_STREAK_TOLERANCE,
        seed_factory: Callable[[], str] = generate_seed,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._catalog = catalog
        self._runs = runs
        self._share_tokens = share_tokens
        self._payment_verifier = payment_verifier
        self._policy = policy or ReprievePolicy()
        self._min_guess_interval_ms = min_guess_interval_ms
        self._streak_tolerance = streak_tolerance
        self._seed_factory = seed_factory
        self._clock_ms = clock_ms

    @property
    def policy(self) -> ReprievePolicy:
        return self._policy

    async def start_run(self, user_id: str) -> StartedRun:
        items = self._catalog.items()
        seed = self._seed_factory()
        try:
            current, upcoming = select_initial_pair(items, seed)
        except CatalogExhaustedError as e:
            logger.error("cannot start run, catalog exhausted", user_id=user_id, available=e.available)  # noqa: TRY400
            raise

        now = self._clock_ms()
        record = RunRecord(
            run_id=str(uuid4()),
            seed=seed,
            user_id=user_id,
            started_at=now,
            current_item_id=current.id,
            next_item_id=upcoming.id,
        )
        degraded = False
        try:
            await self._runs.create(record)
        except StoreUnavailableError:
            logger.warning("run record not persisted, guesses will be judged statelessly", run_id=record.run_id)
            degraded = True

        logger.info("run started", run_id=record.run_id, user_id=user_id, degraded=degraded)
        start_difficulty = resolve_target_tier(seed, 0, 0)
        return StartedRun(
            run_id=record.run_id,
            seed=seed,
            current_item=current,
            next_item=upcoming,
            timer_budget=timer_budget(0),
            tier_label=tier_label(0),
            difficulty=start_difficulty,
            difficulty_label=difficulty_label(start_difficulty),
            started_at=now,
            degraded=degraded,
        )

    async def submit_guess(  # noqa: PLR0913
        self,
        run_id: str,
        user_id: str,
        guess: Guess,
        current_item_id: str,
        next_item_id: str,
        *,
        client_streak: int | None = None,
    ) -> GuessOutcome:
        """Judge a guess and advance the run.

        Raises a RequestRejectedError subclass when the claim fails validation;
        the stored record is left untouched in that case. ``client_streak`` is
        only used when the record is unavailable.
        """
        current = self._catalog.get(current_item_id)
        revealed = self._catalog.get(next_item_id)
        if current is None or revealed is None:
            raise InvalidItemError("unknown item id")

        now = self._clock_ms()
        try:
            record = await self._runs.get(run_id)
        except StoreUnavailableError:
            record = None
        if record is None:
            logger.warning("run record unavailable, judging guess statelessly", run_id=run_id)
            return self._stateless_outcome(run_id, guess, current, revealed, client_streak or 0)

        error = rejection_for(
            validate_guess(
                record,
                claimed_user_id=user_id,
                current_item_id=current_item_id,
                next_item_id=next_item_id,
                now_ms=now,
                min_interval_ms=self._min_guess_interval_ms,
            )
        )
        if error is not None:
            logger.warning("guess rejected", run_id=run_id, user_id=user_id, reason=error.code)
            raise error

        if guess == correct_answer(current, revealed):
            return await self._advance(record, guess, revealed, now)
        return await self._end(record, guess, current, revealed, now)

    async def _advance(self, record: RunRecord, guess: Guess, revealed: Item, now: int) -> GuessOutcome:
        streak = record.current_streak + 1
        round_number = record.round_number + 1
        recent = recent_item_ids([*record.shown_pairs(), (record.current_item_id, record.next_item_id)])
        upcoming = select_next(
            self._catalog.items(),
            record.seed,
            round_number,
            recent,
            current_item_id=revealed.id,
            streak=streak,
        )
        updated = record_correct_guess(record, guess, upcoming.id, now)
        next_difficulty = pair_difficulty(revealed, upcoming)
        degraded = not await self._save(updated)
        return GuessOutcome(
            correct=True,
            current_item=revealed,
            next_item=upcoming,
            revealed_value=revealed.value,
            round_number=round_number,
            new_streak=streak,
            previous_streak=record.current_streak,
            timer_budget=timer_budget(streak),
            tier_label=tier_label(streak),
            difficulty=next_difficulty,
            difficulty_label=difficulty_label(next_difficulty),
            boss_round=is_boss_round(round_number),
            degraded=degraded,
        )

    async def _end(self, record: RunRecord, guess: Guess, current: Item, revealed: Item, now: int) -> GuessOutcome:
        updated = record_incorrect_guess(record, guess, now)
        degraded = not await self._save(updated)
        logger.info("run lost", run_id=record.run_id, user_id=record.user_id, streak=record.current_streak)
        return GuessOutcome(
            correct=False,
            current_item=current,
            next_item=revealed,
            revealed_value=revealed.value,
            round_number=record.round_number,
            final_streak=record.current_streak,
            correct_answer=correct_answer(current, revealed),
            insight=difficulty_insight(current, revealed),
            reprieve=self._policy.state(record.current_streak, record.has_used_reprieve),
            degraded=degraded,
        )

    def _stateless_outcome(
        self,
        run_id: str,
        guess: Guess,
        current: Item,
        revealed: Item,
        streak: int,
    ) -> GuessOutcome:
        """Best-effort answer from catalog values alone. No reprieve is offered: there is no record to resume."""
        if guess != correct_answer(current, revealed):
            return GuessOutcome(
                correct=False,
                current_item=current,
                next_item=revealed,
                revealed_value=revealed.value,
                round_number=streak,
                final_streak=streak,
                correct_answer=correct_answer(current, revealed),
                insight=difficulty_insight(current, revealed),
                degraded=True,
            )

        new_streak = streak + 1
        upcoming = select_next(
            self._catalog.items(),
            fallback_seed(run_id),
            new_streak,
            [revealed.id, current.id],
            current_item_id=revealed.id,
            streak=new_streak,
        )
        next_difficulty = pair_difficulty(revealed, upcoming)
        return GuessOutcome(
            correct=True,
            current_item=revealed,
            next_item=upcoming,
            revealed_value=revealed.value,
            round_number=new_streak,
            new_streak=new_streak,
            previous_streak=streak,
            timer_budget=timer_budget(new_streak),
            tier_label=tier_label(new_streak),
            difficulty=next_difficulty,
            difficulty_label=difficulty_label(next_difficulty),
            boss_round=is_boss_round(new_streak),
            degraded=True,
        )

    async def _save(self, record: RunRecord) -> bool:
        try:
            await self._runs.replace(record)
        except StoreUnavailableError:
            logger.warning("run record not saved", run_id=record.run_id, round_number=record.round_number)
            return False
        return True

    async def resume_run(
        self,
        run_id: str,
        current_item_id: str,
        *,
        user_id: str | None = None,
        share_token: str | None = None,
        payment_reference: str | None = None,
    ) -> ResumedRun:
        """Continue a lost run with a fresh next item.

        The failed comparison is discarded: streak and current item are kept,
        the failed item is never offered again as the replacement, and the
        reprieve latch is set. Proof for the offered modality is required
        unless the policy waives payment.
        """
        try:
            record = await self._runs.get(run_id)
        except StoreUnavailableError as e:
            raise ReprieveNotEligibleError("reprieve is unavailable right now") from e
        if record is None:
            raise ReprieveNotEligibleError("run not found or expired")
        if user_id is not None and record.user_id != user_id:
            raise UnauthorizedError("run belongs to another user")
        if record.current_item_id != current_item_id:
            raise TokenMismatchError("item does not match the current round")
        current = self._catalog.get(record.current_item_id)
        if current is None:
            raise InvalidItemError("current item is no longer in the catalog")
        if not record.is_lost:
            raise ReprieveNotEligibleError("run is still in play")

        offer = self._policy.offer(record.current_streak, record.has_used_reprieve)
        if offer == ReprieveOffer.NONE:
            raise ReprieveNotEligibleError("reprieve already used this run")

        redeemed_share = None
        if offer == ReprieveOffer.SHARE:
            redeemed_share = await self._verified_share(record, share_token)
        elif not self._policy.payment_waived(
            offer,
            run_id=record.run_id,
            user_id=record.user_id,
            streak=record.current_streak,
        ):
            await self._verify_payment(record, payment_reference)

        replacement = select_next(
            self._catalog.items(),
            record.seed,
            record.round_number,
            recent_item_ids(record.shown_pairs()),
            current_item_id=record.current_item_id,
            streak=record.current_streak,
            avoid_ids=(record.next_item_id,),
            domain=StreamDomain.REPRIEVE_ITEM,
        )
        updated = record_reprieve(record, replacement.id)
        try:
            await self._runs.replace(updated)
        except StoreUnavailableError as e:
            raise ReprieveNotEligibleError("reprieve is unavailable right now") from e
        if redeemed_share is not None:
            # the record latch already blocks a second reprieve, so an unconsumed token is inert
            try:
                await self._share_tokens.consume(redeemed_share)
            except StoreUnavailableError as e:
                logger.warning(
                    "share token not consumed", run_id=record.run_id, token=redeemed_share.token, error=str(e)
                )

        logger.info("reprieve granted", run_id=record.run_id, user_id=record.user_id, modality=offer.value)
        return ResumedRun(
            run_id=record.run_id,
            current_item=current,
            next_item=replacement,
            streak=record.current_streak,
            round_number=record.round_number,
            timer_budget=timer_budget_after_reprieve(record.current_streak),
        )

    async def _verified_share(self, record: RunRecord, token: str | None) -> ShareToken:
        if not token:
            raise ReprieveNotEligibleError("share token required")
        try:
            share = await self._share_tokens.get(token, now_ms=self._clock_ms())
        except StoreUnavailableError as e:
            raise ReprieveNotEligibleError("reprieve is unavailable right now") from e
        if share is None or share.run_id != record.run_id or share.user_id != record.user_id:
            raise ReprieveNotEligibleError("share token not found or expired")
        if share.used:
            raise ReprieveNotEligibleError("share token already used")
        if not share.verified:
            raise ReprieveNotEligibleError("share has not been verified")
        return share

    async def _verify_payment(self, record: RunRecord, reference: str | None) -> None:
        if not reference:
            raise ReprieveNotEligibleError("payment reference required")
        result = await self._payment_verifier.verify_payment(
            run_id=record.run_id,
            user_id=record.user_id,
            reference=reference,
            amount_usd=self._policy.price_usd,
        )
        if not result.verified:
            logger.warning("payment not verified", run_id=record.run_id, reference=reference, error=result.error)
            raise ReprieveNotEligibleError(result.error or "payment not verified")

    async def cross_check_submission(self, run_id: str, user_id: str, streak: int) -> bool:
        """Best-effort validation of a final score against the run record.

        Returns True when a record was found and checked. Drift and integrity
        problems are only logged; a missing record never blocks submission.
        Raises UnauthorizedError when the run belongs to someone else.
        """
        try:
            record = await self._runs.get(run_id)
        except StoreUnavailableError:
            record = None
        if record is None:
            logger.warning("no run record for submission, accepting unvalidated", run_id=run_id, user_id=user_id)
            return False
        if record.user_id != user_id:
            logger.warning("submission for another user's run", run_id=run_id, user_id=user_id)
            raise UnauthorizedError("run belongs to another user")

        drift = check_score_consistency(record, streak, self._streak_tolerance)
        if not drift.within_tolerance:
            logger.warning(
                "submitted streak drifts from run record",
                run_id=run_id,
                user_id=user_id,
                claimed=drift.claimed,
                recorded=drift.recorded,
                tolerance=drift.tolerance,
            )
        problems = check_run_integrity(record)
        if problems:
            logger.warning("run record integrity problems", run_id=run_id, problems=problems)
        return True
