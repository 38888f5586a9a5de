"""
Reprieve policy: whether a lost run may continue, and at what cost.

Decision table, evaluated in order:
1. reprieve already used this run -> none
2. streak below the threshold -> share (free, gated on a verified social post)
3. otherwise -> paid (gated on a verified payment)

Exactly one reprieve is consumed per run regardless of modality.
"""

from __future__ import annotations

from enum import StrEnum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from game.logic.types import WireModel

logger = structlog.get_logger()

MIN_STREAK_FOR_REPRIEVE = 5
REPRIEVE_PRICE_USD = 1.0


class ReprieveOffer(StrEnum):
    NONE = "none"
    SHARE = "share"
    PAID = "paid"


def reprieve_offer(
    streak: int,
    has_used_reprieve: bool,  # noqa: FBT001
    min_streak: int = MIN_STREAK_FOR_REPRIEVE,
) -> ReprieveOffer:
    if has_used_reprieve:
        return ReprieveOffer.NONE
    if streak < min_streak:
        return ReprieveOffer.SHARE
    return ReprieveOffer.PAID


class ReprieveState(WireModel):
    """Offer shown on the loss screen."""

    offer: ReprieveOffer
    used: bool
    price_usd: float
    min_streak: int


class ReprievePolicy(BaseModel):
    """Configured reprieve rules.

    ``free_paid_reprieves`` grants paid reprieves without a payment (launch
    promo and test mode). Every grant made under it is logged at WARNING so
    the bypass stays auditable.
    """

    model_config = ConfigDict(frozen=True)

    min_streak: int = Field(default=MIN_STREAK_FOR_REPRIEVE, ge=0)
    price_usd: float = Field(default=REPRIEVE_PRICE_USD, ge=0)
    free_paid_reprieves: bool = False

    def offer(self, streak: int, has_used_reprieve: bool) -> ReprieveOffer:  # noqa: FBT001
        return reprieve_offer(streak, has_used_reprieve, self.min_streak)

    def state(self, streak: int, has_used_reprieve: bool) -> ReprieveState:  # noqa: FBT001
        return ReprieveState(
            offer=self.offer(streak, has_used_reprieve),
            used=has_used_reprieve,
            price_usd=self.price_usd,
            min_streak=self.min_streak,
        )

    def payment_waived(self, offer: ReprieveOffer, *, run_id: str, user_id: str, streak: int) -> bool:
        """True when a paid reprieve is granted without payment; logs the bypass."""
        if offer != ReprieveOffer.PAID or not self.free_paid_reprieves:
            return False
        logger.warning(
            "paid reprieve granted without payment",
            run_id=run_id,
            user_id=user_id,
            streak=streak,
            reason="free_paid_reprieves",
        )
        return True
