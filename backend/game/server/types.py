from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from game.logic.types import Guess
from leaderboard.models import BoardKind, Identity

_ID_MAX_LENGTH = 200


class ApiRequest(BaseModel):
    """Request body with camelCase keys; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class StartRunRequest(ApiRequest):
    user_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)


class GuessRequest(ApiRequest):
    run_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    user_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    guess: Guess
    current_item_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    next_item_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    # client-side streak, only trusted when the run record is unavailable
    streak: int | None = Field(default=None, ge=0)


class ResumeRequest(ApiRequest):
    run_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    current_item_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    user_id: str | None = Field(default=None, min_length=1, max_length=_ID_MAX_LENGTH)
    share_token: str | None = Field(default=None, max_length=_ID_MAX_LENGTH)
    payment_reference: str | None = Field(default=None, max_length=_ID_MAX_LENGTH)


class LastItemRef(ApiRequest):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    symbol: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)


class SubmitScoreRequest(ApiRequest):
    run_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    user_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    streak: int = Field(ge=0, le=100_000)
    last_item: LastItemRef
    identity: Identity | None = None


class CheckOvertakesRequest(ApiRequest):
    user_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    current_streak: int = Field(ge=0)
    previous_streak: int = Field(default=0, ge=0)


class ShareInitiateRequest(ApiRequest):
    run_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    user_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    streak: int = Field(ge=0)
    platform_id: int | None = Field(default=None, ge=1)
    last_symbol: str | None = Field(default=None, max_length=50)


class ShareVerifyRequest(ApiRequest):
    token: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    platform_id: int | None = Field(default=None, ge=1)


class LeaderboardQuery(ApiRequest):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    board: BoardKind = Field(default=BoardKind.WEEKLY, alias="type")
    limit: int = Field(default=100, ge=1, le=100)
    user_id: str | None = Field(default=None, min_length=1, max_length=_ID_MAX_LENGTH)
