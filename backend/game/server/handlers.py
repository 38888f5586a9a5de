"""HTTP route handlers.

Every JSON response has the shape ``{"success": true, ...payload}`` or
``{"success": false, "error": message}``. Rejected requests carry a stable
``code`` and a 4xx status; degraded answers are 200 with ``degraded: true``.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from game.logic.exceptions import (
    CatalogExhaustedError,
    RateLimitedError,
    ReprieveNotEligibleError,
    RequestRejectedError,
    UnauthorizedError,
)
from game.logic.reprieve import ReprieveOffer
from game.reprieve.share import cast_text, compose_url
from game.server.types import (
    CheckOvertakesRequest,
    GuessRequest,
    LeaderboardQuery,
    ResumeRequest,
    ShareInitiateRequest,
    ShareVerifyRequest,
    StartRunRequest,
    SubmitScoreRequest,
)
from shared.kv import StoreUnavailableError
from shared.logging import bind_request_context

if TYPE_CHECKING:
    from starlette.requests import Request

    from game.reprieve.share import ShareTokenStore, ShareVerifier
    from game.session.manager import RunManager
    from leaderboard.store import LeaderboardStore
    from shared.kv import KeyValueStore

logger = structlog.get_logger()

MAX_REQUEST_BODY_SIZE = 4096

_REJECTION_STATUS: dict[type[RequestRejectedError], HTTPStatus] = {
    UnauthorizedError: HTTPStatus.FORBIDDEN,
    RateLimitedError: HTTPStatus.TOO_MANY_REQUESTS,
}


class _BodyError(Exception):
    def __init__(self, response: JSONResponse) -> None:
        self.response = response


def ok(payload: dict[str, Any] | None = None) -> JSONResponse:
    return JSONResponse({"success": True, **(payload or {})})


def fail(message: str, status: HTTPStatus, **extra: Any) -> JSONResponse:  # noqa: ANN401
    return JSONResponse({"success": False, "error": message, **extra}, status_code=status)


def rejected(error: RequestRejectedError) -> JSONResponse:
    status = _REJECTION_STATUS.get(type(error), HTTPStatus.BAD_REQUEST)
    return fail(error.message, status, code=error.code)


async def parse_body[T: BaseModel](request: Request, model: type[T]) -> T:
    """Read and validate a JSON body. Raises _BodyError carrying the 400/413 response."""
    raw_body = await request.body()
    if len(raw_body) > MAX_REQUEST_BODY_SIZE:
        raise _BodyError(fail("Request body too large", HTTPStatus.REQUEST_ENTITY_TOO_LARGE))
    try:
        body = json.loads(raw_body)
        if not isinstance(body, dict):
            raise TypeError("body must be a JSON object")  # noqa: TRY301
        return model.model_validate(body)
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        raise _BodyError(fail("Invalid request body", HTTPStatus.BAD_REQUEST)) from None


def _runs(request: Request) -> RunManager:
    return request.app.state.run_manager


def _leaderboard(request: Request) -> LeaderboardStore:
    return request.app.state.leaderboard


def _share_tokens(request: Request) -> ShareTokenStore:
    return request.app.state.share_tokens


def _share_verifier(request: Request) -> ShareVerifier:
    return request.app.state.share_verifier


async def health(request: Request) -> JSONResponse:
    store: KeyValueStore = request.app.state.store
    try:
        await store.ping()
        store_status = "ok"
    except StoreUnavailableError:
        store_status = "unavailable"
    return JSONResponse({"status": "ok", "store": store_status})


async def start_run(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, StartRunRequest)
    except _BodyError as e:
        return e.response
    bind_request_context(user_id=body.user_id)

    try:
        started = await _runs(request).start_run(body.user_id)
    except CatalogExhaustedError:
        return fail("Not enough items available", HTTPStatus.INTERNAL_SERVER_ERROR)
    return ok(started.to_wire())


async def submit_guess(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, GuessRequest)
    except _BodyError as e:
        return e.response
    bind_request_context(run_id=body.run_id, user_id=body.user_id)

    try:
        outcome = await _runs(request).submit_guess(
            body.run_id,
            body.user_id,
            body.guess,
            body.current_item_id,
            body.next_item_id,
            client_streak=body.streak,
        )
    except RequestRejectedError as e:
        return rejected(e)

    payload = outcome.to_wire()
    if outcome.correct and outcome.new_streak is not None and outcome.previous_streak is not None:
        overtakes = await _leaderboard(request).live_overtakes(
            body.user_id,
            outcome.previous_streak,
            outcome.new_streak,
        )
        payload["overtakes"] = [event.to_wire() for event in overtakes]
    return ok(payload)


async def resume_run(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, ResumeRequest)
    except _BodyError as e:
        return e.response
    bind_request_context(run_id=body.run_id, user_id=body.user_id)

    try:
        resumed = await _runs(request).resume_run(
            body.run_id,
            body.current_item_id,
            user_id=body.user_id,
            share_token=body.share_token,
            payment_reference=body.payment_reference,
        )
    except RequestRejectedError as e:
        return rejected(e)
    return ok(resumed.to_wire())


async def submit_score(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, SubmitScoreRequest)
    except _BodyError as e:
        return e.response
    bind_request_context(run_id=body.run_id, user_id=body.user_id)

    try:
        validated = await _runs(request).cross_check_submission(body.run_id, body.user_id, body.streak)
    except UnauthorizedError as e:
        return rejected(e)

    result = await _leaderboard(request).submit_score(body.user_id, body.streak, body.identity)
    return ok({**result.to_wire(), "streak": body.streak, "validated": validated})


async def check_overtakes(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, CheckOvertakesRequest)
    except _BodyError as e:
        return e.response

    overtakes = await _leaderboard(request).live_overtakes(body.user_id, body.previous_streak, body.current_streak)
    return ok({"overtakes": [event.to_wire() for event in overtakes]})


async def get_leaderboard(request: Request) -> JSONResponse:
    try:
        query = LeaderboardQuery.model_validate(dict(request.query_params))
    except ValidationError:
        return fail("Invalid query parameters", HTTPStatus.BAD_REQUEST)

    page = await _leaderboard(request).page(query.board, query.limit, query.user_id)
    payload = page.to_wire()
    payload["type"] = payload.pop("board")
    return ok(payload)


async def share_initiate(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, ShareInitiateRequest)
    except _BodyError as e:
        return e.response
    bind_request_context(run_id=body.run_id, user_id=body.user_id)

    offer = _runs(request).policy.offer(body.streak, has_used_reprieve=False)
    if offer != ReprieveOffer.SHARE:
        return rejected(ReprieveNotEligibleError("Streak too high for share reprieve, use the paid reprieve instead"))

    try:
        token = await _share_tokens(request).issue(
            user_id=body.user_id,
            run_id=body.run_id,
            streak=body.streak,
            platform_id=body.platform_id,
        )
    except StoreUnavailableError:
        return fail("Share reprieve is unavailable right now", HTTPStatus.SERVICE_UNAVAILABLE)

    text = cast_text(body.streak, body.last_symbol)
    return ok(
        {
            "token": token.token,
            "castText": text,
            "shareUrl": compose_url(text),
            "platformId": token.platform_id,
            "expiresAt": token.expires_at,
        }
    )


async def share_verify(request: Request) -> JSONResponse:
    try:
        body = await parse_body(request, ShareVerifyRequest)
    except _BodyError as e:
        return e.response

    tokens = _share_tokens(request)
    try:
        token = await tokens.get(body.token)
    except StoreUnavailableError:
        return fail("Share reprieve is unavailable right now", HTTPStatus.SERVICE_UNAVAILABLE)
    if token is None:
        return fail("Share token not found or expired", HTTPStatus.NOT_FOUND)
    if token.used:
        return fail("Share token already used", HTTPStatus.BAD_REQUEST)
    bind_request_context(run_id=token.run_id, user_id=token.user_id)

    if token.verified:
        return ok({"verified": True})

    platform_id = body.platform_id or token.platform_id
    result = await _share_verifier(request).verify_share(platform_id=platform_id, since_ms=token.created_at)
    if not result.verified:
        return ok({"verified": False, "error": result.error})

    try:
        await tokens.mark_verified(token)
    except StoreUnavailableError:
        return fail("Share reprieve is unavailable right now", HTTPStatus.SERVICE_UNAVAILABLE)
    logger.info("share verified", post_id=result.post_id)
    return ok({"verified": True, "postId": result.post_id})
