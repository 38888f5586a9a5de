from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from game.logic.catalog import load_catalog
from game.logic.reprieve import ReprievePolicy
from game.logic.rng import generate_seed
from game.reprieve.payments import create_payment_verifier
from game.reprieve.share import ShareTokenStore, create_share_verifier
from game.server import handlers
from game.server.settings import GameServerSettings
from game.session.manager import RunManager
from game.session.run_store import RunRecordStore
from leaderboard.store import LeaderboardStore
from shared.kv import create_store
from shared.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from game.logic.catalog import Catalog
    from game.reprieve.payments import PaymentVerifier
    from game.reprieve.share import ShareVerifier
    from shared.kv import KeyValueStore

logger = structlog.get_logger()


def create_app(  # noqa: PLR0913
    settings: GameServerSettings | None = None,
    store: KeyValueStore | None = None,
    catalog: Catalog | None = None,
    payment_verifier: PaymentVerifier | None = None,
    share_verifier: ShareVerifier | None = None,
    seed_factory: Callable[[], str] | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    # When the app creates its own store, it owns the connection lifecycle.
    owned_store: KeyValueStore | None = None
    if store is None:
        store = create_store(settings.store_backend, settings.redis_url)
        owned_store = store

    if catalog is None:
        catalog = load_catalog(settings.catalog_path)
    if payment_verifier is None:
        payment_verifier = create_payment_verifier(settings.payment_provider, settings.payment_verify_url)
    if share_verifier is None:
        share_verifier = create_share_verifier(
            settings.share_provider,
            settings.neynar_api_key,
            settings.share_keywords,
        )

    if settings.free_paid_reprieves:
        logger.warning("free_paid_reprieves is enabled, paid reprieves are granted without payment")

    share_tokens = ShareTokenStore(store, ttl_seconds=settings.share_token_ttl_seconds)
    run_manager = RunManager(
        catalog,
        RunRecordStore(store, ttl_seconds=settings.run_ttl_seconds),
        share_tokens=share_tokens,
        payment_verifier=payment_verifier,
        policy=ReprievePolicy(
            min_streak=settings.reprieve_min_streak,
            price_usd=settings.reprieve_price_usd,
            free_paid_reprieves=settings.free_paid_reprieves,
        ),
        min_guess_interval_ms=settings.min_guess_interval_ms,
        streak_tolerance=settings.streak_drift_tolerance,
        seed_factory=seed_factory or generate_seed,
    )
    leaderboard = LeaderboardStore(
        store,
        rolling_ttl_seconds=settings.rolling_board_ttl_seconds,
        submit_overtake_cap=settings.submit_overtake_cap,
        live_overtake_cap=settings.live_overtake_cap,
    )

    routes = [
        Route("/health", handlers.health, methods=["GET"]),
        Route("/api/game/start", handlers.start_run, methods=["POST"]),
        Route("/api/game/guess", handlers.submit_guess, methods=["POST"]),
        Route("/api/game/resume", handlers.resume_run, methods=["POST"]),
        Route("/api/leaderboard", handlers.get_leaderboard, methods=["GET"]),
        Route("/api/leaderboard/submit", handlers.submit_score, methods=["POST"]),
        Route("/api/leaderboard/check-overtakes", handlers.check_overtakes, methods=["POST"]),
        Route("/api/share/initiate", handlers.share_initiate, methods=["POST"]),
        Route("/api/share/verify", handlers.share_verify, methods=["POST"]),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        if owned_store is not None:
            await owned_store.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.run_manager = run_manager
    app.state.leaderboard = leaderboard
    app.state.share_tokens = share_tokens
    app.state.share_verifier = share_verifier

    logger.info("game server ready", store_backend=settings.store_backend.value, catalog_items=len(catalog.items()))
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = GameServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
