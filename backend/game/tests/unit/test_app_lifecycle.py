"""Tests for game server app lifecycle (store ownership and shutdown)."""

from pathlib import Path
from unittest.mock import AsyncMock

from starlette.testclient import TestClient

from game.reprieve.payments import MockPaymentVerifier
from game.reprieve.share import MockShareVerifier
from game.server.app import create_app
from game.server.settings import GameServerSettings
from shared.kv import InMemoryKeyValueStore

BUNDLED_CATALOG = Path(__file__).resolve().parents[3] / "config" / "catalog.yaml"


def _closable_store() -> InMemoryKeyValueStore:
    store = InMemoryKeyValueStore()
    store.close = AsyncMock()  # type: ignore[method-assign]
    return store


class TestOwnedStoreShutdown:
    def test_shutdown_closes_owned_store(self, monkeypatch):
        """When the app creates its own store, shutdown closes it."""
        store = _closable_store()
        monkeypatch.setattr("game.server.app.create_store", lambda _backend, _url: store)
        app = create_app(GameServerSettings(catalog_path=str(BUNDLED_CATALOG)))

        with TestClient(app) as client:
            assert client.get("/health").json()["store"] == "ok"
            assert app.state.store is store

        store.close.assert_awaited_once()

    def test_injected_store_left_open(self, catalog):
        store = _closable_store()
        app = create_app(
            GameServerSettings(),
            store=store,
            catalog=catalog,
            payment_verifier=MockPaymentVerifier(),
            share_verifier=MockShareVerifier(),
        )

        with TestClient(app):
            pass

        store.close.assert_not_awaited()


def test_loads_catalog_from_settings():
    app = create_app(GameServerSettings(catalog_path=str(BUNDLED_CATALOG)), store=InMemoryKeyValueStore())
    assert len(app.state.run_manager._catalog.items()) >= 2
