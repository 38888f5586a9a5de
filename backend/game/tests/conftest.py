import pytest
from starlette.testclient import TestClient

from game.logic.catalog import StaticCatalog
from game.logic.reprieve import ReprievePolicy
from game.reprieve.payments import MockPaymentVerifier
from game.reprieve.share import MockShareVerifier, ShareTokenStore
from game.server.app import create_app
from game.server.settings import GameServerSettings
from game.session.manager import RunManager
from game.session.run_store import RunRecordStore
from game.tests.helpers.catalog import make_catalog
from game.tests.helpers.clock import TEST_SEED, FakeClock
from shared.kv import InMemoryKeyValueStore


@pytest.fixture
def catalog() -> StaticCatalog:
    return make_catalog()


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def share_tokens(kv) -> ShareTokenStore:
    return ShareTokenStore(kv)


@pytest.fixture
def payment_verifier() -> MockPaymentVerifier:
    return MockPaymentVerifier()


@pytest.fixture
def policy() -> ReprievePolicy:
    return ReprievePolicy()


@pytest.fixture
def run_manager(catalog, kv, share_tokens, payment_verifier, policy, clock) -> RunManager:
    return RunManager(
        catalog,
        RunRecordStore(kv),
        share_tokens=share_tokens,
        payment_verifier=payment_verifier,
        policy=policy,
        seed_factory=lambda: TEST_SEED,
        clock_ms=clock,
    )


@pytest.fixture
def settings() -> GameServerSettings:
    # no inter-guess interval: TestClient requests arrive back to back
    return GameServerSettings(min_guess_interval_ms=0)


@pytest.fixture
def app(settings, kv, catalog):
    return create_app(
        settings,
        store=kv,
        catalog=catalog,
        payment_verifier=MockPaymentVerifier(),
        share_verifier=MockShareVerifier(),
        seed_factory=lambda: TEST_SEED,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
