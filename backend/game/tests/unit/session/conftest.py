import pytest

from game.logic.state import RunRecord
from game.session.run_store import RunRecordStore
from game.tests.helpers.clock import START_MS, TEST_SEED
from game.tests.unit.session.helpers import USER


@pytest.fixture
def runs(kv) -> RunRecordStore:
    return RunRecordStore(kv)


@pytest.fixture
def store_run(runs):
    """Persist a run record built from defaults plus overrides."""

    async def _store(**overrides) -> RunRecord:
        fields = {
            "run_id": "run-1",
            "seed": TEST_SEED,
            "user_id": USER,
            "started_at": START_MS,
            "current_item_id": "echo",
            "next_item_id": "foxtrot",
        }
        fields.update(overrides)
        record = RunRecord(**fields)
        await runs.create(record)
        return record

    return _store
