"""Run record persistence in the shared key-value store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from game.logic.state import RunRecord

if TYPE_CHECKING:
    from shared.kv import KeyValueStore

logger = structlog.get_logger()

DEFAULT_RUN_TTL_SECONDS = 3600


def run_key(run_id: str) -> str:
    return f"run:{run_id}:state"


class RunRecordStore:
    """One JSON record per run, expiring after ``ttl_seconds``.

    Every write is a full replacement that resets the expiry; an expired
    record reads exactly like one that never existed. There is no locking:
    concurrent writers on the same run are last-writer-wins.
    StoreUnavailableError from the backend propagates to the caller.
    """

    def __init__(self, kv: KeyValueStore, ttl_seconds: int = DEFAULT_RUN_TTL_SECONDS) -> None:
        self._kv = kv
        self._ttl_seconds = ttl_seconds

    async def create(self, record: RunRecord) -> None:
        await self._write(record)

    async def get(self, run_id: str) -> RunRecord | None:
        raw = await self._kv.get(run_key(run_id))
        if raw is None:
            return None
        try:
            return RunRecord.model_validate_json(raw)
        except ValidationError:
            # unreadable records are treated as absent, same as an expired run
            logger.warning("discarding unreadable run record", run_id=run_id)
            return None

    async def replace(self, record: RunRecord) -> None:
        await self._write(record)

    async def _write(self, record: RunRecord) -> None:
        await self._kv.set(
            run_key(record.run_id),
            record.model_dump_json(by_alias=True),
            ttl_seconds=self._ttl_seconds,
        )
