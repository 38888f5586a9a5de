from shared.kv.base import KeyValueStore, ScoredMember, StoreUnavailableError
from shared.kv.factory import StoreBackend, create_store
from shared.kv.memory import InMemoryKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "ScoredMember",
    "StoreBackend",
    "StoreUnavailableError",
    "create_store",
]
