from .base import StateStore, StoreUnavailable
from .json_file import JsonFileStateStore
from .memory import MemoryStateStore


def open_store(uri: str) -> StateStore:
    """Build a store from a connection string.

    ``memory://`` keeps the record in process; ``file:///path/vehicle.json``
    (or a bare ``*.json`` path) keeps it in a JSON file.
    """
    uri = (uri or "memory://").strip()
    if uri.startswith("memory://"):
        return MemoryStateStore()
    if uri.startswith("file://"):
        return JsonFileStateStore(uri[len("file://"):])
    if uri.endswith(".json"):
        return JsonFileStateStore(uri)
    raise ValueError(f"unsupported store uri: {uri}")


__all__ = [
    "JsonFileStateStore",
    "MemoryStateStore",
    "StateStore",
    "StoreUnavailable",
    "open_store",
]
