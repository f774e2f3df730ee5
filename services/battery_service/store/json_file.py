import asyncio
import json
import os
import threading
from typing import Any, Callable, Dict, Optional

from .base import StoreUnavailable


class JsonFileStateStore:
    """Keeps the vehicle record in one JSON file.

    File I/O runs on a worker thread; a thread lock keeps read-modify-write
    cycles from interleaving.
    """

    def __init__(self, path: str) -> None:
        if not path.strip():
            raise ValueError("empty store path")
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("vehicle record file does not hold an object")
        return data

    def _write(self, record: Dict[str, Any]) -> None:
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def _find_sync(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._read()

    def _update_sync(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._read()
            if record is None:
                return None
            record.update(fields)
            self._write(record)
            return record

    def _ensure_sync(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            current = self._read()
            if current is None:
                self._write(record)
                current = dict(record)
            return current

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"{self.path}: {type(e).__name__}: {e}") from e

    async def find_current(self) -> Optional[Dict[str, Any]]:
        return await self._call(self._find_sync)

    async def update_current(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._call(self._update_sync, dict(fields))

    async def ensure_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(self._ensure_sync, dict(record))
