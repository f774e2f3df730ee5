import copy
from typing import Any, Dict, Optional


class MemoryStateStore:
    """Process-local store, lost on restart."""

    def __init__(self, record: Optional[Dict[str, Any]] = None) -> None:
        self._record: Optional[Dict[str, Any]] = copy.deepcopy(record) if record is not None else None

    async def find_current(self) -> Optional[Dict[str, Any]]:
        if self._record is None:
            return None
        return copy.deepcopy(self._record)

    async def update_current(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self._record is None:
            return None
        self._record.update(copy.deepcopy(fields))
        return copy.deepcopy(self._record)

    async def ensure_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if self._record is None:
            self._record = copy.deepcopy(record)
        return copy.deepcopy(self._record)
