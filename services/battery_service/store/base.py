from typing import Any, Dict, Optional, Protocol


class StoreUnavailable(RuntimeError):
    pass


class StateStore(Protocol):
    """Key-value access to the single vehicle record.

    ``None`` from either call means no record exists; callers log a warning
    and abort the current operation.
    """

    async def find_current(self) -> Optional[Dict[str, Any]]: ...

    async def update_current(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    async def ensure_record(self, record: Dict[str, Any]) -> Dict[str, Any]: ...
