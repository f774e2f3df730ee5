import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from libs.log.tracing import new_id


class Connection(Protocol):
    """Bidirectional message channel to one observer."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...

    async def ping(self) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class Liveness(str, Enum):
    ALIVE = "alive"
    PROBING = "probing"
    DEAD = "dead"


@dataclass(eq=False)
class Subscriber:
    connection: Connection
    id: str = field(default_factory=lambda: new_id("sub_"))
    liveness: Liveness = Liveness.ALIVE
    probe_task: Optional[asyncio.Task] = None
    heartbeat_task: Optional[asyncio.Task] = None

    @property
    def is_alive(self) -> bool:
        return self.liveness is Liveness.ALIVE
