import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from libs.log.tracing import now_iso
from .subscriber import Liveness, Subscriber

logger = logging.getLogger(__name__)

OnDead = Callable[[Subscriber], Awaitable[None]]


class ConnectionSupervisor:
    """Per-subscriber liveness probing plus transport-warming heartbeats.

    Each watched subscriber gets two independent tasks. The probe task
    flips ALIVE -> PROBING and sends a ping; if the next tick still finds
    the subscriber PROBING, no acknowledgment arrived within one interval
    and the subscriber is handed to ``on_dead``. The heartbeat task only
    pushes ``{"type": "heartbeat"}`` frames and never touches liveness.
    """

    def __init__(self, probe_interval_s: float = 30.0, heartbeat_interval_s: Optional[float] = None) -> None:
        self.probe_interval_s = float(probe_interval_s)
        self.heartbeat_interval_s = float(heartbeat_interval_s or probe_interval_s)

    def watch(self, sub: Subscriber, on_dead: OnDead) -> None:
        sub.liveness = Liveness.ALIVE
        sub.probe_task = asyncio.create_task(self._probe_loop(sub, on_dead), name=f"probe-{sub.id}")
        sub.heartbeat_task = asyncio.create_task(self._heartbeat_loop(sub), name=f"heartbeat-{sub.id}")

    def acknowledge(self, sub: Subscriber) -> None:
        if sub.liveness is Liveness.PROBING:
            sub.liveness = Liveness.ALIVE
            logger.debug("[%s] probe acknowledged", sub.id)

    def release(self, sub: Subscriber) -> None:
        current = asyncio.current_task()
        for task in (sub.probe_task, sub.heartbeat_task):
            # a dying probe loop releases itself and returns on its own
            if task is not None and task is not current and not task.done():
                task.cancel()
        sub.probe_task = None
        sub.heartbeat_task = None

    async def probe(self, sub: Subscriber) -> bool:
        """Run one probe tick. Returns False once the subscriber is dead."""
        if sub.liveness is not Liveness.ALIVE:
            sub.liveness = Liveness.DEAD
            logger.warning("[%s] no probe acknowledgment within %.1fs, dropping connection", sub.id, self.probe_interval_s)
            return False
        sub.liveness = Liveness.PROBING
        try:
            await sub.connection.ping()
            logger.debug("[%s] probe sent", sub.id)
        except Exception as e:
            # stays PROBING; the next tick declares it dead
            logger.debug("[%s] probe send failed: %s: %s", sub.id, type(e).__name__, e)
        return True

    async def heartbeat(self, sub: Subscriber) -> bool:
        if not sub.connection.is_open:
            return False
        data = json.dumps({"type": "heartbeat", "timestamp": now_iso()})
        try:
            await sub.connection.send_text(data)
        except Exception as e:
            logger.debug("[%s] heartbeat send failed: %s: %s", sub.id, type(e).__name__, e)
            return False
        return True

    async def _probe_loop(self, sub: Subscriber, on_dead: OnDead) -> None:
        while True:
            await asyncio.sleep(self.probe_interval_s)
            if not await self.probe(sub):
                await on_dead(sub)
                return

    async def _heartbeat_loop(self, sub: Subscriber) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval_s)
            await self.heartbeat(sub)
