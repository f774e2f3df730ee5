import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .subscriber import Connection, Liveness, Subscriber
from .supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)

SnapshotFn = Callable[[], Awaitable[Optional[Dict[str, Any]]]]


class SubscriberRegistry:
    def __init__(self, supervisor: ConnectionSupervisor, snapshot: Optional[SnapshotFn] = None) -> None:
        self._supervisor = supervisor
        self._snapshot = snapshot
        self._subs: Dict[Connection, Subscriber] = {}

    def __len__(self) -> int:
        return len(self._subs)

    def __contains__(self, conn: Connection) -> bool:
        return conn in self._subs

    def get(self, conn: Connection) -> Optional[Subscriber]:
        return self._subs.get(conn)

    def subscribers(self) -> List[Subscriber]:
        return list(self._subs.values())

    async def add(self, conn: Connection) -> Subscriber:
        sub = Subscriber(connection=conn)
        self._subs[conn] = sub
        self._supervisor.watch(sub, on_dead=self._reap)
        logger.info("[%s] subscriber registered (%d connected)", sub.id, len(self._subs))
        await self._send_snapshot(sub)
        return sub

    def remove(self, conn: Connection) -> Optional[Subscriber]:
        sub = self._subs.pop(conn, None)
        if sub is None:
            return None
        self._supervisor.release(sub)
        logger.info("[%s] subscriber removed (%d connected)", sub.id, len(self._subs))
        return sub

    def acknowledge(self, conn: Connection) -> None:
        sub = self._subs.get(conn)
        if sub is not None:
            self._supervisor.acknowledge(sub)

    async def broadcast(self, payload: Dict[str, Any]) -> int:
        # Broadcast best-effort: closed or failing connections just miss this update
        targets = list(self._subs.values())
        if not targets:
            return 0
        data = json.dumps(payload, ensure_ascii=False, default=str)
        delivered = 0
        for sub in targets:
            if self._subs.get(sub.connection) is not sub or sub.liveness is Liveness.DEAD:
                continue
            if not sub.connection.is_open:
                continue
            try:
                await sub.connection.send_text(data)
                delivered += 1
            except Exception as e:
                logger.debug("[%s] broadcast send failed: %s: %s", sub.id, type(e).__name__, e)
        return delivered

    async def close(self) -> None:
        for sub in list(self._subs.values()):
            self.remove(sub.connection)
            await self._close_quietly(sub)

    async def _send_snapshot(self, sub: Subscriber) -> None:
        if self._snapshot is None:
            return
        try:
            record = await self._snapshot()
        except Exception as e:
            logger.error("[%s] could not load initial vehicle data: %s: %s", sub.id, type(e).__name__, e)
            return
        if record is None:
            logger.warning("[%s] no vehicle data found to send", sub.id)
            return
        try:
            await sub.connection.send_text(json.dumps(record, ensure_ascii=False, default=str))
        except Exception as e:
            logger.error("[%s] sending initial vehicle data failed: %s: %s", sub.id, type(e).__name__, e)

    async def _reap(self, sub: Subscriber) -> None:
        self.remove(sub.connection)
        await self._close_quietly(sub)

    async def _close_quietly(self, sub: Subscriber) -> None:
        try:
            await sub.connection.close()
        except Exception as e:
            logger.debug("[%s] close failed: %s: %s", sub.id, type(e).__name__, e)
