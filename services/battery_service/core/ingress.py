import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from libs.event_bus import Connection, SubscriberRegistry
from libs.schema_utils.validate import MalformedMessage, parse_message, validate_or_raise
from ..simulator import BatterySimulator
from ..store import StateStore, StoreUnavailable

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Optional[Connection]], Awaitable[None]]


class EventIngress:
    """Applies inbound ``{type, ...}`` messages from observers.

    Charging telemetry pre-empts the discharge simulation. Unknown types and
    malformed frames are logged and dropped; nothing here closes the
    connection a message arrived on.
    """

    def __init__(self, simulator: BatterySimulator, store: StateStore, registry: SubscriberRegistry) -> None:
        self._simulator = simulator
        self._store = store
        self._registry = registry
        self._handlers: Dict[Optional[str], Handler] = {
            "charging_update": self._on_charging_update,
            "charging_init": self._on_charging_init,
            "charging_complete": self._on_charging_complete,
            "pong": self._on_pong,
            "heartbeat": self._on_heartbeat,
            None: self._on_heartbeat,
        }

    async def handle(self, raw: Union[str, bytes], connection: Optional[Connection] = None) -> Optional[str]:
        """Process one frame. Returns the message type, or None if it was unusable."""
        try:
            msg = parse_message(raw)
        except MalformedMessage as e:
            logger.warning("Ignoring malformed message: %s", e)
            return None

        typ = msg.get("type")
        handler = self._handlers.get(typ)
        if handler is None:
            logger.info("Ignoring message with unknown type %r", typ)
            return typ
        try:
            await handler(msg, connection)
        except MalformedMessage as e:
            logger.warning("Ignoring malformed %s message: %s", typ, e)
            return None
        except StoreUnavailable as e:
            logger.error("Handling %s failed, store unavailable: %s", typ, e)
        return typ

    async def _on_charging_update(self, msg: Dict[str, Any], connection: Optional[Connection]) -> None:
        validate_or_raise("schemas/battery/charging_update.schema.json", msg)
        s = self._simulator.settings
        fields: Dict[str, Any] = {}
        if msg.get("batteryPercentage") is not None:
            fields["stateOfCharge"] = float(msg["batteryPercentage"])
        if msg.get("batteryTemperature") is not None:
            temp = float(msg["batteryTemperature"])
            fields["batteryTemperature"] = min(max(temp, s.min_temp_c), s.max_temp_c)

        await self._simulator.stop()
        self._simulator.enter_charging()
        record = await self._store.update_current(fields)
        if record is None:
            logger.warning("No vehicle record found, charging update dropped")
            return
        self._simulator.apply_override(record)
        delivered = await self._registry.broadcast(record)
        logger.info(
            "Charging update applied (soc=%s temp=%s), sent to %d subscriber(s)",
            record.get("stateOfCharge"),
            record.get("batteryTemperature"),
            delivered,
        )

    async def _on_charging_init(self, msg: Dict[str, Any], connection: Optional[Connection]) -> None:
        stopped = await self._simulator.stop()
        self._simulator.enter_charging()
        logger.info("Charging session started%s", ", discharge simulation halted" if stopped else "")

    async def _on_charging_complete(self, msg: Dict[str, Any], connection: Optional[Connection]) -> None:
        # TODO: confirm with product whether the final charge value should be persisted here
        logger.info("Charging session complete")

    async def _on_pong(self, msg: Dict[str, Any], connection: Optional[Connection]) -> None:
        if connection is not None:
            self._registry.acknowledge(connection)

    async def _on_heartbeat(self, msg: Dict[str, Any], connection: Optional[Connection]) -> None:
        logger.debug("Heartbeat received")
