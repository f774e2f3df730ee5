import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from libs.config import get_setting
from libs.event_bus import ConnectionSupervisor, SubscriberRegistry
from libs.schema_utils.validate import validate_or_raise
from ..simulator import BatterySimulator, SimulatorSettings
from ..store import StateStore, open_store
from .ingress import EventIngress

logger = logging.getLogger(__name__)


@dataclass
class BatteryRuntime:
    store: StateStore
    supervisor: ConnectionSupervisor
    registry: SubscriberRegistry
    simulator: BatterySimulator
    ingress: EventIngress

    async def startup(self, seed: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        if seed is None:
            return await self.store.find_current()
        validate_or_raise("schemas/battery/vehicle_record.schema.json", seed)
        record = await self.store.ensure_record(seed)
        logger.info(
            "Vehicle record ready: %s %s (soc=%s temp=%s)",
            record.get("brand"),
            record.get("model"),
            record.get("stateOfCharge"),
            record.get("batteryTemperature"),
        )
        return record

    async def shutdown(self) -> None:
        await self.simulator.stop()
        await self.registry.close()


def build_runtime(
    store: Optional[StateStore] = None,
    settings: Optional[SimulatorSettings] = None,
    probe_interval_s: Optional[float] = None,
    heartbeat_interval_s: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> BatteryRuntime:
    if store is None:
        store = open_store(str(get_setting("store.uri", "memory://")))
    if settings is None:
        settings = SimulatorSettings.from_config()
    if probe_interval_s is None:
        probe_interval_s = float(get_setting("supervisor.probe_interval_s", 30.0))
    if heartbeat_interval_s is None:
        hb = get_setting("supervisor.heartbeat_interval_s")
        heartbeat_interval_s = float(hb) if hb else None

    supervisor = ConnectionSupervisor(probe_interval_s, heartbeat_interval_s)
    registry = SubscriberRegistry(supervisor, snapshot=store.find_current)
    simulator = BatterySimulator(store, registry.broadcast, settings=settings, rng=rng)
    ingress = EventIngress(simulator, store, registry)
    return BatteryRuntime(
        store=store,
        supervisor=supervisor,
        registry=registry,
        simulator=simulator,
        ingress=ingress,
    )
