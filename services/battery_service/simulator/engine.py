import asyncio
import logging
import random
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from libs.config import get_setting
from ..store import StateStore, StoreUnavailable
from .state import BatteryMode, VehicleBatteryState

logger = logging.getLogger(__name__)

Broadcast = Callable[[Dict[str, Any]], Awaitable[Any]]

DEFAULT_PRESETS: Dict[str, Dict[str, float]] = {
    "full": {"stateOfCharge": 100.0, "batteryTemperature": 15.6},
    "partial": {"stateOfCharge": 70.0, "batteryTemperature": 15.6},
}


class UnknownPreset(ValueError):
    pass


@dataclass(frozen=True)
class SimulatorSettings:
    tick_interval_s: float = 10.0
    hourly_discharge_pct: float = 10.0
    temp_jitter_c: float = 0.1
    min_temp_c: float = 10.0
    max_temp_c: float = 55.0
    soc_floor_pct: float = 20.0
    presets: Dict[str, Dict[str, float]] = field(default_factory=lambda: dict(DEFAULT_PRESETS))
    default_preset: str = "full"

    @property
    def per_tick_discharge(self) -> float:
        ticks_per_hour = 3600.0 / self.tick_interval_s
        return round(self.hourly_discharge_pct / ticks_per_hour, 2)

    @classmethod
    def from_config(cls) -> "SimulatorSettings":
        presets = get_setting("simulator.presets")
        return cls(
            tick_interval_s=float(get_setting("simulator.tick_interval_s", 10.0)),
            hourly_discharge_pct=float(get_setting("simulator.hourly_discharge_pct", 10.0)),
            temp_jitter_c=float(get_setting("simulator.temp_jitter_c", 0.1)),
            min_temp_c=float(get_setting("simulator.min_temp_c", 10.0)),
            max_temp_c=float(get_setting("simulator.max_temp_c", 55.0)),
            soc_floor_pct=float(get_setting("simulator.soc_floor_pct", 20.0)),
            presets=dict(presets) if isinstance(presets, dict) and presets else dict(DEFAULT_PRESETS),
            default_preset=str(get_setting("simulator.default_preset", "full")),
        )


class BatterySimulator:
    """Owns the battery state and the single discharge tick task."""

    def __init__(
        self,
        store: StateStore,
        broadcast: Broadcast,
        settings: Optional[SimulatorSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or SimulatorSettings()
        self.state = VehicleBatteryState()
        self._store = store
        self._broadcast = broadcast
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.state.to_fields())
        out["mode"] = self.state.mode.value
        out["running"] = self.is_running
        out["tickIntervalS"] = self.settings.tick_interval_s
        out["perTickDischarge"] = self.settings.per_tick_discharge
        return out

    def resolve_preset(self, name: Optional[str] = None) -> Tuple[str, Dict[str, float]]:
        name = (name or self.settings.default_preset).strip().lower()
        values = self.settings.presets.get(name)
        if not isinstance(values, dict):
            raise UnknownPreset(f"unknown preset: {name}")
        return name, {
            "stateOfCharge": float(values["stateOfCharge"]),
            "batteryTemperature": float(values["batteryTemperature"]),
        }

    async def trigger(self, preset: Optional[str] = None) -> bool:
        """Reset the stored record to a preset and (re)start discharging."""
        name, values = self.resolve_preset(preset)
        try:
            record = await self._store.update_current(values)
        except StoreUnavailable as e:
            logger.error("Resetting vehicle to preset %r failed: %s", name, e)
            return False
        if record is None:
            logger.warning("No vehicle record found, cannot reset to preset %r", name)
            return False
        return await self.start(name)

    async def start(self, preset: Optional[str] = None) -> bool:
        name, values = self.resolve_preset(preset)
        # last start wins; any later start or stop bumps the generation
        self._generation += 1
        generation = self._generation
        await self._cancel_task()
        if generation != self._generation:
            logger.info("Start of preset %r superseded", name)
            return False
        self.state.reset(values["stateOfCharge"], values["batteryTemperature"])

        try:
            record = await self._store.find_current()
        except StoreUnavailable as e:
            logger.error("Cannot start simulation, store unavailable: %s", e)
            return False
        if record is None:
            logger.warning("No vehicle record found, simulation not started")
            return False
        if generation != self._generation:
            logger.info("Start of preset %r superseded", name)
            return False

        self.state.adopt(record)
        self.state.mode = BatteryMode.DISCHARGING
        logger.info(
            "Starting battery discharge simulation (preset=%s soc=%.2f%% temp=%.1fC, -%.2f%% every %.0fs)",
            name,
            self.state.state_of_charge,
            self.state.battery_temperature,
            self.settings.per_tick_discharge,
            self.settings.tick_interval_s,
        )
        self._task = asyncio.create_task(self._run(), name="battery-tick-loop")
        return True

    async def stop(self) -> bool:
        self._generation += 1
        return await self._cancel_task()

    async def _cancel_task(self) -> bool:
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Battery simulation tick loop cancelled")
        return True

    def enter_charging(self) -> None:
        self.state.mode = BatteryMode.CHARGING

    def apply_override(self, record: Dict[str, Any]) -> None:
        self.state.adopt(record)
        self.state.mode = BatteryMode.CHARGING

    async def tick(self) -> bool:
        """Advance one step. Returns False when the run must stop."""
        s = self.settings
        if self.state.state_of_charge <= s.soc_floor_pct:
            return False

        soc = round(self.state.state_of_charge - s.per_tick_discharge, 2)
        soc = max(soc, s.soc_floor_pct)
        temp = round(self.state.battery_temperature + self._rng.uniform(-s.temp_jitter_c, s.temp_jitter_c), 1)
        temp = min(max(temp, s.min_temp_c), s.max_temp_c)

        try:
            record = await self._persist({"stateOfCharge": soc, "batteryTemperature": temp})
        except StoreUnavailable as e:
            logger.error("Updating vehicle data failed, stopping simulation: %s", e)
            return False
        if record is None:
            logger.warning("Vehicle record disappeared, stopping simulation")
            return False

        self.state.state_of_charge = soc
        self.state.battery_temperature = temp
        await self._broadcast(record)
        logger.info("Updated SoC: %.2f%% | Temp: %.1fC", soc, temp)

        if soc <= s.soc_floor_pct:
            logger.info("Simulation stopped (SoC reached %.0f%%)", s.soc_floor_pct)
            return False
        return True

    async def _persist(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pending = asyncio.ensure_future(self._store.update_current(fields))
        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            # the write lands before whoever cancelled us writes theirs
            await asyncio.wait([pending])
            if not pending.cancelled() and pending.exception() is not None:
                logger.error("Vehicle update during cancellation failed: %s", pending.exception())
            raise

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.settings.tick_interval_s)
                if not await self.tick():
                    break
        finally:
            if self.state.mode is BatteryMode.DISCHARGING:
                self.state.mode = BatteryMode.IDLE
