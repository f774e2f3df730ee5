from __future__ import annotations

import json
import random
from typing import Any

import pytest

from services.battery_service.simulator import SimulatorSettings
from services.battery_service.store import MemoryStateStore

VEHICLE = {
    "_id": "car-test",
    "brand": "Tesla",
    "model": "Model 3",
    "vehicleType": "sedan",
    "batterySize": 75,
    "chargingVoltage": 400,
    "energyConsumption": 15.5,
    "dischargeRate": 10,
    "stateOfCharge": 100.0,
    "batteryTemperature": 15.6,
    "acCharger": {"type": "Type 2", "maxPower": 11},
    "dcCharger": {"type": "CCS", "maxPower": 250},
}


class FakeConnection:
    """In-memory stand-in for a subscriber transport."""

    def __init__(self, *, open_: bool = True, fail_send: bool = False) -> None:
        self.open = open_
        self.fail_send = fail_send
        self.sent: list[str] = []
        self.pings = 0
        self.closed = False

    @property
    def is_open(self) -> bool:
        return self.open and not self.closed

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise ConnectionError("send failed")
        self.sent.append(data)

    async def ping(self) -> None:
        self.pings += 1

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    def records(self) -> list[dict[str, Any]]:
        return [m for m in self.messages() if "type" not in m]


class BroadcastRecorder:
    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> int:
        self.payloads.append(payload)
        return 1


@pytest.fixture
def vehicle() -> dict[str, Any]:
    return json.loads(json.dumps(VEHICLE))


@pytest.fixture
def store(vehicle: dict[str, Any]) -> MemoryStateStore:
    return MemoryStateStore(vehicle)


@pytest.fixture
def settings() -> SimulatorSettings:
    # long interval: tests drive ticks by hand
    return SimulatorSettings(tick_interval_s=10.0)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_conn():
    return FakeConnection


@pytest.fixture
def recorder() -> BroadcastRecorder:
    return BroadcastRecorder()
