from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class BatteryMode(str, Enum):
    IDLE = "idle"
    DISCHARGING = "discharging"
    CHARGING = "charging"


@dataclass
class VehicleBatteryState:
    state_of_charge: float = 100.0
    battery_temperature: float = 15.6
    mode: BatteryMode = BatteryMode.IDLE

    def reset(self, state_of_charge: float, battery_temperature: float) -> None:
        self.state_of_charge = float(state_of_charge)
        self.battery_temperature = float(battery_temperature)
        self.mode = BatteryMode.IDLE

    def adopt(self, record: Dict[str, Any]) -> None:
        """Take the dynamic fields from a stored vehicle record."""
        if record.get("stateOfCharge") is not None:
            self.state_of_charge = float(record["stateOfCharge"])
        if record.get("batteryTemperature") is not None:
            self.battery_temperature = float(record["batteryTemperature"])

    def to_fields(self) -> Dict[str, float]:
        return {
            "stateOfCharge": self.state_of_charge,
            "batteryTemperature": self.battery_temperature,
        }
