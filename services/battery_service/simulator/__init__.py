from .engine import BatterySimulator, SimulatorSettings, UnknownPreset
from .state import BatteryMode, VehicleBatteryState

__all__ = ["BatteryMode", "BatterySimulator", "SimulatorSettings", "UnknownPreset", "VehicleBatteryState"]
