from .ingress import EventIngress
from .runtime import BatteryRuntime, build_runtime

__all__ = ["BatteryRuntime", "EventIngress", "build_runtime"]
