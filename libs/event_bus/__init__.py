from .bus import SubscriberRegistry
from .subscriber import Connection, Liveness, Subscriber
from .supervisor import ConnectionSupervisor

__all__ = ["Connection", "ConnectionSupervisor", "Liveness", "Subscriber", "SubscriberRegistry"]
