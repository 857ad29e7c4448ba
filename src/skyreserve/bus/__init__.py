from .factory import build_transport_bus_from_env
from .fanout import FanoutBus
from .in_memory import InMemoryBus
from .kafka import KafkaBus

__all__ = ["InMemoryBus", "KafkaBus", "FanoutBus", "build_transport_bus_from_env"]
