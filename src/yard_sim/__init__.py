"""yard-sim: rail maintenance yard simulation and assignment engine."""

from yard_sim.models import EngineConfig, YardDefinition, build_default_yard, load_yard
from yard_sim.simulation import YardEngine

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "YardDefinition",
    "YardEngine",
    "build_default_yard",
    "load_yard",
]
