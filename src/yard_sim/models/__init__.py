"""Pydantic schema models for yard-sim"""

from yard_sim.models.enums import (
    BlockingRisk,
    CommandType,
    EventType,
    NodeType,
    Orientation,
    ResourceStatus,
    Severity,
    SlotPosition,
    TargetType,
    TrainStatus,
)
from yard_sim.models.topology import (
    Connection,
    Coordinates,
    Node,
    NodeMetadata,
    YardDefinition,
    build_default_yard,
    load_yard,
)
from yard_sim.models.config import EngineConfig, load_config
from yard_sim.models.commands import AssignTrainData, Command, JobTaskSpec, SpeedChangeData, TrainSpec

__all__ = [
    # Enums
    "BlockingRisk",
    "CommandType",
    "EventType",
    "NodeType",
    "Orientation",
    "ResourceStatus",
    "Severity",
    "SlotPosition",
    "TargetType",
    "TrainStatus",
    # Topology
    "Connection",
    "Coordinates",
    "Node",
    "NodeMetadata",
    "YardDefinition",
    "build_default_yard",
    "load_yard",
    # Config
    "EngineConfig",
    "load_config",
    # Commands
    "AssignTrainData",
    "Command",
    "JobTaskSpec",
    "SpeedChangeData",
    "TrainSpec",
]
