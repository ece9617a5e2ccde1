"""SimPy-based yard simulation and assignment engine."""

from yard_sim.simulation.events import EventBus, EventLog, YardEvent
from yard_sim.simulation.scoring import Recommendation
from yard_sim.simulation.state import (
    InspectionBay,
    JobTask,
    SidingSlot,
    Train,
    WorkshopLine,
    YardState,
)
from yard_sim.simulation.engine import ScheduledTask, YardEngine

__all__ = [
    "YardEngine",
    "ScheduledTask",
    "EventBus",
    "EventLog",
    "YardEvent",
    "Recommendation",
    "InspectionBay",
    "JobTask",
    "SidingSlot",
    "Train",
    "WorkshopLine",
    "YardState",
]
