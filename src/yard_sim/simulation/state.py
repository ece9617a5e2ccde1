"""Runtime yard state: the train registry and the three resource pools.

Resources are claimed and released only through ``Resource.claim`` and
``Resource.release``. ``claim`` checks occupancy and takes the resource in
the same call, so a resource can never end up with two occupants.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from yard_sim.models.config import EngineConfig
from yard_sim.models.enums import (
    BlockingRisk,
    Orientation,
    ResourceStatus,
    SlotPosition,
    TrainStatus,
)
from yard_sim.models.topology import YardDefinition
from yard_sim.simulation.events import EventLog


@dataclass
class JobTask:
    """A repair task on a train's job card."""

    id: str
    desc: str = ""
    done: bool = False


@dataclass
class Train:
    """Runtime record of a train in the yard."""

    id: str
    number: str
    location_node_id: str
    status: TrainStatus = TrainStatus.ARRIVING
    orientation: Orientation = Orientation.EAST
    fitness: int = 0
    mileage: int = 0
    job_card: list[JobTask] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    priority: bool = False
    depart_soon: bool = False
    arrival_time: float = 0.0
    last_updated: float = 0.0

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    @property
    def open_tasks(self) -> list[JobTask]:
        """Job card tasks not yet done."""
        return [t for t in self.job_card if not t.done]


@dataclass
class Resource:
    """A yard resource that holds at most one train."""

    id: str
    name: str
    node_id: str
    status: ResourceStatus = ResourceStatus.FREE
    occupied_by: Optional[str] = None
    claims: int = 0
    """Times the resource has been claimed; identifies the current occupancy"""

    @property
    def is_free(self) -> bool:
        return self.occupied_by is None and self.status == ResourceStatus.FREE

    def claim(self, train_id: str) -> bool:
        """Take the resource for a train. Returns False if it is not free."""
        if not self.is_free:
            return False
        self.status = ResourceStatus.OCCUPIED
        self.occupied_by = train_id
        self.claims += 1
        return True

    def release(self) -> None:
        self.status = ResourceStatus.FREE
        self.occupied_by = None


@dataclass
class InspectionBay(Resource):
    """Bay where arriving trains are inspected."""

    inspection_duration: float = 300.0
    inspection_start_time: Optional[float] = None

    def release(self) -> None:
        super().release()
        self.inspection_start_time = None


@dataclass
class WorkshopLine(Resource):
    """Repair line, optionally dedicated to one defect type."""

    specialization: Optional[str] = None
    capacity: int = 1


@dataclass
class SidingSlot(Resource):
    """One of the paired parking positions of a siding."""

    siding_id: str = ""
    siding_number: int = 0
    slot: SlotPosition = SlotPosition.A
    reverse_cost: float = 1.0
    blocking_risk: BlockingRisk = BlockingRisk.MEDIUM

    @property
    def label(self) -> str:
        return f"{self.siding_id}-{self.slot.value}"


AnyResource = Union[InspectionBay, WorkshopLine, SidingSlot]


def blocking_risk(siding_number: int, slot: SlotPosition) -> BlockingRisk:
    """Qualitative blocking risk of a siding slot.

    Slot a never blocks another train; slot b sits behind a. Higher numbered
    sidings are easier to reach and block less.

    For sidings 1-4 both slots are high risk, so slot a only rates lower
    than slot b from siding 5 up.
    """
    if slot == SlotPosition.A:
        if siding_number > 8:
            return BlockingRisk.LOW
        return BlockingRisk.MEDIUM if siding_number > 4 else BlockingRisk.HIGH
    return BlockingRisk.MEDIUM if siding_number > 8 else BlockingRisk.HIGH


@dataclass
class YardState:
    """Aggregate yard state owned by one engine."""

    trains: dict[str, Train] = field(default_factory=dict)
    inspection_bays: dict[str, InspectionBay] = field(default_factory=dict)
    workshop_lines: dict[str, WorkshopLine] = field(default_factory=dict)
    siding_slots: dict[str, SidingSlot] = field(default_factory=dict)
    event_log: EventLog = field(default_factory=EventLog)
    simulation_speed: float = 1.0
    now: float = 0.0

    @classmethod
    def from_definition(cls, definition: YardDefinition, config: EngineConfig) -> "YardState":
        """Build empty registries for every resource the topology declares."""
        state = cls(simulation_speed=config.initial_speed)

        for index, node_id in enumerate(definition.inspection_bays):
            node = definition.nodes[node_id]
            state.inspection_bays[node_id] = InspectionBay(
                id=node_id,
                name=node.label or f"IL-{index + 1}",
                node_id=node_id,
                inspection_duration=config.inspection_duration_s,
            )

        for index, node_id in enumerate(definition.workshop_lines):
            node = definition.nodes[node_id]
            specialization = (
                node.metadata.specialization
                or config.workshop_specializations.get(node_id)
            )
            state.workshop_lines[node_id] = WorkshopLine(
                id=node_id,
                name=node.label or f"WL-{index + 1}",
                node_id=node_id,
                specialization=specialization,
            )

        for node_id in definition.siding_slots:
            meta = definition.nodes[node_id].metadata
            number = meta.siding_number
            state.siding_slots[node_id] = SidingSlot(
                id=node_id,
                name=definition.nodes[node_id].label or node_id,
                node_id=node_id,
                siding_id=meta.siding_id,
                siding_number=number,
                slot=meta.slot,
                reverse_cost=meta.reverse_cost if meta.reverse_cost is not None else 1.0,
                blocking_risk=blocking_risk(number, meta.slot),
            )

        return state

    def resources(self) -> list[AnyResource]:
        """Every bay, line and slot."""
        return [
            *self.inspection_bays.values(),
            *self.workshop_lines.values(),
            *self.siding_slots.values(),
        ]

    def held_by(self, train_id: str) -> Optional[AnyResource]:
        """The resource a train currently holds, if any."""
        for resource in self.resources():
            if resource.occupied_by == train_id:
                return resource
        return None

    def trains_with_status(self, status: TrainStatus) -> list[Train]:
        """Trains in a given lifecycle state, in registration order."""
        return [t for t in self.trains.values() if t.status == status]
