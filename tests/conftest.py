"""Shared fixtures for yard-sim tests."""

import pytest

from yard_sim.models.config import EngineConfig
from yard_sim.models.enums import TrainStatus
from yard_sim.models.topology import YardDefinition, build_default_yard
from yard_sim.simulation.engine import YardEngine


class FixedRandom:
    """Random source with a constant draw, for forcing inspection outcomes.

    ``random()`` below 0.3 passes every inspection; 0.99 fails every one.
    """

    def __init__(self, value: float = 0.0):
        self.value = value

    def random(self) -> float:
        return self.value

    def randrange(self, stop: int) -> int:
        return stop // 2


PASS = 0.0
FAIL = 0.99


def small_yard_data() -> dict:
    """One inspection bay, two workshop lines, two sidings."""

    def node(node_id, node_type, x, y, **metadata):
        return {"id": node_id, "type": node_type, "x": x, "y": y, "metadata": metadata}

    return {
        "nodes": {
            "E1": node("E1", "entry", 0, 0),
            "IL1": node("IL1", "bay", 10, 0),
            "WL1": node("WL1", "bay", 20, 0),
            "WL4": node("WL4", "bay", 20, 10, specialization="wheel-alignment"),
            "S1a": node("S1a", "siding-slot", 30, 0, sidingId="S1", slot="a", reverseCost=1),
            "S1b": node("S1b", "siding-slot", 40, 0, sidingId="S1", slot="b", reverseCost=2),
            "S9a": node("S9a", "siding-slot", 30, 10, sidingId="S9", slot="a", reverseCost=1),
            "S9b": node("S9b", "siding-slot", 40, 10, sidingId="S9", slot="b", reverseCost=2),
            "X1": node("X1", "exit", 50, 0),
        },
        "connections": [
            {"from": "E1", "to": "IL1"},
            {"from": "IL1", "to": "WL1"},
            {"from": "IL1", "to": "WL4"},
            {"from": "IL1", "to": "S1a"},
            {"from": "S1a", "to": "S1b"},
            {"from": "IL1", "to": "S9a"},
            {"from": "S9a", "to": "S9b"},
            {"from": "S1b", "to": "X1"},
        ],
        "inspectionBays": ["IL1"],
        "workshopLines": ["WL1", "WL4"],
        "sidingSlots": ["S1a", "S1b", "S9a", "S9b"],
        "entryPoints": ["E1"],
        "exitPoints": ["X1"],
    }


def assert_yard_consistent(state) -> None:
    """No resource is double-booked and every train sits where it should."""
    resources = [
        *state.inspection_bays.values(),
        *state.workshop_lines.values(),
        *state.siding_slots.values(),
    ]
    occupants = [r.occupied_by for r in resources if r.occupied_by is not None]
    assert len(occupants) == len(set(occupants)), "train holds more than one resource"

    for r in resources:
        assert (r.occupied_by is not None) == (r.status.value == "occupied")

    held = {r.occupied_by: r for r in resources if r.occupied_by is not None}
    for train in state.trains.values():
        if train.status in (TrainStatus.ARRIVING, TrainStatus.QUEUED):
            assert train.location_node_id == "E1"
            assert train.id not in held
        elif train.status in (TrainStatus.INSPECTION, TrainStatus.WORKSHOP, TrainStatus.PARKED):
            assert train.id in held, f"{train.id} is {train.status.value} without a resource"
            assert held[train.id].node_id == train.location_node_id
        else:
            # Moving trains keep the node they left, which may already hold
            # the next train
            assert train.id not in held


@pytest.fixture
def default_yard() -> YardDefinition:
    return build_default_yard()


@pytest.fixture
def small_yard() -> YardDefinition:
    return YardDefinition.model_validate(small_yard_data())


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def passing_engine(default_yard, config) -> YardEngine:
    """Engine on the default yard where every inspection passes."""
    return YardEngine(default_yard, config, rng=FixedRandom(PASS))


@pytest.fixture
def failing_engine(default_yard, config) -> YardEngine:
    """Engine on the default yard where every inspection fails."""
    return YardEngine(default_yard, config, rng=FixedRandom(FAIL))
