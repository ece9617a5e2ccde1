"""Tests for yard-sim schema models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from yard_sim.models import (
    Command,
    CommandType,
    Coordinates,
    EngineConfig,
    Node,
    NodeType,
    SlotPosition,
    TrainSpec,
    YardDefinition,
    build_default_yard,
    load_yard,
)
from yard_sim.models.config import load_config
from yard_sim.models.topology import UNKNOWN_DISTANCE, save_yard

from conftest import small_yard_data


class TestCoordinates:
    def test_distance_calculation(self):
        c1 = Coordinates(x=0, y=0)
        c2 = Coordinates(x=3, y=4)
        assert c1.distance_to(c2) == 5.0


class TestNode:
    def test_nested_coordinates(self):
        node = Node(id="IL1", type=NodeType.BAY, coordinates=Coordinates(x=1, y=2))
        assert node.coordinates.x == 1
        assert node.connections == []

    def test_flat_coordinates_are_lifted(self):
        node = Node.model_validate({"id": "E1", "type": "entry", "x": 5, "y": 7})
        assert node.coordinates == Coordinates(x=5, y=7)

    def test_node_id_cleanup(self):
        node = Node.model_validate({"id": "  siding 3  ", "type": "track", "x": 0, "y": 0})
        assert node.id == "siding_3"

    def test_siding_metadata_aliases(self):
        node = Node.model_validate({
            "id": "S7b", "type": "siding-slot", "x": 0, "y": 0,
            "metadata": {"sidingId": "S7", "slot": "b", "reverseCost": 2.5, "colour": "red"},
        })
        assert node.metadata.siding_id == "S7"
        assert node.metadata.siding_number == 7
        assert node.metadata.slot == SlotPosition.B
        assert node.metadata.reverse_cost == 2.5

    def test_unknown_node_type_fails(self):
        with pytest.raises(ValidationError):
            Node.model_validate({"id": "Z", "type": "turntable", "x": 0, "y": 0})


class TestYardDefinition:
    def test_small_yard_valid(self, small_yard):
        assert small_yard.entry_node == "E1"
        assert small_yard.exit_node == "X1"
        assert small_yard.inspection_bays == ["IL1"]

    def test_unknown_bay_reference_fails(self):
        data = small_yard_data()
        data["inspectionBays"].append("IL9")
        with pytest.raises(ValidationError, match="IL9"):
            YardDefinition.model_validate(data)

    def test_unknown_connection_fails(self):
        data = small_yard_data()
        data["connections"].append({"from": "E1", "to": "nowhere"})
        with pytest.raises(ValidationError, match="nowhere"):
            YardDefinition.model_validate(data)

    def test_siding_slot_without_metadata_fails(self):
        data = small_yard_data()
        data["nodes"]["S9b"]["metadata"] = {}
        with pytest.raises(ValidationError, match="S9b"):
            YardDefinition.model_validate(data)

    def test_entry_point_required(self):
        data = small_yard_data()
        data["entryPoints"] = []
        with pytest.raises(ValidationError):
            YardDefinition.model_validate(data)

    def test_distance(self, small_yard):
        assert small_yard.distance("E1", "IL1") == 10.0
        assert small_yard.distance("E1", "missing") == UNKNOWN_DISTANCE

    def test_graph_construction(self, small_yard):
        graph = small_yard.to_graph()
        assert graph.number_of_nodes() == 9
        assert graph.has_edge("S9a", "S9b")
        assert graph.nodes["WL4"]["type"] == "bay"

    def test_unreachable_nodes(self, small_yard):
        assert small_yard.unreachable_nodes() == []
        data = small_yard_data()
        data["nodes"]["T1"] = {"id": "T1", "type": "test", "x": 99, "y": 99}
        yard = YardDefinition.model_validate(data)
        assert "T1" in yard.unreachable_nodes()


class TestDefaultYard:
    def test_counts(self, default_yard):
        assert default_yard.inspection_bays == ["IL1", "IL2", "IL3", "DIC"]
        assert default_yard.workshop_lines == ["WL1", "WL2", "WL3", "WL4"]
        assert len(default_yard.siding_slots) == 24
        assert default_yard.nodes["WL4"].metadata.specialization == "wheel-alignment"

    def test_fully_connected(self, default_yard):
        assert default_yard.unreachable_nodes() == []

    def test_far_sidings_cost_more(self, default_yard):
        assert default_yard.nodes["S1a"].metadata.reverse_cost == 2
        assert default_yard.nodes["S1b"].metadata.reverse_cost == 3
        assert default_yard.nodes["S12b"].metadata.reverse_cost == 2

    def test_bundled_json_matches(self, default_yard):
        path = Path(__file__).parent.parent / "scenarios" / "default_yard.json"
        if not path.exists():
            pytest.skip("Bundled yard not found")
        yard = load_yard(str(path))
        assert yard.siding_slots == default_yard.siding_slots
        assert yard.inspection_bays == default_yard.inspection_bays
        for node_id, node in default_yard.nodes.items():
            assert yard.nodes[node_id].coordinates == node.coordinates
            assert yard.nodes[node_id].metadata.reverse_cost == node.metadata.reverse_cost

    def test_save_and_load(self, default_yard, tmp_path):
        path = tmp_path / "yard.json"
        save_yard(default_yard, str(path))
        assert load_yard(str(path)).siding_slots == default_yard.siding_slots

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yard(str(tmp_path / "missing.json"))


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.inspection_duration_s == 300
        assert config.repair_duration_s == 10
        assert (config.min_speed, config.max_speed) == (0.1, 10)
        assert config.workshop_specializations == {"WL4": "wheel-alignment"}

    def test_speed_bounds_ordered(self):
        with pytest.raises(ValidationError):
            EngineConfig(min_speed=5, max_speed=1, initial_speed=2)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(warp_factor=9)

    def test_load_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"repair_duration_s": 30, "random_seed": 7}')
        config = load_config(str(path))
        assert config.repair_duration_s == 30
        assert config.random_seed == 7


class TestCommands:
    def test_train_spec_aliases(self):
        spec = TrainSpec.model_validate({
            "number": "T42",
            "departSoon": True,
            "jobCard": {"tasks": [{"id": "t1", "desc": "Check brakes"}]},
        })
        assert spec.depart_soon is True
        assert spec.job_card[0].desc == "Check brakes"
        assert spec.job_card[0].done is False

    def test_blank_number_is_generated(self):
        assert TrainSpec(number="  ").number is None

    def test_fitness_range(self):
        with pytest.raises(ValidationError):
            TrainSpec(fitness=150)

    def test_command_accepts_camel_case(self):
        command = Command.model_validate({"type": "assign_train", "trainId": "TRN_0001", "data": None})
        assert command.type == CommandType.ASSIGN_TRAIN
        assert command.train_id == "TRN_0001"
        assert command.data == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
