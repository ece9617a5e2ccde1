"""Yard topology models: nodes, connections and the classified yard definition"""

import re
from typing import Any, Optional

import networkx as nx
from pydantic import BaseModel, Field, field_validator, model_validator

from yard_sim.models.enums import NodeType, SlotPosition

UNKNOWN_DISTANCE = 999.0
"""Distance reported when either endpoint is not part of the topology"""


class Coordinates(BaseModel):
    """Position of a node in the topology's drawing space.

    Units are whatever the topology author used (the bundled yard uses
    screen pixels). Only straight-line distance is derived from them.
    """

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")

    def distance_to(self, other: "Coordinates") -> float:
        """Euclidean distance to another coordinate point."""
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5


class NodeMetadata(BaseModel):
    """Role-specific parameters attached to a node.

    Siding slots use ``siding_id``, ``slot`` and ``reverse_cost``; workshop
    lines may declare a ``specialization``. Unknown keys are kept so that
    renderers can stash their own data here.
    """

    siding_id: Optional[str] = Field(
        None,
        alias="sidingId",
        description="Siding this slot belongs to (S1..S12)",
    )
    slot: Optional[SlotPosition] = Field(
        None,
        description="Position within the siding",
    )
    reverse_cost: Optional[float] = Field(
        None,
        alias="reverseCost",
        ge=0,
        description="Precomputed positioning cost for reaching the slot",
    )
    specialization: Optional[str] = Field(
        None,
        description="Defect type a workshop line is dedicated to",
    )

    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }

    @property
    def siding_number(self) -> Optional[int]:
        """Numeric part of the siding id, e.g. 7 for 'S7'."""
        if self.siding_id is None:
            return None
        match = re.search(r"\d+", self.siding_id)
        return int(match.group()) if match else None


class Node(BaseModel):
    """A location in the yard topology."""

    id: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Unique identifier for the node",
    )
    type: NodeType = Field(
        ...,
        description="Functional category of the node",
    )
    coordinates: Coordinates = Field(
        ...,
        description="Position used for distance estimates and rendering",
    )
    connections: list[str] = Field(
        default_factory=list,
        description="Ids of directly connected nodes",
    )
    label: Optional[str] = Field(
        None,
        description="Human-readable display name",
    )
    metadata: NodeMetadata = Field(
        default_factory=NodeMetadata,
        description="Role-specific parameters",
    )

    @model_validator(mode="before")
    @classmethod
    def lift_flat_coordinates(cls, data: Any) -> Any:
        """Accept ``{"x": .., "y": ..}`` at node level as well as nested coordinates."""
        if isinstance(data, dict) and "coordinates" not in data and "x" in data and "y" in data:
            data = dict(data)
            data["coordinates"] = {"x": data.pop("x"), "y": data.pop("y")}
        return data

    @field_validator("id")
    @classmethod
    def clean_id(cls, v: str) -> str:
        """Normalise node ID: strip whitespace, replace spaces with underscores."""
        return v.strip().replace(" ", "_")

    model_config = {"extra": "forbid"}


class Connection(BaseModel):
    """A track link between two nodes."""

    from_node: str = Field(
        ...,
        alias="from",
        description="Source node ID",
    )
    to_node: str = Field(
        ...,
        alias="to",
        description="Destination node ID",
    )
    segments: list[str] = Field(
        default_factory=list,
        description="Track segment ids traversed by this link",
    )
    bidirectional: bool = Field(
        True,
        description="If True, movement permitted in both directions",
    )

    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }


class YardDefinition(BaseModel):
    """Static yard topology consumed by the engine.

    The node map holds every location; the classified id lists say which of
    those nodes act as inspection bays, workshop lines, siding slots,
    shunting necks, entry and exit points. Declaration order of
    ``inspection_bays`` is the order bays are tried in.
    """

    nodes: dict[str, Node] = Field(
        ...,
        min_length=1,
        description="All topology nodes keyed by id",
    )
    connections: list[Connection] = Field(
        default_factory=list,
        description="Track links between nodes",
    )
    inspection_bays: list[str] = Field(
        default_factory=list,
        alias="inspectionBays",
        description="Inspection bay node ids, in preference order",
    )
    workshop_lines: list[str] = Field(
        default_factory=list,
        alias="workshopLines",
        description="Workshop line node ids",
    )
    siding_slots: list[str] = Field(
        default_factory=list,
        alias="sidingSlots",
        description="Siding slot node ids",
    )
    shunting_necks: list[str] = Field(
        default_factory=list,
        alias="shuntingNecks",
        description="Shunting neck node ids",
    )
    entry_points: list[str] = Field(
        ...,
        min_length=1,
        alias="entryPoints",
        description="Entry node ids; trains arrive at the first one",
    )
    exit_points: list[str] = Field(
        default_factory=list,
        alias="exitPoints",
        description="Exit node ids",
    )

    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "frozen": True,
    }

    @model_validator(mode="after")
    def validate_all_references(self) -> "YardDefinition":
        """Ensure every classified id and connection points at a real node."""
        errors = []

        for key, node in self.nodes.items():
            if key != node.id:
                errors.append(f"Node key '{key}' does not match node id '{node.id}'")

        classified = {
            "inspectionBays": self.inspection_bays,
            "workshopLines": self.workshop_lines,
            "sidingSlots": self.siding_slots,
            "shuntingNecks": self.shunting_necks,
            "entryPoints": self.entry_points,
            "exitPoints": self.exit_points,
        }
        for name, ids in classified.items():
            for node_id in ids:
                if node_id not in self.nodes:
                    errors.append(f"{name} references unknown node: '{node_id}'")
            if len(set(ids)) != len(ids):
                errors.append(f"{name} contains duplicate ids")

        for i, conn in enumerate(self.connections):
            if conn.from_node not in self.nodes:
                errors.append(f"Connection[{i}] references unknown source node: '{conn.from_node}'")
            if conn.to_node not in self.nodes:
                errors.append(f"Connection[{i}] references unknown destination node: '{conn.to_node}'")

        for node in self.nodes.values():
            for target in node.connections:
                if target not in self.nodes:
                    errors.append(f"Node '{node.id}' connects to unknown node: '{target}'")

        for slot_id in self.siding_slots:
            node = self.nodes.get(slot_id)
            if node is None:
                continue
            if node.metadata.siding_number is None or node.metadata.slot is None:
                errors.append(
                    f"Siding slot '{slot_id}' needs sidingId (e.g. 'S3') and slot ('a'/'b') metadata"
                )

        if errors:
            raise ValueError(
                f"Yard validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        return self

    @property
    def entry_node(self) -> str:
        """Node every new train is placed at."""
        return self.entry_points[0]

    @property
    def exit_node(self) -> Optional[str]:
        """Node departing trains leave through."""
        return self.exit_points[0] if self.exit_points else None

    def distance(self, from_node: str, to_node: str) -> float:
        """Straight-line distance between two nodes."""
        a = self.nodes.get(from_node)
        b = self.nodes.get(to_node)
        if a is None or b is None:
            return UNKNOWN_DISTANCE
        return a.coordinates.distance_to(b.coordinates)

    def to_graph(self) -> nx.Graph:
        """Build an undirected NetworkX graph of the yard."""
        graph = nx.Graph()
        for node in self.nodes.values():
            graph.add_node(
                node.id,
                type=node.type.value,
                x=node.coordinates.x,
                y=node.coordinates.y,
            )
        for node in self.nodes.values():
            for target in node.connections:
                graph.add_edge(node.id, target)
        for conn in self.connections:
            graph.add_edge(conn.from_node, conn.to_node, segments=list(conn.segments))
        return graph

    def unreachable_nodes(self) -> list[str]:
        """Nodes with no track path from the entry point."""
        graph = self.to_graph()
        reachable = nx.node_connected_component(graph, self.entry_node)
        return sorted(n for n in graph.nodes if n not in reachable)

    def summary(self) -> str:
        """Generate human-readable topology summary."""
        lines = [
            f"Nodes: {len(self.nodes)}",
            f"  Connections: {len(self.connections)}",
            f"  Inspection bays: {len(self.inspection_bays)}",
            f"  Workshop lines: {len(self.workshop_lines)}",
            f"  Siding slots: {len(self.siding_slots)}",
            f"  Entry points: {', '.join(self.entry_points)}",
            f"  Exit points: {', '.join(self.exit_points) or '-'}",
        ]
        return "\n".join(lines)


def build_default_yard(sidings: int = 12) -> YardDefinition:
    """Build the standard maintenance yard.

    One entry (E1), three inspection lines plus a deep inspection bay
    (IL1, IL2, IL3, DIC), four workshop lines (WL4 handles wheel alignment),
    ``sidings`` paired a/b sidings and one exit (X1).
    """
    nodes: dict[str, dict[str, Any]] = {}
    connections: list[dict[str, Any]] = []

    def add(node_id, node_type, x, y, label=None, **metadata):
        nodes[node_id] = {
            "id": node_id,
            "type": node_type,
            "coordinates": {"x": x, "y": y},
            "connections": [],
            "label": label,
            "metadata": metadata,
        }

    def link(a, b):
        nodes[a]["connections"].append(b)
        nodes[b]["connections"].append(a)
        connections.append({"from": a, "to": b, "segments": [f"{a}-{b}"]})

    add("E1", "entry", 50, 300, "Entry")
    add("SW1", "switch", 120, 300)
    link("E1", "SW1")

    bays = ["IL1", "IL2", "IL3", "DIC"]
    for i, bay in enumerate(bays):
        add(bay, "bay", 220, 120 + i * 120, f"IL-{i + 1}" if bay != "DIC" else "DIC")
        link("SW1", bay)

    add("SW2", "switch", 330, 300)
    for bay in bays:
        link(bay, "SW2")

    lines = ["WL1", "WL2", "WL3", "WL4"]
    for i, line in enumerate(lines):
        extra = {"specialization": "wheel-alignment"} if line == "WL4" else {}
        add(line, "bay", 460, 480 + i * 50, f"WL-{i + 1}", **extra)
        link("SW2", line)

    add("N1", "shunting", 560, 300, "Shunting Neck")
    link("SW2", "N1")

    for n in range(1, sidings + 1):
        y = 40 + (n - 1) * 35
        # Sidings 1-4 sit furthest from the neck and cost an extra reverse
        far = 1 if n <= 4 else 0
        add(f"S{n}a", "siding-slot", 700, y, f"S{n}-A",
            sidingId=f"S{n}", slot="a", reverseCost=1 + far)
        add(f"S{n}b", "siding-slot", 800, y, f"S{n}-B",
            sidingId=f"S{n}", slot="b", reverseCost=2 + far)
        link("N1", f"S{n}a")
        link(f"S{n}a", f"S{n}b")

    add("X1", "exit", 950, 300, "Exit")
    for n in range(1, sidings + 1):
        link(f"S{n}b", "X1")

    return YardDefinition.model_validate({
        "nodes": nodes,
        "connections": connections,
        "inspectionBays": bays,
        "workshopLines": lines,
        "sidingSlots": [f"S{n}{s}" for n in range(1, sidings + 1) for s in ("a", "b")],
        "shuntingNecks": ["N1"],
        "entryPoints": ["E1"],
        "exitPoints": ["X1"],
    })


def load_yard(path: str) -> YardDefinition:
    """Load and validate a yard topology from JSON file.

    Args:
        path: Path to yard JSON file

    Returns:
        Validated YardDefinition instance

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If JSON doesn't match schema
    """
    import json
    from pathlib import Path

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Yard file not found: {path}")

    with open(file_path) as f:
        data = json.load(f)

    return YardDefinition.model_validate(data)


def save_yard(yard: YardDefinition, path: str, indent: int = 2) -> None:
    """Save a yard topology to JSON file."""
    from pathlib import Path

    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "w") as f:
        f.write(yard.model_dump_json(indent=indent, by_alias=True, exclude_none=True))
