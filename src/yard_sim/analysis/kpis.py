"""KPI calculations for yard state and event logs.

Counts come from a state snapshot; throughput and timing figures come from
the snapshot's event log.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np
import pandas as pd

from yard_sim.models.enums import EventType, TrainStatus
from yard_sim.simulation.state import YardState

if TYPE_CHECKING:
    from yard_sim.simulation.engine import YardEngine


def _to_python(value: Any) -> Any:
    """Convert numpy/pandas types to native Python types for JSON serialization."""
    if value is None:
        return None
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return None if np.isnan(value) else float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, (np.ndarray, pd.Series)):
        return value.tolist()
    if isinstance(value, dict):
        return {k: _to_python(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_python(v) for v in value]
    return value


@dataclass
class YardKPIs:
    """Key Performance Indicators for a yard at one point in time."""

    time: float = 0.0

    # Train counts
    total_trains: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    priority_trains: int = 0
    depart_soon_trains: int = 0
    trains_with_failures: int = 0

    # Occupancy (occupied, total)
    inspection_bays: tuple[int, int] = (0, 0)
    workshop_lines: tuple[int, int] = (0, 0)
    siding_slots: tuple[int, int] = (0, 0)

    # Inspection outcomes
    inspections_passed: int = 0
    inspections_failed: int = 0
    repairs_completed: int = 0

    # Arrival -> first parking (seconds)
    trains_parked_once: int = 0
    mean_time_to_park: Optional[float] = None
    median_time_to_park: Optional[float] = None
    max_time_to_park: Optional[float] = None

    total_events: int = 0

    @property
    def inspection_pass_rate(self) -> Optional[float]:
        total = self.inspections_passed + self.inspections_failed
        return self.inspections_passed / total if total else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialisation."""
        return _to_python({
            "time_s": self.time,
            "total_trains": self.total_trains,
            "by_status": dict(self.by_status),
            "priority_trains": self.priority_trains,
            "depart_soon_trains": self.depart_soon_trains,
            "trains_with_failures": self.trains_with_failures,
            "inspection_bays_occupied": self.inspection_bays[0],
            "inspection_bays_total": self.inspection_bays[1],
            "workshop_lines_occupied": self.workshop_lines[0],
            "workshop_lines_total": self.workshop_lines[1],
            "siding_slots_occupied": self.siding_slots[0],
            "siding_slots_total": self.siding_slots[1],
            "inspections_passed": self.inspections_passed,
            "inspections_failed": self.inspections_failed,
            "inspection_pass_rate": self.inspection_pass_rate,
            "repairs_completed": self.repairs_completed,
            "trains_parked_once": self.trains_parked_once,
            "mean_time_to_park_s": self.mean_time_to_park,
            "median_time_to_park_s": self.median_time_to_park,
            "max_time_to_park_s": self.max_time_to_park,
            "total_events": self.total_events,
        })

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            f"=== Yard KPIs (t={self.time:g}s) ===",
            "",
            f"Trains: {self.total_trains}",
        ]
        for status, count in self.by_status.items():
            if count:
                lines.append(f"  {status:<11} {count}")
        lines.extend([
            f"  Priority:    {self.priority_trains}",
            f"  Depart soon: {self.depart_soon_trains}",
            f"  With faults: {self.trains_with_failures}",
            "",
            "Occupancy:",
            f"  Inspection bays: {self.inspection_bays[0]}/{self.inspection_bays[1]}",
            f"  Workshop lines:  {self.workshop_lines[0]}/{self.workshop_lines[1]}",
            f"  Siding slots:    {self.siding_slots[0]}/{self.siding_slots[1]}",
            "",
            f"Inspections: {self.inspections_passed} passed, {self.inspections_failed} failed "
            f"(pass rate {self._fmt(self.inspection_pass_rate)})",
            f"Repairs completed: {self.repairs_completed}",
            "",
            "Time to park (arrival -> first siding):",
            f"  Trains: {self.trains_parked_once}",
            f"  Mean:   {self._fmt(self.mean_time_to_park)} s",
            f"  Median: {self._fmt(self.median_time_to_park)} s",
            f"  Max:    {self._fmt(self.max_time_to_park)} s",
        ])
        return "\n".join(lines)

    @staticmethod
    def _fmt(value: Optional[float]) -> str:
        return "-" if value is None else f"{value:.2f}"


def _occupancy(resources: dict) -> tuple[int, int]:
    occupied = sum(1 for r in resources.values() if r.occupied_by is not None)
    return occupied, len(resources)


def compute_yard_kpis(source: Union[YardState, "YardEngine"]) -> YardKPIs:
    """Compute yard KPIs from a state snapshot or directly from an engine."""
    state = source.snapshot() if hasattr(source, "snapshot") else source
    trains = list(state.trains.values())
    events = state.event_log.events

    kpis = YardKPIs(
        time=state.now,
        total_trains=len(trains),
        by_status={s.value: sum(1 for t in trains if t.status == s) for s in TrainStatus},
        priority_trains=sum(1 for t in trains if t.priority),
        depart_soon_trains=sum(1 for t in trains if t.depart_soon),
        trains_with_failures=sum(1 for t in trains if t.failures),
        inspection_bays=_occupancy(state.inspection_bays),
        workshop_lines=_occupancy(state.workshop_lines),
        siding_slots=_occupancy(state.siding_slots),
        total_events=len(events),
    )

    results = [e for e in events if e.type == EventType.INSPECTION_RESULT]
    kpis.inspections_passed = sum(1 for e in results if e.data.get("passed"))
    kpis.inspections_failed = len(results) - kpis.inspections_passed
    kpis.repairs_completed = sum(1 for e in events if e.type == EventType.WORKSHOP_UPDATED)

    parked = pd.DataFrame(
        [
            {"train_id": e.train_id, "timestamp": e.timestamp}
            for e in events
            if e.type == EventType.TRAIN_MOVED and "slot" in e.data
        ],
        columns=["train_id", "timestamp"],
    )
    if not parked.empty:
        first_park = parked.groupby("train_id")["timestamp"].min()
        arrivals = pd.Series({t.id: t.arrival_time for t in trains})
        durations = (first_park - arrivals.reindex(first_park.index)).dropna()
        if len(durations):
            kpis.trains_parked_once = len(durations)
            kpis.mean_time_to_park = _to_python(np.mean(durations))
            kpis.median_time_to_park = _to_python(np.median(durations))
            kpis.max_time_to_park = _to_python(np.max(durations))

    return kpis
