"""Destination scoring for siding slots and workshop lines.

All functions here are pure: they read a train and candidate resources and
return scores or ranked Recommendation lists without touching yard state.
Reasoning and warning strings are explanatory only; the score alone decides
the ranking.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from yard_sim.models.enums import BlockingRisk, SlotPosition, TargetType
from yard_sim.models.topology import YardDefinition
from yard_sim.simulation.state import SidingSlot, Train, WorkshopLine

BASE_SCORE = 100
WHEEL_ALIGNMENT = "wheel-alignment"

# Failures that may only be repaired on a line specialized for them
EXCLUSIVE_SPECIALIZATIONS = frozenset({WHEEL_ALIGNMENT})

# Siding number that earns no priority bonus; lower numbers are closer to the exit
PRIORITY_SIDING_PIVOT = 13


@dataclass
class Recommendation:
    """A ranked destination suggestion for one train."""

    target_id: str
    target_type: TargetType
    score: float
    reverse_cost: float
    distance_estimate: float
    blocking_risk: BlockingRisk
    eta_to_park: float
    """Seconds to reach the target at the average shunting speed"""
    estimated_shunt_steps: int
    slot: Optional[SlotPosition] = None
    reasoning: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for event payloads."""
        return {
            "target_id": self.target_id,
            "target_type": self.target_type.value,
            "slot": self.slot.value if self.slot else None,
            "score": self.score,
            "reverse_cost": self.reverse_cost,
            "distance_estimate": self.distance_estimate,
            "blocking_risk": self.blocking_risk.value,
            "eta_to_park": self.eta_to_park,
            "estimated_shunt_steps": self.estimated_shunt_steps,
            "reasoning": list(self.reasoning),
            "warnings": list(self.warnings),
        }


# === Sidings ===

def siding_score(train: Train, slot: SidingSlot) -> float:
    """Desirability of parking ``train`` in ``slot`` (never below 0)."""
    score = BASE_SCORE

    if train.depart_soon:
        score += 20 if slot.slot == SlotPosition.A else -10

    score -= slot.reverse_cost * 5

    if slot.blocking_risk == BlockingRisk.LOW:
        score += 10
    elif slot.blocking_risk == BlockingRisk.HIGH:
        score -= 10

    if train.priority:
        score += (PRIORITY_SIDING_PIVOT - slot.siding_number) * 2

    return max(0, score)


def siding_reasoning(train: Train, slot: SidingSlot) -> list[str]:
    reasons = []
    if slot.slot == SlotPosition.A:
        reasons.append("Front position - easier departure")
    if slot.blocking_risk == BlockingRisk.LOW:
        reasons.append("Low blocking risk")
    if train.depart_soon and slot.slot == SlotPosition.A:
        reasons.append("Suitable for morning departure")
    if train.priority:
        reasons.append("Priority train - close to exit")
    return reasons


def siding_warnings(train: Train, slot: SidingSlot) -> list[str]:
    warnings = []
    if slot.blocking_risk == BlockingRisk.HIGH:
        warnings.append("High blocking risk for future operations")
    if slot.slot == SlotPosition.B and train.depart_soon:
        warnings.append("Rear position may delay morning departure")
    if slot.reverse_cost > 2:
        warnings.append("High reverse cost for positioning")
    return warnings


def recommend_sidings(
    train: Train,
    slots: Iterable[SidingSlot],
    topology: YardDefinition,
    average_speed: float,
    limit: int = 5,
) -> list[Recommendation]:
    """Rank every free siding slot for a train, best first.

    Equal scores keep the slots' iteration order. At most ``limit`` entries
    are returned.
    """
    recommendations = []
    for slot in slots:
        if slot.occupied_by is not None:
            continue
        distance = topology.distance(train.location_node_id, slot.node_id)
        recommendations.append(Recommendation(
            target_id=slot.id,
            target_type=TargetType.SIDING,
            slot=slot.slot,
            score=siding_score(train, slot),
            reverse_cost=slot.reverse_cost,
            distance_estimate=distance,
            blocking_risk=slot.blocking_risk,
            eta_to_park=distance / average_speed,
            estimated_shunt_steps=1 if slot.slot == SlotPosition.B else 0,
            reasoning=siding_reasoning(train, slot),
            warnings=siding_warnings(train, slot),
        ))

    recommendations.sort(key=lambda r: r.score, reverse=True)
    return recommendations[:limit]


# === Workshops ===

def is_workshop_eligible(train: Train, line: WorkshopLine) -> bool:
    """Whether a line may take the train at all.

    A train carrying an exclusive failure can only go to a line
    specialized for that failure.
    """
    for failure in EXCLUSIVE_SPECIALIZATIONS:
        if failure in train.failures and line.specialization != failure:
            return False
    return True


def workshop_score(train: Train, line: WorkshopLine, primary_line: Optional[str] = None) -> float:
    score = BASE_SCORE
    if line.specialization is not None and line.specialization in train.failures:
        score += 50
    if train.priority and primary_line is not None and line.id == primary_line:
        score += 10
    return score


def workshop_reasoning(train: Train, line: WorkshopLine, primary_line: Optional[str] = None) -> list[str]:
    reasons = []
    if line.specialization is not None and line.specialization in train.failures:
        reasons.append(f"Specialized for {line.specialization.replace('-', ' ')} repairs")
    if primary_line is not None and line.id == primary_line:
        reasons.append("Primary workshop line")
    return reasons


def recommend_workshops(
    train: Train,
    lines: Iterable[WorkshopLine],
    topology: YardDefinition,
    average_speed: float,
    primary_line: Optional[str] = None,
) -> list[Recommendation]:
    """Rank every free, eligible workshop line for a train, best first."""
    recommendations = []
    for line in lines:
        if line.occupied_by is not None or not is_workshop_eligible(train, line):
            continue
        distance = topology.distance(train.location_node_id, line.node_id)
        recommendations.append(Recommendation(
            target_id=line.id,
            target_type=TargetType.WORKSHOP,
            score=workshop_score(train, line, primary_line),
            reverse_cost=1,
            distance_estimate=distance,
            blocking_risk=BlockingRisk.LOW,
            eta_to_park=distance / average_speed,
            estimated_shunt_steps=0,
            reasoning=workshop_reasoning(train, line, primary_line),
        ))

    recommendations.sort(key=lambda r: r.score, reverse=True)
    return recommendations
