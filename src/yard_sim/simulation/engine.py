"""SimPy-driven yard engine.

This module contains the YardEngine class that:
1. Builds the resource registries from a yard topology
2. Accepts commands (create, assign, speed change)
3. Drives trains through arrival, inspection, repair and parking
4. Publishes every state change on the event bus

Time only moves when the caller runs the SimPy environment. Inspection
and repair completions, as well as the pacing delays before automatic
moves, are SimPy processes that call back into the engine when due.
Those callbacks are not cancellable; each one checks that the resource is
still held by the train it was scheduled for and does nothing otherwise.
"""

import copy
import logging
import random
from dataclasses import asdict, dataclass
from typing import Any, Callable, Generator, Optional, Union

import simpy
from pydantic import ValidationError

from yard_sim.models.commands import AssignTrainData, Command, SpeedChangeData, TrainSpec
from yard_sim.models.config import EngineConfig
from yard_sim.models.enums import (
    CommandType,
    EventType,
    Severity,
    SlotPosition,
    TargetType,
    TrainStatus,
)
from yard_sim.models.topology import YardDefinition
from yard_sim.simulation import scoring
from yard_sim.simulation.events import EventBus, EventHandler, EventLog
from yard_sim.simulation.scoring import Recommendation
from yard_sim.simulation.state import AnyResource, InspectionBay, JobTask, Train, YardState

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ScheduledTask:
    """A pending callback on the simulation clock."""

    action: str
    train_id: str
    resource_id: Optional[str]
    scheduled_at: float
    due: float


class YardEngine:
    """Yard simulation and assignment engine.

    Usage:
        yard = load_yard("scenarios/default_yard.json")
        engine = YardEngine(yard)
        train_id = engine.create_train(failures=["brake"])
        engine.run()
        print(engine.snapshot().trains[train_id].status)

    Args:
        definition: Static yard topology (never mutated)
        config: Timing and scoring parameters
        rng: Random source for inspection outcomes and train defaults;
            seeded from ``config.random_seed`` when omitted
        env: SimPy environment to schedule on; a new one when omitted
    """

    def __init__(
        self,
        definition: YardDefinition,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        env: Optional[simpy.Environment] = None,
    ):
        self.definition = definition
        self.config = config or EngineConfig()
        self.env = env or simpy.Environment()
        self._rng = rng if rng is not None else random.Random(self.config.random_seed)

        self._state = YardState.from_definition(definition, self.config)
        self._bus = EventBus(clock=lambda: self.env.now, log=self._state.event_log)
        self._pending: list[ScheduledTask] = []
        self._train_counter = 0

    # === Clock ===

    @property
    def now(self) -> float:
        """Current simulation time (seconds)."""
        return self.env.now

    def run(self, until: Optional[float] = None) -> EventLog:
        """Advance the clock to ``until``, or until nothing is scheduled."""
        if until is None:
            self.env.run()
        elif until > self.env.now:
            self.env.run(until=until)
        return self._state.event_log

    def advance(self, seconds: float) -> EventLog:
        """Advance the clock by ``seconds``."""
        return self.run(until=self.env.now + seconds)

    @property
    def pending_tasks(self) -> list[ScheduledTask]:
        """Callbacks scheduled but not yet fired, in scheduling order."""
        return list(self._pending)

    def _schedule(
        self,
        delay: float,
        action: str,
        train_id: str,
        resource_id: Optional[str],
        callback: Callable[[], Any],
    ) -> ScheduledTask:
        """Run ``callback`` after ``delay`` simulation seconds."""
        task = ScheduledTask(
            action=action,
            train_id=train_id,
            resource_id=resource_id,
            scheduled_at=self.env.now,
            due=self.env.now + delay,
        )
        self._pending.append(task)
        self.env.process(self._fire(task, delay, callback))
        return task

    def _fire(self, task: ScheduledTask, delay: float, callback: Callable[[], Any]) -> Generator:
        yield self.env.timeout(delay)
        self._pending.remove(task)
        callback()

    # === Events ===

    def subscribe(self, handler: EventHandler) -> None:
        """Register an event handler."""
        self._bus.subscribe(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove an event handler."""
        self._bus.unsubscribe(handler)

    @property
    def event_log(self) -> EventLog:
        """The append-only event log."""
        return self._state.event_log

    # === Reads ===

    def snapshot(self) -> YardState:
        """Deep copy of the full yard state."""
        state = copy.deepcopy(self._state)
        state.now = self.env.now
        return state

    @property
    def simulation_speed(self) -> float:
        return self._state.simulation_speed

    def inspection_progress(self, bay_id: str) -> Optional[float]:
        """Completed fraction of the inspection running in a bay, or None if idle."""
        bay = self._state.inspection_bays.get(bay_id)
        if bay is None or bay.occupied_by is None:
            return None
        for task in self._pending:
            if (
                task.action == "complete_inspection"
                and task.resource_id == bay_id
                and task.train_id == bay.occupied_by
            ):
                span = task.due - task.scheduled_at
                if span <= 0:
                    return 1.0
                return min(1.0, (self.env.now - task.scheduled_at) / span)
        return None

    def recommend_sidings(self, train_id: str) -> list[Recommendation]:
        """Ranked free siding slots for a train (empty for unknown trains)."""
        train = self._state.trains.get(train_id)
        if train is None:
            return []
        return scoring.recommend_sidings(
            train,
            self._state.siding_slots.values(),
            self.definition,
            average_speed=self.config.average_speed,
            limit=self.config.max_siding_recommendations,
        )

    def recommend_workshops(self, train_id: str) -> list[Recommendation]:
        """Ranked free, eligible workshop lines for a train (empty for unknown trains)."""
        train = self._state.trains.get(train_id)
        if train is None:
            return []
        return scoring.recommend_workshops(
            train,
            self._state.workshop_lines.values(),
            self.definition,
            average_speed=self.config.average_speed,
            primary_line=self.config.primary_workshop_line,
        )

    # === Arrival ===

    def create_train(self, spec: Optional[TrainSpec] = None, **attrs: Any) -> str:
        """Register an arriving train at the entry point and return its id.

        Attributes may be given as a TrainSpec or as keyword arguments
        (number, fitness, mileage, job_card, failures, priority, depart_soon).
        Omitted fitness and mileage are drawn from the engine's random source.
        """
        if spec is None:
            spec = TrainSpec.model_validate(attrs)

        self._train_counter += 1
        train_id = f"TRN_{self._train_counter:04d}"
        now = self.env.now

        train = Train(
            id=train_id,
            number=spec.number or f"T{len(self._state.trains) + 1}",
            location_node_id=self.definition.entry_node,
            fitness=(
                spec.fitness if spec.fitness is not None
                else self._rng.randrange(self.config.max_random_fitness)
            ),
            mileage=(
                spec.mileage if spec.mileage is not None
                else self._rng.randrange(self.config.max_random_mileage)
            ),
            job_card=[JobTask(id=t.id, desc=t.desc, done=t.done) for t in spec.job_card],
            failures=list(dict.fromkeys(spec.failures)),
            priority=spec.priority,
            depart_soon=spec.depart_soon,
            arrival_time=now,
            last_updated=now,
        )
        self._state.trains[train_id] = train
        logger.info("Train %s (%s) arrived at %s", train.number, train_id, train.location_node_id)

        self._bus.emit(
            EventType.TRAIN_CREATED,
            f"Train {train.number} arrived at entry point",
            train_id=train_id,
            train=asdict(train),
        )

        self._schedule(
            self.config.arrival_delay_s,
            "enter_inspection",
            train_id,
            None,
            lambda: self.enter_inspection(train_id),
        )
        return train_id

    # === Inspection ===

    def enter_inspection(self, train_id: str) -> bool:
        """Move an arriving or queued train into the first free inspection bay.

        Bays are tried in declaration order. With every bay taken the train
        is queued instead. Returns True if a bay was claimed.
        """
        train = self._state.trains.get(train_id)
        if train is None or train.status not in (TrainStatus.ARRIVING, TrainStatus.QUEUED):
            return False

        bay = next((b for b in self._state.inspection_bays.values() if b.is_free), None)
        if bay is None:
            if train.status == TrainStatus.ARRIVING:
                train.status = TrainStatus.QUEUED
                train.last_updated = self.env.now
                logger.info("Train %s queued for inspection", train.number)
                self._bus.emit(
                    EventType.TRAIN_UPDATED,
                    f"Train {train.number} queued - all inspection bays occupied",
                    severity=Severity.WARNING,
                    train_id=train_id,
                )
            return False

        bay.claim(train_id)
        bay.inspection_start_time = self.env.now

        from_node = train.location_node_id
        train.status = TrainStatus.INSPECTION
        train.location_node_id = bay.node_id
        train.last_updated = self.env.now

        self._bus.emit(
            EventType.TRAIN_MOVED,
            f"Train {train.number} moved to {bay.name} for inspection",
            train_id=train_id,
            from_node=from_node,
            to_node=bay.node_id,
        )

        bay_id, claim = bay.id, bay.claims
        self._schedule(
            bay.inspection_duration * self._state.simulation_speed,
            "complete_inspection",
            train_id,
            bay_id,
            lambda: self.complete_inspection(train_id, bay_id, claim),
        )
        return True

    def complete_inspection(
        self, train_id: str, bay_id: str, claim: Optional[int] = None
    ) -> Optional[bool]:
        """Finish an inspection and route the train onwards.

        Returns the pass/fail outcome, or None when the bay is no longer held
        by this train (a stale or repeated call). ``claim`` pins the call to
        one occupancy of the bay (see ``Resource.claims``).
        """
        train = self._state.trains.get(train_id)
        bay = self._state.inspection_bays.get(bay_id)
        stale = claim is not None and bay is not None and bay.claims != claim
        if train is None or bay is None or bay.occupied_by != train_id or stale:
            logger.debug("Ignoring stale inspection completion for %s at %s", train_id, bay_id)
            return None

        pass_rate = (
            self.config.pass_rate_with_failures if train.has_failures
            else self.config.pass_rate_clean
        )
        passed = self._rng.random() < pass_rate

        bay.release()
        # Location stays on the bay node until the train is placed elsewhere
        train.status = TrainStatus.MOVING
        train.last_updated = self.env.now

        logger.info("Train %s inspection %s", train.number, "passed" if passed else "failed")
        self._bus.emit(
            EventType.INSPECTION_RESULT,
            f"Train {train.number} inspection {'passed' if passed else 'failed'}",
            severity=Severity.SUCCESS if passed else Severity.WARNING,
            train_id=train_id,
            bay_id=bay_id,
            passed=passed,
        )

        if passed:
            recommendations = self.recommend_sidings(train_id)
            self._preview(train, recommendations, f"Generated {len(recommendations)} siding recommendations for train {train.number}")
            # Priority and depart-soon trains wait for an explicit assignment
            if recommendations and not train.priority and not train.depart_soon:
                self._schedule_auto_assign(train_id, recommendations[0])
        else:
            recommendations = self.recommend_workshops(train_id)
            self._preview(train, recommendations, f"Generated {len(recommendations)} workshop recommendations for train {train.number}")
            if recommendations:
                self._schedule_auto_assign(train_id, recommendations[0])

        self._process_queued_trains()
        return passed

    def _process_queued_trains(self) -> None:
        """Retry inspection entry for every queued train, in registry order."""
        for train in self._state.trains_with_status(TrainStatus.QUEUED):
            self.enter_inspection(train.id)

    # === Recommendations ===

    def _preview(self, train: Train, recommendations: list[Recommendation], message: str) -> None:
        self._bus.emit(
            EventType.PLAN_PREVIEW,
            message,
            train_id=train.id,
            recommendations=[r.to_dict() for r in recommendations],
        )

    def _schedule_auto_assign(self, train_id: str, recommendation: Recommendation) -> None:
        target_id = recommendation.target_id

        def commit():
            train = self._state.trains.get(train_id)
            # An explicit assignment made in the meantime wins
            if train is None or train.status != TrainStatus.MOVING:
                return
            if recommendation.target_type == TargetType.WORKSHOP:
                self.assign_to_workshop(train_id, target_id)
            else:
                self.assign_to_siding(train_id, target_id, recommendation.slot)

        self._schedule(self.config.assignment_delay_s, "auto_assign", train_id, target_id, commit)

    # === Assignment ===

    def _release_held(self, train: Train) -> Optional[AnyResource]:
        """Free whatever resource the train still holds."""
        resource = self._state.held_by(train.id)
        if resource is not None:
            resource.release()
        return resource

    def assign_to_siding(
        self,
        train_id: str,
        slot_id: str,
        slot: Optional[Union[SlotPosition, str]] = None,
    ) -> bool:
        """Park a train in a siding slot.

        Rejected without any state change or event when the train or slot is
        unknown, the train has departed, ``slot`` names the other position of
        the siding, or the slot is occupied. Returns True on success.
        """
        train = self._state.trains.get(train_id)
        target = self._state.siding_slots.get(slot_id)
        if train is None or target is None or train.status == TrainStatus.DEPARTED:
            logger.debug("Rejected siding assignment %s -> %s: unknown train or slot", train_id, slot_id)
            return False
        if slot is not None and slot not in (target.slot, target.slot.value):
            logger.debug("Rejected siding assignment %s -> %s: slot mismatch", train_id, slot_id)
            return False
        if not target.is_free:
            logger.debug("Rejected siding assignment %s -> %s: occupied by %s", train_id, slot_id, target.occupied_by)
            return False

        released = self._release_held(train)
        target.claim(train_id)

        from_node = train.location_node_id
        train.status = TrainStatus.PARKED
        train.location_node_id = target.node_id
        train.last_updated = self.env.now

        logger.info("Train %s parked in %s", train.number, target.label)
        self._bus.emit(
            EventType.TRAIN_MOVED,
            f"Train {train.number} parked in {target.label}",
            severity=Severity.SUCCESS,
            train_id=train_id,
            from_node=from_node,
            target_id=slot_id,
            slot=target.slot.value,
        )

        if isinstance(released, InspectionBay):
            self._process_queued_trains()
        return True

    def assign_to_workshop(self, train_id: str, line_id: str) -> bool:
        """Send a train to a workshop line and schedule its repair.

        Same rejection rules as ``assign_to_siding``. Returns True on success.
        """
        train = self._state.trains.get(train_id)
        line = self._state.workshop_lines.get(line_id)
        if train is None or line is None or train.status == TrainStatus.DEPARTED:
            logger.debug("Rejected workshop assignment %s -> %s: unknown train or line", train_id, line_id)
            return False
        if not line.is_free:
            logger.debug("Rejected workshop assignment %s -> %s: occupied by %s", train_id, line_id, line.occupied_by)
            return False

        released = self._release_held(train)
        line.claim(train_id)
        claim = line.claims

        from_node = train.location_node_id
        train.status = TrainStatus.WORKSHOP
        train.location_node_id = line.node_id
        train.last_updated = self.env.now

        logger.info("Train %s sent to %s", train.number, line.name)
        self._bus.emit(
            EventType.TRAIN_MOVED,
            f"Train {train.number} sent to {line.name}",
            train_id=train_id,
            from_node=from_node,
            workshop_id=line_id,
        )

        self._schedule(
            self.config.repair_duration_s * self._state.simulation_speed,
            "complete_workshop",
            train_id,
            line_id,
            lambda: self.complete_workshop(train_id, line_id, claim),
        )

        if isinstance(released, InspectionBay):
            self._process_queued_trains()
        return True

    def complete_workshop(self, train_id: str, line_id: str, claim: Optional[int] = None) -> bool:
        """Finish a repair and send the train on to a siding.

        Returns False when the line is no longer held by this train, or when
        ``claim`` names an earlier occupancy of the line (a repair timer left
        over from before the train moved away and came back).
        """
        train = self._state.trains.get(train_id)
        line = self._state.workshop_lines.get(line_id)
        stale = claim is not None and line is not None and line.claims != claim
        if train is None or line is None or line.occupied_by != train_id or stale:
            logger.debug("Ignoring stale workshop completion for %s at %s", train_id, line_id)
            return False

        repaired = list(train.failures)
        train.failures.clear()
        for task in train.job_card:
            task.done = True
        train.fitness = min(100, train.fitness + self.config.repair_fitness_gain)
        train.status = TrainStatus.MOVING
        train.last_updated = self.env.now
        line.release()

        logger.info("Train %s repairs completed at %s", train.number, line.name)
        self._bus.emit(
            EventType.WORKSHOP_UPDATED,
            f"Train {train.number} repairs completed at {line.name}",
            severity=Severity.SUCCESS,
            train_id=train_id,
            workshop_id=line_id,
            repaired=repaired,
        )

        # Repaired trains are parked automatically whatever their flags
        recommendations = self.recommend_sidings(train_id)
        self._preview(train, recommendations, f"Generated {len(recommendations)} siding recommendations after repair")
        if recommendations:
            self._schedule_auto_assign(train_id, recommendations[0])
        return True

    # === Departure ===

    def depart_train(self, train_id: str) -> bool:
        """Send a parked train out through the exit point.

        The train stays in the registry with status ``departed``. Returns
        False (and changes nothing) for unknown or non-parked trains, or when
        the yard has no exit.
        """
        train = self._state.trains.get(train_id)
        exit_node = self.definition.exit_node
        if train is None or train.status != TrainStatus.PARKED or exit_node is None:
            logger.debug("Rejected departure of %s", train_id)
            return False

        released = self._release_held(train)
        from_node = train.location_node_id
        train.status = TrainStatus.DEPARTED
        train.location_node_id = exit_node
        train.last_updated = self.env.now

        logger.info("Train %s departed", train.number)
        self._bus.emit(
            EventType.TRAIN_UPDATED,
            f"Train {train.number} departed from {released.name if released else from_node}",
            severity=Severity.SUCCESS,
            train_id=train_id,
            from_node=from_node,
            to_node=exit_node,
        )
        return True

    # === Speed ===

    def set_speed(self, speed: float) -> float:
        """Set the simulation speed multiplier, clamped to the configured bounds.

        The multiplier applies to phases scheduled after the change.
        """
        clamped = max(self.config.min_speed, min(self.config.max_speed, speed))
        self._state.simulation_speed = clamped
        self._bus.emit(
            EventType.LOG_NEW,
            f"Simulation speed set to {clamped:g}x",
            speed=clamped,
        )
        return clamped

    # === Commands ===

    def process_command(self, command: Union[Command, dict[str, Any]]) -> Optional[str]:
        """Apply an external command.

        Malformed and unknown commands are ignored, as are the accepted but
        unimplemented ``remove_train``, ``preview_plan``, ``execute_plan``,
        ``pause`` and ``resume``. Returns the new train id for
        ``create_train`` and None otherwise.
        """
        try:
            if not isinstance(command, Command):
                command = Command.model_validate(command)

            if command.type == CommandType.CREATE_TRAIN:
                return self.create_train(TrainSpec.model_validate(command.data))

            if command.type == CommandType.ASSIGN_TRAIN:
                if not command.train_id:
                    return None
                target = AssignTrainData.model_validate(command.data)
                if target.target_type == TargetType.SIDING:
                    self.assign_to_siding(command.train_id, target.target_id, target.slot)
                elif target.target_type == TargetType.WORKSHOP:
                    self.assign_to_workshop(command.train_id, target.target_id)
                return None

            if command.type == CommandType.SPEED_CHANGE:
                change = SpeedChangeData.model_validate(command.data)
                if change.speed:
                    self.set_speed(change.speed)
                return None

        except ValidationError as e:
            logger.debug("Ignoring malformed command %r: %s", command, e)
            return None

        logger.debug("Ignoring command %s", command.type.value)
        return None

    def __repr__(self) -> str:
        return (
            f"YardEngine(t={self.env.now}, {len(self._state.trains)} trains, "
            f"{len(self._state.event_log)} events)"
        )
