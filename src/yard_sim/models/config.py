"""Engine configuration.

Durations are simulation seconds. Phase durations (inspection, repair) are
multiplied by the engine's ``simulation_speed``; the pacing delays between
milestones are not.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class EngineConfig(BaseModel):
    """Timing, scoring and randomness parameters for a YardEngine."""

    # Phase durations
    inspection_duration_s: float = Field(
        300.0,
        gt=0,
        description="Time a train spends in an inspection bay",
    )
    repair_duration_s: float = Field(
        10.0,
        gt=0,
        description="Time a train spends on a workshop line",
    )

    # Pacing
    arrival_delay_s: float = Field(
        2.0,
        ge=0,
        description="Delay between arrival at the entry and the inspection attempt",
    )
    assignment_delay_s: float = Field(
        1.0,
        ge=0,
        description="Delay between a recommendation preview and its auto-commit",
    )

    # Inspection outcome
    pass_rate_clean: float = Field(
        0.8,
        ge=0,
        le=1,
        description="Inspection pass probability for a train without recorded failures",
    )
    pass_rate_with_failures: float = Field(
        0.3,
        ge=0,
        le=1,
        description="Inspection pass probability for a train with recorded failures",
    )

    # Repair
    repair_fitness_gain: int = Field(
        20,
        ge=0,
        le=100,
        description="Fitness points restored by a completed repair",
    )

    # Simulation speed
    initial_speed: float = Field(
        1.0,
        gt=0,
        description="Starting simulation speed multiplier",
    )
    min_speed: float = Field(
        0.1,
        gt=0,
        description="Lowest accepted speed multiplier",
    )
    max_speed: float = Field(
        10.0,
        gt=0,
        description="Highest accepted speed multiplier",
    )

    # Scoring
    average_speed: float = Field(
        50.0,
        gt=0,
        description="Average shunting speed (topology units per second) for ETA estimates",
    )
    max_siding_recommendations: int = Field(
        5,
        ge=1,
        description="Siding recommendations kept after ranking",
    )
    primary_workshop_line: Optional[str] = Field(
        "WL1",
        description="Workshop line priority trains are nudged towards",
    )
    workshop_specializations: dict[str, str] = Field(
        default_factory=lambda: {"WL4": "wheel-alignment"},
        description="Fallback line specializations for topologies without metadata",
    )

    # Defaults for created trains
    max_random_fitness: int = Field(
        100,
        ge=1,
        le=101,
        description="Exclusive upper bound of the random fitness given to new trains",
    )
    max_random_mileage: int = Field(
        50000,
        ge=1,
        description="Exclusive upper bound of the random mileage given to new trains",
    )

    # Reproducibility
    random_seed: Optional[int] = Field(
        42,
        description="RNG seed for inspection outcomes and train defaults (None = unseeded)",
    )

    # Output control
    log_level: str = Field(
        "INFO",
        description="Logging verbosity (DEBUG, INFO, WARNING)",
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_speed_bounds(self) -> "EngineConfig":
        """Speed bounds must be ordered and contain the initial speed."""
        if self.min_speed > self.max_speed:
            raise ValueError(
                f"min_speed ({self.min_speed}) exceeds max_speed ({self.max_speed})"
            )
        if not self.min_speed <= self.initial_speed <= self.max_speed:
            raise ValueError(
                f"initial_speed ({self.initial_speed}) outside "
                f"[{self.min_speed}, {self.max_speed}]"
            )
        return self


def load_config(path: str) -> EngineConfig:
    """Load and validate engine configuration from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If JSON doesn't match schema
    """
    import json
    from pathlib import Path

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(file_path) as f:
        data = json.load(f)

    return EngineConfig.model_validate(data)
