"""Command payloads accepted by the yard dispatcher"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from yard_sim.models.enums import CommandType, SlotPosition, TargetType


class JobTaskSpec(BaseModel):
    """One repair task on a train's job card."""

    id: str = Field(..., min_length=1)
    desc: str = Field("", description="What needs doing")
    done: bool = Field(False)


class TrainSpec(BaseModel):
    """Attributes supplied when a train is created.

    Every field is optional; the engine fills omitted ones in.
    """

    number: Optional[str] = Field(
        None,
        description="Human-facing train number (auto-generated if empty)",
    )
    fitness: Optional[int] = Field(
        None,
        ge=0,
        le=100,
        description="Fitness score 0-100",
    )
    mileage: Optional[int] = Field(
        None,
        ge=0,
        description="Odometer reading",
    )
    job_card: list[JobTaskSpec] = Field(
        default_factory=list,
        alias="jobCard",
        description="Ordered repair tasks",
    )
    failures: list[str] = Field(
        default_factory=list,
        description="Recorded defect tags, e.g. 'wheel-alignment'",
    )
    priority: bool = Field(False, description="Priority train")
    depart_soon: bool = Field(
        False,
        alias="departSoon",
        description="Must be positioned for imminent departure",
    )

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("number")
    @classmethod
    def blank_number_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("job_card", mode="before")
    @classmethod
    def unwrap_tasks(cls, v: Any) -> Any:
        """Accept ``{"tasks": [...]}`` as well as a bare task list."""
        if isinstance(v, dict):
            return v.get("tasks", [])
        return v


class AssignTrainData(BaseModel):
    """Explicit destination for an ``assign_train`` command."""

    target_id: str = Field(..., alias="targetId", min_length=1)
    target_type: TargetType = Field(..., alias="targetType")
    slot: Optional[SlotPosition] = None

    model_config = {"populate_by_name": True}


class SpeedChangeData(BaseModel):
    """New simulation speed multiplier for a ``speed_change`` command."""

    speed: float = Field(..., description="Requested multiplier; clamped by the engine")


class Command(BaseModel):
    """A command submitted to the dispatcher."""

    type: CommandType
    train_id: Optional[str] = Field(None, alias="trainId")
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("data", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v
