"""Wire and local state models for an active workout session.

Wire models use camelCase on the JSON side (``setId``, ``restTime``,
``isDropSet``) and snake_case attributes in Python. Local-only state that
never leaves the process is kept in plain dataclasses.
"""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SET_FIELDS = ("weight", "reps", "rir", "tempo")
NUMERIC_FIELDS = ("weight", "reps", "rir")


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class WorkoutMode(str, enum.Enum):
    SIMPLE = "simple"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    def visible_fields(self) -> tuple[str, ...]:
        """Return the set inputs shown for this mode."""
        if self is WorkoutMode.SIMPLE:
            return ("weight", "reps")
        if self is WorkoutMode.INTERMEDIATE:
            return ("weight", "reps", "rir")
        return SET_FIELDS


class ExerciseDefinition(WireModel):
    id: str
    name: str
    muscle_group: Optional[str] = ""
    equipment: Optional[str] = ""
    rest_time: Optional[int] = None


class SetEntry(WireModel):
    id: str
    set_number: int
    weight: Optional[float] = None
    reps: Optional[int] = None
    rir: Optional[int] = Field(None, ge=0, le=4)
    tempo: Optional[str] = None
    completed: bool = False
    is_drop_set: bool = False


class ExerciseEntry(WireModel):
    id: str
    exercise: ExerciseDefinition
    completed: bool = False
    sets: list[SetEntry] = Field(default_factory=list)


class WorkoutSession(WireModel):
    id: str
    notes: Optional[str] = ""
    created_at: datetime.datetime
    workout_mode: WorkoutMode = WorkoutMode.SIMPLE
    exercises: list[ExerciseEntry] = Field(default_factory=list)

    def iter_sets(self):
        for entry in self.exercises:
            yield from entry.sets


class SetUpdate(WireModel):
    set_id: str
    weight: Optional[float] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    rir: Optional[int] = Field(None, ge=0, le=4)
    tempo: Optional[str] = None


class ExerciseCompletion(WireModel):
    exercise_session_id: str
    completed: bool = True


class WorkoutCompletion(WireModel):
    workout_session_id: str
    duration: Optional[int] = None
    notes: Optional[str] = None


class NotesUpdate(WireModel):
    workout_session_id: str
    notes: str = ""


class LastSetStat(WireModel):
    weight: float = 0.0
    reps: int = 0
    set_number: int


class PlannedExercise(WireModel):
    exercise_id: str
    sets: int = Field(3, ge=1)
    is_drop_set: bool = False


class SessionStart(WireModel):
    notes: str = ""
    workout_mode: WorkoutMode = WorkoutMode.SIMPLE
    exercises: list[PlannedExercise] = Field(default_factory=list)


@dataclass
class InputValue:
    """Raw text typed into a set's inputs, before numeric parsing."""

    weight: str = ""
    reps: str = ""
    rir: str = ""
    tempo: str = ""


@dataclass
class RestTimerState:
    active: bool = False
    time_left: int = 0
    exercise_id: Optional[str] = None


@dataclass
class FailedRequestEntry:
    set_id: str
    exercise_id: str
    data: dict[str, Any] = field(default_factory=dict)
