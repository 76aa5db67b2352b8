from __future__ import annotations

import datetime
import math
from dataclasses import dataclass
from typing import Optional

from models import Exercise, ExerciseType, User, WorkoutRecord, utcnow

SAVED_FEEDBACK_SECONDS = 1.2


@dataclass(frozen=True)
class StepRange:
    """Bounds and step of a form stepper."""

    lower: float
    upper: float
    step: float

    def increment(self, value: float) -> float:
        return min(self.upper, value + self.step)

    def decrement(self, value: float) -> float:
        return max(self.lower, value - self.step)


WEIGHT_RANGE = StepRange(0.0, 500.0, 2.5)
REPS_RANGE = StepRange(1, 999, 1)
SERIES_RANGE = StepRange(1, 50, 1)
DISTANCE_RANGE = StepRange(0.0, 100.0, 0.5)


def _positive(value: float) -> bool:
    # nan and inf never count as a value
    return math.isfinite(value) and value > 0


def can_save(
    user: Optional[User],
    exercise: Optional[Exercise],
    weight: float = 0.0,
    reps: int = 0,
    series: int = 0,
    distance: float = 0.0,
) -> bool:
    """Return True when the inputs form an acceptable record for ``exercise``."""
    if user is None or exercise is None:
        return False
    if exercise.is_distance_type:
        return _positive(distance)
    if exercise.is_reps_only_type:
        return _positive(reps)
    return _positive(weight) and _positive(reps) and _positive(series)


def build_record(
    user: Optional[User],
    exercise: Optional[Exercise],
    weight: float = 0.0,
    reps: int = 0,
    series: int = 0,
    distance: float = 0.0,
    is_indoor: bool = False,
    date: Optional[datetime.datetime] = None,
) -> Optional[WorkoutRecord]:
    """Build a record populated for the exercise type, or None if refused.

    Distance records zero weight, reps and series; reps-only records zero
    weight and series; strength records carry all three and no distance.
    """
    if not can_save(user, exercise, weight, reps, series, distance):
        return None
    date = date or utcnow()
    if exercise.is_distance_type:
        return WorkoutRecord(
            weight=0.0,
            reps=0,
            series=0,
            distance=float(distance),
            is_indoor=bool(is_indoor),
            date=date,
            user_id=user.id,
            exercise_id=exercise.id,
        )
    if exercise.is_reps_only_type:
        return WorkoutRecord(
            weight=0.0,
            reps=int(reps),
            series=0,
            date=date,
            user_id=user.id,
            exercise_id=exercise.id,
        )
    return WorkoutRecord(
        weight=float(weight),
        reps=int(reps),
        series=int(series),
        date=date,
        user_id=user.id,
        exercise_id=exercise.id,
    )


class RecordForm:
    """Input state of the record screen."""

    def __init__(self, weight_step: float = WEIGHT_RANGE.step) -> None:
        self.weight_range = StepRange(WEIGHT_RANGE.lower, WEIGHT_RANGE.upper, weight_step)
        self.user: Optional[User] = None
        self.exercise: Optional[Exercise] = None
        self.weight = 0.0
        self.reps = 10
        self.series = 1
        self.distance = 0.0
        self.is_indoor = False
        self.saved_at: Optional[datetime.datetime] = None
        self.error: Optional[str] = None

    @property
    def exercise_type(self) -> ExerciseType:
        if self.exercise is None:
            return ExerciseType.STRENGTH
        return self.exercise.exercise_type

    def select_user(self, user: Optional[User]) -> None:
        self.user = user

    def select_exercise(self, exercise: Optional[Exercise]) -> None:
        """Select ``exercise`` and reset the inputs to its type's defaults."""
        self.exercise = exercise
        if exercise is None:
            return
        if exercise.is_distance_type:
            self.distance = 0.0
            self.is_indoor = False
        elif exercise.is_reps_only_type:
            self.reps = 1
        else:
            self.weight = 0.0
            self.reps = 10
            self.series = 1

    def step(self, field_name: str, up: bool = True) -> None:
        ranges = {
            "weight": self.weight_range,
            "reps": REPS_RANGE,
            "series": SERIES_RANGE,
            "distance": DISTANCE_RANGE,
        }
        if field_name not in ranges:
            raise ValueError(f"unknown field: {field_name}")
        rng = ranges[field_name]
        current = getattr(self, field_name)
        value = rng.increment(current) if up else rng.decrement(current)
        if field_name in ("reps", "series"):
            value = int(value)
        setattr(self, field_name, value)

    @property
    def can_save(self) -> bool:
        return can_save(
            self.user, self.exercise, self.weight, self.reps, self.series, self.distance
        )

    def build(self) -> Optional[WorkoutRecord]:
        return build_record(
            self.user,
            self.exercise,
            self.weight,
            self.reps,
            self.series,
            self.distance,
            self.is_indoor,
        )

    def mark_saved(self, now: Optional[datetime.datetime] = None) -> None:
        self.saved_at = now or utcnow()
        self.error = None

    def mark_failed(self, message: str) -> None:
        self.error = message

    def dismiss_error(self) -> None:
        self.error = None

    def show_saved(self, now: Optional[datetime.datetime] = None) -> bool:
        """Return True while the "Saved" confirmation should be visible."""
        if self.saved_at is None:
            return False
        now = now or utcnow()
        return (now - self.saved_at).total_seconds() < SAVED_FEEDBACK_SECONDS
