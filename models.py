from __future__ import annotations

import datetime
import enum
import uuid
from dataclasses import dataclass, field
from typing import Optional


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def to_timestamp(dt: datetime.datetime) -> str:
    """Return ``dt`` as an ISO-8601 string in UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).isoformat()


def parse_timestamp(ts: str) -> datetime.datetime:
    """Return ``ts`` as timezone-aware datetime in UTC."""
    dt = datetime.datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


class ExerciseType(str, enum.Enum):
    """How a record of an exercise is measured."""

    STRENGTH = "strength"
    DISTANCE = "distance"
    REPS_ONLY = "repsOnly"

    @classmethod
    def decode(cls, raw: Optional[str]) -> "ExerciseType":
        """Decode a stored value, falling back to strength for anything unknown."""
        try:
            return cls(raw)
        except ValueError:
            return cls.STRENGTH


@dataclass
class User:
    name: str
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=utcnow)
    photo: Optional[bytes] = None
    avatar_symbol: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "User":
        uid, name, created_at, photo, avatar_symbol = row
        return cls(
            id=uid,
            name=name,
            created_at=parse_timestamp(created_at),
            photo=photo,
            avatar_symbol=avatar_symbol,
        )


@dataclass
class Exercise:
    name: str
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=utcnow)
    exercise_type_raw: str = ExerciseType.STRENGTH.value

    @property
    def exercise_type(self) -> ExerciseType:
        return ExerciseType.decode(self.exercise_type_raw)

    @exercise_type.setter
    def exercise_type(self, value: ExerciseType) -> None:
        self.exercise_type_raw = ExerciseType(value).value

    @property
    def is_distance_type(self) -> bool:
        return self.exercise_type is ExerciseType.DISTANCE

    @property
    def is_reps_only_type(self) -> bool:
        return self.exercise_type is ExerciseType.REPS_ONLY

    @classmethod
    def from_row(cls, row: tuple) -> "Exercise":
        eid, name, created_at, raw_type = row
        return cls(
            id=eid,
            name=name,
            created_at=parse_timestamp(created_at),
            exercise_type_raw=raw_type or ExerciseType.STRENGTH.value,
        )


@dataclass
class WorkoutRecord:
    weight: float = 0.0
    reps: int = 0
    series: int = 0
    date: datetime.datetime = field(default_factory=utcnow)
    distance: Optional[float] = None
    is_indoor: Optional[bool] = None
    user_id: Optional[str] = None
    exercise_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def is_distance_entry(self) -> bool:
        return self.distance is not None

    @classmethod
    def from_row(cls, row: tuple) -> "WorkoutRecord":
        rid, weight, reps, series, date, distance, is_indoor, user_id, exercise_id = row
        return cls(
            id=rid,
            weight=float(weight),
            reps=int(reps),
            series=int(series),
            date=parse_timestamp(date),
            distance=distance,
            is_indoor=None if is_indoor is None else bool(is_indoor),
            user_id=user_id,
            exercise_id=exercise_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "weight": self.weight,
            "reps": self.reps,
            "series": self.series,
            "date": to_timestamp(self.date),
            "distance": self.distance,
            "is_indoor": self.is_indoor,
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
        }
