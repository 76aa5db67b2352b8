"""Day-grouped workout history.

Records arrive sorted by date descending from the record query. They are
bucketed by the calendar day of their timestamp in the viewer's time zone,
buckets are ordered most recent first, and records inside a bucket keep the
order they arrived in.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from localization import Translator, translator as default_translator
from models import Exercise, User, WorkoutRecord

MISSING_NAME = "—"


@dataclass
class HistorySection:
    day: datetime.date
    title: str
    records: List[WorkoutRecord] = field(default_factory=list)


@dataclass
class HistoryRow:
    record_id: str
    user_name: str
    exercise_name: str
    time: str
    detail: str


def _zone(tz: str | datetime.tzinfo | None) -> datetime.tzinfo:
    if tz is None:
        return datetime.timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def local_day(moment: datetime.datetime, tz: str | datetime.tzinfo | None = None) -> datetime.date:
    """Return the calendar day of ``moment`` in ``tz``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(_zone(tz)).date()


def section_title(
    day: datetime.date,
    today: datetime.date,
    translator: Translator = default_translator,
) -> str:
    if day == today:
        return translator.gettext("Today")
    if day == today - datetime.timedelta(days=1):
        return translator.gettext("Yesterday")
    return translator.medium_date(day)


def group_by_day(
    records: Iterable[WorkoutRecord],
    tz: str | datetime.tzinfo | None = None,
    today: Optional[datetime.date] = None,
    translator: Translator = default_translator,
) -> List[HistorySection]:
    zone = _zone(tz)
    if today is None:
        today = datetime.datetime.now(zone).date()
    buckets: Dict[datetime.date, List[WorkoutRecord]] = {}
    for record in records:
        buckets.setdefault(local_day(record.date, zone), []).append(record)
    return [
        HistorySection(day=day, title=section_title(day, today, translator), records=items)
        for day, items in sorted(buckets.items(), key=lambda kv: kv[0], reverse=True)
    ]


def detail_text(
    record: WorkoutRecord,
    exercise: Optional[Exercise] = None,
    translator: Translator = default_translator,
) -> str:
    if record.is_distance_entry:
        location = translator.gettext("indoors" if record.is_indoor else "outdoors")
        return f"{record.distance:.1f} km, {location}"
    reps = translator.gettext("reps")
    if exercise is not None and exercise.is_reps_only_type:
        return f"{record.reps} {reps}"
    series = translator.gettext("series")
    return f"{int(record.weight)} kg × {record.reps} {reps} × {record.series} {series}"


def format_time(
    moment: datetime.datetime,
    tz: str | datetime.tzinfo | None = None,
    time_format: str = "24h",
) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    local = moment.astimezone(_zone(tz))
    if time_format == "12h":
        hour = local.hour % 12 or 12
        suffix = "AM" if local.hour < 12 else "PM"
        return f"{hour}:{local.minute:02d} {suffix}"
    return local.strftime("%H:%M")


def history_row(
    record: WorkoutRecord,
    users: Dict[str, User],
    exercises: Dict[str, Exercise],
    tz: str | datetime.tzinfo | None = None,
    time_format: str = "24h",
    translator: Translator = default_translator,
) -> HistoryRow:
    user = users.get(record.user_id) if record.user_id else None
    exercise = exercises.get(record.exercise_id) if record.exercise_id else None
    return HistoryRow(
        record_id=record.id,
        user_name=user.name if user else MISSING_NAME,
        exercise_name=exercise.name if exercise else MISSING_NAME,
        time=format_time(record.date, tz, time_format),
        detail=detail_text(record, exercise, translator),
    )
