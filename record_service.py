import datetime
import logging
import sqlite3
from typing import Callable, List, Optional

from config import DEFAULT_YAML_PATH
from db import (
    ExerciseRepository,
    SettingsRepository,
    UserRepository,
    WorkoutRecordRepository,
)
from history import HistorySection, group_by_day
from localization import translator
from models import Exercise, ExerciseType, User, WorkoutRecord
from record_form import WEIGHT_RANGE, RecordForm
from selection_memory import SelectionMemory

logger = logging.getLogger(__name__)

SAVE_ERROR_TITLE = "Could not save"
SAVE_ERROR_MESSAGE = "Something went wrong. Please try again."

Listener = Callable[[dict], None]


class RecordSaveError(Exception):
    """Raised when the store fails to persist a record."""


class RecordService:
    """Create, query and delete records and notify listeners of every change."""

    def __init__(
        self,
        users: UserRepository,
        exercises: ExerciseRepository,
        records: WorkoutRecordRepository,
        settings: SettingsRepository,
    ) -> None:
        self.users = users
        self.exercises = exercises
        self.records = records
        self.settings = settings
        self.selection = SelectionMemory(settings)
        self._listeners: List[Listener] = []

    @classmethod
    def open(cls, db_path: str, yaml_path: str = DEFAULT_YAML_PATH) -> "RecordService":
        """Build a service with repositories on ``db_path``."""
        return cls(
            UserRepository(db_path),
            ExerciseRepository(db_path),
            WorkoutRecordRepository(db_path),
            SettingsRepository(db_path, yaml_path),
        )

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, event_type: str, entity_id: str) -> None:
        event = {"type": event_type, "id": entity_id}
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed for event %s", event)

    def save(self, record: Optional[WorkoutRecord]) -> Optional[str]:
        """Insert and commit ``record``; a refused (None) record stores nothing."""
        if record is None:
            return None
        try:
            record_id = self.records.insert(record)
        except sqlite3.Error as e:
            logger.error("Saving record %s failed: %s", record.id, e)
            raise RecordSaveError(SAVE_ERROR_MESSAGE) from e
        logger.debug("Saved record %s", record_id)
        self.notify("record_added", record_id)
        return record_id

    def submit(self, form: RecordForm) -> Optional[WorkoutRecord]:
        """Save the form's record; on failure the form keeps its inputs for a retry."""
        record = form.build()
        if record is None:
            return None
        try:
            self.save(record)
        except RecordSaveError as e:
            form.mark_failed(str(e))
            return None
        form.mark_saved()
        return record

    def delete_record(self, record_id: str) -> None:
        self.records.delete(record_id)
        self.notify("record_deleted", record_id)

    def add_user(
        self,
        name: str,
        photo: Optional[bytes] = None,
        avatar_symbol: Optional[str] = None,
    ) -> User:
        user = self.users.add(name, photo, avatar_symbol)
        self.notify("user_added", user.id)
        return user

    def rename_user(self, user_id: str, name: str) -> None:
        self.users.set_name(user_id, name)
        self.notify("user_updated", user_id)

    def delete_user(self, user_id: str) -> None:
        self.users.delete(user_id)
        self.notify("user_deleted", user_id)

    def add_exercise(
        self, name: str, exercise_type: ExerciseType = ExerciseType.STRENGTH
    ) -> Exercise:
        exercise = self.exercises.add(name, exercise_type)
        self.notify("exercise_added", exercise.id)
        return exercise

    def update_exercise(
        self,
        exercise_id: str,
        name: Optional[str] = None,
        exercise_type: Optional[ExerciseType] = None,
    ) -> None:
        if name is not None:
            self.exercises.set_name(exercise_id, name)
        if exercise_type is not None:
            self.exercises.set_type(exercise_id, exercise_type)
        self.notify("exercise_updated", exercise_id)

    def delete_exercise(self, exercise_id: str) -> None:
        self.exercises.delete(exercise_id)
        self.notify("exercise_deleted", exercise_id)

    def new_form(self) -> RecordForm:
        """Return an empty form stepping weight by the ``weight_step`` setting."""
        return RecordForm(self.settings.get_float("weight_step", WEIGHT_RANGE.step))

    def select_user(self, form: RecordForm, user: User) -> None:
        form.select_user(user)
        self.selection.remember_user(user)

    def select_exercise(self, form: RecordForm, exercise: Exercise) -> None:
        form.select_exercise(exercise)
        self.selection.remember_exercise(exercise)

    def restore_selection(self, form: Optional[RecordForm] = None) -> RecordForm:
        if form is None:
            form = self.new_form()
        user = self.selection.restore_user(self.users.fetch_all())
        if user is not None:
            form.select_user(user)
        exercise = self.selection.restore_exercise(self.exercises.fetch_all())
        if exercise is not None:
            form.select_exercise(exercise)
        return form

    def timezone(self) -> str:
        return self.settings.get_text("timezone", "UTC")

    def history(
        self,
        user_id: Optional[str] = None,
        exercise_id: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> List[HistorySection]:
        translator.set_language(self.settings.get_text("language", "en"))
        records = self.records.fetch_all(
            "date", True, user_id=user_id, exercise_id=exercise_id
        )
        return group_by_day(records, self.timezone(), today, translator)
