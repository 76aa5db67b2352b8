import logging
from typing import Iterable, Optional

from db import SettingsRepository
from models import Exercise, User

logger = logging.getLogger(__name__)

LAST_USER_KEY = "lastSelectedUserID"
LAST_EXERCISE_KEY = "lastSelectedExerciseID"


class SelectionMemory:
    """Remember the last selected user and exercise across sessions."""

    def __init__(self, settings: SettingsRepository) -> None:
        self.settings = settings

    def remember_user(self, user: User) -> None:
        self.settings.set_text(LAST_USER_KEY, user.id)

    def remember_exercise(self, exercise: Exercise) -> None:
        self.settings.set_text(LAST_EXERCISE_KEY, exercise.id)

    def last_user_id(self) -> Optional[str]:
        return self.settings.get_optional(LAST_USER_KEY)

    def last_exercise_id(self) -> Optional[str]:
        return self.settings.get_optional(LAST_EXERCISE_KEY)

    def restore_user(self, users: Iterable[User]) -> Optional[User]:
        user_id = self.last_user_id()
        if user_id is None:
            return None
        match = next((u for u in users if u.id == user_id), None)
        if match is None:
            logger.debug("Last selected user %s no longer exists", user_id)
        return match

    def restore_exercise(self, exercises: Iterable[Exercise]) -> Optional[Exercise]:
        exercise_id = self.last_exercise_id()
        if exercise_id is None:
            return None
        match = next((e for e in exercises if e.id == exercise_id), None)
        if match is None:
            logger.debug("Last selected exercise %s no longer exists", exercise_id)
        return match
