import asyncio
import logging
from typing import Optional
from fastapi import (
    FastAPI,
    HTTPException,
    Response,
    APIRouter,
    Request,
    WebSocket,
)
from config import DEFAULT_DB_PATH, DEFAULT_YAML_PATH
from db import (
    UserRepository,
    ExerciseRepository,
    WorkoutRecordRepository,
    AsyncWorkoutRecordRepository,
    SettingsRepository,
)
from avatar_service import AvatarService, PRESET_AVATARS
from history import history_row
from models import ExerciseType, User, Exercise, WorkoutRecord, to_timestamp
from record_form import build_record
from record_service import RecordService, RecordSaveError, SAVE_ERROR_TITLE
from settings_schema import validate_settings

logger = logging.getLogger(__name__)


def _user_json(user: User, avatars: AvatarService) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "created_at": to_timestamp(user.created_at),
        "avatar": avatars.describe(user),
    }


def _exercise_json(exercise: Exercise) -> dict:
    return {
        "id": exercise.id,
        "name": exercise.name,
        "created_at": to_timestamp(exercise.created_at),
        "exercise_type": exercise.exercise_type.value,
    }


def _record_json(record: WorkoutRecord) -> dict:
    data = record.to_dict()
    data["is_distance_entry"] = record.is_distance_entry
    return data


def _parse_type(value: str) -> ExerciseType:
    try:
        return ExerciseType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in ExerciseType)
        raise HTTPException(
            status_code=400, detail=f"exercise_type must be one of {allowed}"
        )


class WorkoutLogAPI:
    """Provides REST endpoints for workout logging."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        yaml_path: str = DEFAULT_YAML_PATH,
    ) -> None:
        self.settings = SettingsRepository(db_path, yaml_path)
        self.users = UserRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.records = WorkoutRecordRepository(db_path)
        self.async_records = AsyncWorkoutRecordRepository(db_path)
        self.avatars = AvatarService(self.users, self.settings)
        self.service = RecordService(
            self.users, self.exercises, self.records, self.settings
        )
        self.watchers: list[WebSocket] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self.service.subscribe(self._broadcast_event)
        self.app = FastAPI(
            title="TopWeight API",
            description="REST API for logging workouts per athlete",
        )
        self._setup_routes()

    async def _broadcast(self, event: dict) -> None:
        for ws in list(self.watchers):
            try:
                await ws.send_json(event)
            except Exception:
                logger.debug("Dropping watcher after failed send")
                if ws in self.watchers:
                    self.watchers.remove(ws)

    def _broadcast_event(self, event: dict) -> None:
        if not self.watchers or self._loop is None:
            return
        asyncio.run_coroutine_threadsafe(self._broadcast(event), self._loop)

    def _lookup_user(self, user_id: str) -> User:
        try:
            return self.users.fetch(user_id)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))

    def _lookup_exercise(self, exercise_id: str) -> Exercise:
        try:
            return self.exercises.fetch(exercise_id)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/users", tags=["Users"])
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        records_router = APIRouter(prefix="/records", tags=["Records"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.records.count()
                return {"status": "ok"}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.websocket("/ws/updates")
        async def updates_socket(ws: WebSocket):
            self._loop = asyncio.get_running_loop()
            self.watchers.append(ws)
            await ws.accept()
            try:
                while True:
                    await ws.receive_text()
            except Exception:
                logger.debug("Watcher disconnected")
            finally:
                if ws in self.watchers:
                    self.watchers.remove(ws)

        @users_router.post("", summary="Create user")
        def create_user(name: str, avatar_symbol: str | None = None):
            if avatar_symbol is not None and avatar_symbol not in PRESET_AVATARS:
                raise HTTPException(status_code=400, detail="unknown avatar")
            try:
                user = self.service.add_user(name, avatar_symbol=avatar_symbol)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": user.id}

        @users_router.get("", summary="List users")
        def list_users():
            return [_user_json(u, self.avatars) for u in self.users.fetch_all()]

        @users_router.get("/{user_id}")
        def get_user(user_id: str):
            return _user_json(self._lookup_user(user_id), self.avatars)

        @users_router.put("/{user_id}/name")
        def rename_user(user_id: str, name: str):
            self._lookup_user(user_id)
            try:
                self.service.rename_user(user_id, name)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @users_router.delete("/{user_id}")
        def delete_user(user_id: str):
            self._lookup_user(user_id)
            self.service.delete_user(user_id)
            return {"status": "deleted"}

        @users_router.put("/{user_id}/photo")
        async def upload_photo(user_id: str, request: Request):
            self._lookup_user(user_id)
            data = await request.body()
            if not data:
                raise HTTPException(status_code=400, detail="photo is empty")
            try:
                self.avatars.set_photo(user_id, data)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            self.service.notify("user_updated", user_id)
            return {"status": "updated"}

        @users_router.put("/{user_id}/avatar")
        def set_avatar(user_id: str, symbol: str):
            self._lookup_user(user_id)
            try:
                self.avatars.set_symbol(user_id, symbol)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            self.service.notify("user_updated", user_id)
            return {"status": "updated"}

        @users_router.delete("/{user_id}/avatar")
        def clear_avatar(user_id: str):
            self._lookup_user(user_id)
            self.avatars.clear(user_id)
            self.service.notify("user_updated", user_id)
            return {"status": "cleared"}

        @users_router.get("/{user_id}/avatar")
        def get_avatar(user_id: str):
            user = self._lookup_user(user_id)
            image = self.avatars.image_for(user)
            if image is None:
                return self.avatars.describe(user)
            data, media_type = image
            return Response(content=data, media_type=media_type)

        @self.app.get("/avatars/presets")
        def list_presets():
            return PRESET_AVATARS

        @exercises_router.post("", summary="Create exercise")
        def create_exercise(name: str, exercise_type: str = "strength"):
            kind = _parse_type(exercise_type)
            try:
                exercise = self.service.add_exercise(name, kind)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": exercise.id}

        @exercises_router.get("", summary="List exercises")
        def list_exercises():
            return [_exercise_json(e) for e in self.exercises.fetch_all()]

        @exercises_router.get("/{exercise_id}")
        def get_exercise(exercise_id: str):
            return _exercise_json(self._lookup_exercise(exercise_id))

        @exercises_router.put("/{exercise_id}")
        def update_exercise(
            exercise_id: str,
            name: str | None = None,
            exercise_type: str | None = None,
        ):
            self._lookup_exercise(exercise_id)
            kind = _parse_type(exercise_type) if exercise_type is not None else None
            try:
                self.service.update_exercise(exercise_id, name, kind)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @exercises_router.delete("/{exercise_id}")
        def delete_exercise(exercise_id: str):
            self._lookup_exercise(exercise_id)
            self.service.delete_exercise(exercise_id)
            return {"status": "deleted"}

        @records_router.post(
            "",
            summary="Log record",
            description="Validate the inputs against the exercise type and store a record.",
        )
        def create_record(
            user_id: str | None = None,
            exercise_id: str | None = None,
            weight: float = 0.0,
            reps: int = 0,
            series: int = 0,
            distance: float = 0.0,
            is_indoor: bool = False,
        ):
            if not user_id or not exercise_id:
                raise HTTPException(
                    status_code=400, detail="user and exercise must be selected"
                )
            user = self._lookup_user(user_id)
            exercise = self._lookup_exercise(exercise_id)
            record = build_record(
                user, exercise, weight, reps, series, distance, is_indoor
            )
            if record is None:
                raise HTTPException(
                    status_code=400,
                    detail=f"inputs are not valid for a {exercise.exercise_type.value} exercise",
                )
            try:
                self.service.save(record)
            except RecordSaveError as e:
                raise HTTPException(
                    status_code=503, detail=f"{SAVE_ERROR_TITLE}: {e}"
                )
            return _record_json(record)

        @records_router.get("", summary="List records")
        async def list_records(
            user_id: str | None = None,
            exercise_id: str | None = None,
            descending: bool = True,
            limit: int | None = None,
            offset: int | None = None,
        ):
            records = await self.async_records.fetch_all_records(
                descending,
                user_id=user_id,
                exercise_id=exercise_id,
                limit=limit,
                offset=offset,
            )
            return [_record_json(r) for r in records]

        @records_router.get("/{record_id}")
        async def get_record(record_id: str):
            try:
                record = await self.async_records.fetch(record_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return _record_json(record)

        @records_router.delete("/{record_id}")
        def delete_record(record_id: str):
            try:
                self.service.delete_record(record_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @self.app.get(
            "/history",
            summary="Workout history",
            description="Records grouped by local calendar day, most recent first.",
        )
        def history(user_id: str | None = None, exercise_id: str | None = None):
            users = {u.id: u for u in self.users.fetch_all()}
            exercises = {e.id: e for e in self.exercises.fetch_all()}
            tz = self.service.timezone()
            time_format = self.settings.get_text("time_format", "24h")
            sections = self.service.history(user_id, exercise_id)
            return [
                {
                    "title": section.title,
                    "date": section.day.isoformat(),
                    "records": [
                        vars(history_row(r, users, exercises, tz, time_format))
                        for r in section.records
                    ],
                }
                for section in sections
            ]

        @self.app.get("/selection")
        def get_selection():
            user = self.service.selection.restore_user(self.users.fetch_all())
            exercise = self.service.selection.restore_exercise(
                self.exercises.fetch_all()
            )
            return {
                "user_id": user.id if user else None,
                "exercise_id": exercise.id if exercise else None,
            }

        @self.app.put("/selection")
        def set_selection(
            user_id: Optional[str] = None, exercise_id: Optional[str] = None
        ):
            if user_id is not None:
                self.service.selection.remember_user(self._lookup_user(user_id))
            if exercise_id is not None:
                self.service.selection.remember_exercise(
                    self._lookup_exercise(exercise_id)
                )
            return {"status": "updated"}

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.post("/settings")
        def update_settings(
            timezone: str | None = None,
            time_format: str | None = None,
            language: str | None = None,
        ):
            updates = {
                k: v
                for k, v in {
                    "timezone": timezone,
                    "time_format": time_format,
                    "language": language,
                }.items()
                if v is not None
            }
            try:
                validate_settings(updates)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            for key, value in updates.items():
                self.settings.set_text(key, value)
            return {"status": "updated"}

        self.app.include_router(users_router)
        self.app.include_router(exercises_router)
        self.app.include_router(records_router)


api = WorkoutLogAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
