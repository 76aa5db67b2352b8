import sqlite3
import aiosqlite
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional

from config import YamlConfig, APP_VERSION, DEFAULT_DB_PATH, DEFAULT_YAML_PATH
from settings_schema import validate_settings
from models import (
    User,
    Exercise,
    ExerciseType,
    WorkoutRecord,
    to_timestamp,
    utcnow,
)
import migrate

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, name, created_at, photo, avatar_symbol"
EXERCISE_COLUMNS = "id, name, created_at, exercise_type"
RECORD_COLUMNS = (
    "id, weight, reps, series, date, distance, is_indoor, user_id, exercise_id"
)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    photo BLOB,
                    avatar_symbol TEXT
                );""",
            ["id", "name", "created_at", "photo", "avatar_symbol"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    exercise_type TEXT NOT NULL DEFAULT 'strength'
                );""",
            ["id", "name", "created_at", "exercise_type"],
        ),
        "workout_records": (
            """CREATE TABLE workout_records (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    exercise_id TEXT,
                    weight REAL NOT NULL DEFAULT 0,
                    reps INTEGER NOT NULL DEFAULT 0,
                    series INTEGER NOT NULL DEFAULT 0,
                    date TEXT NOT NULL,
                    distance REAL,
                    is_indoor INTEGER,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "exercise_id",
                "weight",
                "reps",
                "series",
                "date",
                "distance",
                "is_indoor",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            version = migrate.schema_version(conn)
            if version and version < migrate.SCHEMA_VERSION:
                logger.info(
                    "Upgrading schema of %s from version %s to %s",
                    self._db_path,
                    version,
                    migrate.SCHEMA_VERSION,
                )
                migrate.upgrade(conn, version)
            conn.execute("PRAGMA foreign_keys=off;")
            conn.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")
            conn.execute(f"PRAGMA user_version = {migrate.SCHEMA_VERSION};")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        logger.info("Rebuilding table %s with columns %s", table, columns)
        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "exercise_type":
                        return "'strength'"
                    if col in ("weight", "reps", "series"):
                        return "0"
                    if col in ("created_at", "date"):
                        return f"'{to_timestamp(utcnow())}'"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "timezone": "UTC",
            "time_format": "24h",
            "language": "en",
            "weight_step": "2.5",
            "default_avatar_color": "#888888",
            "app_version": APP_VERSION,
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        await conn.execute("PRAGMA foreign_keys=on;")
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


class UserRepository(BaseRepository):
    """Repository for athlete profiles."""

    def add(
        self,
        name: str,
        photo: Optional[bytes] = None,
        avatar_symbol: Optional[str] = None,
    ) -> User:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        user = User(name=name, photo=photo, avatar_symbol=avatar_symbol)
        self.execute(
            f"INSERT INTO users ({USER_COLUMNS}) VALUES (?, ?, ?, ?, ?);",
            (
                user.id,
                user.name,
                to_timestamp(user.created_at),
                user.photo,
                user.avatar_symbol,
            ),
        )
        return user

    def fetch_all(self) -> List[User]:
        rows = super().fetch_all(
            f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, rowid DESC;"
        )
        return [User.from_row(r) for r in rows]

    def fetch(self, user_id: str) -> User:
        rows = super().fetch_all(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ?;", (user_id,)
        )
        if not rows:
            raise ValueError("user not found")
        return User.from_row(rows[0])

    def set_name(self, user_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        self.fetch(user_id)
        self.execute("UPDATE users SET name = ? WHERE id = ?;", (name, user_id))

    def set_photo(self, user_id: str, photo: bytes) -> None:
        """Store a JPEG photo; a photo replaces any preset avatar."""
        self.fetch(user_id)
        self.execute(
            "UPDATE users SET photo = ?, avatar_symbol = NULL WHERE id = ?;",
            (photo, user_id),
        )

    def set_avatar_symbol(self, user_id: str, symbol: Optional[str]) -> None:
        self.fetch(user_id)
        self.execute(
            "UPDATE users SET avatar_symbol = ?, photo = NULL WHERE id = ?;",
            (symbol, user_id),
        )

    def clear_avatar(self, user_id: str) -> None:
        self.fetch(user_id)
        self.execute(
            "UPDATE users SET photo = NULL, avatar_symbol = NULL WHERE id = ?;",
            (user_id,),
        )

    def delete(self, user_id: str) -> None:
        """Delete a user together with every record it owns."""
        self.fetch(user_id)
        with self._connection() as conn:
            conn.execute("DELETE FROM workout_records WHERE user_id = ?;", (user_id,))
            conn.execute("DELETE FROM users WHERE id = ?;", (user_id,))


class ExerciseRepository(BaseRepository):
    """Repository for exercise table operations."""

    def add(
        self, name: str, exercise_type: ExerciseType = ExerciseType.STRENGTH
    ) -> Exercise:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        exercise = Exercise(name=name, exercise_type_raw=ExerciseType(exercise_type).value)
        self.execute(
            f"INSERT INTO exercises ({EXERCISE_COLUMNS}) VALUES (?, ?, ?, ?);",
            (
                exercise.id,
                exercise.name,
                to_timestamp(exercise.created_at),
                exercise.exercise_type_raw,
            ),
        )
        return exercise

    def fetch_all(self) -> List[Exercise]:
        rows = super().fetch_all(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises ORDER BY created_at DESC, rowid DESC;"
        )
        return [Exercise.from_row(r) for r in rows]

    def fetch(self, exercise_id: str) -> Exercise:
        rows = super().fetch_all(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE id = ?;", (exercise_id,)
        )
        if not rows:
            raise ValueError("exercise not found")
        return Exercise.from_row(rows[0])

    def set_name(self, exercise_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("name must not be empty")
        self.fetch(exercise_id)
        self.execute(
            "UPDATE exercises SET name = ? WHERE id = ?;", (name, exercise_id)
        )

    def set_type(self, exercise_id: str, exercise_type: ExerciseType) -> None:
        """Change the type; records saved earlier keep their populated fields."""
        self.fetch(exercise_id)
        self.execute(
            "UPDATE exercises SET exercise_type = ? WHERE id = ?;",
            (ExerciseType(exercise_type).value, exercise_id),
        )

    def delete(self, exercise_id: str) -> None:
        """Delete an exercise together with every record logged for it."""
        self.fetch(exercise_id)
        with self._connection() as conn:
            conn.execute(
                "DELETE FROM workout_records WHERE exercise_id = ?;", (exercise_id,)
            )
            conn.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))


class WorkoutRecordRepository(BaseRepository):
    """Repository for logged workout records."""

    _SORT_COLUMNS = {"date", "weight", "reps", "series", "distance"}

    def insert(self, record: WorkoutRecord) -> str:
        self.execute(
            f"INSERT INTO workout_records ({RECORD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                record.id,
                record.weight,
                record.reps,
                record.series,
                to_timestamp(record.date),
                record.distance,
                None if record.is_indoor is None else int(record.is_indoor),
                record.user_id,
                record.exercise_id,
            ),
        )
        return record.id

    def fetch_all(
        self,
        sort_by: str = "date",
        descending: bool = True,
        user_id: Optional[str] = None,
        exercise_id: Optional[str] = None,
    ) -> List[WorkoutRecord]:
        query = f"SELECT {RECORD_COLUMNS} FROM workout_records"
        params: list[str] = []
        where_clauses: list[str] = []
        if user_id:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if exercise_id:
            where_clauses.append("exercise_id = ?")
            params.append(exercise_id)
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        if sort_by not in self._SORT_COLUMNS:
            sort_by = "date"
        order = "DESC" if descending else "ASC"
        query += f" ORDER BY {sort_by} {order}, rowid {order};"
        rows = super().fetch_all(query, tuple(params))
        return [WorkoutRecord.from_row(r) for r in rows]

    def fetch(self, record_id: str) -> WorkoutRecord:
        rows = super().fetch_all(
            f"SELECT {RECORD_COLUMNS} FROM workout_records WHERE id = ?;",
            (record_id,),
        )
        if not rows:
            raise ValueError("record not found")
        return WorkoutRecord.from_row(rows[0])

    def delete(self, record_id: str) -> None:
        self.fetch(record_id)
        self.execute("DELETE FROM workout_records WHERE id = ?;", (record_id,))

    def count(self) -> int:
        rows = super().fetch_all("SELECT COUNT(*) FROM workout_records;")
        return int(rows[0][0]) if rows else 0


class AsyncWorkoutRecordRepository(AsyncBaseRepository):
    """Asynchronous repository for workout records."""

    async def fetch_all_records(
        self,
        descending: bool = True,
        user_id: Optional[str] = None,
        exercise_id: Optional[str] = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> List[WorkoutRecord]:
        query = f"SELECT {RECORD_COLUMNS} FROM workout_records"
        params: list[str | int] = []
        where_clauses: list[str] = []
        if user_id:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if exercise_id:
            where_clauses.append("exercise_id = ?")
            params.append(exercise_id)
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        order = "DESC" if descending else "ASC"
        query += f" ORDER BY date {order}, rowid {order}"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        if offset is not None:
            if limit is None:
                query += " LIMIT -1"
            query += " OFFSET ?"
            params.append(offset)
        query += ";"
        rows = await self.fetch_all(query, tuple(params))
        return [WorkoutRecord.from_row(r) for r in rows]

    async def fetch(self, record_id: str) -> WorkoutRecord:
        rows = await self.fetch_all(
            f"SELECT {RECORD_COLUMNS} FROM workout_records WHERE id = ?;",
            (record_id,),
        )
        if not rows:
            raise ValueError("record not found")
        return WorkoutRecord.from_row(rows[0])

    async def delete(self, record_id: str) -> None:
        rows = await self.fetch_all(
            "SELECT id FROM workout_records WHERE id = ?;",
            (record_id,),
        )
        if not rows:
            raise ValueError("record not found")
        await self.execute("DELETE FROM workout_records WHERE id = ?;", (record_id,))


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    _FLOAT_KEYS = {"weight_step"}

    def __init__(
        self, db_path: str = DEFAULT_DB_PATH, yaml_path: str = DEFAULT_YAML_PATH
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, float | str] = {}
        for k, v in rows:
            if k in self._FLOAT_KEYS:
                try:
                    result[k] = float(v)
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                if value is None:
                    continue
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def all_settings(self) -> dict:
        return self._raw_all_settings()

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_optional(self, key: str) -> Optional[str]:
        value = self.get_text(key, "")
        return value or None

    def set_text(self, key: str, value: str) -> None:
        validate_settings({key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.get_text(key, str(default)))
        except ValueError:
            return default

    def set_float(self, key: str, value: float) -> None:
        self.set_text(key, str(value))

    def delete(self, key: str) -> None:
        self.execute("DELETE FROM settings WHERE key = ?;", (key,))
        self._sync_to_yaml()
