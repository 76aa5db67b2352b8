import logging
import sqlite3
import sys

logger = logging.getLogger(__name__)

# 1: users/exercises/workout_records without type, photo or distance fields
# 2: exercise type, user photo and avatar, distance records
SCHEMA_VERSION = 2


def _columns(cur, table: str) -> list[str]:
    cur.execute(f"PRAGMA table_info({table});")
    return [r[1] for r in cur.fetchall()]


def schema_version(conn: sqlite3.Connection) -> int:
    """Return the stored schema version, treating unversioned data as version 1."""
    version = conn.execute("PRAGMA user_version;").fetchone()[0]
    if version:
        return int(version)
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='users';"
    ).fetchone()
    return 1 if row is not None else 0


def _upgrade_1_to_2(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cols = _columns(cur, "users")
    if "photo" not in cols:
        cur.execute("ALTER TABLE users ADD COLUMN photo BLOB;")
    if "avatar_symbol" not in cols:
        cur.execute("ALTER TABLE users ADD COLUMN avatar_symbol TEXT;")
    cols = _columns(cur, "exercises")
    if "exercise_type" not in cols:
        cur.execute(
            "ALTER TABLE exercises ADD COLUMN exercise_type TEXT NOT NULL DEFAULT 'strength';"
        )
    cols = _columns(cur, "workout_records")
    if "distance" not in cols:
        cur.execute("ALTER TABLE workout_records ADD COLUMN distance REAL;")
    if "is_indoor" not in cols:
        cur.execute("ALTER TABLE workout_records ADD COLUMN is_indoor INTEGER;")


UPGRADES = {
    1: _upgrade_1_to_2,
}


def upgrade(conn: sqlite3.Connection, from_version: int) -> int:
    """Apply every upgrade step after ``from_version`` and return the new version."""
    version = from_version
    while version < SCHEMA_VERSION:
        step = UPGRADES.get(version)
        if step is None:
            raise RuntimeError(f"no upgrade path from schema version {version}")
        logger.info("Applying schema upgrade %s -> %s", version, version + 1)
        step(conn)
        version += 1
    conn.execute(f"PRAGMA user_version = {version};")
    return version


def migrate(db_path='workout.db') -> int:
    conn = sqlite3.connect(db_path)
    try:
        version = schema_version(conn)
        if version:
            version = upgrade(conn, version)
        conn.commit()
    finally:
        conn.close()
    return version


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    path = sys.argv[1] if len(sys.argv) > 1 else 'workout.db'
    print(f"Schema version: {migrate(path)}")
