import datetime
import logging

from config import DEFAULT_DB_PATH, DEFAULT_YAML_PATH
from models import ExerciseType, utcnow
from record_form import build_record
from record_service import RecordService


def seed(db_path: str = DEFAULT_DB_PATH, yaml_path: str = DEFAULT_YAML_PATH) -> bool:
    """Populate an empty database with demo users, exercises and records."""
    service = RecordService.open(db_path, yaml_path)
    if service.records.count():
        print("Database already contains records")
        return False

    alex = service.add_user("Alex", avatar_symbol="figure.run")
    sam = service.add_user("Sam", avatar_symbol="dumbbell.fill")
    bench = service.add_exercise("Bench Press")
    running = service.add_exercise("Running", ExerciseType.DISTANCE)
    pushups = service.add_exercise("Push-ups", ExerciseType.REPS_ONLY)

    now = utcnow()
    yesterday = now - datetime.timedelta(days=1)
    service.save(build_record(sam, bench, weight=80, reps=5, series=3, date=yesterday))
    service.save(build_record(alex, running, distance=5.2, is_indoor=False, date=yesterday))
    service.save(build_record(alex, pushups, reps=25, date=now))
    service.save(build_record(sam, bench, weight=82.5, reps=5, series=3, date=now))
    print("Seed data inserted")
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
