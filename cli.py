import argparse
import csv
import io
import json
import logging
import shutil

from config import DEFAULT_YAML_PATH, default_db_path
from history import history_row
from models import ExerciseType
from record_form import build_record
from record_service import RecordService, RecordSaveError
import migrate


def make_service(db_path: str, yaml_path: str = DEFAULT_YAML_PATH) -> RecordService:
    return RecordService.open(db_path, yaml_path)


def export_records(service: RecordService, fmt: str) -> str:
    """Return every record as CSV or JSON, newest first."""
    users = {u.id: u.name for u in service.users.fetch_all()}
    exercises = {e.id: e.name for e in service.exercises.fetch_all()}
    rows = []
    for record in service.records.fetch_all():
        data = record.to_dict()
        data["user"] = users.get(record.user_id)
        data["exercise"] = exercises.get(record.exercise_id)
        rows.append(data)
    if fmt == "json":
        return json.dumps(rows, indent=2)
    buf = io.StringIO()
    fields = [
        "id",
        "date",
        "user",
        "exercise",
        "weight",
        "reps",
        "series",
        "distance",
        "is_indoor",
    ]
    writer = csv.DictWriter(buf, fieldnames=fields, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def print_history(service: RecordService) -> None:
    users = {u.id: u for u in service.users.fetch_all()}
    exercises = {e.id: e for e in service.exercises.fetch_all()}
    tz = service.timezone()
    time_format = service.settings.get_text("time_format", "24h")
    sections = service.history()
    if not sections:
        print("No workouts yet")
        return
    for section in sections:
        print(section.title)
        for record in section.records:
            row = history_row(record, users, exercises, tz, time_format)
            print(f"  {row.time}  {row.user_name:<12} {row.exercise_name:<16} {row.detail}")


def log_record(service: RecordService, args: argparse.Namespace) -> int:
    user = next((u for u in service.users.fetch_all() if u.name == args.user), None)
    exercise = next(
        (e for e in service.exercises.fetch_all() if e.name == args.exercise), None
    )
    record = build_record(
        user,
        exercise,
        args.weight,
        args.reps,
        args.series,
        args.distance,
        args.indoor,
    )
    if record is None:
        print("Record refused: check the user, exercise and values")
        return 1
    try:
        service.save(record)
    except RecordSaveError as e:
        print(f"Could not save: {e}")
        return 1
    if user is not None and exercise is not None:
        service.selection.remember_user(user)
        service.selection.remember_exercise(exercise)
    print(f"Saved record {record.id}")
    return 0


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Workout log utility commands")
    parser.add_argument("--db", default=default_db_path())
    parser.add_argument("--yaml", default=DEFAULT_YAML_PATH)
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("demo")
    sub.add_parser("history")
    sub.add_parser("migrate")

    exp = sub.add_parser("export")
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--out", default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    add_user = sub.add_parser("add-user")
    add_user.add_argument("name")

    add_ex = sub.add_parser("add-exercise")
    add_ex.add_argument("name")
    add_ex.add_argument(
        "--type",
        dest="exercise_type",
        choices=[t.value for t in ExerciseType],
        default=ExerciseType.STRENGTH.value,
    )

    log = sub.add_parser("log")
    log.add_argument("--user", required=True)
    log.add_argument("--exercise", required=True)
    log.add_argument("--weight", type=float, default=0.0)
    log.add_argument("--reps", type=int, default=0)
    log.add_argument("--series", type=int, default=0)
    log.add_argument("--distance", type=float, default=0.0)
    log.add_argument("--indoor", action="store_true")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "demo":
        from seed_sample_data import seed

        seed(args.db, args.yaml)
    elif args.cmd == "history":
        print_history(make_service(args.db, args.yaml))
    elif args.cmd == "migrate":
        print(f"Schema version: {migrate.migrate(args.db)}")
    elif args.cmd == "export":
        data = export_records(make_service(args.db, args.yaml), args.fmt)
        if args.out:
            with open(args.out, "w", encoding="utf-8") as f:
                f.write(data)
        else:
            print(data)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "add-user":
        user = make_service(args.db, args.yaml).add_user(args.name)
        print(user.id)
    elif args.cmd == "add-exercise":
        exercise = make_service(args.db, args.yaml).add_exercise(
            args.name, ExerciseType(args.exercise_type)
        )
        print(exercise.id)
    elif args.cmd == "log":
        return log_record(make_service(args.db, args.yaml), args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
