import os
import sys
import csv
import io
import json

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
from record_service import RecordService


def _args(tmp_path, *rest):
    return ["--db", str(tmp_path / "cli.db"), "--yaml", str(tmp_path / "cli.yaml"), *rest]


def test_add_and_log(tmp_path, capsys):
    assert cli.main(_args(tmp_path, "add-user", "Alex")) == 0
    assert cli.main(_args(tmp_path, "add-exercise", "Running", "--type", "distance")) == 0
    capsys.readouterr()
    code = cli.main(
        _args(tmp_path, "log", "--user", "Alex", "--exercise", "Running", "--distance", "5.2")
    )
    assert code == 0
    assert "Saved record" in capsys.readouterr().out

    service = RecordService.open(str(tmp_path / "cli.db"), str(tmp_path / "cli.yaml"))
    record = service.records.fetch_all()[0]
    assert record.distance == 5.2
    assert record.is_indoor is False
    assert service.selection.last_user_id() == record.user_id


def test_log_refused(tmp_path, capsys):
    cli.main(_args(tmp_path, "add-user", "Alex"))
    cli.main(_args(tmp_path, "add-exercise", "Bench"))
    code = cli.main(_args(tmp_path, "log", "--user", "Alex", "--exercise", "Bench", "--reps", "5"))
    assert code == 1
    assert "refused" in capsys.readouterr().out
    code = cli.main(_args(tmp_path, "log", "--user", "Nobody", "--exercise", "Bench", "--weight", "1"))
    assert code == 1


def test_demo_history_and_export(tmp_path, capsys):
    assert cli.main(_args(tmp_path, "demo")) == 0
    assert "Seed data inserted" in capsys.readouterr().out
    cli.main(_args(tmp_path, "demo"))
    assert "already contains" in capsys.readouterr().out

    cli.main(_args(tmp_path, "history"))
    out = capsys.readouterr().out
    assert "Today" in out
    assert "Yesterday" in out
    assert "25 reps" in out
    assert "5.2 km, outdoors" in out

    cli.main(_args(tmp_path, "export", "--fmt", "json"))
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 4
    assert {r["user"] for r in rows} == {"Alex", "Sam"}

    out_file = tmp_path / "records.csv"
    cli.main(_args(tmp_path, "export", "--out", str(out_file)))
    reader = csv.DictReader(io.StringIO(out_file.read_text(encoding="utf-8")))
    assert len(list(reader)) == 4


def test_empty_history(tmp_path, capsys):
    cli.main(_args(tmp_path, "history"))
    assert "No workouts yet" in capsys.readouterr().out


def test_backup_restore_and_migrate(tmp_path, capsys):
    cli.main(_args(tmp_path, "add-user", "Alex"))
    backup = tmp_path / "backup.db"
    cli.main(_args(tmp_path, "backup", "--out", str(backup)))
    assert backup.exists()
    cli.main(_args(tmp_path, "add-user", "Sam"))
    cli.main(_args(tmp_path, "restore", "--in", str(backup)))
    service = RecordService.open(str(tmp_path / "cli.db"), str(tmp_path / "cli.yaml"))
    assert [u.name for u in service.users.fetch_all()] == ["Alex"]
    capsys.readouterr()
    cli.main(_args(tmp_path, "migrate"))
    assert "Schema version: 2" in capsys.readouterr().out
