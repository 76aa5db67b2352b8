import os
import sys
import sqlite3
import datetime
import unittest
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import ExerciseType
from record_form import RecordForm, build_record
from record_service import SAVE_ERROR_MESSAGE, RecordSaveError, RecordService


class RecordServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_service.db"
        self.yaml_path = "test_service.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.service = RecordService.open(self.db_path, self.yaml_path)
        self.events: list[dict] = []
        self.service.subscribe(self.events.append)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_save_notifies_listeners(self) -> None:
        alex = self.service.add_user("Alex")
        bench = self.service.add_exercise("Bench Press")
        record = build_record(alex, bench, weight=80, reps=5, series=3)
        record_id = self.service.save(record)
        self.assertEqual(record_id, record.id)
        self.assertEqual(
            [e["type"] for e in self.events],
            ["user_added", "exercise_added", "record_added"],
        )
        self.assertEqual(self.events[-1]["id"], record.id)
        self.assertEqual(self.service.records.count(), 1)

    def test_refused_record_stores_nothing(self) -> None:
        self.assertIsNone(self.service.save(None))
        self.assertEqual(self.service.records.count(), 0)
        self.assertEqual(self.events, [])

    def test_failing_listener_does_not_break_save(self) -> None:
        def broken(event: dict) -> None:
            raise RuntimeError("listener down")

        self.service.subscribe(broken)
        alex = self.service.add_user("Alex")
        self.assertEqual(self.events[-1]["id"], alex.id)
        self.service.unsubscribe(broken)

    def test_store_failure_raises_save_error(self) -> None:
        alex = self.service.add_user("Alex")
        bench = self.service.add_exercise("Bench Press")
        record = build_record(alex, bench, weight=80, reps=5, series=3)
        with mock.patch.object(
            self.service.records,
            "insert",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            with self.assertRaises(RecordSaveError) as ctx:
                self.service.save(record)
        self.assertEqual(str(ctx.exception), SAVE_ERROR_MESSAGE)
        self.assertNotIn("record_added", [e["type"] for e in self.events])

    def test_submit_failure_keeps_form_inputs(self) -> None:
        form = RecordForm()
        self.service.select_user(form, self.service.add_user("Alex"))
        self.service.select_exercise(form, self.service.add_exercise("Bench Press"))
        form.weight = 80
        form.reps = 5
        form.series = 3
        with mock.patch.object(
            self.service.records,
            "insert",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            self.assertIsNone(self.service.submit(form))
        self.assertEqual(form.error, SAVE_ERROR_MESSAGE)
        self.assertEqual((form.weight, form.reps, form.series), (80, 5, 3))
        self.assertIsNone(form.saved_at)

        form.dismiss_error()
        record = self.service.submit(form)
        self.assertIsNotNone(record)
        self.assertIsNotNone(form.saved_at)
        self.assertEqual(self.service.records.fetch(record.id).weight, 80)

    def test_submit_refused_form(self) -> None:
        form = RecordForm()
        self.service.select_user(form, self.service.add_user("Alex"))
        self.service.select_exercise(
            form, self.service.add_exercise("Running", ExerciseType.DISTANCE)
        )
        self.assertIsNone(self.service.submit(form))
        self.assertIsNone(form.error)
        self.assertEqual(self.service.records.count(), 0)

    def test_restore_selection(self) -> None:
        form = RecordForm()
        sam = self.service.add_user("Sam")
        self.service.add_user("Alex")
        pushups = self.service.add_exercise("Push-ups", ExerciseType.REPS_ONLY)
        self.service.select_user(form, sam)
        self.service.select_exercise(form, pushups)

        again = RecordService.open(self.db_path, self.yaml_path)
        restored = again.restore_selection(RecordForm())
        self.assertEqual(restored.user.id, sam.id)
        self.assertEqual(restored.exercise.id, pushups.id)
        self.assertEqual(restored.reps, 1)

    def test_new_form_uses_weight_step_setting(self) -> None:
        self.service.settings.set_float("weight_step", 5.0)
        form = self.service.new_form()
        form.step("weight")
        self.assertEqual(form.weight, 5.0)

        restored = self.service.restore_selection()
        restored.step("weight")
        self.assertEqual(restored.weight, 5.0)

    def test_deleting_user_cascades_and_notifies(self) -> None:
        alex = self.service.add_user("Alex")
        bench = self.service.add_exercise("Bench Press")
        self.service.save(build_record(alex, bench, weight=80, reps=5, series=3))
        self.service.delete_user(alex.id)
        self.assertEqual(self.service.records.count(), 0)
        self.assertEqual(self.events[-1], {"type": "user_deleted", "id": alex.id})

    def test_type_change_keeps_old_records(self) -> None:
        alex = self.service.add_user("Alex")
        cardio = self.service.add_exercise("Cardio")
        record = build_record(alex, cardio, weight=20, reps=10, series=2)
        self.service.save(record)
        self.service.update_exercise(cardio.id, exercise_type=ExerciseType.DISTANCE)
        stored = self.service.records.fetch(record.id)
        self.assertEqual((stored.weight, stored.reps, stored.series), (20, 10, 2))
        self.assertFalse(stored.is_distance_entry)

    def test_history_groups_by_day(self) -> None:
        alex = self.service.add_user("Alex")
        bench = self.service.add_exercise("Bench Press")
        now = datetime.datetime.now(datetime.timezone.utc)
        yesterday = now - datetime.timedelta(days=1)
        self.service.save(build_record(alex, bench, 60, 5, 3, date=yesterday))
        self.service.save(build_record(alex, bench, 70, 5, 3, date=now))
        sections = self.service.history(today=now.date())
        self.assertEqual([s.title for s in sections], ["Today", "Yesterday"])
        self.assertEqual(sections[0].records[0].weight, 70)


if __name__ == "__main__":
    unittest.main()
