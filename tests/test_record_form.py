import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import Exercise, ExerciseType, User
from record_form import (
    RecordForm,
    SAVED_FEEDBACK_SECONDS,
    WEIGHT_RANGE,
    DISTANCE_RANGE,
    build_record,
    can_save,
)


def _exercise(name: str, kind: ExerciseType) -> Exercise:
    return Exercise(name=name, exercise_type_raw=kind.value)


class BuildRecordTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.user = User(name="Alex")
        self.bench = _exercise("Bench Press", ExerciseType.STRENGTH)
        self.running = _exercise("Running", ExerciseType.DISTANCE)
        self.pushups = _exercise("Push-ups", ExerciseType.REPS_ONLY)

    def test_requires_user_and_exercise(self) -> None:
        self.assertIsNone(build_record(None, self.bench, 80, 5, 3))
        self.assertIsNone(build_record(self.user, None, 80, 5, 3))
        self.assertFalse(can_save(None, None, 80, 5, 3, 5))

    def test_strength_record(self) -> None:
        record = build_record(self.user, self.bench, weight=80, reps=5, series=3)
        self.assertIsNotNone(record)
        self.assertEqual(record.weight, 80)
        self.assertEqual(record.reps, 5)
        self.assertEqual(record.series, 3)
        self.assertIsNone(record.distance)
        self.assertFalse(record.is_distance_entry)
        self.assertEqual(record.user_id, self.user.id)
        self.assertEqual(record.exercise_id, self.bench.id)

    def test_strength_requires_all_three(self) -> None:
        for weight, reps, series in [(0, 5, 3), (80, 0, 3), (80, 5, 0), (0, 0, 0)]:
            with self.subTest(weight=weight, reps=reps, series=series):
                self.assertIsNone(
                    build_record(self.user, self.bench, weight, reps, series, distance=10)
                )

    def test_distance_record(self) -> None:
        record = build_record(
            self.user, self.running, weight=50, reps=4, series=2, distance=5.2, is_indoor=False
        )
        self.assertEqual(record.distance, 5.2)
        self.assertIs(record.is_indoor, False)
        self.assertEqual((record.weight, record.reps, record.series), (0, 0, 0))
        self.assertTrue(record.is_distance_entry)

    def test_distance_zero_is_refused(self) -> None:
        self.assertIsNone(
            build_record(self.user, self.running, weight=80, reps=5, series=3, distance=0)
        )

    def test_distance_ignores_strength_fields(self) -> None:
        record = build_record(self.user, self.running, distance=0.5, is_indoor=True)
        self.assertIsNotNone(record)
        self.assertIs(record.is_indoor, True)

    def test_reps_only_record(self) -> None:
        record = build_record(self.user, self.pushups, weight=20, reps=25, series=4)
        self.assertEqual(record.reps, 25)
        self.assertEqual(record.weight, 0)
        self.assertEqual(record.series, 0)
        self.assertIsNone(record.distance)

    def test_reps_only_requires_reps(self) -> None:
        self.assertIsNone(build_record(self.user, self.pushups, weight=20, reps=0, series=4))

    def test_unknown_type_validates_as_strength(self) -> None:
        legacy = Exercise(name="Legacy", exercise_type_raw="unknown")
        self.assertIsNone(build_record(self.user, legacy, reps=10))
        self.assertIsNotNone(build_record(self.user, legacy, 10, 10, 1))

    def test_no_upper_bounds_applied(self) -> None:
        record = build_record(self.user, self.bench, weight=750, reps=2000, series=80)
        self.assertEqual(record.weight, 750)
        self.assertEqual(record.reps, 2000)

    def test_non_finite_values_refused(self) -> None:
        inf = float("inf")
        nan = float("nan")
        for value in (inf, -inf, nan):
            with self.subTest(value=value):
                self.assertIsNone(build_record(self.user, self.running, distance=value))
                self.assertIsNone(build_record(self.user, self.bench, value, 5, 3))
                self.assertFalse(can_save(self.user, self.running, distance=value))

    def test_negative_values_refused(self) -> None:
        self.assertIsNone(build_record(self.user, self.running, distance=-5.2))
        self.assertIsNone(build_record(self.user, self.bench, -80, 5, 3))
        self.assertIsNone(build_record(self.user, self.bench, 80, -5, 3))
        self.assertIsNone(build_record(self.user, self.bench, 80, 5, -3))
        self.assertIsNone(build_record(self.user, self.pushups, reps=-25))

    def test_explicit_date(self) -> None:
        when = datetime.datetime(2024, 1, 2, 8, tzinfo=datetime.timezone.utc)
        record = build_record(self.user, self.pushups, reps=5, date=when)
        self.assertEqual(record.date, when)


class RecordFormTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.form = RecordForm()
        self.user = User(name="Alex")

    def test_selecting_exercise_resets_defaults(self) -> None:
        self.form.weight = 100
        self.form.select_exercise(_exercise("Bench", ExerciseType.STRENGTH))
        self.assertEqual((self.form.weight, self.form.reps, self.form.series), (0, 10, 1))
        self.form.distance = 8
        self.form.is_indoor = True
        self.form.select_exercise(_exercise("Run", ExerciseType.DISTANCE))
        self.assertEqual(self.form.distance, 0)
        self.assertFalse(self.form.is_indoor)
        self.form.select_exercise(_exercise("Dips", ExerciseType.REPS_ONLY))
        self.assertEqual(self.form.reps, 1)

    def test_can_save_tracks_inputs(self) -> None:
        self.assertFalse(self.form.can_save)
        self.form.select_user(self.user)
        self.form.select_exercise(_exercise("Bench", ExerciseType.STRENGTH))
        self.assertFalse(self.form.can_save)
        self.form.step("weight")
        self.assertEqual(self.form.weight, 2.5)
        self.assertTrue(self.form.can_save)

    def test_steppers_respect_ranges(self) -> None:
        self.form.step("weight", up=False)
        self.assertEqual(self.form.weight, WEIGHT_RANGE.lower)
        self.form.reps = 999
        self.form.step("reps")
        self.assertEqual(self.form.reps, 999)
        self.form.series = 1
        self.form.step("series", up=False)
        self.assertEqual(self.form.series, 1)
        self.form.distance = 99.5
        self.form.step("distance")
        self.form.step("distance")
        self.assertEqual(self.form.distance, DISTANCE_RANGE.upper)
        with self.assertRaises(ValueError):
            self.form.step("rpe")

    def test_weight_step_is_configurable(self) -> None:
        form = RecordForm(weight_step=1.25)
        form.step("weight")
        form.step("weight")
        self.assertEqual(form.weight, 2.5)
        form.step("weight", up=False)
        self.assertEqual(form.weight, 1.25)
        self.assertEqual(form.weight_range.upper, WEIGHT_RANGE.upper)

    def test_saved_feedback_expires(self) -> None:
        now = datetime.datetime(2024, 1, 1, 12, tzinfo=datetime.timezone.utc)
        self.assertFalse(self.form.show_saved(now))
        self.form.mark_saved(now)
        self.assertTrue(self.form.show_saved(now + datetime.timedelta(seconds=1)))
        later = now + datetime.timedelta(seconds=SAVED_FEEDBACK_SECONDS)
        self.assertFalse(self.form.show_saved(later))

    def test_failure_keeps_inputs(self) -> None:
        self.form.select_user(self.user)
        self.form.select_exercise(_exercise("Bench", ExerciseType.STRENGTH))
        self.form.weight = 60
        self.form.mark_failed("boom")
        self.assertEqual(self.form.error, "boom")
        self.assertEqual(self.form.weight, 60)
        self.assertTrue(self.form.can_save)
        self.form.dismiss_error()
        self.assertIsNone(self.form.error)


if __name__ == "__main__":
    unittest.main()
