import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from conftest import build_session
from session_models import LastSetStat
from tools import MathTools


class MathToolsTestCase(unittest.TestCase):
    def test_round_half_up(self) -> None:
        self.assertEqual(MathTools.round_half_up(12.5), 13)
        self.assertEqual(MathTools.round_half_up(2.5), 3)
        self.assertEqual(MathTools.round_half_up(62.4), 62)
        self.assertEqual(MathTools.round_half_up(0), 0)

    def test_estimated_1rm(self) -> None:
        self.assertAlmostEqual(MathTools.estimated_1rm(100, 5), 116.67)
        self.assertAlmostEqual(MathTools.estimated_1rm(60, 10), 80.0)
        self.assertEqual(MathTools.estimated_1rm(140, 1), 140.0)

    def test_estimated_1rm_without_estimate(self) -> None:
        self.assertEqual(MathTools.estimated_1rm(0, 5), 0.0)
        self.assertEqual(MathTools.estimated_1rm(100, 0), 0.0)
        self.assertEqual(MathTools.estimated_1rm(None, 5), 0.0)
        self.assertEqual(MathTools.estimated_1rm(-20, 5), 0.0)

    def test_volume(self) -> None:
        sets = [{"weight": 100, "reps": 5}, {"weight": 50, "reps": 10}]
        self.assertEqual(MathTools.volume(sets), 1000)
        self.assertEqual(MathTools.volume([]), 0.0)
        partial = sets + [{"weight": 80, "reps": None}, {"weight": "x", "reps": 3}]
        self.assertEqual(MathTools.volume(partial), 1000)

    def test_progress_percent(self) -> None:
        session = build_session([(60, 3)])
        self.assertEqual(MathTools.progress_percent(session), 0)
        session.exercises[0].sets[0].completed = True
        self.assertEqual(MathTools.progress_percent(session), 33)
        for s in session.exercises[0].sets:
            s.completed = True
        self.assertEqual(MathTools.progress_percent(session), 100)
        self.assertEqual(MathTools.progress_percent(None), 0)
        self.assertEqual(MathTools.progress_percent(build_session([(60, 0)])), 0)

    def test_progress_rounds_halves_up(self) -> None:
        session = build_session([(60, 8)])
        session.exercises[0].sets[0].completed = True
        self.assertEqual(MathTools.progress_percent(session), 13)
        for s in session.exercises[0].sets[1:5]:
            s.completed = True
        self.assertEqual(MathTools.progress_percent(session), 63)

    def test_overload_delta(self) -> None:
        previous = LastSetStat(weight=100.0, reps=8, set_number=1)
        self.assertEqual(
            MathTools.overload_delta(102.5, 8, previous), {"weight": 2.5, "reps": 0}
        )
        self.assertIsNone(MathTools.overload_delta(102.5, 8, None))
        self.assertIsNone(MathTools.overload_delta(None, 8, previous))

    def test_format_time(self) -> None:
        self.assertEqual(MathTools.format_time(0), "00:00")
        self.assertEqual(MathTools.format_time(75), "01:15")
        self.assertEqual(MathTools.format_time(3599), "59:59")
        self.assertEqual(MathTools.format_time(3723), "1:02:03")
        self.assertEqual(MathTools.format_time(-5), "00:00")


if __name__ == "__main__":
    unittest.main()
