import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import APIError
from session_models import SetEntry, WorkoutSession
from settings_schema import SyncSettings


def build_session(exercises=None, mode: str = "simple") -> WorkoutSession:
    """Return a session; ``exercises`` is a list of ``(rest_time, set_count)``."""
    if exercises is None:
        exercises = [(60, 1)]
    entries = []
    for idx, (rest_time, count) in enumerate(exercises, start=1):
        entries.append(
            {
                "id": f"ex{idx}",
                "exercise": {
                    "id": f"def{idx}",
                    "name": f"Exercise {idx}",
                    "muscleGroup": "Chest",
                    "equipment": "Barbell",
                    "restTime": rest_time,
                },
                "completed": False,
                "sets": [
                    {
                        "id": f"ex{idx}-s{n}",
                        "setNumber": n,
                        "weight": None,
                        "reps": None,
                        "completed": False,
                    }
                    for n in range(1, count + 1)
                ],
            }
        )
    return WorkoutSession.model_validate(
        {
            "id": "ws1",
            "notes": "Push day",
            "createdAt": "2024-01-01T10:00:00+00:00",
            "workoutMode": mode,
            "exercises": entries,
        }
    )


class FakeClient:
    """In-memory stand-in for WorkoutSessionClient recording every call."""

    def __init__(self, session: WorkoutSession | None = None) -> None:
        self.session = session
        self.updates: list[dict] = []
        self.failures: list[Exception | None] = []
        self.calls: list[tuple] = []
        self.load_error: Exception | None = None
        self.stats: dict = {}

    def _maybe_fail(self) -> None:
        if self.failures:
            exc = self.failures.pop(0)
            if exc is not None:
                raise exc

    def fetch_active_session(self) -> WorkoutSession:
        if self.load_error is not None:
            raise self.load_error
        if self.session is None:
            raise APIError(404, "no active workout session")
        return self.session.model_copy(deep=True)

    def update_set(self, data: dict) -> SetEntry:
        self.updates.append(dict(data))
        self._maybe_fail()
        return SetEntry(
            id=data["setId"],
            set_number=1,
            weight=data.get("weight"),
            reps=data.get("reps"),
            rir=data.get("rir"),
            tempo=data.get("tempo"),
        )

    def complete_exercise(self, exercise_session_id: str) -> dict:
        self.calls.append(("complete_exercise", exercise_session_id))
        self._maybe_fail()
        return {"id": exercise_session_id, "completed": True}

    def last_session_stats(self, exercise_ids: list[str]) -> dict:
        self.calls.append(("last_session_stats", tuple(exercise_ids)))
        self._maybe_fail()
        return self.stats

    def save_notes(self, workout_session_id: str, notes: str) -> dict:
        self.calls.append(("save_notes", workout_session_id, notes))
        self._maybe_fail()
        return {"status": "saved"}

    def complete_workout(self, workout_session_id, duration=None, notes=None) -> dict:
        self.calls.append(("complete_workout", workout_session_id, duration, notes))
        self._maybe_fail()
        return {}

    def discard_workout(self, workout_session_id: str) -> dict:
        self.calls.append(("discard_workout", workout_session_id))
        self._maybe_fail()
        return {"success": True}


@pytest.fixture
def fast_settings() -> SyncSettings:
    return SyncSettings(debounce_seconds=0.01, redirect_delay_seconds=0.01)
