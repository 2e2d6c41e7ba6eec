import os
import sys
import unittest

import pytest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import APIError, AuthenticationError, WorkoutSessionClient
from rest_api import WorkoutSessionAPI
from settings_schema import SyncSettings
from synchronizer import ActiveWorkoutController


def _start_session(api: WorkoutSessionAPI, rest_time: int = 60, sets: int = 1) -> dict:
    ex_id = api.exercise_catalog.add("Squat", "Legs", "Barbell", rest_time)
    sid = api.workout_sessions.create("Leg day", "simple")
    es_id = api.exercise_sessions.add(sid, ex_id)
    api.sets.bulk_add(es_id, sets)
    return api.session_payload(sid)


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.api = WorkoutSessionAPI(db_path=self.db_path, yaml_path="missing.yaml")
        self.client = WorkoutSessionClient(
            base_url="http://testserver", session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_no_active_session_raises(self) -> None:
        with self.assertRaises(APIError) as ctx:
            self.client.fetch_active_session()
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.detail, "no active workout session")
        self.assertNotIsInstance(ctx.exception, AuthenticationError)

    def test_session_round_trip(self) -> None:
        payload = _start_session(self.api, sets=2)
        session = self.client.fetch_active_session()
        self.assertEqual(session.id, payload["id"])
        self.assertEqual(session.exercises[0].exercise.rest_time, 60)
        set_id = session.exercises[0].sets[0].id

        entry = self.client.update_set(
            {"setId": set_id, "weight": 120.0, "reps": 5, "rir": None, "tempo": None}
        )
        self.assertEqual((entry.weight, entry.reps), (120.0, 5))
        self.assertTrue(entry.completed)

        es_id = session.exercises[0].id
        self.assertEqual(self.client.complete_exercise(es_id), {"id": es_id, "completed": True})
        self.assertEqual(self.client.save_notes(session.id, "Deep"), {"status": "saved"})
        done = self.client.complete_workout(session.id, duration=50)
        self.assertEqual(done["notes"], "Deep")

        stats = self.client.last_session_stats([session.exercises[0].exercise.id])
        rows = stats[session.exercises[0].exercise.id]
        self.assertEqual([(r.weight, r.reps, r.set_number) for r in rows], [(120.0, 5, 1), (0.0, 0, 2)])

        self.assertEqual(self.client.discard_workout(session.id), {"success": True})

    def test_validation_error(self) -> None:
        with self.assertRaises(APIError) as ctx:
            self.client.update_set({"weight": 10})
        self.assertEqual(ctx.exception.status_code, 422)
        self.assertIn("setId", ctx.exception.detail)

    def test_unauthorized_raises_authentication_error(self) -> None:
        self.api.api_token = "secret"
        with self.assertRaises(AuthenticationError) as ctx:
            self.client.fetch_active_session()
        self.assertEqual(ctx.exception.status_code, 401)

        authed = WorkoutSessionClient(
            base_url="http://testserver",
            token="secret",
            session=TestClient(self.api.app),
        )
        with self.assertRaises(APIError) as ctx:
            authed.fetch_active_session()
        self.assertEqual(ctx.exception.status_code, 404)


@pytest.fixture
def live_api(tmp_path):
    api = WorkoutSessionAPI(
        db_path=str(tmp_path / "live.db"), yaml_path=str(tmp_path / "settings.yaml")
    )
    client = WorkoutSessionClient("http://testserver", session=TestClient(api.app))
    return api, client


@pytest.mark.asyncio
async def test_typed_set_is_saved_and_starts_rest_timer(live_api):
    api, client = live_api
    payload = _start_session(api, rest_time=60, sets=1)
    settings = SyncSettings(debounce_seconds=0.01, redirect_delay_seconds=0.01)
    controller = ActiveWorkoutController(client, settings)
    session = await controller.load()
    assert session.id == payload["id"]

    entry = session.exercises[0]
    set_id = entry.sets[0].id
    controller.on_input_change(set_id, entry.id, "weight", "100")
    controller.on_input_change(set_id, entry.id, "reps", "8")
    await controller.wait_idle()

    stored = api.sets.fetch_detail(int(set_id))
    assert (stored["weight"], stored["reps"], stored["rir"], stored["tempo"]) == (100.0, 8, None, None)
    assert stored["completed"] is True
    assert controller.state.find_set(set_id).completed is True
    assert controller.progress == 100
    assert controller.rest_timer.active is True
    assert controller.rest_timer.state.time_left == 60
    assert controller.rest_timer.state.exercise_id == entry.id
    controller.close()


@pytest.mark.asyncio
async def test_expired_token_updates_replay_after_visibility(live_api):
    api, client = live_api
    _start_session(api, rest_time=0, sets=1)
    settings = SyncSettings(debounce_seconds=0.01)
    controller = ActiveWorkoutController(client, settings)
    session = await controller.load()
    entry = session.exercises[0]
    set_id = entry.sets[0].id

    api.api_token = "rotated"
    controller.on_input_change(set_id, entry.id, "weight", "70")
    controller.on_input_change(set_id, entry.id, "reps", "12")
    await controller.wait_idle()
    assert len(controller.retry_queue) == 1
    assert api.sets.fetch_detail(int(set_id))["weight"] is None

    client.headers = {"Authorization": "Bearer rotated"}
    assert await controller.on_visibility_change("visible") == 1
    assert controller.retry_queue == []
    assert api.sets.fetch_detail(int(set_id))["weight"] == 70.0
    assert controller.state.find_set(set_id).completed is True
    assert controller.rest_timer.active is False
    controller.close()
