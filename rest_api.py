import datetime
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Header, Depends, Query

from db import (
    ExerciseCatalogRepository,
    WorkoutSessionRepository,
    ExerciseSessionRepository,
    SetSessionRepository,
)
from session_models import (
    SET_FIELDS,
    ExerciseCompletion,
    ExerciseDefinition,
    ExerciseEntry,
    LastSetStat,
    NotesUpdate,
    SessionStart,
    SetEntry,
    SetUpdate,
    WorkoutCompletion,
    WorkoutSession,
)
from config import APP_VERSION
from settings_schema import load_settings

logger = structlog.get_logger(__name__)


def _parse_id(value: str, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=404, detail=f"{what} not found")


class WorkoutSessionAPI:
    """Provides REST endpoints for the active workout session."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        *,
        api_token: Optional[str] = None,
    ) -> None:
        self.db_path = db_path
        self.settings = load_settings(yaml_path)
        self.api_token = api_token if api_token is not None else self.settings.api_token
        self.exercise_catalog = ExerciseCatalogRepository(db_path)
        self.workout_sessions = WorkoutSessionRepository(db_path)
        self.exercise_sessions = ExerciseSessionRepository(db_path)
        self.sets = SetSessionRepository(db_path)
        self.app = FastAPI(
            title="Workout Session API",
            version=APP_VERSION,
            description="REST API backing the active workout session screen",
            dependencies=[Depends(self._require_token)],
        )
        self._setup_routes()

    def _require_token(self, authorization: Optional[str] = Header(None)) -> None:
        if not self.api_token:
            return
        if authorization != f"Bearer {self.api_token}":
            raise HTTPException(status_code=401, detail="unauthorized")

    def session_payload(self, session_id: int) -> Optional[dict]:
        """Return the nested wire representation of a workout session."""
        detail = self.workout_sessions.fetch_detail(session_id)
        if detail is None:
            return None
        sid, notes, created_at, mode, _completed, _duration = detail
        entries: list[ExerciseEntry] = []
        for es_id, es_completed, ex_id, name, group, equipment, rest in (
            self.exercise_sessions.fetch_for_session(sid)
        ):
            sets = [
                SetEntry(
                    id=str(set_id),
                    set_number=number,
                    weight=weight,
                    reps=reps,
                    rir=rir,
                    tempo=tempo,
                    completed=bool(done),
                    is_drop_set=bool(drop),
                )
                for set_id, number, weight, reps, rir, tempo, done, drop in (
                    self.sets.fetch_for_exercise_session(es_id)
                )
            ]
            entries.append(
                ExerciseEntry(
                    id=str(es_id),
                    exercise=ExerciseDefinition(
                        id=str(ex_id),
                        name=name,
                        muscle_group=group,
                        equipment=equipment,
                        rest_time=rest,
                    ),
                    completed=bool(es_completed),
                    sets=sets,
                )
            )
        session = WorkoutSession(
            id=str(sid),
            notes=notes,
            created_at=datetime.datetime.fromisoformat(created_at),
            workout_mode=mode,
            exercises=entries,
        )
        return session.to_wire()

    def _setup_routes(self) -> None:
        @self.app.post(
            "/exercises",
            summary="Add exercise definition",
            description="Register an exercise that sessions can include.",
        )
        def add_exercise(
            name: str,
            muscle_group: str = "",
            equipment: str = "",
            rest_time: Optional[int] = None,
        ):
            try:
                ex_id = self.exercise_catalog.add(name, muscle_group, equipment, rest_time)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": str(ex_id)}

        @self.app.post(
            "/workout-session",
            summary="Start workout session",
            description="Create a session with the given exercises and empty sets.",
        )
        def start_session(body: SessionStart):
            exercise_ids = []
            for planned in body.exercises:
                ex_id = _parse_id(planned.exercise_id, "exercise")
                if self.exercise_catalog.fetch_detail(ex_id) is None:
                    raise HTTPException(status_code=404, detail="exercise not found")
                exercise_ids.append((ex_id, planned))
            sid = self.workout_sessions.create(body.notes, body.workout_mode.value)
            for ex_id, planned in exercise_ids:
                es_id = self.exercise_sessions.add(sid, ex_id)
                self.sets.bulk_add(es_id, planned.sets, planned.is_drop_set)
            logger.info("workout_session_started", session_id=sid, exercises=len(exercise_ids))
            return self.session_payload(sid)

        @self.app.get("/workout-session/active")
        def get_active_session():
            sid = self.workout_sessions.fetch_active()
            if sid is None:
                raise HTTPException(status_code=404, detail="no active workout session")
            return self.session_payload(sid)

        @self.app.put(
            "/workout-session/set",
            summary="Update set",
            description="Partially update a set; fields omitted from the body are kept.",
        )
        def update_set(body: SetUpdate):
            set_id = _parse_id(body.set_id, "set")
            if self.sets.fetch_detail(set_id) is None:
                raise HTTPException(status_code=404, detail="set not found")
            fields = {
                name: getattr(body, name)
                for name in SET_FIELDS
                if name in body.model_fields_set
            }
            try:
                self.sets.update(set_id, **fields)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            detail = self.sets.fetch_detail(set_id)
            return SetEntry(
                id=str(detail["id"]),
                set_number=detail["set_number"],
                weight=detail["weight"],
                reps=detail["reps"],
                rir=detail["rir"],
                tempo=detail["tempo"],
                completed=detail["completed"],
                is_drop_set=detail["is_drop_set"],
            ).to_wire()

        @self.app.put("/workout-session/exercise")
        def complete_exercise(body: ExerciseCompletion):
            es_id = _parse_id(body.exercise_session_id, "exercise session")
            if not self.exercise_sessions.exists(es_id):
                raise HTTPException(status_code=404, detail="exercise session not found")
            if body.completed:
                self.exercise_sessions.complete(es_id)
            return {"id": str(es_id), "completed": body.completed}

        @self.app.get("/workout-session/last")
        def last_session_stats(
            exercise_ids: Optional[str] = Query(None, alias="exerciseIds"),
        ):
            if not exercise_ids:
                raise HTTPException(status_code=400, detail="exerciseIds is required")
            stats: dict[str, list[dict]] = {}
            for raw in exercise_ids.split(","):
                raw = raw.strip()
                if not raw.isdigit():
                    continue
                es_id = self.exercise_sessions.last_completed_for_exercise(int(raw))
                if es_id is None:
                    continue
                rows = self.sets.fetch_completed(es_id)
                if rows:
                    stats[raw] = [
                        LastSetStat(
                            weight=weight or 0.0, reps=reps or 0, set_number=number
                        ).to_wire()
                        for weight, reps, number in rows
                    ]
            return stats

        @self.app.put("/workout-session/notes")
        def save_notes(body: NotesUpdate):
            sid = _parse_id(body.workout_session_id, "workout session")
            if self.workout_sessions.fetch_detail(sid) is None:
                raise HTTPException(status_code=404, detail="workout session not found")
            self.workout_sessions.set_notes(sid, body.notes)
            return {"status": "saved"}

        @self.app.put("/workout-session/complete")
        def complete_session(body: WorkoutCompletion):
            sid = _parse_id(body.workout_session_id, "workout session")
            if self.workout_sessions.fetch_detail(sid) is None:
                raise HTTPException(status_code=404, detail="workout session not found")
            try:
                self.workout_sessions.complete(sid, body.duration, body.notes)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            logger.info("workout_session_completed", session_id=sid, duration=body.duration)
            return self.session_payload(sid)

        @self.app.delete("/workout-session/{session_id}")
        def delete_session(session_id: str):
            sid = _parse_id(session_id, "workout session")
            if self.workout_sessions.fetch_detail(sid) is None:
                raise HTTPException(status_code=404, detail="workout session not found")
            self.workout_sessions.delete(sid)
            logger.info("workout_session_deleted", session_id=sid)
            return {"success": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(WorkoutSessionAPI().app)
