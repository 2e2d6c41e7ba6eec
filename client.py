from typing import Optional

import requests
import structlog

from session_models import (
    ExerciseCompletion,
    LastSetStat,
    NotesUpdate,
    SetEntry,
    WorkoutCompletion,
    WorkoutSession,
)

logger = structlog.get_logger(__name__)


class APIError(Exception):
    """Raised when the workout API answers with a non-success status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"{status_code}: {detail}" if detail else str(status_code))
        self.status_code = status_code
        self.detail = detail


class AuthenticationError(APIError):
    """Raised on HTTP 401; the caller's credentials have expired."""


class WorkoutSessionClient:
    """REST client for the active workout session endpoints.

    ``session`` may be any object exposing ``get``/``put``/``post``/``delete``
    with the ``requests`` call signature, e.g. a FastAPI ``TestClient``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        token: Optional[str] = None,
        session=None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, **kwargs):
        kwargs.setdefault("headers", self.headers)
        if self.timeout is not None:
            kwargs.setdefault("timeout", self.timeout)
        resp = getattr(self.session, method)(f"{self.base_url}{path}", **kwargs)
        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            detail = payload.get("detail", "") if isinstance(payload, dict) else ""
            logger.debug(
                "workout_api_error",
                method=method.upper(),
                path=path,
                status_code=resp.status_code,
                detail=detail,
            )
            if resp.status_code == 401:
                raise AuthenticationError(resp.status_code, str(detail))
            raise APIError(resp.status_code, str(detail))
        return resp.json()

    def fetch_active_session(self) -> WorkoutSession:
        return WorkoutSession.model_validate(self._request("get", "/workout-session/active"))

    def update_set(self, data: dict) -> SetEntry:
        """Send a partial set update; ``data`` is ``{setId, weight, reps, rir, tempo}``."""
        return SetEntry.model_validate(
            self._request("put", "/workout-session/set", json=data)
        )

    def complete_exercise(self, exercise_session_id: str) -> dict:
        body = ExerciseCompletion(exercise_session_id=exercise_session_id, completed=True)
        return self._request("put", "/workout-session/exercise", json=body.to_wire())

    def last_session_stats(self, exercise_ids: list[str]) -> dict[str, list[LastSetStat]]:
        data = self._request(
            "get",
            "/workout-session/last",
            params={"exerciseIds": ",".join(exercise_ids)},
        )
        return {
            ex_id: [LastSetStat.model_validate(row) for row in rows]
            for ex_id, rows in data.items()
        }

    def save_notes(self, workout_session_id: str, notes: str) -> dict:
        body = NotesUpdate(workout_session_id=workout_session_id, notes=notes)
        return self._request("put", "/workout-session/notes", json=body.to_wire())

    def complete_workout(
        self,
        workout_session_id: str,
        duration: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> dict:
        body = WorkoutCompletion(
            workout_session_id=workout_session_id, duration=duration, notes=notes
        )
        return self._request("put", "/workout-session/complete", json=body.to_wire())

    def discard_workout(self, workout_session_id: str) -> dict:
        return self._request("delete", f"/workout-session/{workout_session_id}")
