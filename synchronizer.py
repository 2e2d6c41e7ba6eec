"""Keeps the active workout screen in sync with the workout API.

Every keystroke lands in the local input buffers immediately; remote
updates are debounced per set, and updates rejected with HTTP 401 wait
in a retry queue until the page becomes visible again. All state lives
on one :class:`ActiveWorkoutController` instance.
"""

import asyncio
import datetime
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from client import APIError, AuthenticationError, WorkoutSessionClient
from localization import Translator
from rest_timer import RestTimer
from session_models import (
    SET_FIELDS,
    FailedRequestEntry,
    LastSetStat,
    SetEntry,
    WorkoutSession,
)
from session_state import LocalSetState
from settings_schema import SyncSettings
from tools import MathTools

logger = structlog.get_logger(__name__)

ALWAYS_SENT_FIELDS = ("rir", "tempo")


@dataclass
class Notice:
    level: str
    title: str
    description: str = ""


class ActiveWorkoutController:
    """View-model of the active workout session screen."""

    def __init__(
        self,
        client: WorkoutSessionClient,
        settings: Optional[SyncSettings] = None,
        *,
        on_notice: Optional[Callable[[Notice], None]] = None,
        navigate: Optional[Callable[[str], None]] = None,
        translator: Optional[Translator] = None,
    ) -> None:
        self.client = client
        self.settings = settings or SyncSettings()
        self.on_notice = on_notice
        self._navigate = navigate
        if translator is None:
            translator = Translator()
            translator.set_language(self.settings.language)
        self._ = translator.gettext

        self.state = LocalSetState()
        self.rest_timer = RestTimer(on_finished=self._rest_finished)
        self.retry_queue: list[FailedRequestEntry] = []
        self.last_session_stats: dict[str, list[LastSetStat]] = {}
        self.notices: list[Notice] = []
        self.location: Optional[str] = None
        self.notes = ""
        self.start_time: Optional[datetime.datetime] = None
        self.loading = False
        self.saving = False
        self.updating: set[str] = set()

        self._debounce: dict[str, asyncio.Task] = {}
        self._inflight: set[asyncio.Task] = set()
        self._redirect: Optional[asyncio.Task] = None

    # -- notices and navigation -------------------------------------------

    def _notify(self, level: str, title: str, description: str = "") -> None:
        notice = Notice(level, self._(title), self._(description) if description else "")
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)

    def navigate(self, route: str) -> None:
        """Replace the current location with ``route``."""
        self.location = route
        if self._navigate is not None:
            self._navigate(route)

    def _schedule_redirect(self, route: str) -> None:
        if self._redirect is not None:
            self._redirect.cancel()
        self._redirect = asyncio.get_running_loop().create_task(self._redirect_later(route))

    async def _redirect_later(self, route: str) -> None:
        await asyncio.sleep(self.settings.redirect_delay_seconds)
        self.navigate(route)

    # -- session loading ---------------------------------------------------

    @property
    def session(self) -> Optional[WorkoutSession]:
        return self.state.session

    async def load(self) -> Optional[WorkoutSession]:
        """Fetch the active session; redirect to the workout list when there is none."""
        self.loading = True
        try:
            session = await asyncio.to_thread(self.client.fetch_active_session)
        except APIError as e:
            logger.info("no_active_workout", status_code=e.status_code)
            self._notify(
                "error", "No active workout", "You will be redirected to start a new one"
            )
            self._schedule_redirect(self.settings.workout_list_route)
            return None
        except Exception:
            logger.exception("active_workout_load_failed")
            self._notify("error", "Error", "Could not load the active workout")
            self.state.clear()
            return None
        finally:
            self.loading = False
        self.state.load(session, self.settings.default_tempo)
        self.notes = session.notes or ""
        self.start_time = session.created_at
        logger.info(
            "active_workout_loaded",
            session_id=session.id,
            exercises=len(session.exercises),
        )
        return session

    # -- debounced set updates --------------------------------------------

    def on_input_change(self, set_id: str, exercise_id: str, field: str, raw_value: str) -> None:
        """Record a keystroke and (re)schedule the remote update of its set."""
        self.state.set_input(set_id, field, raw_value)
        pending = self._debounce.pop(set_id, None)
        if pending is not None:
            pending.cancel()
        self._debounce[set_id] = asyncio.get_running_loop().create_task(
            self._debounced_update(set_id, exercise_id, field, raw_value)
        )

    async def _debounced_update(
        self, set_id: str, exercise_id: str, field: str, raw_value: str
    ) -> None:
        await asyncio.sleep(self.settings.debounce_seconds)
        task = asyncio.current_task()
        if self._debounce.get(set_id) is task:
            del self._debounce[set_id]
        self._inflight.add(task)
        try:
            values = self.state.combined_values(set_id, field, raw_value)
            cleared = raw_value.strip() == ""
            if not (
                self.state.has_numeric(values) or cleared or field in ALWAYS_SENT_FIELDS
            ):
                return
            await self._send_update(set_id, exercise_id, {"setId": set_id, **values})
        finally:
            self._inflight.discard(task)

    async def _send_update(
        self, set_id: str, exercise_id: str, data: dict, *, requeue: bool = False
    ) -> bool:
        self.updating.add(set_id)
        try:
            result = await asyncio.to_thread(self.client.update_set, data)
        except AuthenticationError:
            logger.warning("set_update_unauthorized", set_id=set_id, exercise_id=exercise_id)
            self.retry_queue.append(FailedRequestEntry(set_id, exercise_id, dict(data)))
            self._notify("error", "Session expired", "Please reload the page to continue")
            return False
        except Exception as e:
            status = e.status_code if isinstance(e, APIError) else None
            logger.error("set_update_failed", set_id=set_id, status_code=status, error=str(e))
            if requeue:
                self.retry_queue.append(FailedRequestEntry(set_id, exercise_id, dict(data)))
            self._notify("error", "Error", "Could not update set")
            return False
        finally:
            self.updating.discard(set_id)
        self._acknowledge(set_id, exercise_id, data, result)
        return True

    def _acknowledge(
        self, set_id: str, exercise_id: str, data: dict, result: Optional[SetEntry]
    ) -> None:
        if isinstance(result, SetEntry):
            fields = {name: getattr(result, name) for name in SET_FIELDS}
        else:
            fields = {name: data.get(name) for name in SET_FIELDS if name in data}
        target = self.state.apply_update(set_id, fields)
        if target is None:
            return
        if target.completed or target.weight is None or target.reps is None:
            return
        target.completed = True
        entry = self.state.find_exercise(exercise_id) or self.state.exercise_for_set(set_id)
        if entry is None:
            return
        rest = entry.exercise.rest_time
        if rest is not None and rest > 0:
            self.rest_timer.start(entry.id, rest)

    async def wait_idle(self) -> None:
        """Wait until no debounced or in-flight set update is left."""
        while self._debounce or self._inflight:
            await asyncio.gather(
                *list(self._debounce.values()), *list(self._inflight), return_exceptions=True
            )

    # -- retry queue -------------------------------------------------------

    async def on_visibility_change(self, visibility: str) -> int:
        """Replay queued updates when the page becomes visible; return how many were sent."""
        if visibility != "visible" or not self.retry_queue:
            return 0
        pending, self.retry_queue = self.retry_queue, []
        logger.info("retry_queue_replay", entries=len(pending))
        for entry in pending:
            await self._send_update(entry.set_id, entry.exercise_id, entry.data, requeue=True)
        return len(pending)

    # -- rest timer --------------------------------------------------------

    def _rest_finished(self, exercise_id: Optional[str]) -> None:
        self._notify("info", "Rest finished", "Time for the next set")

    def dismiss_rest_timer(self) -> None:
        self.rest_timer.dismiss()

    # -- calculators -------------------------------------------------------

    @property
    def progress(self) -> int:
        return MathTools.progress_percent(self.state.session)

    def exercise_summary(self, exercise_id: str) -> dict:
        """Return live volume and estimated 1RM figures for one exercise."""
        rows = self.state.live_sets(exercise_id)
        per_set = []
        for row in rows:
            est = MathTools.estimated_1rm(row["weight"], row["reps"])
            per_set.append({"set_number": row["set_number"], "estimated_1rm": est})
        best = max((s["estimated_1rm"] for s in per_set), default=0.0)
        return {
            "volume": MathTools.volume(rows),
            "best_1rm": best,
            "sets": per_set,
        }

    def previous_set(self, exercise_id: str, set_number: int) -> Optional[LastSetStat]:
        entry = self.state.find_exercise(exercise_id)
        if entry is None:
            return None
        for stat in self.last_session_stats.get(entry.exercise.id, []):
            if stat.set_number == set_number:
                return stat
        return None

    def overload(self, exercise_id: str, set_id: str) -> Optional[dict]:
        """Compare the typed values of a set with the same set last session."""
        target = self.state.find_set(set_id)
        if target is None:
            return None
        for row in self.state.live_sets(exercise_id):
            if row["set_number"] == target.set_number:
                return MathTools.overload_delta(
                    row["weight"], row["reps"], self.previous_set(exercise_id, target.set_number)
                )
        return None

    # -- other remote operations ------------------------------------------

    async def fetch_last_session_stats(self) -> dict[str, list[LastSetStat]]:
        session = self.state.session
        if session is None or not session.exercises:
            return {}
        ids = list(dict.fromkeys(entry.exercise.id for entry in session.exercises))
        try:
            self.last_session_stats = await asyncio.to_thread(self.client.last_session_stats, ids)
        except Exception as e:
            logger.warning("last_session_stats_failed", error=str(e))
        return self.last_session_stats

    async def complete_exercise(self, exercise_id: str) -> bool:
        try:
            await asyncio.to_thread(self.client.complete_exercise, exercise_id)
        except Exception as e:
            logger.error("exercise_completion_failed", exercise_id=exercise_id, error=str(e))
            self._notify("error", "Error", "Could not complete the exercise")
            return False
        self.state.mark_exercise_completed(exercise_id)
        self._notify("success", "Exercise completed", "The exercise has been marked as completed")
        return True

    def set_notes(self, notes: str) -> None:
        self.notes = notes

    async def save_notes(self) -> bool:
        session = self.state.session
        if session is None:
            return False
        self.saving = True
        try:
            await asyncio.to_thread(self.client.save_notes, session.id, self.notes)
        except Exception as e:
            logger.error("notes_save_failed", session_id=session.id, error=str(e))
            self._notify("error", "Error", "Could not save the notes")
            return False
        finally:
            self.saving = False
        session.notes = self.notes
        self._notify("success", "Notes saved")
        return True

    def elapsed_seconds(self, now: Optional[datetime.datetime] = None) -> int:
        if self.start_time is None:
            return 0
        if now is None:
            now = datetime.datetime.now(self.start_time.tzinfo)
        return max(int((now - self.start_time).total_seconds()), 0)

    async def complete_workout(self, now: Optional[datetime.datetime] = None) -> bool:
        """Flush pending edits, close the session and go to the workout history."""
        session = self.state.session
        if session is None:
            return False
        self.saving = True
        try:
            await self.wait_idle()
            elapsed = self.elapsed_seconds(now)
            await asyncio.to_thread(
                self.client.complete_workout,
                session.id,
                MathTools.round_half_up(elapsed / 60),
                self.notes,
            )
        except Exception as e:
            logger.error("workout_completion_failed", session_id=session.id, error=str(e))
            self._notify("error", "Error", "Could not complete the workout")
            return False
        finally:
            self.saving = False
        self.rest_timer.dismiss()
        self._notify(
            "success",
            "Workout completed!",
            f"{self._('Duration')}: {MathTools.format_time(elapsed)}",
        )
        self.navigate(self.settings.workout_history_route)
        return True

    async def discard_workout(self) -> bool:
        session = self.state.session
        if session is None:
            return False
        try:
            await asyncio.to_thread(self.client.discard_workout, session.id)
        except Exception as e:
            logger.error("workout_discard_failed", session_id=session.id, error=str(e))
            self._notify("error", "Error", "Could not discard the workout")
            return False
        self.close()
        self._notify("success", "Workout discarded", "The workout session has been deleted")
        self.navigate(self.settings.workout_list_route)
        return True

    def close(self) -> None:
        """Cancel pending debounced updates, the redirect and the rest timer."""
        for task in self._debounce.values():
            task.cancel()
        self._debounce.clear()
        if self._redirect is not None:
            self._redirect.cancel()
            self._redirect = None
        self.rest_timer.dismiss()
