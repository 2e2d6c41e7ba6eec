import asyncio
from typing import Callable, Optional

import structlog

from session_models import RestTimerState

logger = structlog.get_logger(__name__)


class RestTimer:
    """Single countdown shown between sets.

    Starting a timer always replaces the running one. When the countdown
    reaches zero ``on_finished`` is called with the exercise id and the
    timer goes idle.
    """

    def __init__(
        self,
        on_finished: Optional[Callable[[Optional[str]], None]] = None,
        *,
        interval: float = 1.0,
    ) -> None:
        self.state = RestTimerState()
        self.on_finished = on_finished
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.state.active

    def start(self, exercise_id: str, seconds: int, *, run: bool = True) -> None:
        """Replace the current countdown with ``seconds`` for ``exercise_id``.

        With ``run=False`` no background task is created and the countdown
        only advances through :meth:`tick`.
        """
        if seconds <= 0:
            raise ValueError("seconds must be positive")
        self._cancel_task()
        self.state = RestTimerState(active=True, time_left=int(seconds), exercise_id=exercise_id)
        logger.debug("rest_timer_started", exercise_id=exercise_id, seconds=seconds)
        if run:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def tick(self) -> bool:
        """Advance one second; return whether the timer is still running."""
        if not self.state.active:
            return False
        if self.state.time_left <= 1:
            exercise_id = self.state.exercise_id
            self.state = RestTimerState()
            logger.debug("rest_timer_finished", exercise_id=exercise_id)
            if self.on_finished is not None:
                self.on_finished(exercise_id)
            return False
        self.state.time_left -= 1
        return True

    def dismiss(self) -> None:
        self._cancel_task()
        self.state = RestTimerState()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.tick():
                break
