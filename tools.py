import math
from typing import Iterable, Optional

from session_models import LastSetStat, WorkoutSession


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to the nearest integer with halves going up (2.5 -> 3)."""
        return math.floor(value + 0.5)

    @classmethod
    def estimated_1rm(cls, weight: Optional[float], reps: Optional[int]) -> float:
        """Return the estimated one-rep max using the Epley formula.

        Missing or non-positive inputs yield ``0.0``, meaning there is no
        estimate to display.
        """
        if weight is None or reps is None or weight <= 0 or reps <= 0:
            return 0.0
        if reps == 1:
            return float(weight)
        return round(weight * (1 + reps / cls.EPLEY_DIVISOR), 2)

    @staticmethod
    def volume(sets: Iterable[dict]) -> float:
        """Compute training volume as the sum of weight times reps.

        Sets whose weight or reps are not numeric are skipped.
        """
        vol = 0.0
        for s in sets:
            weight = s.get("weight")
            reps = s.get("reps")
            if isinstance(weight, (int, float)) and isinstance(reps, (int, float)):
                vol += weight * reps
        return vol

    @staticmethod
    def progress_percent(session: Optional[WorkoutSession]) -> int:
        """Return the share of completed sets as a rounded percentage."""
        if session is None:
            return 0
        total = 0
        completed = 0
        for s in session.iter_sets():
            total += 1
            if s.completed:
                completed += 1
        if total == 0:
            return 0
        return MathTools.round_half_up(100 * completed / total)

    @staticmethod
    def overload_delta(
        weight: Optional[float],
        reps: Optional[int],
        previous: Optional[LastSetStat],
    ) -> Optional[dict]:
        """Compare a set with the same set number of the last session."""
        if previous is None or weight is None or reps is None:
            return None
        return {
            "weight": round(weight - previous.weight, 2),
            "reps": reps - previous.reps,
        }

    @staticmethod
    def format_time(seconds: int) -> str:
        """Return ``mm:ss``, or ``h:mm:ss`` from one hour on."""
        seconds = max(int(seconds), 0)
        hours, rem = divmod(seconds, 3600)
        mins, secs = divmod(rem, 60)
        if hours > 0:
            return f"{hours}:{mins:02d}:{secs:02d}"
        return f"{mins:02d}:{secs:02d}"
