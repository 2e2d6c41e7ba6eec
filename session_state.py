from typing import Optional

from session_models import (
    NUMERIC_FIELDS,
    SET_FIELDS,
    ExerciseEntry,
    InputValue,
    SetEntry,
    WorkoutSession,
)


def parse_decimal(text: Optional[str]) -> Optional[float]:
    """Parse a weight typed by the user; empty or unparseable text is no value."""
    if text is None:
        return None
    text = text.strip().replace(",", ".")
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def parse_int(text: Optional[str]) -> Optional[int]:
    """Parse reps or RIR; empty or unparseable text is no value."""
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _to_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class LocalSetState:
    """In-memory mirror of a workout session and the raw text of every set input."""

    def __init__(self) -> None:
        self.session: Optional[WorkoutSession] = None
        self.inputs: dict[str, InputValue] = {}

    def load(self, session: WorkoutSession, default_tempo: str = "3-0-1") -> None:
        """Mirror ``session``; the tempo default only fills modes that show tempo."""
        self.session = session
        if "tempo" not in session.workout_mode.visible_fields():
            default_tempo = ""
        self.inputs = {
            s.id: InputValue(
                weight=_to_text(s.weight),
                reps=_to_text(s.reps),
                rir=_to_text(s.rir),
                tempo=s.tempo or default_tempo,
            )
            for s in session.iter_sets()
        }

    def clear(self) -> None:
        self.session = None
        self.inputs = {}

    def set_input(self, set_id: str, field: str, raw: str) -> None:
        if field not in SET_FIELDS:
            raise ValueError(f"unknown set field: {field}")
        buf = self.inputs.setdefault(set_id, InputValue())
        setattr(buf, field, raw)

    def combined_values(self, set_id: str, field: str, raw: str) -> dict:
        """Return parsed weight/reps/rir/tempo, with ``field`` taken from ``raw``."""
        buf = self.inputs.get(set_id, InputValue())
        texts = {name: getattr(buf, name) for name in SET_FIELDS}
        texts[field] = raw
        tempo = texts["tempo"].strip()
        return {
            "weight": parse_decimal(texts["weight"]),
            "reps": parse_int(texts["reps"]),
            "rir": parse_int(texts["rir"]),
            "tempo": tempo or None,
        }

    def find_set(self, set_id: str) -> Optional[SetEntry]:
        if self.session is None:
            return None
        for s in self.session.iter_sets():
            if s.id == set_id:
                return s
        return None

    def find_exercise(self, exercise_id: str) -> Optional[ExerciseEntry]:
        if self.session is None:
            return None
        for entry in self.session.exercises:
            if entry.id == exercise_id:
                return entry
        return None

    def exercise_for_set(self, set_id: str) -> Optional[ExerciseEntry]:
        if self.session is None:
            return None
        for entry in self.session.exercises:
            if any(s.id == set_id for s in entry.sets):
                return entry
        return None

    def apply_update(self, set_id: str, fields: dict) -> Optional[SetEntry]:
        """Merge acknowledged field values into the canonical set."""
        target = self.find_set(set_id)
        if target is None:
            return None
        for name in SET_FIELDS:
            if name in fields:
                setattr(target, name, fields[name])
        return target

    def mark_exercise_completed(self, exercise_id: str) -> bool:
        entry = self.find_exercise(exercise_id)
        if entry is None:
            return False
        entry.completed = True
        for s in entry.sets:
            s.completed = True
        return True

    def live_sets(self, exercise_id: str) -> list[dict]:
        """Return weight/reps per set of an exercise as currently typed."""
        entry = self.find_exercise(exercise_id)
        if entry is None:
            return []
        rows = []
        for s in entry.sets:
            buf = self.inputs.get(s.id)
            if buf is None:
                rows.append({"set_number": s.set_number, "weight": s.weight, "reps": s.reps})
                continue
            rows.append(
                {
                    "set_number": s.set_number,
                    "weight": parse_decimal(buf.weight),
                    "reps": parse_int(buf.reps),
                }
            )
        return rows

    @staticmethod
    def has_numeric(values: dict) -> bool:
        return any(values.get(name) is not None for name in NUMERIC_FIELDS)
