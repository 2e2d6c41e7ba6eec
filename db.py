import sqlite3
import datetime
from contextlib import contextmanager
from typing import List, Tuple, Optional


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "exercise_catalog": (
            """CREATE TABLE exercise_catalog (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    muscle_group TEXT NOT NULL DEFAULT '',
                    equipment TEXT NOT NULL DEFAULT '',
                    rest_time INTEGER
                );""",
            ["id", "name", "muscle_group", "equipment", "rest_time"],
        ),
        "workout_sessions": (
            """CREATE TABLE workout_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    notes TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    workout_mode TEXT NOT NULL DEFAULT 'simple',
                    completed INTEGER NOT NULL DEFAULT 0,
                    duration INTEGER
                );""",
            ["id", "notes", "created_at", "workout_mode", "completed", "duration"],
        ),
        "exercise_sessions": (
            """CREATE TABLE exercise_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    completed INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(workout_session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercise_catalog(id)
                );""",
            ["id", "workout_session_id", "exercise_id", "position", "completed"],
        ),
        "set_sessions": (
            """CREATE TABLE set_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_session_id INTEGER NOT NULL,
                    set_number INTEGER NOT NULL,
                    weight REAL,
                    reps INTEGER,
                    rir INTEGER,
                    tempo TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    is_drop_set INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(exercise_session_id) REFERENCES exercise_sessions(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "exercise_session_id",
                "set_number",
                "weight",
                "reps",
                "rir",
                "tempo",
                "completed",
                "is_drop_set",
            ],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("completed", "is_drop_set", "position"):
                        return "0"
                    if col == "workout_mode":
                        return "'simple'"
                    if col in ("notes", "muscle_group", "equipment"):
                        return "''"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class ExerciseCatalogRepository(BaseRepository):
    """Repository for exercise definitions."""

    def add(
        self,
        name: str,
        muscle_group: str = "",
        equipment: str = "",
        rest_time: Optional[int] = None,
    ) -> int:
        if not name.strip():
            raise ValueError("name must not be empty")
        if rest_time is not None and rest_time < 0:
            raise ValueError("rest_time must be non-negative")
        return self.execute(
            "INSERT INTO exercise_catalog (name, muscle_group, equipment, rest_time) VALUES (?, ?, ?, ?);",
            (name.strip(), muscle_group, equipment, rest_time),
        )

    def fetch_detail(
        self, exercise_id: int
    ) -> Optional[Tuple[int, str, str, str, Optional[int]]]:
        rows = self.fetch_all(
            "SELECT id, name, muscle_group, equipment, rest_time FROM exercise_catalog WHERE id = ?;",
            (exercise_id,),
        )
        return rows[0] if rows else None


class WorkoutSessionRepository(BaseRepository):
    """Repository for workout session rows."""

    def create(
        self,
        notes: str = "",
        workout_mode: str = "simple",
        created_at: str | None = None,
    ) -> int:
        if workout_mode not in {"simple", "intermediate", "advanced"}:
            raise ValueError(f"unknown workout mode: {workout_mode}")
        ts = created_at or datetime.datetime.now(datetime.timezone.utc).isoformat()
        return self.execute(
            "INSERT INTO workout_sessions (notes, created_at, workout_mode) VALUES (?, ?, ?);",
            (notes, ts, workout_mode),
        )

    def fetch_active(self) -> Optional[int]:
        """Return the id of the newest session that is not completed."""
        rows = self.fetch_all(
            "SELECT id FROM workout_sessions WHERE completed = 0 ORDER BY created_at DESC, id DESC LIMIT 1;"
        )
        return int(rows[0][0]) if rows else None

    def fetch_detail(
        self, session_id: int
    ) -> Optional[Tuple[int, str, str, str, int, Optional[int]]]:
        rows = self.fetch_all(
            "SELECT id, notes, created_at, workout_mode, completed, duration FROM workout_sessions WHERE id = ?;",
            (session_id,),
        )
        return rows[0] if rows else None

    def set_notes(self, session_id: int, notes: str) -> None:
        self.execute(
            "UPDATE workout_sessions SET notes = ? WHERE id = ?;", (notes, session_id)
        )

    def complete(
        self, session_id: int, duration: Optional[int] = None, notes: Optional[str] = None
    ) -> None:
        """Mark a session, its exercise entries and their sets as completed."""
        if duration is not None and duration < 0:
            raise ValueError("duration must be non-negative")
        with self._connection() as conn:
            conn.execute(
                "UPDATE workout_sessions SET completed = 1, "
                "duration = COALESCE(?, duration), notes = COALESCE(NULLIF(?, ''), notes) "
                "WHERE id = ?;",
                (duration, notes, session_id),
            )
            conn.execute(
                "UPDATE exercise_sessions SET completed = 1 WHERE workout_session_id = ?;",
                (session_id,),
            )
            conn.execute(
                "UPDATE set_sessions SET completed = 1 WHERE exercise_session_id IN "
                "(SELECT id FROM exercise_sessions WHERE workout_session_id = ?);",
                (session_id,),
            )

    def delete(self, session_id: int) -> None:
        with self._connection() as conn:
            conn.execute(
                "DELETE FROM set_sessions WHERE exercise_session_id IN "
                "(SELECT id FROM exercise_sessions WHERE workout_session_id = ?);",
                (session_id,),
            )
            conn.execute(
                "DELETE FROM exercise_sessions WHERE workout_session_id = ?;",
                (session_id,),
            )
            conn.execute("DELETE FROM workout_sessions WHERE id = ?;", (session_id,))


class ExerciseSessionRepository(BaseRepository):
    """Repository for the exercises performed within a workout session."""

    def add(self, workout_session_id: int, exercise_id: int) -> int:
        rows = self.fetch_all(
            "SELECT COALESCE(MAX(position), 0) + 1 FROM exercise_sessions WHERE workout_session_id = ?;",
            (workout_session_id,),
        )
        position = int(rows[0][0]) if rows else 1
        return self.execute(
            "INSERT INTO exercise_sessions (workout_session_id, exercise_id, position) VALUES (?, ?, ?);",
            (workout_session_id, exercise_id, position),
        )

    def fetch_for_session(
        self, workout_session_id: int
    ) -> List[Tuple[int, int, int, str, str, str, Optional[int]]]:
        """Return ``(id, completed, exercise_id, name, muscle_group, equipment, rest_time)`` rows."""
        return self.fetch_all(
            "SELECT es.id, es.completed, ec.id, ec.name, ec.muscle_group, ec.equipment, ec.rest_time "
            "FROM exercise_sessions es JOIN exercise_catalog ec ON ec.id = es.exercise_id "
            "WHERE es.workout_session_id = ? ORDER BY es.position, es.id;",
            (workout_session_id,),
        )

    def exists(self, exercise_session_id: int) -> bool:
        rows = self.fetch_all(
            "SELECT 1 FROM exercise_sessions WHERE id = ?;", (exercise_session_id,)
        )
        return bool(rows)

    def complete(self, exercise_session_id: int) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE exercise_sessions SET completed = 1 WHERE id = ?;",
                (exercise_session_id,),
            )
            conn.execute(
                "UPDATE set_sessions SET completed = 1 WHERE exercise_session_id = ?;",
                (exercise_session_id,),
            )

    def last_completed_for_exercise(self, exercise_id: int) -> Optional[int]:
        """Return the newest completed entry of ``exercise_id`` in a completed session."""
        rows = self.fetch_all(
            "SELECT es.id FROM exercise_sessions es "
            "JOIN workout_sessions ws ON ws.id = es.workout_session_id "
            "WHERE es.exercise_id = ? AND es.completed = 1 AND ws.completed = 1 "
            "ORDER BY ws.created_at DESC, ws.id DESC LIMIT 1;",
            (exercise_id,),
        )
        return int(rows[0][0]) if rows else None


class SetSessionRepository(BaseRepository):
    """Repository for set rows of an exercise entry."""

    _UPDATABLE = ("weight", "reps", "rir", "tempo")

    def add(
        self, exercise_session_id: int, set_number: int, is_drop_set: bool = False
    ) -> int:
        if set_number <= 0:
            raise ValueError("set_number must be positive")
        return self.execute(
            "INSERT INTO set_sessions (exercise_session_id, set_number, is_drop_set) VALUES (?, ?, ?);",
            (exercise_session_id, set_number, int(is_drop_set)),
        )

    def bulk_add(
        self, exercise_session_id: int, count: int, is_drop_set: bool = False
    ) -> list[int]:
        return [
            self.add(exercise_session_id, number, is_drop_set)
            for number in range(1, count + 1)
        ]

    def fetch_for_exercise_session(self, exercise_session_id: int) -> List[Tuple]:
        """Return ``(id, set_number, weight, reps, rir, tempo, completed, is_drop_set)`` rows."""
        return self.fetch_all(
            "SELECT id, set_number, weight, reps, rir, tempo, completed, is_drop_set "
            "FROM set_sessions WHERE exercise_session_id = ? ORDER BY set_number, id;",
            (exercise_session_id,),
        )

    def fetch_detail(self, set_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            "SELECT id, exercise_session_id, set_number, weight, reps, rir, tempo, completed, is_drop_set "
            "FROM set_sessions WHERE id = ?;",
            (set_id,),
        )
        if not rows:
            return None
        sid, esid, number, weight, reps, rir, tempo, completed, drop = rows[0]
        return {
            "id": sid,
            "exercise_session_id": esid,
            "set_number": number,
            "weight": weight,
            "reps": reps,
            "rir": rir,
            "tempo": tempo,
            "completed": bool(completed),
            "is_drop_set": bool(drop),
        }

    def update(self, set_id: int, **fields) -> None:
        """Update the given set fields; a set with weight and reps becomes completed."""
        unknown = set(fields) - set(self._UPDATABLE)
        if unknown:
            raise ValueError(f"unknown set fields: {', '.join(sorted(unknown))}")
        weight = fields.get("weight")
        reps = fields.get("reps")
        rir = fields.get("rir")
        if weight is not None and weight < 0:
            raise ValueError("weight must be non-negative")
        if reps is not None and reps < 0:
            raise ValueError("reps must be non-negative")
        if rir is not None and not 0 <= rir <= 4:
            raise ValueError("rir must be between 0 and 4")
        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            params = list(fields.values()) + [set_id]
            self.execute(
                f"UPDATE set_sessions SET {assignments} WHERE id = ?;", tuple(params)
            )
        self.execute(
            "UPDATE set_sessions SET completed = 1 "
            "WHERE id = ? AND weight IS NOT NULL AND reps IS NOT NULL;",
            (set_id,),
        )

    def fetch_completed(self, exercise_session_id: int) -> List[Tuple]:
        """Return ``(weight, reps, set_number)`` for completed sets in order."""
        return self.fetch_all(
            "SELECT weight, reps, set_number FROM set_sessions "
            "WHERE exercise_session_id = ? AND completed = 1 ORDER BY set_number;",
            (exercise_session_id,),
        )
