import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from conftest import build_session
from session_state import LocalSetState, parse_decimal, parse_int


@pytest.mark.parametrize(
    "text, expected",
    [
        ("100", 100.0),
        (" 82.5 ", 82.5),
        ("82,5", 82.5),
        ("12.", 12.0),
        ("", None),
        ("   ", None),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        (None, None),
    ],
)
def test_parse_decimal(text, expected):
    assert parse_decimal(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [("8", 8), (" 12 ", 12), ("", None), ("8.5", None), ("x", None), (None, None)],
)
def test_parse_int(text, expected):
    assert parse_int(text) == expected


def test_tempo_default_only_when_tempo_is_shown():
    state = LocalSetState()
    state.load(build_session([(60, 1)], mode="simple"))
    assert state.inputs["ex1-s1"].tempo == ""
    state.load(build_session([(60, 1)], mode="advanced"), default_tempo="2-0-2")
    assert state.inputs["ex1-s1"].tempo == "2-0-2"


def test_load_formats_existing_values():
    session = build_session([(60, 1)], mode="intermediate")
    target = session.exercises[0].sets[0]
    target.weight, target.reps, target.rir = 82.5, 6, 2
    state = LocalSetState()
    state.load(session)
    buf = state.inputs["ex1-s1"]
    assert (buf.weight, buf.reps, buf.rir) == ("82.5", "6", "2")


def test_combined_values_override_one_field():
    state = LocalSetState()
    state.load(build_session([(60, 1)], mode="advanced"))
    state.set_input("ex1-s1", "weight", "100")
    values = state.combined_values("ex1-s1", "reps", "5")
    assert values == {"weight": 100.0, "reps": 5, "rir": None, "tempo": "3-0-1"}
    assert state.has_numeric(values)
    assert not state.has_numeric({"weight": None, "reps": None, "rir": None, "tempo": "3-0-1"})


def test_set_input_rejects_unknown_field():
    state = LocalSetState()
    state.load(build_session())
    with pytest.raises(ValueError):
        state.set_input("ex1-s1", "notes", "x")


def test_lookup_helpers():
    state = LocalSetState()
    assert state.find_set("ex1-s1") is None
    state.load(build_session([(60, 2), (90, 1)]))
    assert state.find_set("ex2-s1").set_number == 1
    assert state.find_exercise("ex2").exercise.rest_time == 90
    assert state.exercise_for_set("ex1-s2").id == "ex1"
    assert state.find_set("missing") is None


def test_apply_update_leaves_input_buffers():
    state = LocalSetState()
    state.load(build_session())
    state.set_input("ex1-s1", "weight", "105")
    target = state.apply_update("ex1-s1", {"weight": 100.0, "reps": 5})
    assert (target.weight, target.reps) == (100.0, 5)
    assert state.inputs["ex1-s1"].weight == "105"
    assert state.apply_update("missing", {"weight": 1.0}) is None


def test_mark_exercise_completed():
    state = LocalSetState()
    state.load(build_session([(60, 3)]))
    assert state.mark_exercise_completed("ex1") is True
    entry = state.find_exercise("ex1")
    assert entry.completed and all(s.completed for s in entry.sets)
    assert state.mark_exercise_completed("nope") is False


def test_live_sets_reflect_typed_text():
    state = LocalSetState()
    state.load(build_session([(60, 2)]))
    state.set_input("ex1-s1", "weight", "60")
    state.set_input("ex1-s1", "reps", "abc")
    assert state.live_sets("ex1") == [
        {"set_number": 1, "weight": 60.0, "reps": None},
        {"set_number": 2, "weight": None, "reps": None},
    ]
    assert state.live_sets("missing") == []


def test_clear():
    state = LocalSetState()
    state.load(build_session())
    state.clear()
    assert state.session is None
    assert state.inputs == {}
