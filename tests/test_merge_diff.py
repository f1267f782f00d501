from __future__ import annotations

import copy

from bambulink.state.diff import diff_state
from bambulink.state.merge import merge_state

_STATE = {
    "temps": {"nozzle": 210, "bed": 60},
    "lights": {"chamber_light": "on"},
    "ams": {"trays": {0: {"id": 0, "type": "PLA"}, 254: {"id": 254, "external": True}}, "tray_now": 0},
    "network": [{"ip": 1, "mask": 2}],
    "gcode_state": "RUNNING",
}


def test_merge_with_empty_patch_is_identity() -> None:
    assert merge_state(_STATE, {}) == _STATE
    assert merge_state(_STATE, None) == _STATE


def test_merge_without_previous_adopts_patch() -> None:
    assert merge_state(None, {"temps": {"bed": 61}}) == {"temps": {"bed": 61}}


def test_merge_recurses_records_and_replaces_arrays() -> None:
    merged = merge_state(
        _STATE,
        {"temps": {"bed": 61}, "network": [], "ams": {"trays": {1: {"id": 1, "type": "ABS"}}}},
    )

    assert merged["temps"] == {"nozzle": 210, "bed": 61}
    assert merged["network"] == []
    assert set(merged["ams"]["trays"]) == {0, 1, 254}
    assert merged["ams"]["tray_now"] == 0


def test_merge_does_not_mutate_inputs() -> None:
    before = copy.deepcopy(_STATE)
    patch = {"temps": {"bed": 61}, "network": [{"ip": 9, "mask": 9}]}
    merged = merge_state(_STATE, patch)
    merged["network"][0]["ip"] = 10

    assert _STATE == before
    assert patch["network"][0]["ip"] == 9


def test_absent_values_never_clear_known_values() -> None:
    merged = merge_state(_STATE, {"gcode_state": None, "temps": {"nozzle": None}})
    assert merged["gcode_state"] == "RUNNING"
    assert merged["temps"]["nozzle"] == 210


def test_diff_of_identical_states_is_unchanged() -> None:
    assert diff_state(_STATE, copy.deepcopy(_STATE)) is None


def test_diff_emits_only_changed_leaves() -> None:
    current = copy.deepcopy(_STATE)
    current["temps"]["bed"] = 61
    current["ams"]["trays"][0]["type"] = "PETG"

    assert diff_state(_STATE, current) == {
        "temps": {"bed": 61},
        "ams": {"trays": {0: {"type": "PETG"}}},
    }


def test_diff_replaces_arrays_whole() -> None:
    current = copy.deepcopy(_STATE)
    current["network"].append({"ip": 3, "mask": 4})

    assert diff_state(_STATE, current) == {"network": [{"ip": 1, "mask": 2}, {"ip": 3, "mask": 4}]}


def test_diff_distinguishes_flags_from_numbers() -> None:
    assert diff_state({"flag": 1}, {"flag": True}) == {"flag": True}
    assert diff_state({"value": 60}, {"value": 60.0}) is None


def test_diff_respects_excluded_keys() -> None:
    previous = {"timestamp": 1, "temps": {"bed": 60}}
    current = {"timestamp": 2, "temps": {"bed": 60}}

    assert diff_state(previous, current, exclude=frozenset({"timestamp"})) is None


def test_diff_merge_round_trip() -> None:
    target = copy.deepcopy(_STATE)
    target["temps"] = {"nozzle": 215, "bed": 60, "chamber": 30}
    target["lights"]["work_light"] = "flashing"
    target["network"] = [{"ip": 5, "mask": 6}]
    target["ams"]["trays"][1] = {"id": 1, "type": "ABS"}

    assert merge_state(_STATE, diff_state(_STATE, target)) == target
    assert merge_state(None, diff_state(None, target)) == target


def test_replace_keys_are_not_merged() -> None:
    previous = {"raw": {"print": {"a": 1}}, "temps": {"bed": 60}}
    patch = {"raw": {"print": {"b": 2}}, "temps": {"nozzle": 210}}

    merged = merge_state(previous, patch, replace=frozenset({"raw"}))

    assert merged["raw"] == {"print": {"b": 2}}
    assert merged["temps"] == {"bed": 60, "nozzle": 210}
