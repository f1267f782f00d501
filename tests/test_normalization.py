from __future__ import annotations

from datetime import UTC, datetime

from bambulink.ingestion.normalize import (
    number_or_text,
    parse_progress_pct,
    parse_signal_dbm,
    prune_patch,
    safe_number,
)
from bambulink.ingestion.report import normalize_report, peek_sequence_id
from bambulink.models.state import CameraSwitch, LightMode, PrinterState, UpgradeStatus


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def test_safe_number_coerces_numeric_strings_and_rejects_the_rest() -> None:
    assert safe_number("60") == 60
    assert isinstance(safe_number("60"), int)
    assert safe_number(" 25.5 ") == 25.5
    assert safe_number("") is None
    assert safe_number(None) is None
    assert safe_number("not-a-number") is None
    assert safe_number(True) is None
    assert safe_number(float("nan")) is None
    assert safe_number({"a": 1}) is None


def test_parse_signal_dbm_uses_first_integer_literal() -> None:
    assert parse_signal_dbm("-52dBm") == -52
    assert parse_signal_dbm("signal 40 of 100") == 40
    assert parse_signal_dbm("weak") is None
    assert parse_signal_dbm(None) is None


def test_parse_progress_pct() -> None:
    assert parse_progress_pct("45%") == 45.0
    assert parse_progress_pct("12.5") == 12.5
    assert parse_progress_pct("") is None


def test_number_or_text_keeps_unparseable_text() -> None:
    assert number_or_text("0.4") == 0.4
    assert number_or_text("hardened_steel") == "hardened_steel"
    assert number_or_text(None) is None


def test_prune_patch_drops_absent_values_but_keeps_lists() -> None:
    patch = prune_patch({"a": None, "b": "", "c": {"d": None}, "e": [], "f": 0, "g": False})
    assert patch == {"e": [], "f": 0, "g": False}


def test_tray_projection_keys_by_integer_id_and_flags_external_spool() -> None:
    patch = normalize_report(
        {
            "print": {
                "ams": {
                    "ams": [
                        {
                            "id": "0",
                            "tray": [
                                {"id": "0", "tray_type": "PLA"},
                                {"id": "254", "tray_type": "PETG"},
                            ],
                        }
                    ]
                }
            }
        },
        received_at=_dt(),
    )

    trays = patch["ams"]["trays"]
    assert set(trays) == {0, 254}
    assert trays[0]["type"] == "PLA"
    assert trays[0]["external"] is False
    assert trays[254]["type"] == "PETG"
    assert trays[254]["external"] is True


def test_trays_of_later_units_get_their_own_slots() -> None:
    patch = normalize_report(
        {
            "print": {
                "ams": {
                    "ams": [
                        {"id": "0", "tray": [{"id": "0", "tray_type": "PLA"}]},
                        {"id": "1", "tray": [{"id": "0", "tray_type": "PETG"}, {"id": "254", "tray_type": "TPU"}]},
                    ]
                }
            }
        },
        received_at=_dt(),
    )

    trays = patch["ams"]["trays"]
    assert set(trays) == {0, 4, 254}
    assert trays[0]["type"] == "PLA"
    assert trays[4]["type"] == "PETG"
    assert trays[4]["id"] == 4
    assert trays[254]["external"] is True


def test_tray_entries_without_numeric_id_are_discarded() -> None:
    patch = normalize_report(
        {
            "print": {
                "ams": {
                    "ams": [
                        {"tray": [{"id": "x", "tray_type": "PLA"}, {"tray_type": "ABS"}, "junk", {"id": 2}]},
                    ]
                }
            }
        },
        received_at=_dt(),
    )

    assert set(patch["ams"]["trays"]) == {2}


def test_malformed_bed_temperature_degrades_to_absent() -> None:
    patch = normalize_report({"print": {"bed_temper": "not-a-number"}}, received_at=_dt())

    assert "temps" not in patch
    state = PrinterState.model_validate(patch)
    assert state.temps.bed is None
    assert state.timestamp == _dt()


def test_normalize_never_raises_on_odd_shapes() -> None:
    for raw in (None, [], "text", 42, {"print": "nope"}, {"print": {"ams": [1, 2]}}, {"print": {"ipcam": 5}}):
        patch = normalize_report(raw, received_at=_dt())
        assert patch["timestamp"] == _dt()


def test_numeric_strings_become_numbers() -> None:
    patch = normalize_report(
        {"print": {"nozzle_temper": "210.5", "bed_target_temper": "60", "mc_percent": "42"}},
        received_at=_dt(),
    )

    assert patch["temps"] == {"nozzle": 210.5, "bed_target": 60}
    assert patch["job"] == {"percent": 42}


def test_lights_accept_every_node_with_a_known_mode() -> None:
    patch = normalize_report(
        {
            "print": {
                "lights_report": [
                    {"node": "chamber_light", "mode": "on"},
                    {"node": "work_light", "mode": "flashing"},
                    {"node": "strobe", "mode": "disco"},
                    {"mode": "off"},
                ]
            }
        },
        received_at=_dt(),
    )

    assert patch["lights"] == {"chamber_light": LightMode.ON, "work_light": LightMode.FLASHING}


def test_upgrade_has_new_version_compares_versions() -> None:
    patch = normalize_report(
        {
            "print": {
                "upgrade_state": {
                    "status": "DOWNLOADING",
                    "progress": "45%",
                    "new_ver_list": [{"name": "ota", "cur_ver": "01.07.00.00", "new_ver": "01.08.00.00"}],
                }
            }
        },
        received_at=_dt(),
    )

    upgrade = patch["upgrade"]
    assert upgrade["status"] is UpgradeStatus.DOWNLOADING
    assert upgrade["progress_pct"] == 45.0
    assert upgrade["has_new_version"] is True

    same = normalize_report(
        {"print": {"upgrade_state": {"status": "BOGUS", "new_ver_list": [{"cur_ver": "1", "new_ver": "1"}]}}},
        received_at=_dt(),
    )
    assert "status" not in same["upgrade"]
    assert same["upgrade"]["has_new_version"] is False


def test_camera_defaults_record_and_timelapse_to_disable() -> None:
    patch = normalize_report({"print": {"ipcam": {"ipcam_dev": "1", "resolution": "1080p"}}}, received_at=_dt())

    assert patch["camera"] == {
        "enabled": True,
        "record": CameraSwitch.DISABLE,
        "timelapse": CameraSwitch.DISABLE,
        "resolution": "1080p",
    }


def test_connectivity_and_external_spool() -> None:
    patch = normalize_report(
        {
            "print": {
                "wifi_signal": "-61dBm",
                "online": {"ahb": False, "rfid": "true", "version": 7},
                "net": {"info": [{"ip": 16820416, "mask": 16777215}, {"ip": 0, "mask": 0}]},
                "vt_tray": {"tray_type": "TPU", "tray_color": "FF0000FF"},
            }
        },
        received_at=_dt(),
    )

    assert patch["wifi_signal_dbm"] == -61
    assert patch["online"] == {"ahb": False, "rfid": True, "version": 7}
    assert patch["network"] == [{"ip": 16820416, "mask": 16777215}, {"ip": 0, "mask": 0}]
    assert patch["external_spool"]["id"] == 254
    assert patch["external_spool"]["external"] is True


def test_ams_bitfields_fall_back_to_print_level() -> None:
    patch = normalize_report(
        {"print": {"ams_exist_bits": "1", "ams": {"tray_now": "255", "ams": []}}},
        received_at=_dt(),
    )

    # An empty tray map is pruned like any other empty group.
    assert patch["ams"] == {"tray_now": 255, "exist_bits": "1"}


def test_bookkeeping_fields() -> None:
    raw = {"print": {"command": "push_status", "sequence_id": "2048", "bed_temper": 60}}
    patch = normalize_report(raw, received_at=_dt())

    assert patch["raw"] is raw
    assert patch["command"] == "push_status"
    assert patch["sequence_id"] == "2048"
    assert patch["timestamp"] == _dt()
    assert peek_sequence_id(raw) == "2048"
    assert peek_sequence_id({"sequence_id": 7}) == "7"
    assert peek_sequence_id({"print": {}}) is None
