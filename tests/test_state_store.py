from __future__ import annotations

from datetime import UTC, datetime

from bambulink.ingestion.report import normalize_report
from bambulink.state.store import PrinterStateStore


def _dt(second: int = 0) -> datetime:
    return datetime(2026, 1, 1, 0, 0, second, tzinfo=UTC)


def test_first_report_becomes_state() -> None:
    store = PrinterStateStore()
    change = store.apply(normalize_report({"print": {"nozzle_temper": 210, "bed_temper": 60}}, received_at=_dt()))

    assert change is not None
    assert change.previous is None
    assert change.patch == {"temps": {"nozzle": 210, "bed": 60}}
    snapshot = store.snapshot()
    assert snapshot is not None
    assert snapshot.temps.nozzle == 210
    assert snapshot.temps.bed == 60
    assert snapshot.fans.part is None
    assert snapshot.ams is None


def test_duplicate_sequence_is_not_merged() -> None:
    store = PrinterStateStore()
    store.apply(normalize_report({"print": {"bed_temper": 60, "sequence_id": "5"}}, received_at=_dt(0)))

    duplicate = store.apply(normalize_report({"print": {"bed_temper": 99, "sequence_id": "5"}}, received_at=_dt(1)))

    assert duplicate is None
    snapshot = store.snapshot()
    assert snapshot is not None
    assert snapshot.temps.bed == 60
    assert snapshot.timestamp == _dt(0)


def test_reports_without_sequence_are_never_duplicates() -> None:
    store = PrinterStateStore()
    store.apply(normalize_report({"print": {"bed_temper": 60}}, received_at=_dt(0)))
    change = store.apply(normalize_report({"print": {"bed_temper": 61}}, received_at=_dt(1)))

    assert change is not None
    assert change.patch == {"temps": {"bed": 61}}


def test_bookkeeping_only_update_is_merged_without_change() -> None:
    store = PrinterStateStore()
    store.apply(normalize_report({"print": {"bed_temper": 60, "sequence_id": "1"}}, received_at=_dt(0)))

    change = store.apply(normalize_report({"print": {"bed_temper": 60, "sequence_id": "2"}}, received_at=_dt(1)))

    assert change is None
    assert store.last_sequence_id == "2"
    snapshot = store.snapshot()
    assert snapshot is not None
    assert snapshot.timestamp == _dt(1)


def test_partial_update_does_not_overwrite_with_none() -> None:
    store = PrinterStateStore()
    store.apply(normalize_report({"print": {"nozzle_temper": 210, "bed_temper": 60}}, received_at=_dt(0)))
    store.apply(normalize_report({"print": {"bed_temper": 61, "nozzle_temper": ""}}, received_at=_dt(1)))

    snapshot = store.snapshot()
    assert snapshot is not None
    assert snapshot.temps.nozzle == 210
    assert snapshot.temps.bed == 61


def test_reset_forgets_state() -> None:
    store = PrinterStateStore()
    store.apply(normalize_report({"print": {"bed_temper": 60, "sequence_id": "1"}}, received_at=_dt()))
    store.reset()

    assert store.snapshot() is None
    assert store.last_sequence_id is None


def test_raw_holds_only_the_latest_payload() -> None:
    store = PrinterStateStore()
    first = {"print": {"nozzle_temper": 210, "bed_temper": 60, "gcode_file": "a.gcode", "sequence_id": "1"}}
    second = {"print": {"bed_temper": 61, "sequence_id": "2"}}
    store.apply(normalize_report(first, received_at=_dt(0)))
    store.apply(normalize_report(second, received_at=_dt(1)))

    current = store.current()
    assert current is not None
    assert current["raw"] == second
    assert current["job"] == {"file": "a.gcode"}
    snapshot = store.snapshot()
    assert snapshot is not None
    assert snapshot.raw == second
