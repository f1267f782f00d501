"""Report ingestion.

Turns one decoded report message (status push or command reply) into a
pruned partial canonical state, the only input the state store accepts.

Two passes:

- shape validation into :class:`bambulink.models.report.ReportEnvelope`,
  where every field is optional and wrongly-shaped values become absent
- a total projection of that envelope onto canonical state keys
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from bambulink._constants import EXTERNAL_SPOOL_ID, TRAYS_PER_UNIT
from bambulink.ingestion.normalize import (
    number_or_text,
    parse_progress_pct,
    parse_signal_dbm,
    prune_patch,
    safe_int,
    safe_number,
    safe_str,
)
from bambulink.models.report import (
    AmsReport,
    AmsUnitReport,
    IpcamReport,
    LightReport,
    NetReport,
    OnlineReport,
    PrintReport,
    ReportEnvelope,
    TrayReport,
    UpgradeStateReport,
)
from bambulink.models.state import CameraSwitch, LightMode, UpgradeStatus

_logger = logging.getLogger(__name__)

# AMS-level keys whose presence alone makes the AMS group worth reporting.
_AMS_SUMMARY_KEYS = ("tray_now", "tray_pre", "ams_exist_bits", "tray_is_bbl_bits", "version")


def _parse_envelope(raw: Any) -> ReportEnvelope:
    if not isinstance(raw, Mapping):
        return ReportEnvelope()
    try:
        return ReportEnvelope.model_validate(dict(raw))
    except ValidationError:
        # Field validators are total; this only guards against shapes pydantic
        # itself refuses (e.g. non-string keys).
        _logger.debug("Report envelope failed validation", exc_info=True)
        return ReportEnvelope()


def _project_tray(tray: TrayReport, tray_id: int) -> dict[str, Any]:
    return {
        "id": tray_id,
        "type": tray.tray_type,
        "color_hex": tray.tray_color,
        "nozzle_temp_min": tray.nozzle_temp_min,
        "nozzle_temp_max": tray.nozzle_temp_max,
        "bed_temp": tray.bed_temp,
        "remain": tray.remain,
        "info_idx": tray.tray_info_idx,
        "external": tray_id == EXTERNAL_SPOOL_ID,
    }


def _tray_slot(unit_id: int | None, tray_id: int) -> int:
    """Global tray slot: unit-local ids repeat across units, the external spool does not."""
    if tray_id == EXTERNAL_SPOOL_ID or not unit_id:
        return tray_id
    return unit_id * TRAYS_PER_UNIT + tray_id


def _project_trays(ams: AmsReport) -> dict[int, dict[str, Any]]:
    trays: dict[int, dict[str, Any]] = {}
    for entry in ams.ams:
        unit = AmsUnitReport.model_validate(entry)
        unit_id = safe_int(unit.id)
        for tray_entry in unit.tray:
            tray = TrayReport.model_validate(tray_entry)
            # Entries whose id is not a finite number cannot be keyed.
            tray_id = safe_int(tray.id)
            if tray_id is None:
                continue
            slot = _tray_slot(unit_id, tray_id)
            trays[slot] = _project_tray(tray, slot)
    return trays


def _project_ams(ams: AmsReport | None, report: PrintReport) -> dict[str, Any] | None:
    source = ams or AmsReport()
    trays = _project_trays(source)
    fields_set = source.model_fields_set
    if not trays and not any(key in fields_set for key in _AMS_SUMMARY_KEYS):
        return None
    return {
        "trays": trays,
        "tray_now": safe_int(source.tray_now),
        "tray_pre": safe_int(source.tray_pre),
        "exist_bits": source.ams_exist_bits or report.ams_exist_bits,
        "is_bbl_bits": source.tray_is_bbl_bits or report.tray_is_bbl_bits,
        "version": safe_int(source.version if source.version is not None else report.version),
    }


def _project_external_spool(vt_tray: TrayReport | None) -> dict[str, Any] | None:
    if vt_tray is None:
        return None
    tray_id = safe_int(vt_tray.id)
    return _project_tray(vt_tray, EXTERNAL_SPOOL_ID if tray_id is None else tray_id)


def _project_lights(entries: list[dict[str, Any]]) -> dict[str, LightMode]:
    lights: dict[str, LightMode] = {}
    for entry in entries:
        light = LightReport.model_validate(entry)
        mode = LightMode.coerce(light.mode)
        if light.node is not None and mode is not None:
            lights[light.node] = mode
    return lights


def _project_camera(ipcam: IpcamReport | None) -> dict[str, Any] | None:
    if ipcam is None:
        return None
    return {
        "enabled": ipcam.ipcam_dev == "1",
        "record": CameraSwitch.coerce(ipcam.ipcam_record or CameraSwitch.DISABLE),
        "timelapse": CameraSwitch.coerce(ipcam.timelapse or CameraSwitch.DISABLE),
        "resolution": ipcam.resolution,
        "tutk_server": CameraSwitch.coerce(ipcam.tutk_server),
        "mode_bits": safe_int(ipcam.mode_bits),
    }


def _project_upgrade(upgrade: UpgradeStateReport | None) -> dict[str, Any] | None:
    if upgrade is None:
        return None
    first = upgrade.new_ver_list[0] if upgrade.new_ver_list else {}
    current_version = safe_str(first.get("cur_ver"))
    new_version = safe_str(first.get("new_ver"))
    return {
        "status": UpgradeStatus.coerce(upgrade.status),
        "progress_pct": parse_progress_pct(upgrade.progress),
        "message": upgrade.message,
        "current_version": current_version,
        "new_version": new_version,
        "has_new_version": new_version is not None and new_version != current_version,
    }


def _project_online(online: OnlineReport | None) -> dict[str, Any] | None:
    if online is None:
        return None
    return {"ahb": online.ahb, "rfid": online.rfid, "version": safe_int(online.version)}


def _project_network(net: NetReport | None) -> list[dict[str, Any]] | None:
    if net is None:
        return None
    interfaces = [{"ip": safe_int(entry.get("ip")), "mask": safe_int(entry.get("mask"))} for entry in net.info]
    return interfaces or None


def _project_print(report: PrintReport) -> dict[str, Any]:
    return {
        "lifecycle": report.lifecycle,
        "print_type": report.print_type,
        "gcode_state": report.gcode_state,
        "speed_level": safe_int(report.spd_lvl),
        "home_flag": safe_int(report.home_flag),
        "nozzle_diameter": number_or_text(report.nozzle_diameter),
        "nozzle_type": report.nozzle_type,
        "wifi_signal_dbm": parse_signal_dbm(report.wifi_signal),
        "temps": {
            "nozzle": report.nozzle_temper,
            "nozzle_target": report.nozzle_target_temper,
            "bed": report.bed_temper,
            "bed_target": report.bed_target_temper,
            "chamber": report.chamber_temper,
        },
        "fans": {
            "part": report.cooling_fan_speed,
            "aux": report.big_fan1_speed,
            "chamber": report.big_fan2_speed,
            "heatbreak": report.heatbreak_fan_speed,
        },
        "lights": _project_lights(report.lights_report),
        "camera": _project_camera(report.ipcam),
        "upgrade": _project_upgrade(report.upgrade_state),
        "ams": _project_ams(report.ams, report),
        "external_spool": _project_external_spool(report.vt_tray),
        "online": _project_online(report.online),
        "network": _project_network(report.net),
        "job": {
            "stage": report.mc_print_stage,
            "sub_stage": safe_int(report.mc_print_sub_stage),
            "percent": safe_number(report.mc_percent),
            "remaining_seconds": safe_number(report.mc_remaining_time),
            "file": report.gcode_file,
            "layer": safe_int(report.layer_num),
            "total_layers": safe_int(report.total_layer_num),
        },
    }


def extract_sequence_id(envelope: ReportEnvelope) -> str | None:
    """Device-side sequence id of a report (``print.sequence_id`` or top-level)."""
    if envelope.print_ is not None and envelope.print_.sequence_id is not None:
        return envelope.print_.sequence_id
    return envelope.sequence_id


def peek_sequence_id(raw: Any) -> str | None:
    """Device-side sequence id of a raw message, without projecting it."""
    return extract_sequence_id(_parse_envelope(raw))


def normalize_report(raw: Any, *, received_at: datetime | None = None) -> dict[str, Any]:
    """Project a raw report message onto a partial canonical state.

    Never raises: missing or malformed paths simply leave the matching
    canonical fields absent. The result always carries the bookkeeping
    keys ``timestamp`` and ``raw``.
    """
    envelope = _parse_envelope(raw)
    report = envelope.print_

    patch: dict[str, Any] = _project_print(report) if report is not None else {}
    patch.update(
        {
            "raw": raw,
            "timestamp": received_at or datetime.now(UTC),
            "command": (report.command if report is not None else None) or envelope.command,
            "sequence_id": extract_sequence_id(envelope),
        }
    )
    pruned = prune_patch(patch)
    if raw is not None:
        # The raw payload is opaque: keep it exactly as received.
        pruned["raw"] = raw
    return pruned
