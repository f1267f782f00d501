"""Canonical printer state.

The state engine merges and diffs plain pruned dicts shaped like
:class:`PrinterState`; this module gives that shape a typed view for
consumers. Every field is optional except ``timestamp``: ``None`` means
"never reported", not false or zero.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bambulink.models._base import BambuEnum


class LightMode(BambuEnum):
    ON = "on"
    OFF = "off"
    FLASHING = "flashing"


class UpgradeStatus(BambuEnum):
    IDLE = "IDLE"
    DOWNLOADING = "DOWNLOADING"
    INSTALLING = "INSTALLING"
    UNKNOWN = "UNKNOWN"


class CameraSwitch(BambuEnum):
    ENABLE = "enable"
    DISABLE = "disable"


class _StateModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Temperatures(_StateModel):
    """Temperatures in °C."""

    nozzle: float | None = None
    nozzle_target: float | None = None
    bed: float | None = None
    bed_target: float | None = None
    chamber: float | None = None


class FanSpeeds(_StateModel):
    """Fan duty values, in whatever unit the printer reports."""

    part: float | None = None
    aux: float | None = None
    chamber: float | None = None
    heatbreak: float | None = None


class CameraState(_StateModel):
    enabled: bool | None = None
    record: CameraSwitch | None = None
    timelapse: CameraSwitch | None = None
    resolution: str | None = None
    tutk_server: CameraSwitch | None = None
    mode_bits: int | None = None


class UpgradeState(_StateModel):
    status: UpgradeStatus | None = None
    progress_pct: float | None = None
    message: str | None = None
    current_version: str | None = None
    new_version: str | None = None
    has_new_version: bool | None = None


class Tray(_StateModel):
    """A filament slot."""

    id: int
    type: str | None = None
    color_hex: str | None = None
    nozzle_temp_min: float | None = None
    nozzle_temp_max: float | None = None
    bed_temp: float | None = None
    remain: float | None = None
    """Remaining amount estimate (percent); negative when unknown to the AMS."""
    info_idx: str | None = None
    external: bool = False
    """``True`` for the reserved external-spool id 254."""


class AmsState(_StateModel):
    trays: dict[int, Tray] = Field(default_factory=dict)
    tray_now: int | None = None
    tray_pre: int | None = None
    exist_bits: str | None = None
    is_bbl_bits: str | None = None
    version: int | None = None


class OnlineState(_StateModel):
    ahb: bool | None = None
    rfid: bool | None = None
    version: int | None = None


class NetworkInterface(_StateModel):
    """IPv4 address/mask, packed as little-endian integers by the printer."""

    ip: int | None = None
    mask: int | None = None


class JobState(_StateModel):
    stage: str | None = None
    sub_stage: int | None = None
    percent: float | None = None
    remaining_seconds: float | None = None
    """``mc_remaining_time`` exactly as the printer reports it."""
    file: str | None = None
    layer: int | None = None
    total_layers: int | None = None


class PrinterState(_StateModel):
    """One reconciled snapshot of printer status."""

    timestamp: datetime
    raw: Any = None
    command: str | None = None
    sequence_id: str | None = None

    lifecycle: str | None = None
    print_type: str | None = None
    gcode_state: str | None = None
    speed_level: int | None = None
    home_flag: int | None = None
    nozzle_diameter: float | str | None = None
    nozzle_type: str | None = None
    wifi_signal_dbm: int | None = None

    temps: Temperatures = Field(default_factory=Temperatures)
    fans: FanSpeeds = Field(default_factory=FanSpeeds)
    lights: dict[str, LightMode] = Field(default_factory=dict)
    camera: CameraState | None = None
    upgrade: UpgradeState | None = None
    ams: AmsState | None = None
    external_spool: Tray | None = None
    online: OnlineState | None = None
    network: list[NetworkInterface] | None = None
    job: JobState | None = None


class SessionState(enum.StrEnum):
    """Connection lifecycle of a client session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
