"""Raw printer report shapes.

These models describe what the printer *may* publish on its report topic.
Every field is optional and every nested group degrades to ``None`` when it
has the wrong shape, so validation of an arbitrary JSON object never fails
because of the content of a single field.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from bambulink.ingestion.normalize import mapping_or_none
from bambulink.models._base import BambuBaseModel, ObjectList, OptBool, OptNumber, OptStr


class TrayReport(BambuBaseModel):
    """One filament slot, either inside an AMS unit or the external ``vt_tray``."""

    id: OptNumber = None
    tray_type: OptStr = None
    tray_color: OptStr = None
    nozzle_temp_min: OptNumber = None
    nozzle_temp_max: OptNumber = None
    bed_temp: OptNumber = None
    remain: OptNumber = None
    tray_info_idx: OptStr = None


class AmsUnitReport(BambuBaseModel):
    id: OptNumber = None
    humidity: OptNumber = None
    temp: OptNumber = None
    tray: ObjectList = Field(default_factory=list)


class AmsReport(BambuBaseModel):
    ams: ObjectList = Field(default_factory=list)
    """AMS units; each carries its own ``tray`` list."""
    tray_now: OptNumber = None
    tray_pre: OptNumber = None
    tray_tar: OptNumber = None
    ams_exist_bits: OptStr = None
    tray_exist_bits: OptStr = None
    tray_is_bbl_bits: OptStr = None
    version: OptNumber = None


class IpcamReport(BambuBaseModel):
    ipcam_dev: OptStr = None
    ipcam_record: OptStr = None
    timelapse: OptStr = None
    resolution: OptStr = None
    tutk_server: OptStr = None
    mode_bits: OptNumber = None


class UpgradeStateReport(BambuBaseModel):
    sequence_id: OptNumber = None
    status: OptStr = None
    progress: OptStr = None
    message: OptStr = None
    new_ver_list: ObjectList = Field(default_factory=list)


class OnlineReport(BambuBaseModel):
    ahb: OptBool = None
    rfid: OptBool = None
    version: OptNumber = None


class LightReport(BambuBaseModel):
    node: OptStr = None
    mode: OptStr = None


class NetReport(BambuBaseModel):
    info: ObjectList = Field(default_factory=list)


_Ams = Annotated[AmsReport | None, BeforeValidator(mapping_or_none)]
_Tray = Annotated[TrayReport | None, BeforeValidator(mapping_or_none)]
_Ipcam = Annotated[IpcamReport | None, BeforeValidator(mapping_or_none)]
_Upgrade = Annotated[UpgradeStateReport | None, BeforeValidator(mapping_or_none)]
_Online = Annotated[OnlineReport | None, BeforeValidator(mapping_or_none)]
_Net = Annotated[NetReport | None, BeforeValidator(mapping_or_none)]


class PrintReport(BambuBaseModel):
    """The ``print`` group of a report message (status push or command reply)."""

    command: OptStr = None
    sequence_id: OptStr = None

    # --- Temperatures (°C) ---
    nozzle_temper: OptNumber = None
    nozzle_target_temper: OptNumber = None
    bed_temper: OptNumber = None
    bed_target_temper: OptNumber = None
    chamber_temper: OptNumber = None

    # --- Fans (device duty units) ---
    cooling_fan_speed: OptNumber = None
    big_fan1_speed: OptNumber = None
    big_fan2_speed: OptNumber = None
    heatbreak_fan_speed: OptNumber = None

    # --- Job ---
    mc_print_stage: OptStr = None
    mc_print_sub_stage: OptNumber = None
    mc_percent: OptNumber = None
    mc_remaining_time: OptNumber = None
    gcode_file: OptStr = None
    layer_num: OptNumber = None
    total_layer_num: OptNumber = None
    spd_lvl: OptNumber = None

    lifecycle: OptStr = None
    print_type: OptStr = None
    gcode_state: OptStr = None
    home_flag: OptNumber = None
    nozzle_diameter: OptStr = None
    nozzle_type: OptStr = None
    wifi_signal: OptStr = None

    # AMS bitfields are sometimes reported at this level instead of inside ``ams``.
    ams_exist_bits: OptStr = None
    tray_is_bbl_bits: OptStr = None
    version: OptNumber = None

    lights_report: ObjectList = Field(default_factory=list)
    ams: _Ams = None
    vt_tray: _Tray = None
    ipcam: _Ipcam = None
    upgrade_state: _Upgrade = None
    online: _Online = None
    net: _Net = None


_Print = Annotated[PrintReport | None, BeforeValidator(mapping_or_none)]


class ReportEnvelope(BambuBaseModel):
    """Top-level report message.

    Only the ``print`` group carries status; ``system``/``info`` replies are
    kept as plain objects for correlation and bookkeeping.
    """

    print_: _Print = Field(default=None, alias="print")
    system: Annotated[dict[str, Any] | None, BeforeValidator(mapping_or_none)] = None
    info: Annotated[dict[str, Any] | None, BeforeValidator(mapping_or_none)] = None
    command: OptStr = None
    sequence_id: OptStr = None
