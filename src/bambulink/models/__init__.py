"""Report, state and command models."""

from bambulink.models._base import BambuBaseModel, BambuEnum
from bambulink.models.commands import (
    Axis,
    Command,
    CommandGroup,
    Fan,
    GcodeLine,
    GetVersion,
    Heater,
    LedControl,
    PausePrint,
    PrintSpeed,
    ProjectFile,
    PushAll,
    ResumePrint,
    SetPrintSpeed,
    StopPrint,
)
from bambulink.models.report import ReportEnvelope
from bambulink.models.state import (
    AmsState,
    CameraState,
    CameraSwitch,
    FanSpeeds,
    JobState,
    LightMode,
    NetworkInterface,
    OnlineState,
    PrinterState,
    SessionState,
    Temperatures,
    Tray,
    UpgradeState,
    UpgradeStatus,
)

__all__ = [
    "AmsState",
    "Axis",
    "BambuBaseModel",
    "BambuEnum",
    "CameraState",
    "CameraSwitch",
    "Command",
    "CommandGroup",
    "Fan",
    "FanSpeeds",
    "GcodeLine",
    "GetVersion",
    "Heater",
    "JobState",
    "LedControl",
    "LightMode",
    "NetworkInterface",
    "OnlineState",
    "PausePrint",
    "PrintSpeed",
    "PrinterState",
    "ProjectFile",
    "PushAll",
    "ReportEnvelope",
    "ResumePrint",
    "SessionState",
    "SetPrintSpeed",
    "StopPrint",
    "Temperatures",
    "Tray",
    "UpgradeState",
    "UpgradeStatus",
]
