"""bambulink - Async Python client for Bambu Lab printers over LAN MQTT."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bambulink")
except PackageNotFoundError:
    __version__ = "0+local"
from bambulink._mqtt import BambuMqttRuntime, Transport
from bambulink.client import BambuClient
from bambulink.config import BambuConfig
from bambulink.correlator import CommandCorrelator, InboundMessage, MessageKind
from bambulink.exceptions import (
    BambuCommandError,
    BambuCommandTimeoutError,
    BambuConfigError,
    BambuError,
    BambuNotConnectedError,
    BambuPayloadError,
    BambuTransportError,
)
from bambulink.models import (
    AmsState,
    Axis,
    CameraState,
    CameraSwitch,
    Fan,
    FanSpeeds,
    Heater,
    JobState,
    LightMode,
    PrinterState,
    PrintSpeed,
    SessionState,
    Temperatures,
    Tray,
    UpgradeState,
    UpgradeStatus,
)

__all__ = [
    "__version__",
    "AmsState",
    "Axis",
    "BambuClient",
    "BambuCommandError",
    "BambuCommandTimeoutError",
    "BambuConfig",
    "BambuConfigError",
    "BambuError",
    "BambuMqttRuntime",
    "BambuNotConnectedError",
    "BambuPayloadError",
    "BambuTransportError",
    "CameraState",
    "CameraSwitch",
    "CommandCorrelator",
    "Fan",
    "FanSpeeds",
    "Heater",
    "InboundMessage",
    "JobState",
    "LightMode",
    "MessageKind",
    "PrintSpeed",
    "PrinterState",
    "SessionState",
    "Temperatures",
    "Transport",
    "Tray",
    "UpgradeState",
    "UpgradeStatus",
]
