"""Command envelopes sent on the request topic.

Each command model serialises to ``{group: {"command": name, **params}}``.
Sequence numbers are not part of the models; the correlator stamps them
when the envelope is published.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from bambulink.models.state import LightMode


class CommandGroup(enum.StrEnum):
    """Top-level envelope key a command is nested under."""

    PRINT = "print"
    SYSTEM = "system"
    INFO = "info"
    PUSHING = "pushing"


class PrintSpeed(enum.IntEnum):
    """Print speed tiers (``print_speed`` parameter)."""

    SILENT = 1
    STANDARD = 2
    SPORT = 3
    LUDICROUS = 4


class Heater(enum.IntEnum):
    """Heaters addressable by G-code; the value is the M-code number."""

    BED = 140
    NOZZLE = 104


class Fan(enum.IntEnum):
    """Fan index for ``M106 P<n>``."""

    PART = 1
    AUX = 2
    CHAMBER = 3


class Axis(enum.StrEnum):
    X = "X"
    Y = "Y"
    Z = "Z"


# Swap to the external spool (tray 254): heat, cut and retract the loaded
# filament, purge 40 mm from the external spool, then wipe the nozzle.
EXTERNAL_SPOOL_CHANGE: tuple[str, ...] = (
    "M620 S254",
    "M106 S255",
    "M104 S250",
    "M17 S",
    "M17 X0.5 Y0.5",
    "G91",
    "G1 Y-5 F1200",
    "G1 Z3",
    "G90",
    "G28 X",
    "M17 R",
    "G1 X70 F21000",
    "G1 Y245",
    "G1 Y265 F3000",
    "G4",
    "M106 S0",
    "M109 S250",
    "G1 X90",
    "G1 Y255",
    "G1 X120",
    "G1 X20 Y50 F21000",
    "G1 Y-3",
    "T254",
    "G1 X54",
    "G1 Y265",
    "G92 E0",
    "G1 E40 F180",
    "G4",
    "M104 S0",
    "G1 X70 F15000",
    "G1 X76",
    "G1 X65",
    "G1 X76",
    "G1 X65",
    "G1 X90 F3000",
    "G1 Y255",
    "G1 X100",
    "G1 Y265",
    "G1 X70 F10000",
    "G1 X100 F5000",
    "G1 X70 F10000",
    "G1 X100 F5000",
    "G1 X165 F12000",
    "G1 Y245",
    "G1 X70",
    "G1 Y265 F3000",
    "G91",
    "G1 Z-3 F1200",
    "G90",
    "M621 S254",
)


class Command(BaseModel):
    """Base class for command models."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    group: ClassVar[CommandGroup]
    command: ClassVar[str]

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready envelope for this command."""
        params = self.model_dump(exclude_none=True)
        return {str(self.group): {"command": self.command, **params}}


class PushAll(Command):
    """Ask the printer to publish its full status."""

    group = CommandGroup.PUSHING
    command = "pushall"


class GetVersion(Command):
    group = CommandGroup.INFO
    command = "get_version"


class StopPrint(Command):
    group = CommandGroup.PRINT
    command = "stop"


class PausePrint(Command):
    group = CommandGroup.PRINT
    command = "pause"


class ResumePrint(Command):
    group = CommandGroup.PRINT
    command = "resume"


class SetPrintSpeed(Command):
    group = CommandGroup.PRINT
    command = "print_speed"

    param: PrintSpeed

    @field_serializer("param")
    def _serialize_param(self, value: PrintSpeed) -> str:
        # The printer expects the tier as a string.
        return str(int(value))


class GcodeLine(Command):
    """Raw G-code, one or more newline-separated lines."""

    group = CommandGroup.PRINT
    command = "gcode_line"

    param: str = Field(min_length=1)

    @field_validator("param")
    @classmethod
    def _terminate_line(cls, value: str) -> str:
        return value if value.endswith("\n") else f"{value}\n"

    @classmethod
    def from_lines(cls, *lines: str) -> GcodeLine:
        return cls(param="\n".join(lines))

    @classmethod
    def home(cls) -> GcodeLine:
        """Home all axes."""
        return cls.from_lines("G28")

    @classmethod
    def set_temperature(cls, heater: Heater, target: float) -> GcodeLine:
        """Set a heater target without waiting for it (``0`` turns it off)."""
        if target < 0:
            raise ValueError(f"Temperature must not be negative: {target}")
        return cls.from_lines(f"M{int(heater)} S{target:g}")

    @classmethod
    def set_fan_speed(cls, fan: Fan, speed: int) -> GcodeLine:
        """Set a fan to a raw PWM value, 0 (off) to 255 (full)."""
        if not 0 <= speed <= 255:
            raise ValueError(f"Fan speed out of range 0..255: {speed}")
        return cls.from_lines(f"M106 P{int(fan)} S{speed}")

    @classmethod
    def move(cls, axis: Axis, distance: float, *, feed_rate: int = 3000) -> GcodeLine:
        """Jog one axis by *distance* millimetres relative to its position.

        Soft endstops are enabled for the move and the printer's
        positioning mode is restored afterwards.
        """
        if feed_rate <= 0:
            raise ValueError(f"Feed rate must be positive: {feed_rate}")
        return cls.from_lines(
            "M211 S",
            "M211 X1 Y1 Z1",
            "M1002 push_ref_mode",
            "G91",
            f"G1 {axis}{distance:g} F{feed_rate}",
            "M1002 pop_ref_mode",
            "M211 R",
        )

    @classmethod
    def external_spool_change(cls) -> GcodeLine:
        """Retract the loaded filament and feed from the external spool."""
        return cls.from_lines(*EXTERNAL_SPOOL_CHANGE)


class ProjectFile(Command):
    """Start printing a file already stored on the printer's SD card.

    ``param`` points at the plate G-code inside the 3MF archive.
    """

    group = CommandGroup.PRINT
    command = "project_file"

    filename: str = Field(min_length=1, exclude=True)
    plate: int = Field(default=1, ge=1, exclude=True)
    timelapse: bool = False
    bed_leveling: bool = True
    flow_cali: bool = True
    vibration_cali: bool = True
    layer_inspect: bool = False
    use_ams: bool = True

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload[str(self.group)].update(
            {
                "param": f"Metadata/plate_{self.plate}.gcode",
                "subtask_name": self.filename,
                "url": f"ftp://{self.filename}",
            }
        )
        return payload


class LedControl(Command):
    """Set a light node's mode. Timing fields only matter for ``flashing``."""

    group = CommandGroup.SYSTEM
    command = "ledctrl"

    led_node: str = Field(min_length=1)
    led_mode: LightMode
    led_on_time: int = Field(default=500, ge=0)
    """Milliseconds on per flash cycle."""
    led_off_time: int = Field(default=500, ge=0)
    loop_times: int = Field(default=0, ge=0)
    interval_time: int = Field(default=0, ge=0)

    @field_serializer("led_mode")
    def _serialize_mode(self, value: LightMode) -> str:
        return value.value
