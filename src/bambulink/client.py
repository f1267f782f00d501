"""High-level async client for Bambu Lab printers in LAN mode."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Coroutine, Mapping
from typing import Any, TypeVar

from bambulink._mqtt import BambuMqttRuntime, Transport, decode_report_payload
from bambulink.config import BambuConfig
from bambulink.correlator import CommandCorrelator, MessageKind
from bambulink.exceptions import BambuError, BambuNotConnectedError, BambuPayloadError, BambuTransportError
from bambulink.ingestion.report import normalize_report, peek_sequence_id
from bambulink.models.commands import (
    Axis,
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
from bambulink.models.state import LightMode, PrinterState, SessionState
from bambulink.notifications import Notifier
from bambulink.state.store import PrinterStateStore

_logger = logging.getLogger(__name__)

# Tag of full-state requests; their replies are applied to the state.
_FULL_STATE = "full_state"

_E = TypeVar("_E", bound=enum.Enum)


class BambuClient:
    """Async session with one printer.

    Usage::

        async with BambuClient(config) as client:
            client.on_state_update.add(lambda patch, previous: print(patch))
            await client.pause_print()

    Notifications are delivered on the event loop thread:

    - ``on_connect()`` each time the session becomes connected
    - ``on_error(exc)`` for transport failures and failed full-state requests
    - ``on_data(topic, message)`` for every decoded inbound message
    - ``on_state(snapshot)`` whenever the reported state changes
    - ``on_state_update(patch, previous)`` with the minimal change patch
    """

    def __init__(
        self,
        config: BambuConfig,
        *,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._loop: asyncio.AbstractEventLoop | None = None
        self._state = SessionState.DISCONNECTED
        # False once the caller asked to disconnect; late transport
        # connects are ignored from then on.
        self._wanted = False
        self._connected_event = asyncio.Event()
        self._store = PrinterStateStore()
        self._correlator = CommandCorrelator(
            self._publish,
            default_timeout=config.command_timeout,
            sequence_start=config.sequence_start,
            logger=_logger,
        )
        self._background: set[asyncio.Task[Any]] = set()

        self.on_connect: Notifier[[]] = Notifier("connect")
        self.on_error: Notifier[[Exception]] = Notifier("error")
        self.on_data: Notifier[[str, dict[str, Any]]] = Notifier("data")
        self.on_state: Notifier[[PrinterState]] = Notifier("state")
        self.on_state_update: Notifier[[dict[str, Any], PrinterState | None]] = Notifier("stateUpdate")

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BambuClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> BambuConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def snapshot(self) -> PrinterState | None:
        """Typed view of the reconciled printer state, ``None`` before the first report."""
        return self._store.snapshot()

    @property
    def highest_sequence(self) -> int:
        return self._correlator.highest_sequence

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect to the printer and wait until the report topic is subscribed.

        Raises
        ------
        BambuTransportError
            If the broker connection cannot be opened or is not confirmed
            within ``config.command_timeout`` seconds.
        """
        if self._state is not SessionState.DISCONNECTED:
            return
        loop = asyncio.get_running_loop()
        self._loop = loop
        transport = self._transport
        if transport is None:
            transport = BambuMqttRuntime(self._config, loop=loop, logger=_logger)
            self._transport = transport
        transport.on_connect = self._on_transport_connect
        transport.on_disconnect = self._on_transport_disconnect
        transport.on_error = self._on_transport_error
        transport.on_message = self._on_transport_message

        self._wanted = True
        self._connected_event.clear()
        self._set_state(SessionState.CONNECTING)
        try:
            await loop.run_in_executor(None, transport.connect)
            await asyncio.wait_for(self._connected_event.wait(), self._config.command_timeout)
        except Exception as exc:
            error = _as_transport_error(exc, f"Connect to {self._config.host} failed")
            _logger.warning("%s", error)
            await self._stop_transport()
            self.on_error.emit(error)
            if error is exc:
                raise
            raise error from exc

    async def disconnect(self) -> None:
        """Close the session.

        Commands still awaiting a reply are not cancelled; their timeouts
        settle them.
        """
        self._wanted = False
        for task in list(self._background):
            task.cancel()
        if self._state is SessionState.DISCONNECTED and self._transport is None:
            return
        await self._stop_transport()

    async def _stop_transport(self) -> None:
        self._wanted = False
        self._connected_event.clear()
        self._set_state(SessionState.DISCONNECTED)
        transport = self._transport
        if transport is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, transport.disconnect)
        except Exception:
            _logger.debug("Transport disconnect failed", exc_info=True)

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            _logger.debug("Session state %s -> %s", self._state, state)
            self._state = state

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Transport callbacks (event loop thread)
    # ------------------------------------------------------------------

    def _on_transport_connect(self) -> None:
        if not self._wanted:
            return
        self._set_state(SessionState.CONNECTED)
        self._connected_event.set()
        _logger.debug("Connected to %s serial=%s", self._config.host, self._config.serial)
        self.on_connect.emit()
        if self._config.request_full_state_on_connect:
            self._spawn(self._request_full_state())

    def _on_transport_disconnect(self, reason: str | None) -> None:
        self._connected_event.clear()
        if self._state is SessionState.DISCONNECTED:
            return
        self._set_state(SessionState.DISCONNECTED)
        if not self._wanted:
            return
        _logger.warning("Connection to %s lost: %s", self._config.host, reason)
        self.on_error.emit(BambuTransportError(f"Connection lost: {reason}"))

    def _on_transport_error(self, error: Exception) -> None:
        _logger.warning("Transport error: %s", error)
        self.on_error.emit(error)

    def _on_transport_message(self, topic: str, payload: bytes) -> None:
        try:
            message = decode_report_payload(payload)
        except BambuPayloadError as exc:
            _logger.warning("Dropping malformed payload topic=%s: %s", topic, exc)
            return

        self.on_data.emit(topic, message)

        inbound = self._correlator.classify(message)
        if inbound.kind is MessageKind.REPLY and inbound.tag != _FULL_STATE:
            return
        self._ingest(inbound.message)

    def _ingest(self, message: Mapping[str, Any]) -> None:
        sequence_id = peek_sequence_id(message)
        if self._store.is_duplicate(sequence_id):
            _logger.debug("Dropping duplicate report sequence_id=%s", sequence_id)
            return

        change = self._store.apply(normalize_report(message))
        if change is None:
            return
        snapshot = PrinterState.model_validate(change.current)
        previous = PrinterState.model_validate(change.previous) if change.previous is not None else None
        self.on_state.emit(snapshot)
        self.on_state_update.emit(change.patch, previous)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _publish(self, text: str) -> None:
        transport = self._transport
        if transport is None:
            raise BambuNotConnectedError("MQTT client not connected")
        transport.publish(self._config.request_topic, text)

    async def _send(
        self,
        payload: Mapping[str, Any],
        *,
        expects_reply: bool = True,
        timeout: float | None = None,
        tag: str | None = None,
    ) -> dict[str, Any] | None:
        if self._state is not SessionState.CONNECTED:
            raise BambuNotConnectedError(f"Session is {self._state}")
        return await self._correlator.send(payload, expects_reply=expects_reply, timeout=timeout, tag=tag)

    async def _request_full_state(self) -> None:
        try:
            await self.refresh()
        except BambuError as exc:
            _logger.warning("Full-state request failed: %s", exc)
            self.on_error.emit(exc)

    async def send_command(
        self,
        payload: Mapping[str, Any],
        *,
        expects_reply: bool = True,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Publish an arbitrary command envelope.

        Returns the correlated reply message, or ``None`` when
        *expects_reply* is false.

        Raises
        ------
        BambuNotConnectedError
            If the session is not connected.
        BambuTransportError
            If publishing fails.
        BambuCommandTimeoutError
            If no reply arrives within *timeout* (default
            ``config.command_timeout``) seconds.
        """
        return await self._send(payload, expects_reply=expects_reply, timeout=timeout)

    async def refresh(self, *, timeout: float | None = None) -> PrinterState | None:
        """Request the full printer status and return the updated snapshot."""
        await self._send(PushAll().to_payload(), timeout=timeout, tag=_FULL_STATE)
        return self.snapshot

    async def get_version(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        """Request module firmware versions; returns the raw reply."""
        return await self._send(GetVersion().to_payload(), timeout=timeout)

    async def stop_print(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        return await self._send(StopPrint().to_payload(), timeout=timeout)

    async def pause_print(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        return await self._send(PausePrint().to_payload(), timeout=timeout)

    async def resume_print(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        return await self._send(ResumePrint().to_payload(), timeout=timeout)

    async def set_print_speed(
        self,
        speed: PrintSpeed | int,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Switch the print speed tier (1 silent .. 4 ludicrous)."""
        command = SetPrintSpeed(param=PrintSpeed(speed))
        return await self._send(command.to_payload(), timeout=timeout)

    async def print_file(
        self,
        filename: str,
        *,
        plate: int = 1,
        timelapse: bool = False,
        bed_leveling: bool = True,
        use_ams: bool = True,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Start printing a 3MF file already uploaded to the printer."""
        command = ProjectFile(
            filename=filename,
            plate=plate,
            timelapse=timelapse,
            bed_leveling=bed_leveling,
            use_ams=use_ams,
        )
        return await self._send(command.to_payload(), timeout=timeout)

    async def send_gcode(self, gcode: str, *, timeout: float | None = None) -> dict[str, Any] | None:
        """Send raw G-code lines."""
        return await self._send(GcodeLine(param=gcode).to_payload(), timeout=timeout)

    async def home(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        return await self._send(GcodeLine.home().to_payload(), timeout=timeout)

    async def set_temperature(
        self,
        heater: Heater | str,
        target: float,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Set the bed or nozzle target temperature in degrees Celsius."""
        command = GcodeLine.set_temperature(_member(Heater, heater), target)
        return await self._send(command.to_payload(), timeout=timeout)

    async def set_fan_speed(
        self,
        fan: Fan | str,
        speed: int,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Set a fan (``part``, ``aux`` or ``chamber``) to a raw 0..255 speed."""
        command = GcodeLine.set_fan_speed(_member(Fan, fan), speed)
        return await self._send(command.to_payload(), timeout=timeout)

    async def move(
        self,
        axis: Axis | str,
        distance: float,
        *,
        feed_rate: int = 3000,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Jog *axis* by a signed *distance* in millimetres."""
        command = GcodeLine.move(_member(Axis, axis), distance, feed_rate=feed_rate)
        return await self._send(command.to_payload(), timeout=timeout)

    async def unload_filament(self, *, timeout: float | None = None) -> dict[str, Any] | None:
        """Unload the current filament and switch feeding to the external spool."""
        return await self._send(GcodeLine.external_spool_change().to_payload(), timeout=timeout)

    async def set_light(
        self,
        node: str,
        mode: LightMode | str,
        *,
        on_time: int = 500,
        off_time: int = 500,
        loop_times: int = 0,
        interval: int = 0,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Set a light node (e.g. ``chamber_light``) on, off, or flashing."""
        command = LedControl(
            led_node=node,
            led_mode=LightMode(mode),
            led_on_time=on_time,
            led_off_time=off_time,
            loop_times=loop_times,
            interval_time=interval,
        )
        return await self._send(command.to_payload(), timeout=timeout)


def _member(enum_type: type[_E], value: _E | str) -> _E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type[str(value).upper()]
    except KeyError:
        raise ValueError(f"Unknown {enum_type.__name__.lower()}: {value!r}") from None


def _as_transport_error(exc: Exception, message: str) -> BambuError:
    if isinstance(exc, BambuError):
        return exc
    if isinstance(exc, TimeoutError):
        return BambuTransportError(f"{message}: no connection acknowledgement")
    return BambuTransportError(f"{message}: {exc}")
