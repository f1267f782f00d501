"""Command/reply correlation over a fire-and-forget publish channel.

The correlator owns the monotonic sequence counter and the map of commands
still awaiting a reply. Both are only touched from the event loop thread,
and :meth:`CommandCorrelator.send` allocates a sequence number and registers
the pending entry without suspending, so a reply can never be classified
between the two steps.

Every outbound envelope carries the canonical echo field
(:data:`bambulink._constants.SEQUENCE_FIELD`) at the top level; the
vendor ``sequence_id`` inside each command group is set to the same value.
"""

from __future__ import annotations

import asyncio
import copy
import enum
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from bambulink._constants import DEFAULT_COMMAND_TIMEOUT, SEQUENCE_FIELD
from bambulink.exceptions import BambuCommandTimeoutError, BambuError, BambuTransportError
from bambulink.ingestion.normalize import safe_number


class MessageKind(enum.StrEnum):
    REPLY = "reply"
    TELEMETRY = "telemetry"


@dataclass(slots=True)
class PendingCommand:
    """A command waiting for its reply.

    Removed on the matching reply or when its deadline fires, whichever
    comes first; never revived.
    """

    sequence: int
    future: asyncio.Future[dict[str, Any] | None]
    deadline: float
    """Loop time (``loop.time()``) at which the command times out."""
    timeout: float
    timer: asyncio.TimerHandle | None = None
    tag: str | None = None


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """Classification of one inbound message."""

    kind: MessageKind
    message: dict[str, Any]
    sequence: int | None = None
    """Correlation value carried by the message, if any."""
    tag: str | None = None
    """Tag of the resolved command (replies only)."""
    unmatched: bool = False
    """Carried a correlation value that matched no pending command."""


def stamp_sequence(payload: Mapping[str, Any], sequence: int) -> dict[str, Any]:
    """Return a copy of *payload* carrying *sequence* in every correlation slot."""
    envelope = copy.deepcopy(dict(payload))
    for value in envelope.values():
        if isinstance(value, dict):
            value["sequence_id"] = str(sequence)
    envelope[SEQUENCE_FIELD] = sequence
    return envelope


def reply_sequence(message: Mapping[str, Any]) -> int | None | bool:
    """Read the echoed correlation value.

    Returns ``None`` when the field is absent, ``False`` when present but not
    an integer, else the sequence number.
    """
    if SEQUENCE_FIELD not in message:
        return None
    parsed = safe_number(message[SEQUENCE_FIELD])
    if parsed is None or not float(parsed).is_integer():
        return False
    return int(parsed)


class CommandCorrelator:
    """Turns a publish callable into a call/await interface."""

    def __init__(
        self,
        publish: Callable[[str], None],
        *,
        default_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        sequence_start: int = 0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._publish = publish
        self._default_timeout = default_timeout
        self._sequence = sequence_start
        self._pending: dict[int, PendingCommand] = {}
        self._logger = logger or logging.getLogger(__name__)

    @property
    def highest_sequence(self) -> int:
        """Highest sequence number issued so far."""
        return self._sequence

    @property
    def pending_sequences(self) -> tuple[int, ...]:
        return tuple(self._pending)

    def pending(self, sequence: int) -> PendingCommand | None:
        """Return the command still awaiting a reply under *sequence*, if any."""
        return self._pending.get(sequence)

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def send(
        self,
        payload: Mapping[str, Any],
        *,
        expects_reply: bool = True,
        timeout: float | None = None,
        tag: str | None = None,
    ) -> asyncio.Future[dict[str, Any] | None]:
        """Publish *payload* under the next sequence number.

        The returned future resolves with the correlated reply message, or
        with ``None`` right after publishing when *expects_reply* is false.
        It fails with :class:`BambuCommandTimeoutError` when the deadline
        fires first, and with :class:`BambuTransportError` when publishing
        fails.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[dict[str, Any] | None] = loop.create_future()
        sequence = self._next_sequence()
        text = json.dumps(stamp_sequence(payload, sequence))

        if not expects_reply:
            try:
                self._publish(text)
            except Exception as exc:
                future.set_exception(_publish_error(exc, sequence))
                return future
            self._logger.debug("Published sequence=%d without reply", sequence)
            future.set_result(None)
            return future

        effective_timeout = self._default_timeout if timeout is None else timeout
        # Registered before publishing: a fast reply must find its entry.
        pending = PendingCommand(
            sequence=sequence,
            future=future,
            deadline=loop.time() + effective_timeout,
            timeout=effective_timeout,
            tag=tag,
        )
        self._pending[sequence] = pending
        pending.timer = loop.call_later(effective_timeout, self._expire, sequence)

        try:
            self._publish(text)
        except Exception as exc:
            self._discard(sequence)
            future.set_exception(_publish_error(exc, sequence))
            return future

        self._logger.debug("Published sequence=%d timeout=%.3fs", sequence, effective_timeout)
        return future

    def classify(self, message: Mapping[str, Any]) -> InboundMessage:
        """Resolve the pending command *message* replies to, if any.

        Messages without the correlation field are telemetry. Messages whose
        correlation value matches no pending command (already resolved,
        timed out, or never issued) are telemetry as well, flagged
        ``unmatched``.
        """
        body = dict(message)
        sequence = reply_sequence(body)
        if sequence is None:
            return InboundMessage(kind=MessageKind.TELEMETRY, message=body)
        if sequence is False:
            self._logger.warning("Received reply with malformed sequence: %r", body.get(SEQUENCE_FIELD))
            return InboundMessage(kind=MessageKind.TELEMETRY, message=body, unmatched=True)

        pending = self._pending.get(sequence) if sequence <= self._sequence else None
        if pending is None:
            self._logger.warning("Received reply with unknown sequence: %d", sequence)
            return InboundMessage(kind=MessageKind.TELEMETRY, message=body, sequence=sequence, unmatched=True)

        self._discard(sequence)
        if not pending.future.done():
            pending.future.set_result(body)
        self._logger.debug("Resolved sequence=%d", sequence)
        return InboundMessage(kind=MessageKind.REPLY, message=body, sequence=sequence, tag=pending.tag)

    def _discard(self, sequence: int) -> PendingCommand | None:
        pending = self._pending.pop(sequence, None)
        if pending is not None and pending.timer is not None:
            pending.timer.cancel()
        return pending

    def _expire(self, sequence: int) -> None:
        pending = self._pending.pop(sequence, None)
        if pending is None:
            return
        self._logger.debug("Command timed out sequence=%d", sequence)
        if not pending.future.done():
            pending.future.set_exception(BambuCommandTimeoutError(sequence, pending.timeout))


def _publish_error(exc: Exception, sequence: int) -> BambuError:
    if isinstance(exc, BambuError):
        return exc
    error = BambuTransportError(f"Publish failed for sequence {sequence}: {exc}")
    error.__cause__ = exc
    return error
