"""Custom exception hierarchy for bambulink."""

from __future__ import annotations


class BambuError(Exception):
    """Base exception for all bambulink errors."""


class BambuConfigError(BambuError):
    """Invalid or missing configuration."""


class BambuTransportError(BambuError):
    """MQTT-level failure (connect, subscribe, publish)."""

    def __init__(
        self,
        message: str,
        *,
        reason_code: int | None = None,
    ) -> None:
        self.reason_code = reason_code
        super().__init__(message)


class BambuNotConnectedError(BambuTransportError):
    """A command was issued while the session is not connected."""


class BambuPayloadError(BambuError):
    """Inbound payload is not a UTF-8 encoded JSON object."""


class BambuCommandError(BambuError):
    """A command could not be completed."""

    def __init__(self, message: str, *, sequence: int) -> None:
        self.sequence = sequence
        super().__init__(message)


class BambuCommandTimeoutError(BambuCommandError):
    """No reply matched the command's sequence number before its deadline."""

    def __init__(self, sequence: int, timeout: float | None = None) -> None:
        self.timeout = timeout
        super().__init__(f"Command timeout for sequence {sequence}", sequence=sequence)
