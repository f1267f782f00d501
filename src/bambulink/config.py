"""Client configuration for bambulink."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from bambulink._constants import DEFAULT_COMMAND_TIMEOUT, MQTT_PORT, MQTT_USERNAME, REPORT_TOPIC, REQUEST_TOPIC
from bambulink.exceptions import BambuConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class BambuConfig:
    """Client configuration.

    Parameters
    ----------
    host : str
        LAN address of the printer.
    access_code : str
        LAN access code shown on the printer screen. Used as MQTT password.
    serial : str
        Printer serial number. Used to build the report/request topics.
    port : int
        MQTT (TLS) port.
    username : str
        MQTT username. Printers in LAN mode accept ``bblp`` only.
    command_timeout : float
        Default seconds to wait for a reply to a command that expects one.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    tls_insecure : bool
        Skip certificate verification. Printers ship self-signed certificates.
    client_id : str or None
        MQTT client id. Generated by paho when ``None``.
    sequence_start : int
        Sequence numbers start at ``sequence_start + 1``. Useful when several
        clients talk to the same printer.
    request_full_state_on_connect : bool
        Issue a full-state (``pushall``) request every time the session connects.
    """

    host: str
    access_code: str
    serial: str
    port: int = MQTT_PORT
    username: str = MQTT_USERNAME
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    mqtt_keepalive: int = 60
    tls_insecure: bool = True
    client_id: str | None = None
    sequence_start: int = 0
    request_full_state_on_connect: bool = True

    def __post_init__(self) -> None:
        for name in ("host", "access_code", "serial"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise BambuConfigError(f"{name} must be a non-empty string")
        if self.command_timeout <= 0:
            raise BambuConfigError(f"command_timeout must be positive, got {self.command_timeout}")
        if self.sequence_start < 0:
            raise BambuConfigError(f"sequence_start must not be negative, got {self.sequence_start}")

    @property
    def report_topic(self) -> str:
        """Topic the printer publishes status and replies on."""
        return REPORT_TOPIC.format(serial=self.serial)

    @property
    def request_topic(self) -> str:
        """Topic the printer accepts commands on."""
        return REQUEST_TOPIC.format(serial=self.serial)

    @classmethod
    def from_env(cls, **overrides: Any) -> BambuConfig:
        """Create configuration from environment variables.

        Reads ``BAMBU_HOST``, ``BAMBU_ACCESS_CODE``, ``BAMBU_SERIAL`` and the
        optional ``BAMBU_*`` tuning variables. Explicit keyword arguments
        override environment values.

        Raises
        ------
        BambuConfigError
            If a required value is missing from both env and overrides.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BAMBU_HOST": "host",
            "BAMBU_ACCESS_CODE": "access_code",
            "BAMBU_SERIAL": "serial",
            "BAMBU_USERNAME": "username",
            "BAMBU_CLIENT_ID": "client_id",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric values, handled separately
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "BAMBU_PORT": ("port", int),
            "BAMBU_COMMAND_TIMEOUT": ("command_timeout", float),
            "BAMBU_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "BAMBU_SEQUENCE_START": ("sequence_start", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val)
            except ValueError as exc:
                raise BambuConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        if "tls_insecure" not in overrides:
            config_kwargs["tls_insecure"] = _env_bool(env.get("BAMBU_TLS_INSECURE"), True)

        config_kwargs.update(overrides)

        missing = [name for name in ("host", "access_code", "serial") if not config_kwargs.get(name)]
        if missing:
            raise BambuConfigError(f"Missing required configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
