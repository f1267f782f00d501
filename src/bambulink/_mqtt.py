"""Internal MQTT transport, payload decoding, and runtime helpers."""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from collections.abc import Callable
from typing import Any, Protocol, cast

import paho.mqtt.client as mqtt

from bambulink._redact import redact_for_log
from bambulink.config import BambuConfig
from bambulink.exceptions import BambuNotConnectedError, BambuPayloadError, BambuTransportError


def decode_report_payload(payload: bytes) -> dict[str, Any]:
    """Parse report payload bytes into a JSON object."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BambuPayloadError(f"Report payload is not UTF-8 JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise BambuPayloadError("Report payload decoded to non-object JSON")
    return parsed


class Transport(Protocol):
    """Publish/subscribe primitives the client needs.

    The client installs the ``on_*`` listeners before calling
    :meth:`connect`; implementations must invoke them on the client's
    event loop thread.
    """

    on_connect: Callable[[], None] | None
    on_disconnect: Callable[[str | None], None] | None
    on_error: Callable[[Exception], None] | None
    on_message: Callable[[str, bytes], None] | None

    @property
    def is_connected(self) -> bool: ...

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def publish(self, topic: str, text: str) -> None: ...


def _tls_context(insecure: bool) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if insecure:
        # Printers present a self-signed certificate for their serial.
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class BambuMqttRuntime:
    """Threaded paho-mqtt transport that delivers callbacks onto an asyncio loop.

    :meth:`connect` blocks until the TCP/TLS connection is opened; run it in
    an executor. paho's network thread then handles keepalive and
    reconnects, and re-subscribes to the report topic on every connect.
    """

    def __init__(
        self,
        config: BambuConfig,
        *,
        loop: asyncio.AbstractEventLoop,
        qos: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._qos = qos
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False

        self.on_connect: Callable[[], None] | None = None
        self.on_disconnect: Callable[[str | None], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None
        self.on_message: Callable[[str, bytes], None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the network loop is active."""
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _dispatch(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def connect(self) -> None:
        """Open the broker connection and start paho's network loop."""
        self.disconnect()
        config = self._config
        topic = config.report_topic
        self._logger.debug(
            "MQTT connect requested host=%s port=%s topic=%s client_id=%s",
            config.host,
            config.port,
            topic,
            config.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.client_id or "",
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(config.username, config.access_code)
        client.tls_set_context(_tls_context(config.tls_insecure))
        if config.tls_insecure:
            client.tls_insecure_set(True)
        client.reconnect_delay_set(min_delay=1, max_delay=30)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                self._dispatch(
                    self.on_error,
                    BambuTransportError(f"MQTT connect failed: {reason_code}", reason_code=reason_code.value),
                )
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            self._logger.debug("MQTT subscribing topic=%s", topic)
            result, _mid = c.subscribe(topic, qos=0)
            if result != mqtt.MQTT_ERR_SUCCESS:
                self._dispatch(
                    self.on_error,
                    BambuTransportError(
                        f"MQTT subscribe failed: {mqtt.error_string(result)}",
                        reason_code=result,
                    ),
                )
                return
            self._connected = True
            self._dispatch(self.on_connect)

        def on_subscribe(
            _c: mqtt.Client,
            _userdata: Any,
            _mid: int,
            reason_codes: list[Any],
            _properties: Any,
        ) -> None:
            for reason_code in reason_codes:
                if reason_code.is_failure:
                    self._logger.warning("MQTT subscription rejected: %s", reason_code)
                    self._dispatch(
                        self.on_error,
                        BambuTransportError(
                            f"MQTT subscription rejected: {reason_code}",
                            reason_code=reason_code.value,
                        ),
                    )

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._logger.debug("Received PUBLISH topic=%s bytes=%d", msg.topic, len(msg.payload))
            self._dispatch(self.on_message, msg.topic, bytes(msg.payload))

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)
                self._dispatch(self.on_disconnect, str(reason_code))

        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(config.host, config.port, keepalive=config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def disconnect(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def publish(self, topic: str, text: str) -> None:
        """Publish *text*; raises :class:`BambuTransportError` when paho rejects it."""
        client = self._client
        if client is None or not self._connected:
            raise BambuNotConnectedError("MQTT client not connected")
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("MQTT publish topic=%s payload=%s", topic, redact_for_log(json.loads(text)))
        info = client.publish(topic, text, qos=self._qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BambuTransportError(
                f"MQTT publish failed: {mqtt.error_string(info.rc)}",
                reason_code=info.rc,
            )
