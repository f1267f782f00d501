from __future__ import annotations

import pytest

from bambulink.config import BambuConfig
from bambulink.exceptions import BambuConfigError


def test_topics_are_derived_from_serial() -> None:
    config = BambuConfig(host="192.168.1.50", access_code="12345678", serial="01S00A000000001")

    assert config.report_topic == "device/01S00A000000001/report"
    assert config.request_topic == "device/01S00A000000001/request"
    assert config.port == 8883
    assert config.username == "bblp"


def test_required_fields_must_be_non_empty() -> None:
    with pytest.raises(BambuConfigError):
        BambuConfig(host=" ", access_code="12345678", serial="SERIAL")


def test_command_timeout_must_be_positive() -> None:
    with pytest.raises(BambuConfigError):
        BambuConfig(host="printer", access_code="12345678", serial="SERIAL", command_timeout=0)


def test_from_env_reads_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BAMBU_HOST", "printer.lan")
    monkeypatch.setenv("BAMBU_ACCESS_CODE", "87654321")
    monkeypatch.setenv("BAMBU_SERIAL", "00M09A000000002")
    monkeypatch.setenv("BAMBU_COMMAND_TIMEOUT", "2.5")
    monkeypatch.setenv("BAMBU_SEQUENCE_START", "1000")
    monkeypatch.setenv("BAMBU_TLS_INSECURE", "false")

    config = BambuConfig.from_env()

    assert config.host == "printer.lan"
    assert config.access_code == "87654321"
    assert config.serial == "00M09A000000002"
    assert config.command_timeout == 2.5
    assert config.sequence_start == 1000
    assert config.tls_insecure is False


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BAMBU_HOST", "printer.lan")
    monkeypatch.setenv("BAMBU_ACCESS_CODE", "87654321")
    monkeypatch.setenv("BAMBU_SERIAL", "SERIAL")
    monkeypatch.setenv("BAMBU_PORT", "not-a-port")

    config = BambuConfig.from_env(host="10.0.0.2", port=1883)

    assert config.host == "10.0.0.2"
    assert config.port == 1883


def test_from_env_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BAMBU_HOST", "printer.lan")
    monkeypatch.setenv("BAMBU_ACCESS_CODE", "87654321")
    monkeypatch.setenv("BAMBU_SERIAL", "SERIAL")
    monkeypatch.setenv("BAMBU_MQTT_KEEPALIVE", "soon")

    with pytest.raises(BambuConfigError):
        BambuConfig.from_env()


def test_from_env_missing_required(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BAMBU_HOST", "BAMBU_ACCESS_CODE", "BAMBU_SERIAL"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(BambuConfigError, match="host"):
        BambuConfig.from_env(serial="SERIAL", access_code="12345678")
