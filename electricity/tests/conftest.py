"""
Shared test fixtures for electricity bridge tests.

Provides environment variable fixtures for BridgeSettings configuration tests
and a sample DSMR telegram used across the telegram, pipeline and server
tests. All bridge env vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-03-02: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest

# All BridgeSettings environment variable names, used for cleanup.
_ALL_BRIDGE_ENV_VARS = (
    "INFLUX_URL",
    "INFLUX_TOKEN",
    "INFLUX_ORG",
    "INFLUX_BUCKET",
    "INVERTER_HOST",
    "INVERTER_PORT",
    "INVERTER_SLAVE_ID",
    "MODBUS_TIMEOUT_S",
    "LISTEN_HOST",
    "LISTEN_PORT",
    "READ_CHUNK_SIZE",
    "MAX_TELEGRAM_SIZE",
    "EMIT_COMPLETE_TELEGRAMS_ONLY",
    "HEALTH_PATH",
    "LOG_LEVEL",
)

SAMPLE_TELEGRAM = (
    "/ISK5\\2M550T-1012\r\n"
    "\r\n"
    "1-3:0.2.8(50)\r\n"
    "0-0:1.0.0(230301120000W)\r\n"
    "0-0:96.1.1(4530303434303037333832363138323138)\r\n"
    "1-0:1.8.0(001234.500*kWh)\r\n"
    "1-0:2.8.0(000100.250*kWh)\r\n"
    "0-0:96.14.0(0002)\r\n"
    "1-0:1.7.0(00.512*kW)\r\n"
    "1-0:2.7.0(00.000*kW)\r\n"
    "0-0:96.7.21(00010)\r\n"
    "1-0:99.97.0(1)(0-0:96.7.19)(000101000001W)(2147483647*s)\r\n"
    "1-0:32.32.0(00000)\r\n"
    "1-0:32.7.0(231.0*V)\r\n"
    "1-0:31.7.0(002*A)\r\n"
    "!1A2B\r\n"
)
"""A DSMR 5 telegram; tagged fields in order: 1.8.0, 2.8.0, 1.7.0, 2.7.0,
32.7.0, 31.7.0."""


@pytest.fixture(autouse=True)
def _clean_bridge_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all bridge env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_BRIDGE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def sample_telegram() -> str:
    """Return the sample DSMR telegram text (with CRLF line endings)."""
    return SAMPLE_TELEGRAM


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every BridgeSettings environment variable.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "INFLUX_URL": "https://influx.example.com:8086",
        "INFLUX_TOKEN": "test-influx-token",
        "INFLUX_ORG": "test-org",
        "INFLUX_BUCKET": "test-bucket",
        "INVERTER_HOST": "192.168.1.60",
        "INVERTER_PORT": "502",
        "INVERTER_SLAVE_ID": "2",
        "MODBUS_TIMEOUT_S": "3.5",
        "LISTEN_HOST": "127.0.0.1",
        "LISTEN_PORT": "6969",
        "READ_CHUNK_SIZE": "4096",
        "MAX_TELEGRAM_SIZE": "32768",
        "EMIT_COMPLETE_TELEGRAMS_ONLY": "true",
        "HEALTH_PATH": "/tmp/test-health.json",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables.

    Optional variables should fall back to their defaults.
    """
    env = {"INFLUX_TOKEN": "influx-token-xyz"}
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
