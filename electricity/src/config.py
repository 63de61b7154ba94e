"""
Electricity bridge configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Built once in ``main()`` and passed to each component constructor; no
module reads the environment on its own.

CHANGELOG:
- 2026-03-09: Add EMIT_COMPLETE_TELEGRAMS_ONLY
- 2026-03-02: Initial creation (STORY-001)

TODO:
- None
"""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class BridgeSettings(BaseSettings):
    """Electricity bridge configuration.

    All values are loaded from environment variables. ``INFLUX_TOKEN`` is
    required; everything else has a default.

    Attributes:
        influx_url: InfluxDB base URL (http or https).
        influx_token: InfluxDB API token with write access.
        influx_org: InfluxDB organisation.
        influx_bucket: InfluxDB bucket receiving ``energy`` points.
        inverter_host: SolarEdge inverter IP address / hostname.
        inverter_port: SolarEdge Modbus TCP port (default 1502).
        inverter_slave_id: Modbus slave / unit ID (default 1).
        modbus_timeout_s: Per-request Modbus timeout in seconds.
        listen_host: Address the telegram listener binds to.
        listen_port: Port the telegram listener binds to.
        read_chunk_size: Bytes per socket read.
        max_telegram_size: Telegram buffer cap in characters.
        emit_complete_telegrams_only: Run one pass per complete telegram
            instead of one per chunk.
        health_path: Health JSON file path. Empty disables it.
        log_level: Root logging level name.
    """

    influx_url: str = "http://localhost:8086"
    influx_token: str
    influx_org: str = "home"
    influx_bucket: str = "electricity"
    inverter_host: str = "localhost"
    inverter_port: int = 1502
    inverter_slave_id: int = 1
    modbus_timeout_s: float = 10.0
    listen_host: str = "0.0.0.0"
    listen_port: int = 36082
    read_chunk_size: int = 2048 * 8
    max_telegram_size: int = 65536
    emit_complete_telegrams_only: bool = False
    health_path: str = "/data/health.json"
    log_level: str = "INFO"

    @field_validator("influx_url")
    @classmethod
    def influx_url_must_have_scheme(cls, v: str) -> str:
        """Validate that the InfluxDB URL is http or https."""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"INFLUX_URL must start with http:// or https:// (got: '{v[:20]}...')"
            )
        return v.rstrip("/")

    @field_validator("inverter_port", "listen_port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP ports are in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("inverter_slave_id")
    @classmethod
    def inverter_slave_id_must_be_valid(cls, v: int) -> int:
        """Validate Modbus slave ID is in valid range (1-247)."""
        if v < 1 or v > 247:
            raise ValueError("INVERTER_SLAVE_ID must be between 1 and 247")
        return v

    @field_validator("modbus_timeout_s")
    @classmethod
    def modbus_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the Modbus timeout is positive."""
        if v <= 0:
            raise ValueError("MODBUS_TIMEOUT_S must be > 0")
        return v

    @field_validator("read_chunk_size")
    @classmethod
    def read_chunk_size_must_be_positive(cls, v: int) -> int:
        """Validate the socket read size is at least one byte."""
        if v < 1:
            raise ValueError("READ_CHUNK_SIZE must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Validate the log level is a standard logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL '{v}' is not a logging level")
        return level

    @model_validator(mode="after")
    def _telegram_fits_in_buffer(self) -> "BridgeSettings":
        """A single read must fit in the telegram buffer."""
        if self.max_telegram_size < self.read_chunk_size:
            raise ValueError("MAX_TELEGRAM_SIZE must be >= READ_CHUNK_SIZE")
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
