"""
Electricity bridge entrypoint.

Loads configuration, connects the shared inverter reader and the InfluxDB
sink, and serves P1 telegram connections until SIGTERM/SIGINT. Each
connection is handled in its own thread by
:class:`~electricity.src.server.TelegramServer`.

Structured JSON logging is used for all events. On shutdown the listener
stops accepting, then the Modbus and InfluxDB clients are closed.

CHANGELOG:
- 2026-03-08: Wire HealthWriter and config summary logging
- 2026-03-06: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import signal
import sys
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from electricity.src.config import BridgeSettings
    from electricity.src.emitter import Sink
    from electricity.src.inverter import InverterReader
    from electricity.src.server import TelegramServer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on stderr for the root logger."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: BridgeSettings) -> None:
    """Log a config summary at startup, masking the InfluxDB token."""
    logger.info(
        "Electricity bridge starting with config: "
        "listen=%s:%s, inverter=%s:%s, inverter_slave_id=%s, "
        "modbus_timeout_s=%s, influx_url=%s, influx_org=%s, influx_bucket=%s, "
        "read_chunk_size=%s, max_telegram_size=%s, "
        "emit_complete_telegrams_only=%s, health_path=%s, "
        "influx_token_masked=%s",
        settings.listen_host,
        settings.listen_port,
        settings.inverter_host,
        settings.inverter_port,
        settings.inverter_slave_id,
        settings.modbus_timeout_s,
        settings.influx_url,
        settings.influx_org,
        settings.influx_bucket,
        settings.read_chunk_size,
        settings.max_telegram_size,
        settings.emit_complete_telegrams_only,
        settings.health_path,
        _masked_token(settings.influx_token),
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _handle_signal(server: TelegramServer) -> None:
    """Stop the listener from a helper thread.

    ``shutdown()`` waits for ``serve_forever()`` to return, and the signal
    handler runs on the thread executing it.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    threading.Thread(target=server.shutdown, name="shutdown", daemon=True).start()


def build_server(
    settings: BridgeSettings,
    *,
    reader: InverterReader,
    sink: Sink,
) -> TelegramServer:
    """Wire the pipeline and listener around the shared reader and sink."""
    from electricity.src.emitter import MeasurementEmitter
    from electricity.src.health import HealthWriter
    from electricity.src.pipeline import TelegramPipeline
    from electricity.src.server import TelegramServer

    health = HealthWriter(settings.health_path) if settings.health_path else None
    pipeline = TelegramPipeline(
        reader=reader,
        emitter=MeasurementEmitter(sink),
        health=health,
    )
    return TelegramServer(
        (settings.listen_host, settings.listen_port),
        pipeline,
        chunk_size=settings.read_chunk_size,
        max_telegram_size=settings.max_telegram_size,
        emit_complete_only=settings.emit_complete_telegrams_only,
        health=health,
    )


def main() -> None:
    """Synchronous entrypoint for the electricity bridge."""
    from electricity.src.config import BridgeSettings
    from electricity.src.inverter import InverterReader
    from electricity.src.sink import InfluxSink

    settings = BridgeSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    reader = InverterReader(
        host=settings.inverter_host,
        port=settings.inverter_port,
        slave_id=settings.inverter_slave_id,
        timeout=settings.modbus_timeout_s,
    )
    sink = InfluxSink(
        url=settings.influx_url,
        token=settings.influx_token,
        org=settings.influx_org,
        bucket=settings.influx_bucket,
    )
    server = build_server(settings, reader=reader, sink=sink)
    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda _signum, _frame: _handle_signal(server))

    logger.info("Listening on %s:%d", *server.server_address[:2])
    try:
        server.serve_forever()
    finally:
        server.server_close()
        reader.close()
        sink.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
