"""
TCP listener and per-connection worker for P1 telegram streams.

Every accepted connection is served by its own thread
(:class:`TelegramServer` is a ``ThreadingTCPServer``), so blocking socket
and Modbus I/O in one worker never stalls another. A worker owns its
:class:`~electricity.src.telegram.TelegramAssembler`; the
:class:`~electricity.src.pipeline.TelegramPipeline` and the inverter reader
behind it are shared.

Worker lifecycle:

- Zero-length read: the peer closed the connection, so its telegram cycle
  ends with it and the worker returns. The listener keeps accepting, and the
  next cycle starts on the meter's next connection.
- Undecodable chunk: logged and skipped.
- ``BridgeError`` escaping a pass (bad number, bus failure, buffer
  overflow): the worker ends and :meth:`TelegramServer.handle_error` logs it.
  The listener and all other workers keep running.

CHANGELOG:
- 2026-03-09: Optional trailer-gated extraction (emit_complete_only)
- 2026-03-06: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import logging
import socket
import socketserver
from typing import TYPE_CHECKING

from electricity.src.errors import TelegramDecodeError
from electricity.src.telegram import DEFAULT_MAX_SIZE, TelegramAssembler

if TYPE_CHECKING:
    from electricity.src.health import HealthWriter
    from electricity.src.pipeline import TelegramPipeline

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2048 * 8
"""Bytes per socket read; large enough for a telegram in a few reads."""


def handle_connection(
    sock: socket.socket,
    pipeline: TelegramPipeline,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_telegram_size: int = DEFAULT_MAX_SIZE,
    emit_complete_only: bool = False,
) -> int:
    """Serve one meter connection until it closes.

    Args:
        sock: Connected socket delivering telegram bytes.
        pipeline: Shared extraction pipeline.
        chunk_size: Maximum bytes per read.
        max_telegram_size: Telegram buffer cap in characters.
        emit_complete_only: Run a pass once per complete telegram instead of
            after every chunk.

    Returns:
        Number of extraction passes run.

    Raises:
        BridgeError: A pass failed fatally; the caller closes the socket.
    """
    assembler = TelegramAssembler(max_size=max_telegram_size)
    passes = 0

    while True:
        try:
            data = sock.recv(chunk_size)
        except OSError:
            logger.warning("Socket read failed", exc_info=True)
            break

        logger.debug("Read %d bytes", len(data))
        if not data:
            break

        try:
            text = assembler.feed(data)
        except TelegramDecodeError:
            logger.error("Failed to decode chunk, skipping", exc_info=True)
            continue

        if emit_complete_only:
            text = assembler.take_complete()
            if text is None:
                continue

        pipeline.run(text)
        passes += 1

    logger.warning("Connection closed")
    return passes


class TelegramRequestHandler(socketserver.BaseRequestHandler):
    """Runs :func:`handle_connection` for one accepted socket."""

    server: TelegramServer

    def handle(self) -> None:
        logger.info("Accepted new connection from %s", self.client_address)
        health = self.server.health
        if health is not None:
            health.connection_opened()
        try:
            handle_connection(
                self.request,
                self.server.pipeline,
                chunk_size=self.server.chunk_size,
                max_telegram_size=self.server.max_telegram_size,
                emit_complete_only=self.server.emit_complete_only,
            )
        finally:
            if health is not None:
                health.connection_closed()


class TelegramServer(socketserver.ThreadingTCPServer):
    """Threaded TCP listener that feeds every connection into the pipeline.

    Args:
        address: ``(host, port)`` to bind.
        pipeline: Shared extraction pipeline.
        chunk_size: Bytes per socket read.
        max_telegram_size: Telegram buffer cap in characters.
        emit_complete_only: Trailer-gated extraction.
        health: HealthWriter instance, or None to skip health writes.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(
        self,
        address: tuple[str, int],
        pipeline: TelegramPipeline,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_telegram_size: int = DEFAULT_MAX_SIZE,
        emit_complete_only: bool = False,
        health: HealthWriter | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.chunk_size = chunk_size
        self.max_telegram_size = max_telegram_size
        self.emit_complete_only = emit_complete_only
        self.health = health
        super().__init__(address, TelegramRequestHandler)

    def handle_error(self, request: object, client_address: object) -> None:
        """Log a failed worker; only its connection is closed."""
        logger.error(
            "Connection worker for %s terminated", client_address, exc_info=True
        )
