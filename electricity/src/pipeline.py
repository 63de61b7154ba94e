"""
Extraction pass: telegram text in, one measurement out.

A pass extracts the tagged fields, reads both inverter values, runs the
usage accounting and emits the measurement. It is run by a connection
worker after every chunk (or once per complete telegram, see
:meth:`~electricity.src.telegram.TelegramAssembler.take_complete`).

Errors that are fatal to the worker propagate out of :meth:`run`:
``NumericParseError`` and ``BusReadError``. Build and sink failures are
handled inside the emitter.

CHANGELOG:
- 2026-03-06: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from electricity.src.accounting import UsageFigures, account
from electricity.src.telegram import extract_fields

if TYPE_CHECKING:
    from electricity.src.emitter import MeasurementEmitter
    from electricity.src.health import HealthWriter
    from electricity.src.inverter import InverterReader

logger = logging.getLogger(__name__)


class TelegramPipeline:
    """Runs extraction passes against shared inverter and sink resources.

    One instance is shared by every connection worker; it holds no
    per-connection state.

    Args:
        reader: Shared inverter reader.
        emitter: Measurement emitter wrapping the sink.
        health: HealthWriter instance, or None to skip health writes.
    """

    def __init__(
        self,
        *,
        reader: InverterReader,
        emitter: MeasurementEmitter,
        health: HealthWriter | None = None,
    ) -> None:
        self._reader = reader
        self._emitter = emitter
        self._health = health

    def run(self, text: str) -> UsageFigures:
        """Run one extraction pass over CRLF-stripped telegram text.

        Returns:
            The figures computed for this pass.

        Raises:
            NumericParseError: A field value is not a decimal literal.
            BusReadError: An inverter read failed.
        """
        fields = extract_fields(text)
        for tagged in fields:
            logger.debug(
                "obis_code=%s value=%s unit=%s", tagged.code, tagged.value, tagged.unit
            )

        production = self._reader.read_instantaneous_power()
        production_lifetime = self._reader.read_lifetime_production()

        figures = account(
            fields,
            production_w=production.value,
            production_lifetime_wh=production_lifetime.floor_scaled(),
        )

        written = self._emitter.emit(fields, figures)

        if self._health is not None:
            self._health.record_telegram()
            if written:
                self._health.record_write()

        return figures
