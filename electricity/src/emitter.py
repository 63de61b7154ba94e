"""
Measurement building and submission.

Builds one ``energy`` :class:`~electricity.src.models.Measurement` per pass
(every telegram code as a float field plus ``production``, ``usage`` and
``lifetime_usage`` as ints) and hands it to the sink.

Neither failure mode stops the pipeline:

- MeasurementBuildError: logged, pass abandoned.
- SinkSubmitError: logged, measurement dropped (no queue, no retry).

CHANGELOG:
- 2026-03-05: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Protocol

from electricity.src.accounting import UsageFigures
from electricity.src.errors import MeasurementBuildError, SinkSubmitError
from electricity.src.models import MEASUREMENT_NAME, Measurement, TaggedField

logger = logging.getLogger(__name__)

DERIVED_FIELDS = ("production", "usage", "lifetime_usage")


class Sink(Protocol):
    """Anything that can store a measurement."""

    def submit(self, measurement: Measurement) -> None:
        """Store *measurement* or raise :class:`SinkSubmitError`."""
        ...


def build_measurement(
    fields: Iterable[TaggedField],
    figures: UsageFigures,
) -> Measurement:
    """Build the measurement for one pass.

    Repeated codes keep their last value.

    Raises:
        MeasurementBuildError: A field name is empty or shadows a derived
            field, or a value is not finite.
        NumericParseError: A field value is not a decimal literal.
    """
    values: dict[str, int | float] = {}
    for tagged in fields:
        if not tagged.code:
            raise MeasurementBuildError("Empty field name")
        if tagged.code in DERIVED_FIELDS:
            raise MeasurementBuildError(
                f"Telegram code '{tagged.code}' collides with a derived field"
            )
        value = tagged.as_float()
        if not math.isfinite(value):
            raise MeasurementBuildError(
                f"Field '{tagged.code}' has non-finite value {tagged.value!r}"
            )
        values[tagged.code] = value

    values["production"] = figures.production_w
    values["usage"] = figures.usage_w
    values["lifetime_usage"] = figures.lifetime_usage_wh
    return Measurement(name=MEASUREMENT_NAME, fields=values)


class MeasurementEmitter:
    """Builds measurements and submits them to a sink.

    Args:
        sink: Destination for built measurements.
    """

    def __init__(self, sink: Sink) -> None:
        self._sink = sink

    def emit(self, fields: Iterable[TaggedField], figures: UsageFigures) -> bool:
        """Build and submit one measurement.

        Returns:
            ``True`` if the sink accepted the measurement, ``False`` if the
            build or the submission failed (both are logged).
        """
        try:
            measurement = build_measurement(fields, figures)
        except MeasurementBuildError:
            logger.error("Failed to build measurement", exc_info=True)
            return False

        logger.info("Attempting to write measurement...")
        try:
            self._sink.submit(measurement)
        except SinkSubmitError:
            logger.error("Failed to write measurement", exc_info=True)
            return False

        logger.info("Successfully wrote measurement")
        return True
