"""
Exception hierarchy for the electricity bridge.

Every failure raised by the bridge derives from :class:`BridgeError` so that a
connection worker can tell bridge faults apart from programming errors.
Whether an error is fatal depends on where it is raised:

- TelegramDecodeError: chunk skipped, assembly continues.
- FieldParseError: strict single-field validation found nothing.
- NumericParseError: fatal to the pass and the connection worker.
- TelegramOverflowError: fatal to the connection worker.
- BusReadError: transport replaced, fatal to the pass and the worker.
- MeasurementBuildError: pass abandoned.
- SinkSubmitError: logged and dropped.

CHANGELOG:
- 2026-03-02: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all electricity bridge errors."""


class TelegramDecodeError(BridgeError):
    """A received chunk is not valid UTF-8 text."""


class TelegramOverflowError(BridgeError):
    """The telegram buffer grew past the configured maximum size."""


class FieldParseError(BridgeError):
    """No tagged field was found in a telegram that must contain one."""


class NumericParseError(BridgeError):
    """A tagged field value is not a valid decimal literal."""


class BusReadError(BridgeError):
    """A Modbus register read failed; the transport has been replaced."""


class MeasurementBuildError(BridgeError):
    """A measurement could not be built from the computed fields."""


class SinkSubmitError(BridgeError):
    """The time-series sink rejected or failed to store a measurement."""
