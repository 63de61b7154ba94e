"""
Data models for telegram fields, scaled register values, and measurements.

- ScaledRegisterValue: raw Modbus magnitude plus signed decimal exponent.
- TaggedField: one ``1-0:<code>(<value>*<unit>)`` entry from a P1 telegram.
- Measurement: the named field set written to InfluxDB for one pass.

CHANGELOG:
- 2026-03-10: Reject underscores, padding and non-ASCII digits in field values
- 2026-03-05: Add floor_scaled() with the lifetime counter truncation order
- 2026-03-02: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from electricity.src.errors import NumericParseError

MEASUREMENT_NAME = "energy"
"""InfluxDB measurement name for every emitted point."""

_DECIMAL_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[+-]?(?:[Ii][Nn][Ff](?:[Ii][Nn][Ii][Tt][Yy])?|[Nn][Aa][Nn])"
)
"""ASCII decimal literal, or an inf/nan spelling. No underscores or padding."""


@dataclass(frozen=True, slots=True)
class ScaledRegisterValue:
    """A fixed-point value recovered from Modbus registers.

    Attributes:
        raw: Unsigned magnitude assembled from one or two 16-bit words
            (high word first for 32-bit values).
        scale: Signed decimal exponent (SunSpec ``*_SF`` register).
    """

    raw: int
    scale: int

    @property
    def value(self) -> float:
        """Decoded value ``raw * 10**scale`` with fractions preserved."""
        return self.raw * 10.0**self.scale

    def floor_scaled(self) -> int:
        """Decode as ``floor(raw * floor(10**scale))``.

        The scale term is floored before the multiplication, so every
        negative exponent yields 0. Lifetime counters are stored with this
        truncation order and must keep it for continuity of the series.
        """
        return math.floor(self.raw * math.floor(10.0**self.scale))


class TaggedField(BaseModel):
    """A single tagged numeric field extracted from a P1 telegram.

    Attributes:
        code: OBIS code without the ``1-0:`` prefix (e.g. ``"1.7.0"``).
        value: Decimal literal as it appears in the telegram.
        unit: Unit string (e.g. ``"kW"``, ``"kWh"``).
    """

    model_config = ConfigDict(frozen=True)

    code: str
    value: str
    unit: str

    def as_float(self) -> float:
        """Parse :attr:`value` as a base-10 float.

        Raises:
            NumericParseError: If the value is not a decimal literal.
        """
        if _DECIMAL_RE.fullmatch(self.value) is None:
            raise NumericParseError(
                f"Field '{self.code}': value '{self.value}' is not a number"
            )
        return float(self.value)


class Measurement(BaseModel):
    """One InfluxDB point: a measurement name and its field set.

    Telegram codes are stored as floats, derived figures (``production``,
    ``usage``, ``lifetime_usage``) as ints.
    """

    model_config = ConfigDict(frozen=True)

    name: str = MEASUREMENT_NAME
    fields: dict[str, int | float]
