"""
Net usage accounting from P1 meter fields and inverter production.

The meter only sees what crosses the grid connection; the inverter only sees
what the panels produce. House consumption is derived from both:

- ``import``/``export``: instantaneous grid power (OBIS 1.7.0 / 2.7.0, kW).
- ``imported_lifetime``/``exported_lifetime``: grid counters (1.8.0 / 2.8.0, kWh).
- ``production``/``production_lifetime``: inverter readings (W / Wh).

Meter values are converted to W / Wh with ``floor(value * 1000)``. When a
code repeats in one telegram the last occurrence wins.

Instantaneous usage is resolved by a fixed, ordered case split, since some
meters report import and export together:

1. import > 0 and export > 0: ``production + import - export``
2. import > 0: ``import + production``
3. otherwise: ``production - export``

Lifetime usage is ``production_lifetime + imported_lifetime - exported_lifetime``.

CHANGELOG:
- 2026-03-04: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from electricity.src.models import TaggedField

logger = logging.getLogger(__name__)

IMPORT_CODE = "1.7.0"
EXPORT_CODE = "2.7.0"
IMPORTED_LIFETIME_CODE = "1.8.0"
EXPORTED_LIFETIME_CODE = "2.8.0"


@dataclass(frozen=True, slots=True)
class UsageFigures:
    """Result of one accounting pass. All values in W or Wh."""

    import_w: int
    export_w: int
    imported_lifetime_wh: int
    exported_lifetime_wh: int
    production_w: int
    production_lifetime_wh: int
    usage_w: int
    lifetime_usage_wh: int


def kilo_to_base(value: float) -> int:
    """Convert kW/kWh to W/Wh, truncating toward negative infinity."""
    return math.floor(value * 1000)


def instantaneous_usage(*, import_w: int, export_w: int, production_w: int) -> int:
    """Apply the ordered import/export case split."""
    if import_w > 0 and export_w > 0:
        return production_w + import_w - export_w
    if import_w > 0:
        return import_w + production_w
    return production_w - export_w


def account(
    fields: Iterable[TaggedField],
    *,
    production_w: float,
    production_lifetime_wh: int,
) -> UsageFigures:
    """Combine telegram fields with inverter readings.

    Args:
        fields: Tagged fields of the current telegram, in telegram order.
        production_w: Decoded instantaneous inverter power in W.
        production_lifetime_wh: Decoded lifetime production in Wh.

    Returns:
        The derived :class:`UsageFigures`.

    Raises:
        NumericParseError: A field value is not a decimal literal.
    """
    grid = {
        IMPORT_CODE: 0,
        EXPORT_CODE: 0,
        IMPORTED_LIFETIME_CODE: 0,
        EXPORTED_LIFETIME_CODE: 0,
    }
    for tagged in fields:
        value = tagged.as_float()
        if tagged.code in grid:
            grid[tagged.code] = kilo_to_base(value)

    production = math.floor(production_w)
    import_w = grid[IMPORT_CODE]
    export_w = grid[EXPORT_CODE]
    usage = instantaneous_usage(
        import_w=import_w,
        export_w=export_w,
        production_w=production,
    )
    lifetime_usage = (
        production_lifetime_wh
        + grid[IMPORTED_LIFETIME_CODE]
        - grid[EXPORTED_LIFETIME_CODE]
    )
    logger.debug(
        "production=%d usage=%d lifetime_usage=%d", production, usage, lifetime_usage
    )

    return UsageFigures(
        import_w=import_w,
        export_w=export_w,
        imported_lifetime_wh=grid[IMPORTED_LIFETIME_CODE],
        exported_lifetime_wh=grid[EXPORTED_LIFETIME_CODE],
        production_w=production,
        production_lifetime_wh=production_lifetime_wh,
        usage_w=usage,
        lifetime_usage_wh=lifetime_usage,
    )
