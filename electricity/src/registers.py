"""
SolarEdge Modbus TCP register map -- single source of truth.

Defines the holding registers the bridge reads from the SolarEdge inverter
(SunSpec inverter model, addresses relative to the SunSpec base used by the
inverter's Modbus TCP server) together with the word-level conversion helpers
used to decode them.

Registers are organised into contiguous groups so the reader can issue one
``read_holding_registers`` call per group. :func:`decode_group` splits the
words of a group back into per-register values using each register's
offset, ``word_count`` and ``reg_type``.

References:
    - SolarEdge SunSpec Technical Note (Modbus TCP implementation)

CHANGELOG:
- 2026-03-10: Decode groups through the register definitions; drop unused lookups
- 2026-03-04: Add conversion helpers shared by the scaled value decoder
- 2026-03-02: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single Modbus holding register.

    Attributes:
        address: Modbus holding register start address.
        name: Unique identifier (SunSpec point name).
        reg_type: Data type -- one of ``"U16"``, ``"U32"``, ``"S16"``,
            ``"SF"`` (signed 16-bit scale factor exponent).
        word_count: Number of 16-bit Modbus words this register occupies.
            Derived from *reg_type*.
    """

    address: int
    name: str
    reg_type: str
    word_count: int = field(init=False, repr=False)

    def __post_init__(self) -> None:  # noqa: D105
        wc = _WORD_COUNTS.get(self.reg_type)
        if wc is None:
            raise ValueError(
                f"Register '{self.name}': unsupported type '{self.reg_type}'"
            )
        # frozen=True requires object.__setattr__
        object.__setattr__(self, "word_count", wc)


_WORD_COUNTS: dict[str, int] = {
    "U16": 1,
    "S16": 1,
    "SF": 1,
    "U32": 2,
}


@dataclass(frozen=True, slots=True)
class RegisterGroup:
    """A contiguous range of Modbus registers that can be read in one call.

    Attributes:
        group_name: Human-readable group identifier (e.g. ``"ac_power"``).
        start_address: First Modbus register address in the batch.
        registers: Ordered list of :class:`RegisterDef` within this range.
    """

    group_name: str
    start_address: int
    registers: list[RegisterDef]

    @property
    def count(self) -> int:
        """Total number of 16-bit words spanned by the group's registers."""
        last = self.registers[-1]
        return last.address + last.word_count - self.start_address


# ---------------------------------------------------------------------------
# AC power group (addresses 83-84)
# Magnitude and its scale factor are adjacent and read in one call.
# ---------------------------------------------------------------------------

I_AC_POWER = RegisterDef(address=83, name="I_AC_Power", reg_type="U16")
I_AC_POWER_SF = RegisterDef(address=84, name="I_AC_Power_SF", reg_type="SF")

AC_POWER_GROUP = RegisterGroup(
    group_name="ac_power",
    start_address=83,
    registers=[I_AC_POWER, I_AC_POWER_SF],
)

# ---------------------------------------------------------------------------
# AC lifetime energy (addresses 93-95)
# The counter and its scale factor are read as two separate requests.
# ---------------------------------------------------------------------------

I_AC_ENERGY_WH = RegisterDef(address=93, name="I_AC_Energy_WH", reg_type="U32")
I_AC_ENERGY_WH_SF = RegisterDef(address=95, name="I_AC_Energy_WH_SF", reg_type="SF")

AC_ENERGY_GROUP = RegisterGroup(
    group_name="ac_energy",
    start_address=93,
    registers=[I_AC_ENERGY_WH],
)

AC_ENERGY_SF_GROUP = RegisterGroup(
    group_name="ac_energy_sf",
    start_address=95,
    registers=[I_AC_ENERGY_WH_SF],
)

# ---------------------------------------------------------------------------
# Word conversion helpers
# ---------------------------------------------------------------------------


def convert_u16(raw: int) -> int:
    """Interpret a raw value as unsigned 16-bit."""
    return raw & 0xFFFF


def convert_s16(raw: int) -> int:
    """Interpret a raw 16-bit value as signed (two's complement)."""
    val = raw & 0xFFFF
    if val >= 0x8000:
        val -= 0x10000
    return val


def convert_u32(hi: int, lo: int) -> int:
    """Assemble two U16 registers (high word first) into unsigned 32-bit."""
    return ((hi & 0xFFFF) << 16) | (lo & 0xFFFF)


def decode_register(reg: RegisterDef, words: list[int]) -> int:
    """Decode the ``reg.word_count`` words of one register by its type."""
    if reg.reg_type == "U32":
        return convert_u32(words[0], words[1])
    if reg.reg_type in ("S16", "SF"):
        return convert_s16(words[0])
    return convert_u16(words[0])


def decode_group(group: RegisterGroup, words: list[int]) -> dict[str, int]:
    """Split the words read for *group* into values keyed by register name.

    Args:
        group: The group that was read.
        words: Exactly ``group.count`` raw 16-bit words, in address order.

    Raises:
        ValueError: If *words* does not hold ``group.count`` entries.
    """
    if len(words) != group.count:
        raise ValueError(
            f"Group '{group.group_name}' spans {group.count} words, got {len(words)}"
        )
    values: dict[str, int] = {}
    for reg in group.registers:
        offset = reg.address - group.start_address
        values[reg.name] = decode_register(reg, words[offset : offset + reg.word_count])
    return values
