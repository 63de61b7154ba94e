"""
Shared Modbus TCP reader for the SolarEdge inverter.

One :class:`InverterReader` is shared by every connection worker. It owns
the single ``ModbusTcpClient`` and serialises access to it with a lock: each
public read runs its whole register sequence inside one critical section,
because Modbus request/response pairs from two workers must never interleave.

Failure policy:

- Any failed read (transport exception, Modbus error response, or a short
  response) discards the client and connects a fresh one in its place.
- The failure is then raised as :class:`~electricity.src.errors.BusReadError`.
  The same read is not retried; the next pass is the retry boundary.
- The reader itself survives, so other workers keep using the replacement.

CHANGELOG:
- 2026-03-10: Decode reads through the register definitions
- 2026-03-07: Replace transport in place on read failure instead of per-poll clients
- 2026-03-03: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException

from electricity.src.errors import BusReadError
from electricity.src.models import ScaledRegisterValue
from electricity.src.registers import (
    AC_ENERGY_GROUP,
    AC_ENERGY_SF_GROUP,
    AC_POWER_GROUP,
    I_AC_ENERGY_WH,
    I_AC_ENERGY_WH_SF,
    I_AC_POWER,
    I_AC_POWER_SF,
    RegisterGroup,
    decode_group,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODBUS_TIMEOUT_S: float = 10.0
"""Default timeout per Modbus TCP request in seconds."""

ClientFactory = Callable[[], ModbusTcpClient]


class InverterReader:
    """Lock-guarded owner of the inverter's Modbus TCP client.

    Args:
        host: Inverter IP address or hostname.
        port: Modbus TCP port (SolarEdge default 1502).
        slave_id: Modbus slave / unit ID.
        timeout: Per-request timeout in seconds.
        client_factory: Optional zero-argument callable returning a new
            client. Defaults to building a ``ModbusTcpClient`` for
            *host*/*port*.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1502,
        slave_id: int = 1,
        timeout: float = MODBUS_TIMEOUT_S,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._slave_id = slave_id
        self._timeout = timeout
        self._client_factory = client_factory or self._default_factory
        self._lock = threading.Lock()
        self._client = self._connect()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_instantaneous_power(self) -> ScaledRegisterValue:
        """Read AC output power and its scale factor (registers 83-84).

        Raises:
            BusReadError: The read failed; the transport was replaced.
        """
        with self._lock:
            values = self._read_group(AC_POWER_GROUP)
        return ScaledRegisterValue(
            raw=values[I_AC_POWER.name],
            scale=values[I_AC_POWER_SF.name],
        )

    def read_lifetime_production(self) -> ScaledRegisterValue:
        """Read the lifetime energy counter and its scale (registers 93-95).

        Both requests run under one lock acquisition.

        Raises:
            BusReadError: Either read failed; the transport was replaced.
        """
        with self._lock:
            energy = self._read_group(AC_ENERGY_GROUP)
            scale = self._read_group(AC_ENERGY_SF_GROUP)
        return ScaledRegisterValue(
            raw=energy[I_AC_ENERGY_WH.name],
            scale=scale[I_AC_ENERGY_WH_SF.name],
        )

    def replace(self) -> None:
        """Discard the current client and connect a new one."""
        with self._lock:
            self._replace_locked()

    def close(self) -> None:
        """Close the current client."""
        with self._lock:
            self._client.close()

    # ------------------------------------------------------------------
    # Private helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _default_factory(self) -> ModbusTcpClient:
        return ModbusTcpClient(self._host, port=self._port, timeout=self._timeout)

    def _connect(self) -> ModbusTcpClient:
        logger.info("Connecting to inverter at %s:%d", self._host, self._port)
        client = self._client_factory()
        try:
            ok = client.connect()
        except (ModbusException, OSError):
            logger.warning("Failed to connect to inverter", exc_info=True)
        else:
            if not ok:
                # pymodbus reconnects on the next request
                logger.warning("Failed to connect to inverter (connect returned False)")
        return client

    def _replace_locked(self) -> None:
        old = self._client
        self._client = self._connect()
        try:
            old.close()
        except (ModbusException, OSError):
            logger.debug("Error closing discarded Modbus client", exc_info=True)

    def _read_group(self, group: RegisterGroup) -> dict[str, int]:
        try:
            response = self._client.read_holding_registers(
                group.start_address,
                count=group.count,
                device_id=self._slave_id,
            )
        except (ModbusException, OSError) as exc:
            self._replace_locked()
            logger.error(
                "Failed to read group '%s' (address=%d, count=%d)",
                group.group_name,
                group.start_address,
                group.count,
            )
            raise BusReadError(
                f"Failed to read register group '{group.group_name}'"
            ) from exc

        if response.isError():
            self._replace_locked()
            logger.error(
                "Modbus error reading group '%s' (address=%d, count=%d)",
                group.group_name,
                group.start_address,
                group.count,
            )
            raise BusReadError(
                f"Modbus error response for register group '{group.group_name}'"
            )

        words = list(response.registers)
        if len(words) != group.count:
            self._replace_locked()
            raise BusReadError(
                f"Register group '{group.group_name}': expected {group.count} "
                f"words, got {len(words)}"
            )
        return decode_group(group, words)
