"""
P1 telegram reassembly and tagged-field extraction.

The meter forwarder streams DSMR telegrams over TCP with no framing besides
the ``/`` that opens every telegram, and TCP delivers them in arbitrary
chunks. :class:`TelegramAssembler` rebuilds the current telegram one chunk
at a time:

- A chunk starting with ``/`` replaces the buffer (new telegram).
- Any other chunk is appended to the buffer.

After every chunk the caller runs an extraction pass over :meth:`text`, so a
telegram still in flight is re-extracted on each chunk until the next start
marker arrives. Callers that want exactly one pass per telegram use
:meth:`TelegramAssembler.take_complete`, which waits for the ``!`` trailer.

Extraction scans for ``1-0:<code>(<value>*<unit>)`` entries. The lenient
:func:`extract_fields` is used by the live pipeline; :func:`parse_single_field`
is a strict helper for already-complete telegrams.

CHANGELOG:
- 2026-03-09: Add take_complete() for trailer-gated extraction
- 2026-03-06: Cap buffer growth with max_size
- 2026-03-03: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import logging
import re

from electricity.src.errors import (
    FieldParseError,
    TelegramDecodeError,
    TelegramOverflowError,
)
from electricity.src.models import TaggedField

logger = logging.getLogger(__name__)

START_MARKER = "/"
"""First character of every DSMR telegram."""

DEFAULT_MAX_SIZE = 65536
"""Default buffer cap in characters; a DSMR 5 telegram is well below 4 KiB."""

_FIELD_RE = re.compile(r"1-0:([^()*\n]+?)\(([^()*\n]+?)\*([^()*\n]+?)\)")
"""``1-0:<code>(<value>*<unit>)``; no delimiter or LF inside any group."""

_TRAILER_RE = re.compile(r"(?:^|\n)![0-9A-Fa-f]{0,4}\r?\n?$")
"""DSMR trailer line: ``!`` optionally followed by a 4-hex-digit CRC16."""


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def strip_crlf(text: str) -> str:
    """Remove every CRLF pair so entries split across lines rejoin."""
    return text.replace("\r\n", "")


def extract_fields(text: str) -> list[TaggedField]:
    """Return every tagged field in *text*, left to right.

    Matches do not overlap. Text without any match yields an empty list.

    Args:
        text: Telegram text, normally with CRLF pairs already removed.

    Returns:
        Ordered list of :class:`TaggedField`. Codes may repeat.
    """
    return [
        TaggedField(code=code, value=value, unit=unit)
        for code, value, unit in _FIELD_RE.findall(text)
    ]


def parse_single_field(text: str) -> TaggedField:
    """Return the first tagged field of a complete telegram.

    Unlike :func:`extract_fields`, an empty result is an error.

    Args:
        text: A complete, well-formed telegram.

    Raises:
        FieldParseError: If the telegram contains no tagged field.
    """
    match = _FIELD_RE.search(text)
    if match is None:
        raise FieldParseError("Telegram contains no '1-0:' tagged field")
    code, value, unit = match.groups()
    return TaggedField(code=code, value=value, unit=unit)


# ---------------------------------------------------------------------------
# Reassembly
# ---------------------------------------------------------------------------


class TelegramAssembler:
    """Per-connection buffer that rebuilds telegrams from TCP chunks.

    Args:
        max_size: Maximum buffer length in characters. Growing past it
            raises :class:`~electricity.src.errors.TelegramOverflowError`.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self._max_size = max_size
        self._buffer = ""
        self._taken = False

    @property
    def buffer(self) -> str:
        """Raw telegram text accumulated since the last start marker."""
        return self._buffer

    def feed(self, chunk: bytes) -> str:
        """Add one received chunk and return the text to extract from.

        Args:
            chunk: Bytes from a single socket read (non-empty).

        Returns:
            The current buffer with CRLF pairs removed.

        Raises:
            TelegramDecodeError: The chunk is not UTF-8. The buffer is left
                unchanged so the caller can skip it and continue.
            TelegramOverflowError: The buffer exceeded ``max_size``.
        """
        try:
            text = chunk.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TelegramDecodeError(
                f"Chunk of {len(chunk)} bytes is not valid UTF-8"
            ) from exc

        if text.startswith(START_MARKER):
            logger.debug("Start marker received, resetting telegram buffer")
            self._buffer = text
            self._taken = False
        else:
            self._buffer += text

        if len(self._buffer) > self._max_size:
            size = len(self._buffer)
            self._buffer = ""
            raise TelegramOverflowError(
                f"Telegram buffer reached {size} chars (max {self._max_size})"
            )

        return self.text()

    def text(self) -> str:
        """Return the buffer with CRLF pairs removed."""
        return strip_crlf(self._buffer)

    def is_complete(self) -> bool:
        """Whether the buffer holds a start marker and the ``!`` trailer."""
        return self._buffer.startswith(START_MARKER) and bool(
            _TRAILER_RE.search(self._buffer)
        )

    def take_complete(self) -> str | None:
        """Return the telegram text once, when it is complete.

        Returns:
            The CRLF-stripped telegram the first time it is complete after a
            start marker, otherwise ``None``.
        """
        if self._taken or not self.is_complete():
            return None
        self._taken = True
        return self.text()
