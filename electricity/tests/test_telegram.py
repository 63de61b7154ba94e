"""
Tests for P1 telegram reassembly and tagged-field extraction.

Verifies:
- Lenient extraction of ``1-0:<code>(<value>*<unit>)`` entries.
- Strict single-field parsing raises FieldParseError on empty telegrams.
- The assembler resets on ``/`` and appends otherwise.
- CRLF pairs are removed before extraction, also across chunk boundaries.
- Undecodable chunks and oversized buffers are rejected.
- Trailer-gated extraction returns each telegram once.

CHANGELOG:
- 2026-03-10: Line feeds never match inside a field
- 2026-03-09: Cover take_complete()
- 2026-03-03: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import pytest
from electricity.src.errors import (
    FieldParseError,
    TelegramDecodeError,
    TelegramOverflowError,
)
from electricity.src.models import TaggedField
from electricity.src.telegram import (
    TelegramAssembler,
    extract_fields,
    parse_single_field,
    strip_crlf,
)

# ===========================================================================
# Extraction
# ===========================================================================


class TestExtractFields:
    """Lenient multi-field extraction."""

    def test_sample_telegram_codes_in_order(self, sample_telegram: str) -> None:
        fields = extract_fields(strip_crlf(sample_telegram))
        assert [f.code for f in fields] == [
            "1.8.0",
            "2.8.0",
            "1.7.0",
            "2.7.0",
            "32.7.0",
            "31.7.0",
        ]

    def test_values_and_units(self, sample_telegram: str) -> None:
        fields = extract_fields(strip_crlf(sample_telegram))
        by_code = {f.code: f for f in fields}
        assert by_code["1.7.0"] == TaggedField(code="1.7.0", value="00.512", unit="kW")
        assert by_code["1.8.0"].unit == "kWh"
        assert by_code["32.7.0"].value == "231.0"

    def test_entries_without_unit_are_skipped(self) -> None:
        assert extract_fields("1-0:32.32.0(00000)") == []

    def test_multi_group_entry_is_skipped(self) -> None:
        """A value may not contain delimiters, so log entries never match."""
        text = "1-0:99.97.0(1)(0-0:96.7.19)(000101000001W)(2147483647*s)"
        assert extract_fields(text) == []

    def test_no_matches_yields_empty_list(self) -> None:
        assert extract_fields("/ISK5\\2M550T-1012") == []

    @pytest.mark.parametrize(
        "text",
        ["1-0:1.\n7.0(1*kW)", "1-0:1.7.0(0.\n5*kW)", "1-0:1.7.0(0.5*k\nW)"],
    )
    def test_lone_line_feed_never_inside_a_group(self, text: str) -> None:
        assert extract_fields(text) == []

    def test_lone_line_feed_between_entries(self) -> None:
        fields = extract_fields("1-0:1.7.0(0.5*kW)\n1-0:2.7.0(0.1*kW)")
        assert [f.code for f in fields] == ["1.7.0", "2.7.0"]

    def test_adjacent_entries_without_separator(self) -> None:
        """After CRLF removal entries sit back to back on one line."""
        text = "1-0:1.7.0(00.512*kW)1-0:2.7.0(00.000*kW)"
        fields = extract_fields(text)
        assert [(f.code, f.value, f.unit) for f in fields] == [
            ("1.7.0", "00.512", "kW"),
            ("2.7.0", "00.000", "kW"),
        ]

    def test_repeated_code_is_kept_twice(self) -> None:
        text = "1-0:1.7.0(00.100*kW)1-0:1.7.0(00.200*kW)"
        assert [f.value for f in extract_fields(text)] == ["00.100", "00.200"]

    def test_extraction_is_idempotent(self, sample_telegram: str) -> None:
        text = strip_crlf(sample_telegram)
        assert extract_fields(text) == extract_fields(text)


class TestParseSingleField:
    """Strict validation for a complete telegram."""

    def test_returns_first_field(self, sample_telegram: str) -> None:
        tagged = parse_single_field(sample_telegram)
        assert tagged == TaggedField(code="1.8.0", value="001234.500", unit="kWh")

    def test_no_field_raises(self) -> None:
        with pytest.raises(FieldParseError):
            parse_single_field("/ISK5\\2M550T-1012\r\n\r\n!1A2B\r\n")


class TestStripCrlf:
    def test_removes_only_crlf_pairs(self) -> None:
        assert strip_crlf("a\r\nb\nc\rd") == "ab\nc\rd"


# ===========================================================================
# Reassembly
# ===========================================================================


class TestTelegramAssembler:
    """Start-marker reset and append policy."""

    def test_start_marker_replaces_buffer(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"/OLD\r\n1-0:1.7.0(01.000*kW)\r\n")
        assembler.feed(b"/NEW\r\n")
        assert assembler.buffer == "/NEW\r\n"

    def test_chunks_are_concatenated_since_marker(self) -> None:
        chunks = [b"garbage", b"/ISK5\r\n", b"1-0:1.7.0(00.5", b"12*kW)\r\n"]
        assembler = TelegramAssembler()
        for chunk in chunks:
            assembler.feed(chunk)
        assert assembler.buffer == "/ISK5\r\n1-0:1.7.0(00.512*kW)\r\n"

    def test_chunk_without_marker_appends_to_empty_buffer(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"1-0:1.7.0(00.512*kW)")
        assert assembler.buffer == "1-0:1.7.0(00.512*kW)"

    def test_feed_returns_crlf_stripped_text(self) -> None:
        assembler = TelegramAssembler()
        assert assembler.feed(b"/ISK5\r\n\r\n1-0:") == "/ISK51-0:"

    def test_crlf_split_across_chunks_is_removed(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"/ISK5\r")
        text = assembler.feed(b"\n1-0:1.7.0(00.512*kW)")
        assert text == "/ISK51-0:1.7.0(00.512*kW)"

    def test_field_split_across_chunks_extracted_after_second(self) -> None:
        assembler = TelegramAssembler()
        first = assembler.feed(b"/ISK5\r\n1-0:1.7.0(00.5")
        assert extract_fields(first) == []
        second = assembler.feed(b"12*kW)\r\n")
        assert [f.value for f in extract_fields(second)] == ["00.512"]

    def test_sample_telegram_in_small_chunks(self, sample_telegram: str) -> None:
        data = sample_telegram.encode()
        assembler = TelegramAssembler()
        # First chunk carries the start marker, the rest never start with '/'
        for start in range(0, len(data), 7):
            assembler.feed(data[start : start + 7])
        assert assembler.buffer == sample_telegram
        assert assembler.text() == strip_crlf(sample_telegram)

    def test_invalid_utf8_raises_and_keeps_buffer(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"/ISK5\r\n")
        with pytest.raises(TelegramDecodeError):
            assembler.feed(b"\xff\xfe\xfd")
        assert assembler.buffer == "/ISK5\r\n"

    def test_overflow_raises(self) -> None:
        assembler = TelegramAssembler(max_size=16)
        assembler.feed(b"/ISK5\r\n")
        with pytest.raises(TelegramOverflowError, match="max 16"):
            assembler.feed(b"1-0:1.7.0(00.512*kW)")

    def test_buffer_at_limit_is_accepted(self) -> None:
        assembler = TelegramAssembler(max_size=8)
        assembler.feed(b"/1234567")
        assert assembler.buffer == "/1234567"


class TestTakeComplete:
    """Trailer-gated, once-per-telegram extraction."""

    def test_incomplete_telegram_returns_none(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"/ISK5\r\n1-0:1.7.0(00.512*kW)\r\n")
        assert not assembler.is_complete()
        assert assembler.take_complete() is None

    def test_complete_telegram_returned_once(self, sample_telegram: str) -> None:
        assembler = TelegramAssembler()
        assembler.feed(sample_telegram.encode())
        assert assembler.is_complete()
        assert assembler.take_complete() == strip_crlf(sample_telegram)
        assert assembler.take_complete() is None

    def test_trailer_without_crc_counts(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"/ISK5\r\n1-0:1.7.0(00.512*kW)\r\n!\r\n")
        assert assembler.is_complete()

    def test_new_marker_rearms(self, sample_telegram: str) -> None:
        assembler = TelegramAssembler()
        assembler.feed(sample_telegram.encode())
        assembler.take_complete()
        assembler.feed(sample_telegram.encode())
        assert assembler.take_complete() == strip_crlf(sample_telegram)

    def test_trailer_without_start_marker_is_incomplete(self) -> None:
        assembler = TelegramAssembler()
        assembler.feed(b"1-0:1.7.0(00.512*kW)\r\n!1A2B\r\n")
        assert not assembler.is_complete()
