from __future__ import annotations

import contextlib

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ulidkit import ENCODING, ULID, ULIDError, unmarshal

from .conftest import base32_strategy, ulid_text_strategy


class TestParserFuzzing:
    @given(st.text())
    @settings(max_examples=500)
    def test_unmarshal_raises_ulid_error_or_succeeds(self, s: str) -> None:
        """Parser should only raise ULIDError, never other exceptions."""
        with contextlib.suppress(ULIDError):
            unmarshal(s)

    @given(st.text(min_size=26, max_size=26))
    @settings(max_examples=500)
    def test_unmarshal_any_26_char_text(self, s: str) -> None:
        with contextlib.suppress(ULIDError):
            parsed = unmarshal(s)
            assert str(parsed) == s

    @given(st.binary(max_size=40))
    @settings(max_examples=200)
    def test_constructor_raises_ulid_error_or_succeeds(self, data: bytes) -> None:
        with contextlib.suppress(ULIDError):
            assert ULID(data).bytes == data

    @given(
        st.one_of(
            st.text(min_size=16, max_size=16),
            st.integers(),
            st.none(),
            st.lists(st.integers(0, 255), min_size=16, max_size=16),
        )
    )
    @settings(max_examples=200)
    def test_constructor_rejects_non_bytes_with_ulid_error(self, data: object) -> None:
        """Non-bytes input raises ULIDError, never TypeError."""
        with pytest.raises(ULIDError):
            ULID(data)  # type: ignore[arg-type]


class TestRoundtripInvariants:
    @given(ulid_text_strategy)
    @settings(max_examples=200)
    def test_valid_format_parses(self, text: str) -> None:
        parsed = unmarshal(text)
        assert str(parsed) == text
        assert ULID(parsed.bytes) == parsed

    @given(st.text(base32_strategy, min_size=26, max_size=26))
    @settings(max_examples=200)
    def test_alphabet_text_parses_iff_first_symbol_fits(self, text: str) -> None:
        try:
            unmarshal(text)
        except ULIDError:
            assert ENCODING.index(text[0]) > 7
        else:
            assert ENCODING.index(text[0]) <= 7


class TestEdgeCases:
    def test_empty_string(self) -> None:
        with pytest.raises(ULIDError, match="26 characters"):
            unmarshal("")

    def test_unicode_symbols(self) -> None:
        with pytest.raises(ULIDError, match="Invalid character"):
            unmarshal("é" * 26)

    def test_null_bytes(self) -> None:
        with pytest.raises(ULIDError, match="position 0"):
            unmarshal("\x00" + "0" * 25)

    def test_whitespace_padding(self) -> None:
        with pytest.raises(ULIDError, match="26 characters"):
            unmarshal(" " + "0" * 26)

    def test_very_long_input(self) -> None:
        with pytest.raises(ULIDError, match="got 10000"):
            unmarshal("0" * 10000)
