"""Universally Unique Lexicographically Sortable Identifiers."""

from __future__ import annotations

from ulidkit.ulid import (
    ENCODING,
    ULID,
    InvalidCharacterError,
    InvalidLengthError,
    TimestampOverflowError,
    ULIDError,
    encode,
    encode_entropy,
    encode_time,
    factory,
    marshal,
    now_ms,
    random_byte,
    unmarshal,
)


__all__ = [
    "ENCODING",
    "ULID",
    "InvalidCharacterError",
    "InvalidLengthError",
    "TimestampOverflowError",
    "ULIDError",
    "encode",
    "encode_entropy",
    "encode_time",
    "factory",
    "marshal",
    "now_ms",
    "random_byte",
    "unmarshal",
]
