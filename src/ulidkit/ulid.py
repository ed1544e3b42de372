"""Universally Unique Lexicographically Sortable Identifiers."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import UTC, timedelta
from datetime import datetime as dt_datetime
from typing import TYPE_CHECKING, Any, Self

from pydantic_core import CoreSchema, core_schema


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


logger = logging.getLogger(__name__)

# Crockford's Base32: 0-9, A-Z without I, L, O, U (32 characters)
# IMPORTANT: symbols must stay in ascending ASCII order so that the text form
# sorts exactly like the underlying bytes
ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE_MAP = {c: i for i, c in enumerate(ENCODING)}

TIMESTAMP_LEN = 6
ENTROPY_LEN = 10
BYTES_LEN = TIMESTAMP_LEN + ENTROPY_LEN

# 48 timestamp bits are padded to 50 (10 symbols), 80 entropy bits fill 16 symbols
TEXT_LEN = 26
_TIMESTAMP_TEXT_LEN = 10

MAX_TIMESTAMP = (1 << 48) - 1
_MAX_INT = (1 << 128) - 1

# The first symbol carries 3 timestamp bits under 2 padding bits
_MAX_FIRST_SYMBOL = 0b00111

_NS_PER_MS = 1_000_000
_EPOCH = dt_datetime(1970, 1, 1, tzinfo=UTC)

_ZERO_BYTES = bytes(BYTES_LEN)


class ULIDError(ValueError):
    """Raised when ULID parsing or validation fails."""


class InvalidLengthError(ULIDError):
    """Raised when a ULID string or byte sequence has the wrong length."""


class InvalidCharacterError(ULIDError):
    """Raised when a ULID string contains a symbol outside the alphabet."""

    def __init__(self, character: str, position: int) -> None:
        self.character = character
        self.position = position
        super().__init__(f"Invalid character {character!r} at position {position}")


class TimestampOverflowError(ULIDError):
    """Raised when a ULID string encodes a timestamp wider than 48 bits."""


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return time.time_ns() // _NS_PER_MS


def random_byte() -> int:
    """Return one byte from the operating system's CSPRNG."""
    return secrets.randbits(8)


def encode_time(timestamp: int, target: bytearray) -> None:
    """Write the low 48 bits of ``timestamp`` big-endian into ``target[0:6]``.

    Timestamps above ``MAX_TIMESTAMP`` lose their high bits silently.
    """
    target[0] = (timestamp >> 40) & 0xFF
    target[1] = (timestamp >> 32) & 0xFF
    target[2] = (timestamp >> 24) & 0xFF
    target[3] = (timestamp >> 16) & 0xFF
    target[4] = (timestamp >> 8) & 0xFF
    target[5] = timestamp & 0xFF


def encode_entropy(prng: Callable[[], int], target: bytearray) -> None:
    """Fill ``target[6:16]`` with ten successive ``prng()`` results.

    Each result is truncated to its low 8 bits.
    """
    for i in range(TIMESTAMP_LEN, BYTES_LEN):
        target[i] = prng() & 0xFF


def encode(timestamp: int, prng: Callable[[], int]) -> ULID:
    """Build a ULID from a millisecond timestamp and an entropy provider.

    Args:
        timestamp: Milliseconds since the Unix epoch (only the low 48 bits are kept).
        prng: Zero-argument callable returning one byte per call. It is
            called exactly ten times.

    Returns:
        A new ULID.
    """
    return ULID._from_trusted_bytes(_encode_bytes(timestamp, prng))  # noqa: SLF001


def _encode_bytes(timestamp: int, prng: Callable[[], int]) -> bytes:
    buf = bytearray(BYTES_LEN)
    encode_time(timestamp, buf)
    encode_entropy(prng, buf)
    return bytes(buf)


def _encode_block(b: Sequence[int]) -> list[str]:
    """Encode 5 bytes (40 bits) as 8 symbols."""
    lut = ENCODING
    return [
        lut[(b[0] & 248) >> 3],
        lut[((b[0] & 7) << 2) | ((b[1] & 192) >> 6)],
        lut[(b[1] & 62) >> 1],
        lut[((b[1] & 1) << 4) | ((b[2] & 240) >> 4)],
        lut[((b[2] & 15) << 1) | ((b[3] & 128) >> 7)],
        lut[(b[3] & 124) >> 2],
        lut[((b[3] & 3) << 3) | ((b[4] & 224) >> 5)],
        lut[b[4] & 31],
    ]


def _decode_block(d: Sequence[int]) -> list[int]:
    """Decode 8 symbol values back into 5 bytes."""
    return [
        (d[0] << 3) | (d[1] >> 2),
        ((d[1] & 3) << 6) | (d[2] << 1) | (d[3] >> 4),
        ((d[3] & 15) << 4) | (d[4] >> 1),
        ((d[4] & 1) << 7) | (d[5] << 2) | (d[6] >> 3),
        ((d[6] & 7) << 5) | d[7],
    ]


def _marshal_bytes(b: bytes) -> str:
    lut = ENCODING
    # 6 timestamp bytes don't split evenly into 5-bit groups, so the first
    # symbol takes only the top 3 bits of byte 0
    chars = [
        lut[(b[0] & 224) >> 5],
        lut[b[0] & 31],
        lut[(b[1] & 248) >> 3],
        lut[((b[1] & 7) << 2) | ((b[2] & 192) >> 6)],
        lut[(b[2] & 62) >> 1],
        lut[((b[2] & 1) << 4) | ((b[3] & 240) >> 4)],
        lut[((b[3] & 15) << 1) | ((b[4] & 128) >> 7)],
        lut[(b[4] & 124) >> 2],
        lut[((b[4] & 3) << 3) | ((b[5] & 224) >> 5)],
        lut[b[5] & 31],
    ]
    chars += _encode_block(b[6:11])
    chars += _encode_block(b[11:16])
    return "".join(chars)


def _unmarshal_text(text: str) -> bytes:
    """Decode a 26-character ULID string into 16 bytes.

    Raises:
        InvalidLengthError: If the string is not exactly 26 characters.
        InvalidCharacterError: If a character is outside the alphabet.
        TimestampOverflowError: If the timestamp does not fit in 48 bits.
    """
    if len(text) != TEXT_LEN:
        raise InvalidLengthError(f"ULID must be {TEXT_LEN} characters, got {len(text)}")

    d: list[int] = []
    for position, char in enumerate(text):
        value = _DECODE_MAP.get(char)
        if value is None:
            raise InvalidCharacterError(char, position)
        d.append(value)

    if d[0] > _MAX_FIRST_SYMBOL:
        raise TimestampOverflowError(
            f"Timestamp exceeds 48 bits: first character must be 0-7, got {text[0]!r}"
        )

    data = [
        (d[0] << 5) | d[1],
        (d[2] << 3) | (d[3] >> 2),
        ((d[3] & 3) << 6) | (d[4] << 1) | (d[5] >> 4),
        ((d[5] & 15) << 4) | (d[6] >> 1),
        ((d[6] & 1) << 7) | (d[7] << 2) | (d[8] >> 3),
        ((d[8] & 7) << 5) | d[9],
    ]
    data += _decode_block(d[10:18])
    data += _decode_block(d[18:26])
    return bytes(data)


def marshal(ulid: ULID) -> str:
    """Return the 26-character Crockford Base32 form of ``ulid``."""
    return _marshal_bytes(ulid.bytes)


def unmarshal(text: str) -> ULID:
    """Parse the 26-character Crockford Base32 form into a ULID.

    Decoding is case-sensitive: only the uppercase symbols produced by
    ``marshal`` are accepted.

    Raises:
        InvalidLengthError: If the string is not exactly 26 characters.
        InvalidCharacterError: If a character is outside the alphabet.
        TimestampOverflowError: If the timestamp does not fit in 48 bits.
    """
    return ULID.from_string(text)


class ULID:
    """Universally Unique Lexicographically Sortable Identifier.

    A ULID is 16 bytes: a 48-bit big-endian millisecond timestamp followed by
    80 bits of entropy. Its string form is 26 Crockford Base32 characters and
    sorts in the same order as the bytes.

    Example:
        >>> ulid = ULID.generate()
        >>> print(ulid)  # 01J9Z3K8JXQY7GZWPV2N4M6R9T
        >>> ULID.from_string(str(ulid)) == ulid
        True

    Note:
        ULIDs are immutable. ``ULID()`` is the all-zero identifier.
    """

    __slots__ = ("_bytes", "_text")

    def __init__(self, data: bytes | bytearray | memoryview = _ZERO_BYTES) -> None:
        """Initialize a ULID from its 16-byte binary form.

        Raises:
            ULIDError: If ``data`` is not bytes-like.
            InvalidLengthError: If ``data`` is not exactly 16 bytes.
        """
        if not isinstance(data, bytes | bytearray | memoryview):
            raise ULIDError(
                f"Expected bytes, bytearray or memoryview, got {type(data).__name__}"
            )
        if len(data) != BYTES_LEN:
            raise InvalidLengthError(f"ULID must be {BYTES_LEN} bytes, got {len(data)}")
        self._bytes = bytes(data)
        self._text: str | None = None

    @classmethod
    def _from_trusted_bytes(cls, data: bytes) -> Self:
        instance = cls.__new__(cls)
        instance._bytes = data
        instance._text = None
        return instance

    @property
    def bytes(self) -> bytes:
        """The 16-byte binary form."""
        return self._bytes

    @property
    def int(self) -> int:
        """The 128-bit unsigned integer value."""
        return int.from_bytes(self._bytes, "big")

    @property
    def timestamp(self) -> int:
        """Milliseconds since the Unix epoch."""
        return int.from_bytes(self._bytes[:TIMESTAMP_LEN], "big")

    @property
    def datetime(self) -> dt_datetime:
        """The timestamp as an aware UTC datetime, exact to the millisecond.

        Raises:
            ULIDError: If the timestamp lies beyond ``datetime.max``
                (after 9999-12-31T23:59:59.999Z). Such timestamps are valid
                ULIDs but have no ``datetime`` equivalent.
        """
        try:
            return _EPOCH + timedelta(milliseconds=self.timestamp)
        except OverflowError as e:
            raise ULIDError(
                f"Timestamp {self.timestamp} ms is beyond datetime.max"
            ) from e

    @property
    def entropy(self) -> bytes:
        """The 10 entropy bytes."""
        return self._bytes[TIMESTAMP_LEN:]

    def __str__(self) -> str:
        """Return the 26-character string form."""
        if self._text is None:
            self._text = _marshal_bytes(self._bytes)
        return self._text

    def __repr__(self) -> str:
        """Return a detailed representation."""
        return f"ULID({str(self)!r})"

    def __bytes__(self) -> bytes:
        return self._bytes

    def __int__(self) -> int:
        return self.int

    def __hash__(self) -> int:
        """Return hash for use in sets and dict keys."""
        return hash(self._bytes)

    def __eq__(self, other: object) -> bool:
        """Check equality with another ULID."""
        if isinstance(other, ULID):
            return self._bytes == other._bytes
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        """Compare for sorting (timestamp first, then entropy)."""
        if isinstance(other, ULID):
            return self._bytes < other._bytes
        return NotImplemented

    def __le__(self, other: object) -> bool:
        """Compare for sorting (timestamp first, then entropy)."""
        if isinstance(other, ULID):
            return self._bytes <= other._bytes
        return NotImplemented

    def __gt__(self, other: object) -> bool:
        """Compare for sorting (timestamp first, then entropy)."""
        if isinstance(other, ULID):
            return self._bytes > other._bytes
        return NotImplemented

    def __ge__(self, other: object) -> bool:
        """Compare for sorting (timestamp first, then entropy)."""
        if isinstance(other, ULID):
            return self._bytes >= other._bytes
        return NotImplemented

    def __copy__(self) -> Self:
        """Return self (ULIDs are immutable)."""
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> Self:
        """Return self (ULIDs are immutable)."""
        return self

    def __reduce__(self) -> tuple[type[Self], tuple[bytes]]:
        """Support pickling for multiprocessing, caching, etc."""
        return (type(self), (self._bytes,))

    @classmethod
    def generate(
        cls,
        timestamp: int | None = None,
        prng: Callable[[], int] | None = None,
    ) -> Self:
        """Generate a new ULID.

        Args:
            timestamp: Milliseconds since the Unix epoch. Defaults to now.
            prng: Entropy provider returning one byte per call. Defaults to
                the OS CSPRNG.
        """
        if timestamp is None:
            timestamp = now_ms()
        return cls._from_trusted_bytes(_encode_bytes(timestamp, prng or random_byte))

    @classmethod
    def from_string(cls, string: str) -> Self:
        """Parse a ULID from its 26-character string form.

        Raises:
            ULIDError: If the string is not a valid ULID.
        """
        instance = cls._from_trusted_bytes(_unmarshal_text(string))
        instance._text = string
        return instance

    @classmethod
    def from_int(cls, value: int) -> Self:
        """Create a ULID from its 128-bit integer value.

        Raises:
            ULIDError: If the value is negative or wider than 128 bits.
        """
        if not 0 <= value <= _MAX_INT:
            raise ULIDError(f"ULID integer must be in [0, 2**128), got {value}")
        return cls._from_trusted_bytes(value.to_bytes(BYTES_LEN, "big"))

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,  # noqa: ANN401
        handler: Any,  # noqa: ANN401
    ) -> CoreSchema:
        """Pydantic integration for validation and serialization.

        Accepts a ULID, its 26-character string form, or its 16 raw bytes,
        and always serializes to the string form.
        """

        def validate(v: ULID | str | bytes) -> ULID:
            if isinstance(v, ULID):
                return v
            if isinstance(v, str):
                return unmarshal(v)
            if isinstance(v, bytes):
                return cls(v)
            raise ULIDError(f"Expected ULID, str or bytes, got {type(v).__name__}")

        return core_schema.json_or_python_schema(
            json_schema=core_schema.chain_schema(
                [
                    core_schema.str_schema(),
                    core_schema.no_info_plain_validator_function(validate),
                ]
            ),
            python_schema=core_schema.no_info_plain_validator_function(validate),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


def factory(
    clock: Callable[[], int] = now_ms,
    prng: Callable[[], int] = random_byte,
) -> Callable[[], ULID]:
    """Create a zero-argument function that generates new ULIDs.

    This is useful with Pydantic's Field(default_factory=...) and column
    defaults. Both providers can be replaced, e.g. with fixed sequences in
    tests.

    Example:
        class Event(BaseModel):
            id: ULID = Field(default_factory=factory())
    """
    logger.debug(
        "Creating ULID factory with clock=%s prng=%s",
        getattr(clock, "__qualname__", clock),
        getattr(prng, "__qualname__", prng),
    )

    def _factory() -> ULID:
        return encode(clock(), prng)

    return _factory
