"""Shared test helpers and Hypothesis strategies."""

from __future__ import annotations

from itertools import cycle
from typing import TYPE_CHECKING

from hypothesis import strategies as st

from ulidkit import ENCODING, factory


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

# =============================================================================
# Deterministic Providers
# =============================================================================


def replay(values: Iterable[int]) -> Callable[[], int]:
    """Return an entropy provider that cycles through ``values``."""
    it = cycle(values)
    return lambda: next(it)


def ticking_clock(start: int = 1_700_000_000_000) -> Callable[[], int]:
    """Return a clock that advances one millisecond per call."""
    state = {"now": start - 1}

    def _clock() -> int:
        state["now"] += 1
        return state["now"]

    return _clock


EventIdFactory = factory()


# =============================================================================
# Hypothesis Strategies
# =============================================================================

# Strategy for any 16-byte ULID value
ulid_bytes_strategy = st.binary(min_size=16, max_size=16)

# Strategy for 48-bit timestamps
timestamp_strategy = st.integers(min_value=0, max_value=(1 << 48) - 1)

# Strategy for Crockford Base32 symbols
base32_strategy = st.sampled_from(ENCODING)

# Strategy for valid 26-char ULID strings (first symbol keeps the padding bits zero)
ulid_text_strategy = st.builds(
    lambda head, tail: head + tail,
    st.sampled_from("01234567"),
    st.text(base32_strategy, min_size=25, max_size=25),
)
