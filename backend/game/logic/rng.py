"""
Seeded random streams for item selection.

Every random decision in a run is drawn from a stream derived from
(seed, round_number, domain), never from an ambient generator:
1. A run gets an opaque seed string at start (``generate_seed``).
2. For each decision, SHA512(domain_prefix + seed + round) yields the
   128-bit state and increment of a PCG64DXSM generator.
3. The generator feeds rejection-sampled bounded integers and 53-bit floats.

Derivation is O(1) for any round, so the server can recompute what round N
should show on any later request without replaying earlier rounds. Domains
keep independent decisions (initial pair, next item, reprieve replacement,
mixed-tier draw) from consuming each other's values.
"""

from __future__ import annotations

import hashlib
import secrets
from enum import Enum

SEED_BYTES = 16
MAX_SEED_LENGTH = 256

# PCG64DXSM constants
_PCG_MULTIPLIER = 0x2360ED051FC65DA44385DF649FCCF645
_PCG_DXSM_MUL = 0xDA942042E4DD58B5
_UINT128_MASK = (1 << 128) - 1
_UINT64_MASK = (1 << 64) - 1
_FLOAT_SCALE = 2.0**-53


class StreamDomain(Enum):
    """Domain separators for the independent decisions made from one seed."""

    INITIAL_PAIR = b"streak-initial-v1:"
    NEXT_ITEM = b"streak-next-v1:"
    REPRIEVE_ITEM = b"streak-reprieve-v1:"
    MIXED_TIER = b"streak-mixed-v1:"


def validate_seed(seed: str) -> None:
    """Reject seeds that cannot key a stream.

    Seeds are opaque: any non-empty string up to MAX_SEED_LENGTH characters.
    Raises TypeError for non-string input, ValueError for empty or oversized seeds.
    """
    if not isinstance(seed, str):
        raise TypeError(f"Seed must be a string, got {type(seed).__name__}")
    if not seed:
        raise ValueError("Seed must not be empty")
    if len(seed) > MAX_SEED_LENGTH:
        raise ValueError(f"Seed must be at most {MAX_SEED_LENGTH} characters, got {len(seed)}")


def generate_seed() -> str:
    """Generate a fresh run seed (32 hex chars)."""
    return secrets.token_bytes(SEED_BYTES).hex()


class PCG64DXSM:
    """
    Pure Python PCG64DXSM (Permuted Congruential Generator).

    128-bit LCG state with the DXSM output permutation, the same constants
    as NumPy's default bit generator.
    """

    def __init__(self, state: int, increment: int) -> None:
        self._inc = ((increment << 1) | 1) & _UINT128_MASK  # increment must be odd
        # seed injection followed by two advances to leave weak initial states
        self._state = (state + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK

    def next_uint64(self) -> int:
        """Generate the next 64-bit unsigned integer and advance state."""
        state = self._state
        hi = (state >> 64) & _UINT64_MASK
        lo = (state & _UINT64_MASK) | 1

        hi ^= hi >> 32
        hi = (hi * _PCG_DXSM_MUL) & _UINT64_MASK
        hi ^= hi >> 48
        hi = (hi * lo) & _UINT64_MASK

        self._state = (state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        return hi


def derive_stream(seed: str, round_number: int, domain: StreamDomain) -> PCG64DXSM:
    """
    Derive the generator for one decision of one round.

    SHA512(domain + utf8(seed) + 0x00 + round_le32) gives 64 bytes; the first
    16 become the PCG state and the next 16 the increment. The zero byte keeps
    the seed/round boundary unambiguous.
    """
    if not (0 <= round_number < 2**32):
        raise ValueError("round_number must be in [0, 2^32)")
    validate_seed(seed)
    data = seed.encode("utf-8") + b"\x00" + round_number.to_bytes(4, byteorder="little")
    derived = hashlib.sha512(domain.value + data).digest()
    state = int.from_bytes(derived[:16], byteorder="little")
    increment = int.from_bytes(derived[16:32], byteorder="little")
    return PCG64DXSM(state, increment)


def bounded(stream: PCG64DXSM, bound: int) -> int:
    """
    Draw an unbiased integer in [0, bound) via rejection sampling.

    Values from the partial final bucket are rejected, so there is no modulo bias.
    """
    if bound <= 0 or bound > (1 << 64):
        raise ValueError("bound must be in (0, 2^64]")
    limit = (1 << 64) - ((1 << 64) % bound)
    while True:
        r = stream.next_uint64()
        if r < limit:
            return r % bound


def uniform(stream: PCG64DXSM) -> float:
    """Draw a float in [0, 1) from the top 53 bits of the next output."""
    return (stream.next_uint64() >> 11) * _FLOAT_SCALE
