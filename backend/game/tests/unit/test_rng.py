"""
Unit tests for seeded stream derivation.

Covers PCG64DXSM determinism, domain and round separation, seed
validation, and bounded/uniform sampling.
"""

import pytest

from game.logic.rng import (
    MAX_SEED_LENGTH,
    PCG64DXSM,
    SEED_BYTES,
    StreamDomain,
    bounded,
    derive_stream,
    generate_seed,
    uniform,
    validate_seed,
)


def _draws(stream: PCG64DXSM, count: int = 8) -> list[int]:
    return [stream.next_uint64() for _ in range(count)]


class TestGenerateSeed:
    def test_length_and_valid_hex(self):
        seed = generate_seed()
        assert len(seed) == SEED_BYTES * 2
        assert len(bytes.fromhex(seed)) == SEED_BYTES

    def test_uniqueness(self):
        assert generate_seed() != generate_seed()


class TestValidateSeed:
    def test_accepts_short_opaque_seed(self):
        validate_seed("s1")

    def test_rejects_empty(self):
        with pytest.raises(ValueError, match="must not be empty"):
            validate_seed("")

    def test_rejects_oversized(self):
        with pytest.raises(ValueError, match="at most"):
            validate_seed("x" * (MAX_SEED_LENGTH + 1))

    def test_rejects_non_string(self):
        with pytest.raises(TypeError, match="must be a string"):
            validate_seed(12345)  # type: ignore[arg-type]


class TestPCG64DXSM:
    def test_deterministic(self):
        assert _draws(PCG64DXSM(42, 7)) == _draws(PCG64DXSM(42, 7))

    def test_different_state_differs(self):
        assert _draws(PCG64DXSM(42, 7)) != _draws(PCG64DXSM(43, 7))

    def test_outputs_are_64_bit(self):
        assert all(0 <= value < 2**64 for value in _draws(PCG64DXSM(1, 1), 100))


class TestDeriveStream:
    def test_same_inputs_same_stream(self):
        a = derive_stream("s1", 3, StreamDomain.NEXT_ITEM)
        b = derive_stream("s1", 3, StreamDomain.NEXT_ITEM)
        assert _draws(a) == _draws(b)

    def test_rounds_are_independent(self):
        a = derive_stream("s1", 3, StreamDomain.NEXT_ITEM)
        b = derive_stream("s1", 4, StreamDomain.NEXT_ITEM)
        assert _draws(a) != _draws(b)

    def test_domains_are_independent(self):
        a = derive_stream("s1", 3, StreamDomain.NEXT_ITEM)
        b = derive_stream("s1", 3, StreamDomain.REPRIEVE_ITEM)
        assert _draws(a) != _draws(b)

    def test_seed_round_boundary_is_unambiguous(self):
        # "s1" + round 10 must not collide with "s11" + round 0
        a = derive_stream("s1", 10, StreamDomain.NEXT_ITEM)
        b = derive_stream("s11", 0, StreamDomain.NEXT_ITEM)
        assert _draws(a) != _draws(b)

    def test_rejects_negative_round(self):
        with pytest.raises(ValueError, match="round_number"):
            derive_stream("s1", -1, StreamDomain.NEXT_ITEM)

    def test_rejects_invalid_seed(self):
        with pytest.raises(ValueError, match="must not be empty"):
            derive_stream("", 0, StreamDomain.NEXT_ITEM)


class TestBounded:
    def test_values_in_range(self):
        stream = derive_stream("s1", 0, StreamDomain.INITIAL_PAIR)
        values = [bounded(stream, 7) for _ in range(500)]
        assert all(0 <= v < 7 for v in values)
        assert set(values) == set(range(7))

    def test_bound_of_one_is_always_zero(self):
        stream = derive_stream("s1", 0, StreamDomain.INITIAL_PAIR)
        assert {bounded(stream, 1) for _ in range(20)} == {0}

    @pytest.mark.parametrize("bound", [0, -3, 2**64 + 1])
    def test_invalid_bound_rejected(self, bound):
        stream = derive_stream("s1", 0, StreamDomain.INITIAL_PAIR)
        with pytest.raises(ValueError, match="bound"):
            bounded(stream, bound)


class TestUniform:
    def test_values_in_unit_interval(self):
        stream = derive_stream("s1", 0, StreamDomain.MIXED_TIER)
        values = [uniform(stream) for _ in range(500)]
        assert all(0.0 <= v < 1.0 for v in values)
        # crude spread check: both halves are hit
        assert any(v < 0.5 for v in values)
        assert any(v >= 0.5 for v in values)
