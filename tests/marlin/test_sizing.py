"""
Artifact sizing model tests: formulas, bounds and monotonicity.
"""
import math

import pytest

from zkp.marlin.sizing import (
    proof_size_bytes, evaluation_count, commitment_rounds, size_class,
    setup_time_ms, index_time_ms, prove_time_ms, verify_time_ms, stage_timings,
    BASE_PROOF_SIZE, MIN_EVALUATIONS, MAX_EVALUATIONS,
)

SIZES = [0, 1, 10, 99, 100, 101, 500, 1000, 1001, 1600, 5000, 10000, 10001, 50000, 10 ** 6]


class TestProofSize:
    def test_formula(self):
        assert proof_size_bytes(0) == BASE_PROOF_SIZE
        assert proof_size_bytes(100) == 1024 + 320
        assert proof_size_bytes(10) == 1024 + math.floor(math.sqrt(10) * 32)

    def test_monotonic(self):
        sizes = [proof_size_bytes(n) for n in SIZES]
        assert sizes == sorted(sizes)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            proof_size_bytes(-1)


class TestEvaluationCount:
    def test_clamped(self):
        assert evaluation_count(0) == MIN_EVALUATIONS
        assert evaluation_count(10) == 4
        assert evaluation_count(500) == 5
        assert evaluation_count(1600) == 16
        assert evaluation_count(10 ** 6) == MAX_EVALUATIONS

    def test_monotonic_and_bounded(self):
        counts = [evaluation_count(n) for n in SIZES]
        assert counts == sorted(counts)
        assert all(MIN_EVALUATIONS <= c <= MAX_EVALUATIONS for c in counts)


class TestCommitmentRounds:
    def test_base_shape(self):
        assert commitment_rounds(10) == [3, 2, 1]
        assert commitment_rounds(10000) == [3, 2, 1]

    def test_large_circuit_shape(self):
        assert commitment_rounds(10001) == [4, 3, 1]

    def test_returns_fresh_list(self):
        shape = commitment_rounds(10)
        shape[0] = 99
        assert commitment_rounds(10) == [3, 2, 1]


class TestTiming:
    def test_size_class_buckets(self):
        assert [size_class(n) for n in (1, 100, 101, 1000, 1001, 10000, 10001)] == \
            [0, 0, 1, 1, 2, 2, 3]

    @pytest.mark.parametrize("fn", [setup_time_ms, index_time_ms, prove_time_ms, verify_time_ms])
    def test_monotonic(self, fn):
        times = [fn(n) for n in SIZES]
        assert times == sorted(times)

    def test_larger_class_is_slower(self):
        assert prove_time_ms(50) < prove_time_ms(500) < prove_time_ms(5000) < prove_time_ms(50000)

    def test_setup_uses_largest_dimension(self):
        assert setup_time_ms(10, 5000, 10) == setup_time_ms(5000)

    def test_verify_is_logarithmic(self):
        assert verify_time_ms(0) == 5
        assert verify_time_ms(1) == 7
        assert verify_time_ms(1023) == 25

    def test_stage_timings(self):
        t = stage_timings(10, 10, 10)
        assert set(t) == {"setup", "index", "prove", "verify"}
        assert t["prove"] == prove_time_ms(10)
