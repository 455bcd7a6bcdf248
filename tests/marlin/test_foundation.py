"""
Foundation module tests: field.py, transcript.py, circuit.py
"""
import pytest

from zkp.marlin.circuit import (
    CircuitDescriptor, CircuitType, Constraint, Variable, PUBLIC, PRIVATE,
)
from zkp.marlin.errors import InvalidCircuitData, StateError
from zkp.marlin.field import FR, CURVE_ORDER, fr_short
from zkp.marlin.transcript import Transcript


# =====================================================================
# FR
# =====================================================================

class TestFR:
    def test_modular_reduction(self):
        assert FR(CURVE_ORDER + 7) == FR(7)

    def test_fr_short(self):
        assert fr_short(FR(21)) == "0x00000015"
        assert fr_short(FR(CURVE_ORDER - 1), digits=4) == "0x" + ("%064x" % (CURVE_ORDER - 1))[-4:]


# =====================================================================
# Transcript
# =====================================================================

class TestTranscript:
    def test_deterministic(self):
        a, b = Transcript(seed=3), Transcript(seed=3)
        a.append_int(b"n", 10)
        b.append_int(b"n", 10)
        assert a.challenge_hex(b"x", 64) == b.challenge_hex(b"x", 64)

    def test_seed_changes_output(self):
        assert Transcript(seed=1).challenge_bytes(b"x", 32) != \
            Transcript(seed=2).challenge_bytes(b"x", 32)

    @pytest.mark.parametrize("seed", [2 ** 64, 2 ** 80, -1, "abc"])
    def test_seed_outside_64_bits(self, seed):
        assert len(Transcript(seed=seed).challenge_bytes(b"x", 32)) == 32

    def test_large_seeds_stay_distinct(self):
        assert Transcript(seed=2 ** 80).challenge_bytes(b"x", 32) != \
            Transcript(seed=2 ** 80 + 1).challenge_bytes(b"x", 32)

    def test_successive_challenges_differ(self):
        t = Transcript()
        assert t.challenge_scalar(b"x") != t.challenge_scalar(b"x")

    def test_lengths(self):
        t = Transcript()
        assert len(t.challenge_bytes(b"long", 100)) == 100
        assert len(t.challenge_hex(b"odd", 7)) == 7

    def test_scalar_in_field(self):
        assert 0 <= int(Transcript().challenge_scalar(b"s")) < CURVE_ORDER


# =====================================================================
# Circuit
# =====================================================================

class TestCircuit:
    def test_bindings_split(self):
        circuit = CircuitDescriptor(
            [Variable("a", PRIVATE, 3), Variable("b", PRIVATE, 5), Variable("c", PUBLIC, 15)],
            [Constraint("a", "b", "c")])
        assert circuit.bindings() == {"a": 3, "b": 5, "c": 15}
        assert circuit.public_inputs() == {"c": 15}
        assert circuit.witness() == {"a": 3, "b": 5}
        assert (circuit.num_variables, circuit.num_constraints) == (3, 1)

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidCircuitData):
            CircuitDescriptor([Variable("a"), Variable("a")], [])

    def test_bad_kind_rejected(self):
        with pytest.raises(InvalidCircuitData):
            Variable("a", "secret")

    def test_missing_operands(self):
        assert Constraint("a", None, " ").missing_operands() == ["right", "output"]
        assert Constraint(0, 0, 0).is_complete()

    @pytest.mark.parametrize("tag,expected", [
        ("multiplication", CircuitType.MULTIPLICATION),
        (" Quadratic ", CircuitType.QUADRATIC),
        ("hash", CircuitType.HASH),
        ("custom", CircuitType.CUSTOM),
        ("rangeproof", CircuitType.UNSPECIFIED),
        (None, CircuitType.UNSPECIFIED),
    ])
    def test_circuit_type_parse(self, tag, expected):
        assert CircuitType.parse(tag) is expected


class TestErrors:
    def test_state_error_names_missing_stage(self):
        e = StateError("prove", "index")
        assert e.missing == "index"
        assert "'index'" in str(e)
