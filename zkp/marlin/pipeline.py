"""
Marlin protocol pipeline
========================

Four-stage state machine that threads synthetic artifacts from one stage to
the next and runs the constraint validator at Verify time.

  IDLE ──setup──▶ SETUP ──index──▶ INDEXED ──prove──▶ PROVEN ──verify──▶ VERIFIED

**Stage preconditions**:
  | stage  | requires        | produces           |
  |--------|-----------------|--------------------|
  | setup  | -               | SetupParameters    |
  | index  | SetupParameters | IndexKeys          |
  | prove  | IndexKeys       | ProofArtifact      |
  | verify | ProofArtifact   | VerificationResult |

  Calling a stage before its precondition raises StateError. Missing stages
  are never run implicitly.

**Re-entry**:
  Running an earlier stage again moves the pipeline back to that stage and
  clears every downstream artifact. A setup() after prove() leaves no proof
  behind.

**Atomicity**:
  A stage computes its artifact completely (including any runner call)
  before touching pipeline state. A stage that raises leaves the pipeline
  exactly as it was.

**Determinism**:
  Every artifact is squeezed from a Transcript seeded with `seed` that
  absorbs the stage inputs and the previous artifact. Timings come from the
  sizing model. Only `createdAt` and log timestamps read the clock.

Usage:
    >>> p = MarlinPipeline(seed=1)
    >>> p.setup(10, 10, 10)
    >>> p.index("Demo")
    >>> p.prove({"a": 3, "b": 5}, {"c": 15})
    >>> p.verify().is_valid
    True
"""

import logging
import math
from collections.abc import Mapping
from enum import IntEnum

from zkp.marlin import sizing
from zkp.marlin.artifacts import (
    SetupParameters, ProverKey, VerifierKey, IndexKeys,
    ProofArtifact, VerificationResult, DemoReport,
)
from zkp.marlin.circuit import CircuitDescriptor, CircuitType
from zkp.marlin.errors import StateError, InvalidCircuitData
from zkp.marlin.log import ExecutionLog, utc_now
from zkp.marlin.runner import extract_time_ms
from zkp.marlin.transcript import Transcript
from zkp.marlin.validator import validate, fmt

logger = logging.getLogger(__name__)

SRS_SCALING = 2
NON_ZERO_RATIO = 0.7
OPAQUE_PARAMS_LENGTH = 64
COMMITMENT_HEX_LENGTH = 64
NUM_PROVER_MESSAGES = 3

DEMO_NUM_CONSTRAINTS = 10
DEMO_NUM_VARIABLES = 10
DEMO_NUM_NON_ZERO = 10
DEMO_CIRCUIT_NAME = "Multiplication Circuit"

PROTOCOL_CHECKS = (
    "Polynomial commitment verification",
    "Linear combination checks",
    "Query set validation",
    "Fiat-Shamir consistency",
)


class Stage(IntEnum):
    IDLE = 0
    SETUP = 1
    INDEXED = 2
    PROVEN = 3
    VERIFIED = 4


def _override(parsed, key, fallback):
    """Numeric field from runner JSON, else the computed value."""
    if parsed:
        value = parsed.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return fallback


def _check_mapping(name, value):
    """Copy of `value` as a dict. Raises InvalidCircuitData for non-mappings."""
    if not isinstance(value, Mapping):
        raise InvalidCircuitData("{} must be a mapping, got {}".format(
            name, type(value).__name__))
    return dict(value)


class MarlinPipeline:
    """One demo run of the Marlin protocol.

    Args:
        seed: transcript seed, pins every synthetic artifact
        runner: optional external artifact source (see zkp.marlin.runner)
        clock: zero-argument callable returning a datetime
        strict_circuit_types: report unknown circuit type tags as errors
    """

    def __init__(self, seed=0, runner=None, clock=None, strict_circuit_types=False):
        self.seed = seed
        self.runner = runner
        self.strict_circuit_types = strict_circuit_types
        self._clock = clock or utc_now
        self.log = ExecutionLog(clock=self._clock)
        self._clear_from(Stage.IDLE)

    # ── state ──

    @property
    def stage(self):
        """Current Stage."""
        return self._stage

    def _clear_from(self, stage):
        """Move back to `stage`, dropping every artifact produced after it."""
        if stage < Stage.SETUP:
            self.srs = None
        if stage < Stage.INDEXED:
            self.index_keys = None
            self.circuit = None
        if stage < Stage.PROVEN:
            self.proof = None
        if stage < Stage.VERIFIED:
            self.result = None
        self._stage = stage

    def reset(self):
        """Back to IDLE with an empty log."""
        self._clear_from(Stage.IDLE)
        self.log.reset()

    def get_log(self):
        """Snapshot tuple of LogEntry."""
        return self.log.entries

    def _external(self, operation, args):
        """(parsed_json, stdout) from the runner, or (None, "") without one.

        ProcessError propagates, so a failed call aborts the stage before
        any state is touched.
        """
        if self.runner is None:
            return None, ""
        result = self.runner.run(operation, list(args))
        return result.parsed_json, result.stdout

    def _timing(self, parsed, stdout, key, phase, computed):
        """Stage latency in ms.

        Priority:
          1. numeric `key` field in the runner's JSON
          2. "(<n> ms)" marker on a stdout line mentioning `phase`
          3. the first "(<n> ms)" marker anywhere in stdout
          4. `computed` (the sizing model)
        """
        if parsed and key in parsed:
            return _override(parsed, key, computed)
        if stdout:
            found = extract_time_ms(stdout, phase)
            if found is None:
                found = extract_time_ms(stdout)
            if found is not None:
                return found
        return computed

    # ── stages ──

    def setup(self, num_constraints, num_variables, num_non_zero):
        """Universal setup. Replaces any previous SRS and clears downstream artifacts."""
        sizes = (("num_constraints", num_constraints),
                 ("num_variables", num_variables),
                 ("num_non_zero", num_non_zero))
        for name, n in sizes:
            if isinstance(n, bool) or not isinstance(n, int) or n < 1:
                raise InvalidCircuitData("{} must be a positive integer, got {!r}".format(name, n))

        max_degree = max(num_constraints, num_variables, num_non_zero) * SRS_SCALING

        t = Transcript(b"marlin-setup", self.seed)
        for name, n in sizes:
            t.append_int(name.encode(), n)
        opaque = t.challenge_bytes(b"srs", OPAQUE_PARAMS_LENGTH)

        parsed, stdout = self._external(
            "universal_setup", [num_constraints, num_variables, num_non_zero])
        elapsed = self._timing(parsed, stdout, "setup_time", "setup",
                               sizing.setup_time_ms(num_constraints, num_variables, num_non_zero))

        srs = SetupParameters(max_degree, opaque, self._clock().isoformat(),
                              num_constraints, num_variables, num_non_zero, elapsed)
        self._clear_from(Stage.SETUP)
        self.srs = srs
        self.log.append("universal setup complete: maxDegree={} ({} ms)".format(max_degree, elapsed))
        return srs

    def index(self, description, circuit=None):
        """Derive prover and verifier keys for a circuit.

        Args:
            description: circuit name
            circuit: optional CircuitDescriptor, used by verify() for custom circuits
        """
        if self.srs is None:
            raise StateError("index", "setup")
        if circuit is not None and not isinstance(circuit, CircuitDescriptor):
            raise InvalidCircuitData("circuit must be a CircuitDescriptor")

        srs = self.srs
        num_non_zero = int(math.floor(srs.num_constraints * NON_ZERO_RATIO))

        t = Transcript(b"marlin-index", self.seed)
        t.append_message(b"srs", srs.opaque_params)
        t.append_message(b"circuit", str(description))
        prover_key = ProverKey(
            index_commitments=t.challenge_hex(b"index_commitments", COMMITMENT_HEX_LENGTH),
            committer_key=t.challenge_hex(b"committer_key", COMMITMENT_HEX_LENGTH))
        verifier_key = VerifierKey(
            srs.num_constraints, srs.num_variables, num_non_zero,
            index_comms=t.challenge_hex(b"index_comms", COMMITMENT_HEX_LENGTH),
            verifier_key=t.challenge_hex(b"verifier_key", COMMITMENT_HEX_LENGTH))

        parsed, stdout = self._external("index", [description])
        elapsed = self._timing(parsed, stdout, "index_time", "index",
                               sizing.index_time_ms(srs.num_constraints))

        keys = IndexKeys(str(description), prover_key, verifier_key, elapsed)
        self._clear_from(Stage.INDEXED)
        self.index_keys = keys
        self.circuit = circuit
        self.log.append("circuit '{}' indexed: {} constraints, {} non-zero ({} ms)".format(
            keys.circuit_name, verifier_key.num_constraints, num_non_zero, elapsed))
        return keys

    def prove(self, witness, public_input):
        """Build the proof artifact and capture witness/public input for verify()."""
        if self.index_keys is None:
            raise StateError("prove", "index")
        witness = _check_mapping("witness", witness)
        public_input = _check_mapping("public input", public_input)

        vk = self.index_keys.verifier_key
        n = vk.num_constraints

        t = Transcript(b"marlin-prove", self.seed)
        t.append_message(b"index_comms", vk.index_comms)
        for name in sorted(witness, key=str):
            t.append_value(b"witness", (name, witness[name]))
        for name in sorted(public_input, key=str):
            t.append_value(b"public", (name, public_input[name]))

        rounds = []
        for r, count in enumerate(sizing.commitment_rounds(n)):
            label = b"commitment-%d" % r
            rounds.append([t.challenge_hex(label, COMMITMENT_HEX_LENGTH) for _ in range(count)])
        evaluations = [t.challenge_scalar(b"evaluation") for _ in range(sizing.evaluation_count(n))]
        messages = [{"type": "FieldElements", "data": [t.challenge_scalar(b"prover_message")]}
                    for _ in range(NUM_PROVER_MESSAGES)]
        pc_proof = t.challenge_hex(b"pc_proof", COMMITMENT_HEX_LENGTH)

        parsed, stdout = self._external(
            "prove", list(witness.values()) + list(public_input.values()))
        elapsed = self._timing(parsed, stdout, "proof_time", "prov", sizing.prove_time_ms(n))
        size = _override(parsed, "proof_size", sizing.proof_size_bytes(n))

        proof = ProofArtifact(rounds, evaluations, messages, pc_proof, size,
                              witness, public_input, n, elapsed)
        self._clear_from(Stage.PROVEN)
        self.proof = proof
        self.log.append("proof generated: {} bytes, {} evaluations ({} ms)".format(
            size, len(evaluations), elapsed))
        return proof

    def verify(self, proof=None, public_input=None, circuit_type=CircuitType.MULTIPLICATION,
               circuit_data=None):
        """Check the proof shape, then validate the circuit against the captured witness.

        Args:
            proof: ProofArtifact (default: the stored proof)
            public_input: mapping (default: the public input captured at prove time)
            circuit_type: CircuitType or tag
            circuit_data: CircuitDescriptor for custom circuits (default: the indexed one)

        Returns:
            VerificationResult
        """
        if proof is None:
            proof = self.proof
        if proof is None:
            raise StateError("verify", "prove")
        if public_input is None:
            public_input = proof.public_input
        public_input = _check_mapping("public input", public_input)
        if circuit_data is None:
            circuit_data = self.circuit

        checks = ["{}: passed".format(name) for name in PROTOCOL_CHECKS]

        bindings = dict(proof.witness)
        bindings.update(public_input)
        output = next(iter(public_input.values()), None)
        report = validate(circuit_type, bindings, circuit_data=circuit_data, output=output,
                          strict=self.strict_circuit_types)
        checks.extend(report.checks)

        parsed, stdout = self._external("verify", list(public_input.values()))
        elapsed = self._timing(parsed, stdout, "verify_time", "verif",
                               sizing.verify_time_ms(proof.num_constraints))

        result = VerificationResult(
            is_valid=report.is_valid,
            failure_reason="; ".join(report.errors),
            checks_performed=checks,
            verification_time_ms=elapsed,
            errors=report.errors,
            fallbacks=list(report.fallbacks),
            circuit_type=report.circuit_type.value)
        self.result = result
        if self.proof is not None:
            self._stage = Stage.VERIFIED
        if proof is not self.proof:
            logger.debug("verified a proof supplied by the caller")
        self.log.append("proof verification {} ({} ms)".format(
            "passed" if result.is_valid else "failed: " + result.failure_reason, elapsed))
        return result

    def full_demo(self, a, b, c):
        """Run all four stages for the circuit a × b = c."""
        srs = self.setup(DEMO_NUM_CONSTRAINTS, DEMO_NUM_VARIABLES, DEMO_NUM_NON_ZERO)
        keys = self.index(DEMO_CIRCUIT_NAME)
        proof = self.prove({"a": a, "b": b}, {"c": c})
        result = self.verify(circuit_type=CircuitType.MULTIPLICATION)

        satisfied = a * b == c
        timing = {
            "setupMs": srs.setup_time_ms,
            "indexMs": keys.index_time_ms,
            "proveMs": proof.prove_time_ms,
            "verifyMs": result.verification_time_ms,
        }
        timing["totalMs"] = sum(timing.values())
        report = DemoReport("{} × {} = {}".format(fmt(a), fmt(b), fmt(c)),
                            satisfied, result.is_valid, timing, result)
        self.log.append("demo complete: constraint {}, proof {}".format(
            "satisfied" if satisfied else "not satisfied",
            "valid" if result.is_valid else "invalid"))
        return report
