"""
Marlin demo artifacts
=====================

Data carried between pipeline stages.

  ┌──────────────┐   ┌──────────────┐   ┌──────────────┐   ┌────────────────────┐
  │ setup        │ → │ index        │ → │ prove        │ → │ verify             │
  │ SetupParams  │   │ IndexKeys    │   │ ProofArtifact│   │ VerificationResult │
  └──────────────┘   └──────────────┘   └──────────────┘   └────────────────────┘

Every opaque field is transcript-derived hex, and every evaluation is an FR
element. None of them commit to anything.
"""


class _Record:
    """Value equality over the attributes named in _fields."""

    _fields = ()

    def _values(self):
        return tuple(getattr(self, f) for f in self._fields)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._values() == other._values()

    def __repr__(self):
        inner = ", ".join("{}={!r}".format(f, getattr(self, f)) for f in self._fields)
        return "{}({})".format(type(self).__name__, inner)


class SetupParameters(_Record):
    """Universal SRS.

    Attributes:
        max_degree: max(num_constraints, num_variables, num_non_zero) × SRS_SCALING
        opaque_params: synthetic parameter bytes
        created_at: ISO-8601 timestamp
        num_constraints, num_variables, num_non_zero: the requested bounds
        setup_time_ms: simulated latency
    """

    _fields = ("max_degree", "opaque_params", "created_at",
               "num_constraints", "num_variables", "num_non_zero", "setup_time_ms")

    def __init__(self, max_degree, opaque_params, created_at,
                 num_constraints, num_variables, num_non_zero, setup_time_ms=0):
        self.max_degree = max_degree
        self.opaque_params = opaque_params
        self.created_at = created_at
        self.num_constraints = num_constraints
        self.num_variables = num_variables
        self.num_non_zero = num_non_zero
        self.setup_time_ms = setup_time_ms


class VerifierKey(_Record):
    _fields = ("num_constraints", "num_variables", "num_non_zero", "index_comms", "verifier_key")

    def __init__(self, num_constraints, num_variables, num_non_zero, index_comms, verifier_key):
        self.num_constraints = num_constraints
        self.num_variables = num_variables
        self.num_non_zero = num_non_zero
        self.index_comms = index_comms
        self.verifier_key = verifier_key


class ProverKey(_Record):
    _fields = ("index_commitments", "committer_key")

    def __init__(self, index_commitments, committer_key):
        self.index_commitments = index_commitments
        self.committer_key = committer_key


class IndexKeys(_Record):
    _fields = ("circuit_name", "prover_key", "verifier_key", "index_time_ms")

    def __init__(self, circuit_name, prover_key, verifier_key, index_time_ms=0):
        self.circuit_name = circuit_name
        self.prover_key = prover_key
        self.verifier_key = verifier_key
        self.index_time_ms = index_time_ms


class ProofArtifact(_Record):
    """Synthetic Marlin proof.

    Attributes:
        commitment_rounds: list of rounds, each a list of hex commitments
        evaluations: FR list
        prover_messages: list of {"type": "FieldElements", "data": [FR]}
        pc_proof: hex string
        size_bytes: modelled proof size
        witness, public_input: values captured at prove time, for validation
        num_constraints: circuit size the proof was shaped for
        prove_time_ms: simulated latency
    """

    _fields = ("commitment_rounds", "evaluations", "prover_messages", "pc_proof",
               "size_bytes", "witness", "public_input", "num_constraints", "prove_time_ms")

    def __init__(self, commitment_rounds, evaluations, prover_messages, pc_proof, size_bytes,
                 witness, public_input, num_constraints, prove_time_ms=0):
        self.commitment_rounds = commitment_rounds
        self.evaluations = evaluations
        self.prover_messages = prover_messages
        self.pc_proof = pc_proof
        self.size_bytes = size_bytes
        self.witness = witness
        self.public_input = public_input
        self.num_constraints = num_constraints
        self.prove_time_ms = prove_time_ms

    def round_shape(self):
        return [len(r) for r in self.commitment_rounds]


class VerificationResult(_Record):
    """Terminal artifact of a pipeline run.

    failure_reason is "" when valid, otherwise the validator errors joined by "; ".
    """

    _fields = ("is_valid", "failure_reason", "checks_performed", "verification_time_ms",
               "errors", "fallbacks", "circuit_type")

    def __init__(self, is_valid, failure_reason, checks_performed, verification_time_ms,
                 errors=None, fallbacks=None, circuit_type=None):
        self.is_valid = is_valid
        self.failure_reason = failure_reason
        self.checks_performed = checks_performed
        self.verification_time_ms = verification_time_ms
        self.errors = errors or []
        self.fallbacks = fallbacks or []
        self.circuit_type = circuit_type


class DemoReport(_Record):
    """Combined report of a full_demo run."""

    _fields = ("constraint", "is_constraint_satisfied", "proof_verification", "timing",
               "verification")

    def __init__(self, constraint, is_constraint_satisfied, proof_verification, timing,
                 verification):
        self.demo_complete = True
        self.constraint = constraint
        self.is_constraint_satisfied = is_constraint_satisfied
        self.proof_verification = proof_verification
        self.timing = timing
        self.verification = verification

    @property
    def validator_agrees(self):
        """True when the independent a×b == c check matches the validator verdict."""
        return self.is_constraint_satisfied == self.proof_verification
