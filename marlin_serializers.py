"""
Marlin artifact serializers
===========================

Converts pipeline artifacts to TinyDB / JSON safe dicts and back.
FR elements are stored as decimal strings, opaque bytes as hex.
Keys are camelCase, the way the demo's JSON output names them.
"""

from zkp.marlin.artifacts import (
    SetupParameters, ProverKey, VerifierKey, IndexKeys, ProofArtifact, VerificationResult,
)
from zkp.marlin.circuit import CircuitDescriptor, Constraint, Variable, PRIVATE
from zkp.marlin.errors import ErrorKind, InvalidCircuitData
from zkp.marlin.field import FR, fr_short
from zkp.marlin.validator import FallbackRecord


# ─── FR ───

def serialize_fr(val):
    """FR → str(int)"""
    return str(int(val))


def deserialize_fr(s):
    """str(int) → FR"""
    return FR(int(s))


def serialize_fr_list(lst):
    """list[FR] → list[str]"""
    return [serialize_fr(v) for v in lst]


def deserialize_fr_list(data):
    """list[str] → list[FR]"""
    return [deserialize_fr(s) for s in data]


# ─── SRS ───

def serialize_srs(srs):
    """SetupParameters → dict (opaque params as hex)"""
    return {
        "maxDegree": srs.max_degree,
        "opaqueParams": srs.opaque_params.hex(),
        "createdAt": srs.created_at,
        "numConstraints": srs.num_constraints,
        "numVariables": srs.num_variables,
        "numNonZero": srs.num_non_zero,
        "setupTimeMs": srs.setup_time_ms,
    }


def deserialize_srs(data):
    """dict → SetupParameters"""
    return SetupParameters(
        data["maxDegree"], bytes.fromhex(data["opaqueParams"]), data["createdAt"],
        data["numConstraints"], data["numVariables"], data["numNonZero"],
        data.get("setupTimeMs", 0))


# ─── IndexKeys ───

def serialize_index_keys(keys):
    """IndexKeys → nested dict (proverKey / verifierKey)"""
    vk = keys.verifier_key
    return {
        "circuitName": keys.circuit_name,
        "proverKey": {
            "indexCommitments": keys.prover_key.index_commitments,
            "committerKey": keys.prover_key.committer_key,
        },
        "verifierKey": {
            "numConstraints": vk.num_constraints,
            "numVariables": vk.num_variables,
            "numNonZero": vk.num_non_zero,
            "indexComms": vk.index_comms,
            "verifierKey": vk.verifier_key,
        },
        "indexTimeMs": keys.index_time_ms,
    }


def deserialize_index_keys(data):
    """dict → IndexKeys"""
    pk = data["proverKey"]
    vk = data["verifierKey"]
    return IndexKeys(
        data["circuitName"],
        ProverKey(pk["indexCommitments"], pk["committerKey"]),
        VerifierKey(vk["numConstraints"], vk["numVariables"], vk["numNonZero"],
                    vk["indexComms"], vk["verifierKey"]),
        data.get("indexTimeMs", 0))


# ─── Proof ───

def serialize_proof(proof):
    """ProofArtifact → dict. Evaluations and prover messages as decimal strings."""
    return {
        "commitmentRounds": [list(r) for r in proof.commitment_rounds],
        "evaluations": serialize_fr_list(proof.evaluations),
        "proverMessages": [
            {"type": m["type"], "data": serialize_fr_list(m["data"])}
            for m in proof.prover_messages
        ],
        "pcProof": proof.pc_proof,
        "sizeBytes": proof.size_bytes,
        "witness": dict(proof.witness),
        "publicInput": dict(proof.public_input),
        "numConstraints": proof.num_constraints,
        "proveTimeMs": proof.prove_time_ms,
    }


def deserialize_proof(data):
    """dict → ProofArtifact"""
    return ProofArtifact(
        [list(r) for r in data["commitmentRounds"]],
        deserialize_fr_list(data["evaluations"]),
        [{"type": m["type"], "data": deserialize_fr_list(m["data"])}
         for m in data["proverMessages"]],
        data["pcProof"],
        data["sizeBytes"],
        dict(data["witness"]),
        dict(data["publicInput"]),
        data["numConstraints"],
        data.get("proveTimeMs", 0))


def proof_summary(proof):
    """Short display form of a proof (hex and field elements abbreviated)."""
    return {
        "roundShape": proof.round_shape(),
        "evaluations": [fr_short(e) for e in proof.evaluations],
        "proverMessages": [fr_short(m["data"][0]) for m in proof.prover_messages],
        "pcProof": proof.pc_proof[:16] + "...",
        "sizeBytes": proof.size_bytes,
    }


# ─── VerificationResult ───

def serialize_fallback(record):
    """FallbackRecord → dict, kind stored by its tag name"""
    return {
        "constraint": record.constraint,
        "operand": record.operand,
        "expr": record.expr,
        "kind": record.kind.value,
    }


def deserialize_fallback(data):
    """dict → FallbackRecord"""
    kind = ErrorKind(data.get("kind", ErrorKind.EVALUATION_FALLBACK.value))
    return FallbackRecord(data["constraint"], data["operand"], data["expr"], kind)


def serialize_result(result):
    """VerificationResult → dict"""
    return {
        "isValid": result.is_valid,
        "failureReason": result.failure_reason,
        "checksPerformed": list(result.checks_performed),
        "verificationTimeMs": result.verification_time_ms,
        "errors": list(result.errors),
        "fallbacks": [serialize_fallback(f) for f in result.fallbacks],
        "circuitType": result.circuit_type,
    }


def deserialize_result(data):
    """dict → VerificationResult"""
    return VerificationResult(
        data["isValid"], data["failureReason"], list(data["checksPerformed"]),
        data["verificationTimeMs"], list(data.get("errors", [])),
        [deserialize_fallback(f) for f in data.get("fallbacks", [])],
        data.get("circuitType"))


def serialize_report(report):
    """DemoReport → dict with the full verification result nested"""
    return {
        "demoComplete": report.demo_complete,
        "constraint": report.constraint,
        "isConstraintSatisfied": report.is_constraint_satisfied,
        "proofVerification": report.proof_verification,
        "validatorAgrees": report.validator_agrees,
        "timing": dict(report.timing),
        "verification": serialize_result(report.verification),
    }


# ─── Log ───

def serialize_log(entries):
    """LogEntry sequence → [{"timestamp", "message"}]"""
    return [{"timestamp": e.timestamp, "message": e.message} for e in entries]


# ─── Circuit ───

def serialize_circuit(circuit):
    """CircuitDescriptor → {"variables", "constraints"}"""
    return {
        "variables": [{"name": v.name, "kind": v.kind, "value": v.value}
                      for v in circuit.variables],
        "constraints": [{"left": c.left, "right": c.right, "output": c.output}
                        for c in circuit.constraints],
    }


def deserialize_circuit(data):
    """{"variables": [...], "constraints": [...]} → CircuitDescriptor

    Any structural problem (wrong container type, missing or non-string
    variable name, non-object entry) raises InvalidCircuitData.
    """
    if not isinstance(data, dict):
        raise InvalidCircuitData("circuit data must be an object")
    raw_variables = data.get("variables", [])
    raw_constraints = data.get("constraints", [])
    if not isinstance(raw_variables, list):
        raise InvalidCircuitData("'variables' must be a list")
    if not isinstance(raw_constraints, list):
        raise InvalidCircuitData("'constraints' must be a list")

    variables = []
    for v in raw_variables:
        if not isinstance(v, dict) or not isinstance(v.get("name"), str):
            raise InvalidCircuitData("malformed variable entry: {!r}".format(v))
        variables.append(Variable(v["name"], v.get("kind", PRIVATE), v.get("value", 0)))
    constraints = []
    for c in raw_constraints:
        if not isinstance(c, dict):
            raise InvalidCircuitData("malformed constraint entry: {!r}".format(c))
        constraints.append(Constraint(c.get("left"), c.get("right"), c.get("output")))
    return CircuitDescriptor(variables, constraints)
