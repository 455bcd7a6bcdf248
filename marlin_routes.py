"""
Marlin Flask Blueprint
======================

JSON endpoints over one in-process MarlinPipeline.

  | method | path                      | body                                   |
  |--------|---------------------------|----------------------------------------|
  | GET    | /marlin/state             |                                        |
  | POST   | /marlin/setup             | numConstraints, numVariables, numNonZero |
  | POST   | /marlin/index             | circuitName, circuitData?              |
  | POST   | /marlin/prove             | witness, publicInput                   |
  | POST   | /marlin/verify            | circuitType?, circuitData?, publicInput? |
  | POST   | /marlin/full-demo         | a, b, c                                |
  | POST   | /marlin/verify-constraint | a, b, c                                |
  | POST   | /marlin/reset             |                                        |
  | GET    | /marlin/log               |                                        |

Stage outputs are stored in TinyDB under "marlin.<stage>.*". Re-running a
stage removes the stored keys of every later stage. /verify checks the proof
as stored in TinyDB, not the pipeline's in-memory copy.
"""

import logging
import threading

from flask import Blueprint, current_app, jsonify, request
from tinydb import Query

from zkp.marlin.circuit import CircuitType
from zkp.marlin.errors import InvalidCircuitData, ProcessError, StateError
from zkp.marlin.expression import to_number
from zkp.marlin.pipeline import (
    MarlinPipeline, DEMO_NUM_CONSTRAINTS, DEMO_NUM_VARIABLES, DEMO_NUM_NON_ZERO,
)
from zkp.marlin.validator import verify_constraint

from marlin_serializers import (
    serialize_srs, serialize_index_keys,
    serialize_proof, deserialize_proof, proof_summary,
    serialize_result, serialize_report, serialize_log,
    serialize_circuit, deserialize_circuit,
)

logger = logging.getLogger(__name__)

marlin_bp = Blueprint("marlin", __name__, url_prefix="/marlin")

DATA = Query()

STAGE_PREFIXES = ("marlin.setup", "marlin.index", "marlin.prove", "marlin.verify")


def init_marlin(app, db, pipeline=None):
    """Attach the pipeline, its TinyDB and a lock to the app, and register the blueprint."""
    if pipeline is None:
        pipeline = MarlinPipeline(
            seed=app.config.get("MARLIN_SEED", 0),
            strict_circuit_types=app.config.get("MARLIN_STRICT_CIRCUIT_TYPES", False))
    app.extensions["marlin"] = {
        "pipeline": pipeline,
        "db": db,
        "lock": threading.Lock(),
    }
    app.register_blueprint(marlin_bp)


def _ext():
    """Pipeline, db and lock registered by init_marlin."""
    return current_app.extensions["marlin"]


# ─── DB helpers ───

def db_get(key):
    """Stored data for `key`, or None."""
    found = _ext()["db"].search(DATA.type == key)
    if not found:
        return None
    return found[0].get("data")


def db_set(key, data):
    """Insert or replace the record for `key`."""
    _ext()["db"].upsert({"type": key, "data": data}, DATA.type == key)


def db_remove_prefix(prefix):
    """Remove every record whose key starts with `prefix`."""
    _ext()["db"].remove(DATA.type.test(lambda t: t.startswith(prefix)))


def db_clear_after(prefix):
    """Remove every stage's keys stored after the stage owning `prefix`."""
    start = STAGE_PREFIXES.index(prefix)
    for p in STAGE_PREFIXES[start + 1:]:
        db_remove_prefix(p)


def _store_log(pipeline):
    """Persist the execution log under marlin.log."""
    db_set("marlin.log", serialize_log(pipeline.get_log()))


# ─── request helpers ───

def _body():
    """Request JSON object, {} when absent or malformed."""
    return request.get_json(silent=True) or {}


def _number_field(body, name, default=None):
    """Numeric field (number or numeric string). Raises InvalidCircuitData otherwise."""
    raw = body.get(name, default)
    value = to_number(raw)
    if value is None:
        raise InvalidCircuitData("'{}' must be a number, got {!r}".format(name, raw))
    return value


def _int_field(body, name, default):
    value = _number_field(body, name, default)
    if not isinstance(value, int):
        raise InvalidCircuitData("'{}' must be an integer, got {!r}".format(name, value))
    return value


# ─── error handlers ───

def _error(e, status):
    """JSON error body {"error", "kind"}. kind is the ErrorKind tag or the exception class name."""
    kind = e.kind.value if getattr(e, "kind", None) is not None else type(e).__name__
    return jsonify({"error": str(e), "kind": kind}), status


@marlin_bp.errorhandler(StateError)
def handle_state_error(e):
    """Stage called out of order → 409."""
    return _error(e, 409)


@marlin_bp.errorhandler(InvalidCircuitData)
def handle_invalid_circuit(e):
    """Malformed input → 400."""
    return _error(e, 400)


@marlin_bp.errorhandler(ProcessError)
def handle_process_error(e):
    """External program failed → 502."""
    logger.warning("external runner failed: %s", e)
    return _error(e, 502)


# ─── endpoints ───

@marlin_bp.route("/state")
def state():
    """Current stage and the stored artifacts of each stage."""
    pipeline = _ext()["pipeline"]
    proof = db_get("marlin.prove.proof")
    return jsonify({
        "stage": pipeline.stage.name,
        "srs": db_get("marlin.setup.srs"),
        "indexKeys": db_get("marlin.index.keys"),
        "proof": proof_summary(deserialize_proof(proof)) if proof else None,
        "result": db_get("marlin.verify.result"),
    })


@marlin_bp.route("/setup", methods=["POST"])
def setup():
    """Universal setup. Clears stored index, proof and result."""
    body = _body()
    nc = _int_field(body, "numConstraints", DEMO_NUM_CONSTRAINTS)
    nv = _int_field(body, "numVariables", DEMO_NUM_VARIABLES)
    nnz = _int_field(body, "numNonZero", DEMO_NUM_NON_ZERO)
    ext = _ext()
    with ext["lock"]:
        srs = ext["pipeline"].setup(nc, nv, nnz)
        db_clear_after("marlin.setup")
        data = serialize_srs(srs)
        db_set("marlin.setup.srs", data)
        _store_log(ext["pipeline"])
    return jsonify(data)


@marlin_bp.route("/index", methods=["POST"])
def index():
    """Index a circuit (optionally with circuitData for custom verification)."""
    body = _body()
    name = body.get("circuitName", "Demo")
    circuit = body.get("circuitData")
    circuit = deserialize_circuit(circuit) if circuit is not None else None
    ext = _ext()
    with ext["lock"]:
        keys = ext["pipeline"].index(name, circuit)
        db_clear_after("marlin.index")
        data = serialize_index_keys(keys)
        db_set("marlin.index.keys", data)
        if circuit is not None:
            db_set("marlin.index.circuit", serialize_circuit(circuit))
        _store_log(ext["pipeline"])
    return jsonify(data)


@marlin_bp.route("/prove", methods=["POST"])
def prove():
    """Generate a proof from witness and publicInput."""
    body = _body()
    ext = _ext()
    with ext["lock"]:
        proof = ext["pipeline"].prove(body.get("witness", {}), body.get("publicInput", {}))
        db_clear_after("marlin.prove")
        db_set("marlin.prove.proof", serialize_proof(proof))
        _store_log(ext["pipeline"])
    return jsonify(proof_summary(proof))


@marlin_bp.route("/verify", methods=["POST"])
def verify():
    """Verify the proof stored in TinyDB."""
    body = _body()
    circuit = body.get("circuitData")
    circuit = deserialize_circuit(circuit) if circuit is not None else None
    ext = _ext()
    with ext["lock"]:
        stored = db_get("marlin.prove.proof")
        if stored is None:
            raise StateError("verify", "prove")
        result = ext["pipeline"].verify(
            deserialize_proof(stored),
            public_input=body.get("publicInput"),
            circuit_type=body.get("circuitType", CircuitType.MULTIPLICATION.value),
            circuit_data=circuit)
        data = serialize_result(result)
        db_set("marlin.verify.result", data)
        _store_log(ext["pipeline"])
    return jsonify(data)


@marlin_bp.route("/full-demo", methods=["POST"])
def full_demo():
    """Run all four stages for a × b = c and store every artifact."""
    body = _body()
    a = _number_field(body, "a")
    b = _number_field(body, "b")
    c = _number_field(body, "c")
    ext = _ext()
    with ext["lock"]:
        pipeline = ext["pipeline"]
        # a run that fails partway must not leave an older proof for /verify
        for prefix in STAGE_PREFIXES:
            db_remove_prefix(prefix)
        report = pipeline.full_demo(a, b, c)
        db_set("marlin.setup.srs", serialize_srs(pipeline.srs))
        db_set("marlin.index.keys", serialize_index_keys(pipeline.index_keys))
        db_set("marlin.prove.proof", serialize_proof(pipeline.proof))
        db_set("marlin.verify.result", serialize_result(report.verification))
        _store_log(pipeline)
    return jsonify(serialize_report(report))


@marlin_bp.route("/verify-constraint", methods=["POST"])
def verify_constraint_endpoint():
    """Quick a × b == c check. Does not touch the pipeline."""
    body = _body()
    return jsonify(verify_constraint(
        _number_field(body, "a"), _number_field(body, "b"), _number_field(body, "c")))


@marlin_bp.route("/reset", methods=["POST"])
def reset():
    """Back to IDLE. Removes every stored marlin record."""
    ext = _ext()
    with ext["lock"]:
        ext["pipeline"].reset()
        db_remove_prefix("marlin.")
    return jsonify({"stage": ext["pipeline"].stage.name})


@marlin_bp.route("/log")
def log():
    """Execution log entries in append order."""
    return jsonify(serialize_log(_ext()["pipeline"].get_log()))
