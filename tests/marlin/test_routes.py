"""
Marlin JSON API tests
=====================

Flask test client over an in-memory TinyDB.
"""
import pytest
from tinydb import Query

from zkp.marlin.errors import ProcessError
from zkp.marlin.runner import ProcessResult

from app import create_app


class FailingRunner:
    """Runner whose `fail_on` operation exits abnormally."""

    def __init__(self, fail_on):
        self.fail_on = fail_on

    def run(self, operation, args):
        if operation == self.fail_on:
            raise ProcessError("prover crashed", exit_code=1)
        return ProcessResult(True, "", None, 0)


def _stored_types(db):
    return {doc["type"] for doc in db.all()}


def _run_to_proof(client, c=15):
    assert client.post("/marlin/setup", json={}).status_code == 200
    assert client.post("/marlin/index", json={"circuitName": "Demo"}).status_code == 200
    resp = client.post("/marlin/prove", json={"witness": {"a": 3, "b": 5}, "publicInput": {"c": c}})
    assert resp.status_code == 200
    return resp


class TestStages:
    def test_initial_state(self, client):
        data = client.get("/marlin/state").get_json()
        assert data["stage"] == "IDLE"
        assert data["proof"] is None

    def test_full_sequence(self, client, db):
        setup = client.post("/marlin/setup",
                            json={"numConstraints": 10, "numVariables": 10, "numNonZero": 10})
        assert setup.get_json()["maxDegree"] == 20
        keys = client.post("/marlin/index", json={"circuitName": "Demo"}).get_json()
        assert keys["verifierKey"]["numNonZero"] == 7
        proof = client.post("/marlin/prove",
                            json={"witness": {"a": 3, "b": 5}, "publicInput": {"c": 15}}).get_json()
        assert proof["roundShape"] == [3, 2, 1]

        result = client.post("/marlin/verify", json={}).get_json()
        assert result["isValid"] is True
        assert result["failureReason"] == ""

        assert {"marlin.setup.srs", "marlin.index.keys", "marlin.prove.proof",
                "marlin.verify.result", "marlin.log"} <= _stored_types(db)
        assert client.get("/marlin/state").get_json()["stage"] == "VERIFIED"

    def test_wrong_claim_fails(self, client):
        _run_to_proof(client, c=16)
        result = client.post("/marlin/verify", json={}).get_json()
        assert result["isValid"] is False
        assert "16" in result["failureReason"]

    def test_verify_reads_proof_from_db(self, client, db):
        _run_to_proof(client)
        Data = Query()
        doc = db.search(Data.type == "marlin.prove.proof")[0]
        doc["data"]["publicInput"] = {"c": 99}
        db.upsert(doc, Data.type == "marlin.prove.proof")
        result = client.post("/marlin/verify", json={}).get_json()
        assert result["isValid"] is False
        assert "99" in result["failureReason"]

    def test_custom_circuit(self, client):
        client.post("/marlin/setup", json={})
        client.post("/marlin/index", json={
            "circuitName": "Custom",
            "circuitData": {
                "variables": [{"name": "x", "value": 2}, {"name": "y", "kind": "public", "value": 6}],
                "constraints": [{"left": "x", "right": 3, "output": "y"}],
            },
        })
        client.post("/marlin/prove", json={"witness": {"x": 2}, "publicInput": {"y": 6}})
        result = client.post("/marlin/verify", json={"circuitType": "custom"}).get_json()
        assert result["isValid"] is True
        assert result["circuitType"] == "custom"


class TestInvalidation:
    def test_setup_clears_downstream_keys(self, client, db):
        _run_to_proof(client)
        client.post("/marlin/verify", json={})
        client.post("/marlin/setup", json={"numConstraints": 20})
        types = _stored_types(db)
        assert "marlin.setup.srs" in types
        assert not any(t.startswith(("marlin.index", "marlin.prove", "marlin.verify")) for t in types)

    def test_reset(self, client, db):
        _run_to_proof(client)
        data = client.post("/marlin/reset").get_json()
        assert data["stage"] == "IDLE"
        assert _stored_types(db) == set()
        assert client.get("/marlin/log").get_json() == []


class TestErrors:
    def test_index_before_setup_is_409(self, client):
        resp = client.post("/marlin/index", json={})
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["kind"] == "StateError"
        assert "setup" in body["error"]

    def test_verify_without_stored_proof_is_409(self, client):
        assert client.post("/marlin/verify", json={}).status_code == 409

    @pytest.mark.parametrize("body", [
        {"numConstraints": 0},
        {"numConstraints": -5},
        {"numConstraints": 2.5},
        {"numConstraints": "many"},
    ])
    def test_bad_setup_is_400(self, client, body):
        resp = client.post("/marlin/setup", json=body)
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "InvalidCircuitData"

    def test_bad_witness_is_400(self, client):
        client.post("/marlin/setup", json={})
        client.post("/marlin/index", json={})
        resp = client.post("/marlin/prove", json={"witness": [3, 5], "publicInput": {"c": 15}})
        assert resp.status_code == 400

    def test_bad_circuit_data_is_400(self, client):
        client.post("/marlin/setup", json={})
        resp = client.post("/marlin/index", json={"circuitData": {"variables": [{"value": 1}]}})
        assert resp.status_code == 400


class TestDemoEndpoints:
    def test_full_demo(self, client, db):
        data = client.post("/marlin/full-demo", json={"a": 3, "b": 5, "c": 15}).get_json()
        assert data["demoComplete"] is True
        assert data["isConstraintSatisfied"] is True
        assert data["proofVerification"] is True
        assert data["validatorAgrees"] is True
        assert data["constraint"] == "3 × 5 = 15"
        assert "marlin.verify.result" in _stored_types(db)

    def test_failed_full_demo_drops_older_proof(self, app, client, db):
        _run_to_proof(client)
        assert "marlin.prove.proof" in _stored_types(db)
        app.extensions["marlin"]["pipeline"].runner = FailingRunner("prove")
        resp = client.post("/marlin/full-demo", json={"a": 3, "b": 5, "c": 15})
        assert resp.status_code == 502
        assert resp.get_json()["kind"] == "ProcessError"
        assert not any(t.startswith(("marlin.prove", "marlin.verify")) for t in _stored_types(db))
        assert client.post("/marlin/verify", json={}).status_code == 409

    def test_full_demo_requires_numbers(self, client):
        assert client.post("/marlin/full-demo", json={"a": 3, "b": "x", "c": 15}).status_code == 400

    def test_verify_constraint(self, client):
        data = client.post("/marlin/verify-constraint", json={"a": 3, "b": 5, "c": 16}).get_json()
        assert data["isValid"] is False
        assert data["actualResult"] == 15
        assert data["claimedResult"] == 16

    def test_log(self, client):
        client.post("/marlin/full-demo", json={"a": 2, "b": 2, "c": 4})
        entries = client.get("/marlin/log").get_json()
        assert len(entries) == 5
        assert set(entries[0]) == {"timestamp", "message"}


class TestConfig:
    def test_defaults(self, app):
        assert app.config["MARLIN_DB_PATH"] == "db.json"
        assert app.config["MARLIN_STRICT_CIRCUIT_TYPES"] is False

    def test_strict_from_config(self, db):
        app = create_app({"TESTING": True, "MARLIN_STRICT_CIRCUIT_TYPES": True}, db=db)
        client = app.test_client()
        _run_to_proof(client)
        result = client.post("/marlin/verify", json={"circuitType": "legacy"}).get_json()
        assert result["isValid"] is False

    def test_prefixed_env(self, db, monkeypatch):
        monkeypatch.setenv("FLASK_MARLIN_SEED", "7")
        app = create_app({"TESTING": True}, db=db)
        assert app.config["MARLIN_SEED"] == 7
        assert app.extensions["marlin"]["pipeline"].seed == 7

    @pytest.mark.parametrize("seed", ["not-a-number", str(2 ** 80)])
    def test_any_env_seed_runs(self, db, monkeypatch, seed):
        monkeypatch.setenv("FLASK_MARLIN_SEED", seed)
        client = create_app({"TESTING": True}, db=db).test_client()
        assert client.post("/marlin/setup", json={}).status_code == 200
        assert client.post("/marlin/full-demo", json={"a": 3, "b": 5, "c": 15}).status_code == 200
