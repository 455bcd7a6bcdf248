import logging

from flask import Flask, jsonify
from tinydb import TinyDB

from marlin_routes import init_marlin

DEFAULT_CONFIG = {
    "MARLIN_DB_PATH": "db.json",
    "MARLIN_SEED": 0,
    "MARLIN_STRICT_CIRCUIT_TYPES": False,
}


def create_app(config=None, db=None):
    """Build the demo app.

    Config comes from DEFAULT_CONFIG, then FLASK_* environment variables,
    then `config`. Pass `db` (e.g. TinyDB(storage=MemoryStorage)) to skip
    opening MARLIN_DB_PATH.
    """
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env()
    if config:
        app.config.from_mapping(config)

    if db is None:
        db = TinyDB(app.config["MARLIN_DB_PATH"])
    init_marlin(app, db)

    @app.route("/")
    def home():
        return jsonify({"service": "marlin-demo", "endpoints": "/marlin"})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True)
