import sys
import os
from datetime import datetime, timezone

import pytest

# add the project root to sys.path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from zkp.marlin.pipeline import MarlinPipeline


FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_TIME


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def pipeline():
    """Fresh pipeline with a pinned clock."""
    return MarlinPipeline(seed=0, clock=fixed_clock)


@pytest.fixture
def proven_pipeline(pipeline):
    """setup(10,10,10) → index("Demo") → prove({a:3,b:5},{c:15})."""
    pipeline.setup(10, 10, 10)
    pipeline.index("Demo")
    pipeline.prove({"a": 3, "b": 5}, {"c": 15})
    return pipeline


@pytest.fixture
def db():
    return TinyDB(storage=MemoryStorage)


@pytest.fixture
def app(db):
    from app import create_app
    app = create_app({"TESTING": True, "MARLIN_SEED": 0}, db=db)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
