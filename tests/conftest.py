import pytest

from corolisp import runtime_context
from corolisp.ambient import Cursor
from corolisp.primitives import Scheduler

# This test configuration runs every test twice:
# 1) with the atomic fast path enabled ["atomic"]
# 2) with it disabled, forcing every subtree through the general
#    rewrite rules ["general"]
# The fast path is an optimisation only, so both runs must agree. Most
# tests never pass options explicitly and pick the setting up from the
# environment through default_options().


@pytest.fixture(params=["atomic", "general"])
def atomicity_mode(request):
    return request.param


@pytest.fixture(autouse=True)
def _force_atomicity_mode(atomicity_mode, monkeypatch):
    monkeypatch.setenv("COROLISP_ATOMICITY_CHECK", "1" if atomicity_mode == "atomic" else "0")


@pytest.fixture(autouse=True)
def fresh_runtime():
    """Give each test its own ambient cursor and event loop."""
    cursor = Cursor()
    scheduler = Scheduler()
    runtime_context.set_ambient(cursor)
    runtime_context.set_scheduler(scheduler)
    yield cursor, scheduler
    runtime_context.set_ambient(None)
    runtime_context.set_scheduler(None)
    scheduler.close()
