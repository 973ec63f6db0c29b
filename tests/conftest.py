"""
Pytest configuration and shared fixtures.

Environment is pinned before any project module is imported: config.py reads
it at import time and server.py initializes the store on import.
"""
import os
import tempfile
import threading

_TMP = tempfile.mkdtemp(prefix="order_sync_tests_")
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["STATE_DB_PATH"] = os.path.join(_TMP, "import.db")
os.environ["ADMIN_EMAILS"] = ""
os.environ["INTAKE_API_KEY"] = "test-key"

import pytest

import db
from models import ApiResult, STATE_NEW, STATE_RESOLVED, STATE_SENT


@pytest.fixture(autouse=True)
def state_db(tmp_path, monkeypatch):
    """Fresh SQLite store per test."""
    path = str(tmp_path / "orders.db")
    monkeypatch.setattr(db, "STATE_DB_PATH", path)
    db.init_state_db()
    return path


def make_payload(**overrides):
    payload = {
        "id": 1001,
        "fullName": "Jan Novak",
        "email": "jan.novak@shop.nl",
        "phone": "+31 20 123 4567",
        "addressLine1": "Damrak 1",
        "addressLine2": None,
        "company": "Novak BV",
        "zipCode": "1012 LG",
        "city": "Amsterdam",
        "country": "NL",
        "carrierKey": "DPD",
        "status": "paid",
        "details": [
            {"productId": 501, "name": "Poster A2", "quantity": 2, "weight": 0.4, "eanCode": "8712345678906"},
            {"productId": 502, "quantity": 1},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def payload():
    return make_payload()


@pytest.fixture
def make_order():
    """Create a structured record and walk it forward to `state`."""
    from validation import validate_order

    def _make(state=STATE_NEW, received_state=None, **overrides):
        outcome = validate_order(make_payload(**overrides))
        assert not outcome.need_fix, outcome.need_fix_reason
        order = db.create_order(dict(outcome.value))

        path = (STATE_NEW, STATE_SENT, STATE_RESOLVED, "finished")
        for step in path[1:path.index(state) + 1]:
            assert db.update_order(order.id, {"state": step})
        if received_state is not None:
            db.update_order(order.id, {"received_state": received_state})
        return db.get_order(order.id)

    return _make


def _resolve(result):
    if isinstance(result, Exception):
        raise result
    return result


class FakeFulfillment:
    """Stands in for api.FulfillmentClient; records every request."""

    def __init__(self, submit=None, state=None):
        self.submit_result = submit if submit is not None else ApiResult(200, "OK")
        self.state_result = state if state is not None else ApiResult(
            200, '{"State": "InProduction"}', {"State": "InProduction"}
        )
        self.submitted = []
        self.polled = []
        self.gate = None            # threading.Event: block submit_order until set
        self.entered = threading.Event()

    def submit_order(self, request):
        self.submitted.append(request)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5)
        return _resolve(self.submit_result)

    def get_order_state(self, request):
        self.polled.append(request)
        return _resolve(self.state_result)


class FakePartner:
    def __init__(self, result=None):
        self.result = result if result is not None else ApiResult(200, "")
        self.notified = []
        self.called = threading.Event()

    def notify_order_state(self, request):
        self.notified.append(request)
        self.called.set()
        return _resolve(self.result)


@pytest.fixture
def fulfillment():
    return FakeFulfillment()


@pytest.fixture
def partner():
    return FakePartner()


@pytest.fixture
def scheduler(fulfillment, partner):
    """Scheduler whose timers never fire during a test; stopped afterwards."""
    from scheduler import SyncScheduler

    s = SyncScheduler(
        fulfillment,
        partner,
        period=3600,
        initial_delays={"submit": 3600, "poll_status": 3600, "notify_partner": 3600},
    )
    yield s
    s.stop()
