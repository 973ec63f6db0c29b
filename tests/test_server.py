"""Inbound HTTP boundary."""
from unittest.mock import Mock

import pytest

import db
from models import STATE_SENT
from tests.conftest import make_payload

HEADERS = {"X-API-KEY": "test-key"}


@pytest.fixture
def web():
    from server import app

    app.config.update(TESTING=True, INTAKE_API_KEY="test-key", SCHEDULER=Mock())
    yield app
    app.config["SCHEDULER"] = None


@pytest.fixture
def client(web):
    return web.test_client()


def test_post_order_requires_api_key(client):
    assert client.post("/api/orders", json=make_payload()).status_code == 403
    assert client.post("/api/orders", json=make_payload(), headers={"X-API-KEY": "wrong"}).status_code == 403
    assert db.list_orders() == []


def test_unconfigured_key_rejects_everything(web, client):
    web.config["INTAKE_API_KEY"] = ""
    resp = client.post("/api/orders", json=make_payload(), headers={"X-API-KEY": ""})
    assert resp.status_code == 403


def test_post_order_stores_and_wakes(web, client):
    resp = client.post("/api/orders", json=make_payload(), headers=HEADERS)

    assert resp.status_code == 200
    orders = db.list_orders()
    assert len(orders) == 1
    assert orders[0].order_id == 1001
    web.config["SCHEDULER"].wake_submit.assert_called_once_with()


def test_post_broken_order_still_accepted(web, client):
    resp = client.post("/api/orders", data="not json", content_type="application/json", headers=HEADERS)

    assert resp.status_code == 200
    order = db.list_orders()[0]
    assert order.need_fix is True
    assert order.order_input == "not json"
    web.config["SCHEDULER"].wake_submit.assert_not_called()


def test_post_without_scheduler(web, client):
    web.config["SCHEDULER"] = None
    assert client.post("/api/orders", json=make_payload(), headers=HEADERS).status_code == 200


def test_list_orders(client, make_order):
    a = make_order()
    b = make_order(state=STATE_SENT)
    db.update_order(b.id, {"need_fix": True, "need_fix_reason": "Invalid data."})

    resp = client.get("/api/orders", headers=HEADERS)
    assert resp.status_code == 200
    assert [o["id"] for o in resp.get_json()] == [b.id, a.id]

    resp = client.get("/api/orders?need_fix=1", headers=HEADERS)
    data = resp.get_json()
    assert [o["id"] for o in data] == [b.id]
    assert data[0]["need_fix_reason"] == "Invalid data."

    resp = client.get("/api/orders?state=new", headers=HEADERS)
    assert [o["id"] for o in resp.get_json()] == [a.id]

    assert client.get("/api/orders?state=lost", headers=HEADERS).status_code == 400
    assert client.get("/api/orders").status_code == 403


def test_order_detail(client, make_order):
    order = make_order()

    resp = client.get(f"/api/orders/{order.id}", headers=HEADERS)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["full_name"] == "Jan Novak"
    assert body["details"][0]["product_id"] == 501

    assert client.get("/api/orders/9999", headers=HEADERS).status_code == 404


def test_runs(client):
    db.mark_run("run-1", "submit", "2026-01-01T10:00:00+00:00", 1)

    resp = client.get("/api/runs?stage=submit", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.get_json()[0]["run_id"] == "run-1"


def test_health(web, client):
    cycle = Mock(running=True, busy=False, executions=3)
    web.config["SCHEDULER"] = Mock(cycles={"submit": cycle})

    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["cycles"]["submit"] == {"running": True, "busy": False, "executions": 3}
