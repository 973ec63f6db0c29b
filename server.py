import hmac
from dataclasses import asdict
from functools import wraps

from flask import Flask, abort, jsonify, request

from config import INTAKE_API_KEY
from db import get_order, init_state_db, list_orders, list_runs
from models import ORDER_STATES
from services.intake import submit_raw_order
from logger import get_logger

log = get_logger("server")

app = Flask(__name__)
app.config["INTAKE_API_KEY"] = INTAKE_API_KEY
# app.py puts the running SyncScheduler here so intake can wake Submit
app.config["SCHEDULER"] = None

# IMPORTANT: waitress imports the module; it does NOT run __main__
# So we initialize schema + indexes at import time.
init_state_db()


def require_api_key(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = app.config.get("INTAKE_API_KEY") or ""
        given = request.headers.get("X-API-KEY") or ""
        if not expected or not hmac.compare_digest(given.encode(), expected.encode()):
            log.warning(f"Rejected {request.method} {request.path} from {request.remote_addr}: bad X-API-KEY")
            abort(403)
        return view(*args, **kwargs)
    return wrapper


def _order_json(order):
    return asdict(order)


@app.route("/health")
def health():
    scheduler = app.config.get("SCHEDULER")
    cycles = {}
    if scheduler is not None:
        cycles = {
            name: {"running": c.running, "busy": c.busy, "executions": c.executions}
            for name, c in scheduler.cycles.items()
        }
    return jsonify({"status": "ok", "cycles": cycles})


@app.route("/api/orders", methods=["POST"])
@require_api_key
def receive_order():
    payload = request.get_json(silent=True)
    if payload is None:
        # keep whatever was sent so it can be archived with the record
        payload = request.get_data(as_text=True)

    scheduler = app.config.get("SCHEDULER")
    wake = scheduler.wake_submit if scheduler is not None else None

    submit_raw_order(payload, wake=wake)
    return "", 200


@app.route("/api/orders", methods=["GET"])
@require_api_key
def orders():
    state = (request.args.get("state") or "").strip().lower() or None
    if state and state not in ORDER_STATES:
        abort(400, description=f"Unknown state {state!r}")

    need_fix_arg = (request.args.get("need_fix") or "").strip().lower()
    need_fix = None
    if need_fix_arg in ("1", "true", "yes"):
        need_fix = True
    elif need_fix_arg in ("0", "false", "no"):
        need_fix = False

    limit = request.args.get("limit", default=100, type=int)
    rows = list_orders(state=state, need_fix=need_fix, limit=max(1, min(limit, 1000)))
    return jsonify([_order_json(o) for o in rows])


@app.route("/api/orders/<int:order_pk>", methods=["GET"])
@require_api_key
def order_detail(order_pk):
    order = get_order(order_pk)
    if order is None:
        abort(404)
    return jsonify(_order_json(order))


@app.route("/api/runs", methods=["GET"])
@require_api_key
def runs():
    stage = (request.args.get("stage") or "").strip() or None
    limit = request.args.get("limit", default=25, type=int)
    return jsonify(list_runs(stage=stage, limit=max(1, min(limit, 500))))
