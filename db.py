# db.py

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import STATE_DB_PATH
from logger import get_logger
from models import (
    OrderLine,
    OrderRecord,
    ORDER_STATES,
    STATE_NEW,
    state_rank,
)


log = get_logger("db")

# Columns a stage is allowed to touch after creation. Line items and
# customer fields are frozen once the record exists.
UPDATABLE_FIELDS = ("state", "need_fix", "need_fix_reason", "received_state")

ORDER_COLUMNS = (
    "order_id", "full_name", "email", "phone",
    "address_line1", "address_line2", "company",
    "zip_code", "city", "country", "carrier_key", "status",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def _table_columns(cur: sqlite3.Cursor, table: str) -> set[str]:
    cur.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cur.fetchall()}

def _ensure_column(cur: sqlite3.Cursor, table: str, column: str, col_type: str) -> None:
    cols = _table_columns(cur, table)
    if column not in cols:
        log.info(f"DB MIGRATION: adding column {table}.{column} {col_type}")
        cur.execute(f'ALTER TABLE {table} ADD COLUMN "{column}" {col_type}')


# ---------- Connection / schema ----------
def state_conn() -> sqlite3.Connection:
    conn = sqlite3.connect(STATE_DB_PATH, timeout=30)
    conn.row_factory = sqlite3.Row
    return conn

def init_state_db() -> None:
    conn = state_conn()
    cur = conn.cursor()

    cur.execute("""
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        state TEXT NOT NULL DEFAULT 'new',
        need_fix INTEGER NOT NULL DEFAULT 0,
        need_fix_reason TEXT,
        received_state TEXT,
        order_input TEXT,
        order_id INTEGER,
        full_name TEXT,
        email TEXT,
        phone TEXT,
        address_line1 TEXT,
        address_line2 TEXT,
        company TEXT,
        zip_code TEXT,
        city TEXT,
        country TEXT,
        carrier_key TEXT,
        status TEXT,
        details TEXT,
        created_ts TEXT,
        updated_ts TEXT
    )
    """)

    cur.execute("""
    CREATE TABLE IF NOT EXISTS sync_runs (
        run_id TEXT PRIMARY KEY,
        stage TEXT,
        start_ts TEXT,
        end_ts TEXT,
        fetched_count INTEGER,
        updated_count INTEGER,
        flagged_count INTEGER,
        failed_count INTEGER
    )
    """)

    # ---- MIGRATIONS / SAFE UPGRADES ----
    _ensure_column(cur, "orders", "received_state", "TEXT")

    conn.commit()
    conn.close()

    ensure_state_indexes()

def ensure_state_indexes() -> None:
    conn = state_conn()
    conn.executescript("""
    CREATE INDEX IF NOT EXISTS idx_orders_state_need_fix ON orders(state, need_fix);
    CREATE INDEX IF NOT EXISTS idx_orders_order_id ON orders(order_id);
    CREATE INDEX IF NOT EXISTS idx_sync_runs_start_ts ON sync_runs(start_ts);
    CREATE INDEX IF NOT EXISTS idx_sync_runs_stage ON sync_runs(stage);
    """)
    conn.commit()
    conn.close()


# ---------- Row mapping ----------
def _row_to_order(row: sqlite3.Row) -> OrderRecord:
    details = json.loads(row["details"]) if row["details"] else []
    return OrderRecord(
        id=row["id"],
        state=row["state"],
        need_fix=bool(row["need_fix"]),
        need_fix_reason=row["need_fix_reason"],
        received_state=row["received_state"],
        order_input=row["order_input"],
        details=[OrderLine(**d) for d in details],
        created_ts=row["created_ts"],
        updated_ts=row["updated_ts"],
        **{col: row[col] for col in ORDER_COLUMNS},
    )


# ---------- Order records ----------
def create_order(fields: Dict[str, Any]) -> OrderRecord:
    """
    Insert a new record in state 'new'. `fields` may hold the structured
    order (see validation._to_value) and/or need_fix, need_fix_reason,
    order_input. Unknown keys are ignored.
    """
    now = _now()
    details = fields.get("details")
    values = {col: fields.get(col) for col in ORDER_COLUMNS}

    conn = state_conn()
    try:
        cur = conn.execute(f"""
        INSERT INTO orders (
            state, need_fix, need_fix_reason, order_input, details,
            {", ".join(ORDER_COLUMNS)},
            created_ts, updated_ts
        ) VALUES (?, ?, ?, ?, ?, {", ".join("?" for _ in ORDER_COLUMNS)}, ?, ?)
        """, (
            STATE_NEW,
            1 if fields.get("need_fix") else 0,
            fields.get("need_fix_reason"),
            fields.get("order_input"),
            json.dumps(details) if details is not None else None,
            *values.values(),
            now, now,
        ))
        conn.commit()
        new_id = cur.lastrowid
    finally:
        conn.close()

    log.info(f"Order record {new_id} created (partner id={values['order_id']}, need_fix={bool(fields.get('need_fix'))})")
    return get_order(new_id)

def get_order(order_pk: int) -> Optional[OrderRecord]:
    conn = state_conn()
    row = conn.execute("SELECT * FROM orders WHERE id=?", (order_pk,)).fetchone()
    conn.close()
    return _row_to_order(row) if row else None

def find_orders_by_state(state: str, limit: int) -> List[OrderRecord]:
    """Records waiting in `state` that are not flagged need_fix, oldest first."""
    conn = state_conn()
    rows = conn.execute("""
        SELECT * FROM orders
        WHERE state=? AND need_fix=0
        ORDER BY id ASC
        LIMIT ?
    """, (state, limit)).fetchall()
    conn.close()
    return [_row_to_order(r) for r in rows]

def list_orders(state: Optional[str] = None, need_fix: Optional[bool] = None, limit: int = 100) -> List[OrderRecord]:
    where_parts = []
    params: list = []
    if state:
        where_parts.append("state=?")
        params.append(state)
    if need_fix is not None:
        where_parts.append("need_fix=?")
        params.append(1 if need_fix else 0)

    where_sql = f"WHERE {' AND '.join(where_parts)}" if where_parts else ""
    params.append(limit)

    conn = state_conn()
    rows = conn.execute(f"SELECT * FROM orders {where_sql} ORDER BY id DESC LIMIT ?", params).fetchall()
    conn.close()
    return [_row_to_order(r) for r in rows]

def update_order(order_pk: int, fields: Dict[str, Any]) -> bool:
    """
    Apply a partial update coming from a stage. Returns False when the record
    is missing or the update would move `state` backward (nothing is written).
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")
    if "state" in fields and fields["state"] not in ORDER_STATES:
        raise ValueError(f"Unknown state {fields['state']!r}")
    if not fields:
        return True

    values = dict(fields)
    if "need_fix" in values:
        values["need_fix"] = 1 if values["need_fix"] else 0
    values["updated_ts"] = _now()

    conn = state_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute("SELECT state FROM orders WHERE id=?", (order_pk,)).fetchone()
        if not row:
            conn.rollback()
            log.warning(f"Order record {order_pk} not found; update {fields} dropped")
            return False

        if "state" in values and state_rank(values["state"]) < state_rank(row["state"]):
            conn.rollback()
            log.warning(
                f"Order record {order_pk}: refusing state regression "
                f"{row['state']} -> {values['state']}"
            )
            return False

        set_sql = ", ".join(f"{k}=?" for k in values)
        conn.execute(f"UPDATE orders SET {set_sql} WHERE id=?", (*values.values(), order_pk))
        conn.commit()
    finally:
        conn.close()

    log.debug(f"Order record {order_pk} updated: {fields}")
    return True


# ---------- Sync run ledger ----------
def mark_run(run_id: str, stage: str, start_ts: str, fetched: int) -> None:
    conn = state_conn()
    conn.execute("""
    INSERT INTO sync_runs (run_id, stage, start_ts, fetched_count, updated_count, flagged_count, failed_count)
    VALUES (?, ?, ?, ?, 0, 0, 0)
    """, (run_id, stage, start_ts, fetched))
    conn.commit()
    conn.close()

def close_run(run_id: str, end_ts: str, updated: int, flagged: int, failed: int) -> None:
    conn = state_conn()
    conn.execute("""
    UPDATE sync_runs
    SET end_ts=?, updated_count=?, flagged_count=?, failed_count=?
    WHERE run_id=?
    """, (end_ts, updated, flagged, failed, run_id))
    conn.commit()
    conn.close()

def list_runs(stage: Optional[str] = None, limit: int = 25) -> List[Dict[str, Any]]:
    conn = state_conn()
    if stage:
        rows = conn.execute(
            "SELECT * FROM sync_runs WHERE stage=? ORDER BY start_ts DESC LIMIT ?", (stage, limit)
        ).fetchall()
    else:
        rows = conn.execute("SELECT * FROM sync_runs ORDER BY start_ts DESC LIMIT ?", (limit,)).fetchall()
    conn.close()
    return [dict(r) for r in rows]
