# order_sync/services/intake.py

import json
from typing import Any, Callable, Optional

from db import create_order
from emailer import send_need_fix_alert
from models import OrderRecord
from validation import validate_order
from logger import get_logger

log = get_logger("intake")


def submit_raw_order(payload: Any, wake: Optional[Callable[[], Any]] = None) -> OrderRecord:
    """
    Validate and persist one partner order, then wake the Submit cycle.

    Always creates a record. Structurally broken payloads are stored as raw
    JSON text in order_input; a known-structure order with an unknown
    carrier/country keeps its parsed fields. Either way need_fix is set and
    the record stays out of the pipeline.
    """
    outcome = validate_order(payload)

    if outcome.need_fix and outcome.value is None:
        # a body that was not JSON at all is kept verbatim
        order_input = payload if isinstance(payload, str) else json.dumps(payload, default=str)
        fields = {"order_input": order_input}
    else:
        fields = dict(outcome.value)

    fields["need_fix"] = outcome.need_fix
    fields["need_fix_reason"] = outcome.need_fix_reason

    order = create_order(fields)

    if outcome.need_fix:
        log.warning(f"Intake: order record {order.id} needs fix: {outcome.need_fix_reason}")
        send_need_fix_alert(order, "intake", outcome.need_fix_reason)
        return order

    log.info(f"Intake: order {order.order_id} stored as record {order.id}")
    if wake is not None:
        wake()
    return order
