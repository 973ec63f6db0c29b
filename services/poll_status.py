# order_sync/services/poll_status.py

from typing import Any, Dict, Optional

from models import (
    ApiResult,
    OrderRecord,
    OutboundRequest,
    FULFILLMENT_FINISHED,
    STATE_RESOLVED,
    STATE_SENT,
)
from services.stage import StageProcessor
from logger import get_logger

log = get_logger("poll_status")


class PollStatusProcessor(StageProcessor):
    """sent -> resolved: follow production state until fulfillment says Finished."""

    stage = "poll_status"
    source_state = STATE_SENT

    def build_request(self, order: OrderRecord) -> OutboundRequest:
        return OutboundRequest("GET", f"/api/orders/{order.id}/state")

    def send(self, request: OutboundRequest) -> ApiResult:
        return self.client.get_order_state(request)

    def interpret_result(self, order, result, error=None) -> Optional[Dict[str, Any]]:
        if error is not None:
            self.skip(order, result, error)
            return None

        if result.status_code == 200:
            payload = result.payload if isinstance(result.payload, dict) else {}
            received = payload.get("State")
            if not isinstance(received, str):
                # 200 without a state string (maintenance page etc.): keep last known state
                self.skip(order, result, None)
                return None

            update: Dict[str, Any] = {"received_state": received}
            if received == FULFILLMENT_FINISHED:
                update["state"] = STATE_RESOLVED
                log.info(f"Order record {order.id} finished in production -> resolved")
            elif received != order.received_state:
                log.info(f"Order record {order.id} production state: {received}")
            return update

        if result.status_code == 400:
            log.warning(f"Bad request when checking order. Marking order record {order.id} as broken in DB.")
            return {"need_fix": True, "need_fix_reason": result.text}

        if result.status_code == 404:
            log.warning(f"Order does not exist but should! Marking order record {order.id} as broken in DB.")
            return {"need_fix": True, "need_fix_reason": result.text}

        self.skip(order, result, None)
        return None
