# order_sync/services/notify_partner.py

from typing import Any, Dict, Optional

from models import ApiResult, OrderRecord, OutboundRequest, STATE_FINISHED, STATE_RESOLVED
from services.stage import StageProcessor
from logger import get_logger

log = get_logger("notify_partner")

BAD_REQUEST_REASON = "Bad request finish order."
NOT_FOUND_REASON = "Order does not exist but should!"


class NotifyPartnerProcessor(StageProcessor):
    """resolved -> finished: report the final production state to the partner."""

    stage = "notify_partner"
    source_state = STATE_RESOLVED

    def build_request(self, order: OrderRecord) -> OutboundRequest:
        return OutboundRequest("PATCH", f"/api/orders/{order.order_id}", {"state": order.received_state})

    def send(self, request: OutboundRequest) -> ApiResult:
        return self.client.notify_order_state(request)

    def interpret_result(self, order, result, error=None) -> Optional[Dict[str, Any]]:
        if error is not None:
            self.skip(order, result, error)
            return None

        if result.status_code == 200:
            log.info(f"Partner informed about order {order.order_id} (record {order.id}) -> finished")
            return {"state": STATE_FINISHED}

        if result.status_code == 400:
            log.warning(f"Bad request finish order. Marking order record {order.id} as broken in DB.")
            return {"need_fix": True, "need_fix_reason": BAD_REQUEST_REASON}

        if result.status_code == 404:
            log.warning(f"Order does not exist but should! Marking order record {order.id} as broken in DB.")
            return {"need_fix": True, "need_fix_reason": NOT_FOUND_REASON}

        self.skip(order, result, None)
        return None
