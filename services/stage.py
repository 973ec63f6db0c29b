# order_sync/services/stage.py

from typing import Any, Dict, Optional

from exceptions import WorkflowApiError
from models import ApiResult, OrderRecord, OutboundRequest
from logger import get_logger

log = get_logger("stage")


class StageProcessor:
    """
    One pipeline step for one record: build the outbound request, send it,
    turn the outcome into a partial record update.

    interpret_result() returns None when nothing should be written (transient
    problem, the record stays where it is and the next cycle retries it).
    """

    stage = ""
    source_state = ""

    def __init__(self, client):
        self.client = client

    def build_request(self, order: OrderRecord) -> OutboundRequest:
        raise NotImplementedError

    def send(self, request: OutboundRequest) -> ApiResult:
        raise NotImplementedError

    def interpret_result(
        self,
        order: OrderRecord,
        result: Optional[ApiResult],
        error: Optional[Exception] = None,
    ) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def process(self, order: OrderRecord) -> Optional[Dict[str, Any]]:
        request = self.build_request(order)
        try:
            result = self.send(request)
        except WorkflowApiError as e:
            return self.interpret_result(order, None, e)
        return self.interpret_result(order, result, None)

    def skip(self, order: OrderRecord, result: Optional[ApiResult], error: Optional[Exception]) -> None:
        # Skip now and try again later. Don't mark it as broken in DB.
        if error is not None:
            log.warning(f"[{self.stage}] Order record {order.id}: {error} (retry next cycle)")
        else:
            log.warning(
                f"[{self.stage}] Order record {order.id}: unexpected response "
                f"{result.status_code} {result.text!r} (retry next cycle)"
            )
