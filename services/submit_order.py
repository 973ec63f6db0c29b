# order_sync/services/submit_order.py

from typing import Any, Dict, Optional

from config import utc_now_iso
from lookups import carrier_id, country_code
from models import ApiResult, OrderRecord, OutboundRequest, STATE_NEW, STATE_SENT
from services.stage import StageProcessor
from logger import get_logger

log = get_logger("submit_order")

ORDER_ALREADY_EXISTS = "Order already exists."
INVALID_DATA = "Invalid data."


def build_delivery_address(order: OrderRecord) -> Dict[str, Any]:
    address = {
        "AddressLine1": order.address_line1,
        "City": order.city,
        "CountryCode": country_code(order.country),
        "Email": order.email,
        "PersonName": order.full_name,
        "Phone": order.phone,
        "State": order.country,
        "Zip": order.zip_code,
    }
    if order.address_line2:
        address["AddressLine2"] = order.address_line2
    if order.company:
        address["Company"] = order.company
    return address


class SubmitProcessor(StageProcessor):
    """new -> sent: hand the order to the Fulfillment API."""

    stage = "submit"
    source_state = STATE_NEW

    def build_request(self, order: OrderRecord) -> OutboundRequest:
        body = {
            "OrderID": str(order.id),
            "InvoiceSendLater": False,
            "Issued": utc_now_iso(),
            "OrderType": "standard",
            "Shipping": {
                "CarrierID": carrier_id(order.carrier_key),
                "DeliveryAddress": build_delivery_address(order),
            },
            "Products": [
                {
                    "Barcode": line.ean_code,
                    "OPTProductID": str(line.product_id),
                    "Qty": line.quantity,
                }
                for line in order.details
            ],
        }
        return OutboundRequest("POST", "/api/orders", body)

    def send(self, request: OutboundRequest) -> ApiResult:
        return self.client.submit_order(request)

    def interpret_result(self, order, result, error=None) -> Optional[Dict[str, Any]]:
        if error is not None:
            self.skip(order, result, error)
            return None

        if result.status_code == 200:
            log.info(f"Order record {order.id} accepted by fulfillment")
            return {"state": STATE_SENT}

        if result.status_code == 400:
            body = result.text.strip()
            if body == ORDER_ALREADY_EXISTS:
                # earlier submit timed out on our side but went through
                log.warning(f"Order record {order.id} already exists. Mark it as sent.")
                return {"state": STATE_SENT}
            if body == INVALID_DATA:
                log.warning(f"Invalid data. Marking order record {order.id} as broken in DB.")
                return {"need_fix": True, "need_fix_reason": INVALID_DATA}

        self.skip(order, result, None)
        return None
