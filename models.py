#models.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Lifecycle states, in pipeline order. A record never moves backward.
STATE_NEW = "new"
STATE_SENT = "sent"
STATE_RESOLVED = "resolved"
STATE_FINISHED = "finished"

ORDER_STATES = (STATE_NEW, STATE_SENT, STATE_RESOLVED, STATE_FINISHED)

# Fulfillment API marker for an order that left production
FULFILLMENT_FINISHED = "Finished"


def state_rank(state: str) -> int:
    return ORDER_STATES.index(state)


@dataclass
class OrderLine:
    product_id: int
    quantity: float
    name: Optional[str] = None
    weight: Optional[float] = None
    ean_code: Optional[str] = None


@dataclass
class OrderRecord:
    id: int
    state: str = STATE_NEW
    need_fix: bool = False
    need_fix_reason: Optional[str] = None
    received_state: Optional[str] = None
    order_input: Optional[str] = None
    order_id: Optional[int] = None          # partner's order id
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    company: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    carrier_key: Optional[str] = None
    status: Optional[str] = None
    details: List[OrderLine] = field(default_factory=list)
    created_ts: Optional[str] = None
    updated_ts: Optional[str] = None


@dataclass
class ValidationOutcome:
    need_fix: bool
    need_fix_reason: Optional[str] = None
    value: Optional[Dict[str, Any]] = None


@dataclass
class OutboundRequest:
    method: str
    path: str
    body: Optional[Dict[str, Any]] = None


@dataclass
class ApiResult:
    status_code: int
    text: str = ""
    payload: Optional[Any] = None
