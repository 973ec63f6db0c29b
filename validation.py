# validation.py
"""
Intake validation for partner order payloads.

validate_order() never raises: every problem is reported through the
returned ValidationOutcome so intake can always persist something.
Structural problems return value=None (the raw payload gets archived);
referential problems (unknown carrier / country) keep the parsed value.
"""
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, StringConstraints, ValidationError

from lookups import CARRIERS, COUNTRY_CODES
from models import ValidationOutcome


def _not_bool(v: Any) -> Any:
    # pydantic's lax mode would read True/False as 1/0
    if isinstance(v, bool):
        raise ValueError("must be a number")
    return v


NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]
Number = Annotated[float, BeforeValidator(_not_bool)]
Integer = Annotated[int, BeforeValidator(_not_bool)]


class OrderDetailIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    productId: Integer
    quantity: Number
    name: Optional[NonEmptyStr] = None
    weight: Optional[Number] = None
    eanCode: Optional[NonEmptyStr] = None


class OrderIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Integer
    fullName: NonEmptyStr
    email: EmailStr
    phone: NonEmptyStr
    addressLine1: NonEmptyStr
    addressLine2: Optional[NonEmptyStr] = None
    company: Optional[NonEmptyStr] = None
    zipCode: NonEmptyStr
    city: NonEmptyStr
    country: Optional[NonEmptyStr] = None
    carrierKey: Optional[NonEmptyStr] = None
    status: Optional[NonEmptyStr] = None
    details: List[OrderDetailIn] = []


def _int_if_whole(n: Optional[float]):
    if n is not None and float(n).is_integer():
        return int(n)
    return n


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "value"
    return f'"{loc}" {err.get("msg", "is invalid")}'


def _to_value(order: OrderIn, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "order_id": order.id,
        "full_name": order.fullName,
        # EmailStr normalizes (lowercased domain); keep what the partner sent
        "email": payload["email"],
        "phone": order.phone,
        "address_line1": order.addressLine1,
        "address_line2": order.addressLine2,
        "company": order.company,
        "zip_code": order.zipCode,
        "city": order.city,
        "country": order.country,
        "carrier_key": order.carrierKey,
        "status": order.status,
        "details": [
            {
                "product_id": d.productId,
                "name": d.name,
                "quantity": _int_if_whole(d.quantity),
                "weight": _int_if_whole(d.weight),
                "ean_code": d.eanCode,
            }
            for d in order.details
        ],
    }


def validate_order(payload: Any) -> ValidationOutcome:
    try:
        order = OrderIn.model_validate(payload)
    except ValidationError as e:
        return ValidationOutcome(need_fix=True, need_fix_reason=_first_error(e), value=None)

    value = _to_value(order, payload)

    # carrier first, country second: first failing check is the reported one
    if order.carrierKey not in CARRIERS:
        return ValidationOutcome(
            need_fix=True,
            need_fix_reason=f'Unknown carrierKey "{order.carrierKey}"',
            value=value,
        )
    if order.country not in COUNTRY_CODES:
        return ValidationOutcome(
            need_fix=True,
            need_fix_reason=f'Unknown country "{order.country}"',
            value=value,
        )

    return ValidationOutcome(need_fix=False, need_fix_reason=None, value=value)
