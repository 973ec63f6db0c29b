"""Intake validation: structural, then carrier, then country."""
import pytest

from tests.conftest import make_payload
from validation import validate_order


class TestStructure:

    def test_valid_payload(self, payload):
        outcome = validate_order(payload)

        assert outcome.need_fix is False
        assert outcome.need_fix_reason is None
        assert outcome.value["order_id"] == 1001
        assert outcome.value["carrier_key"] == "DPD"
        assert outcome.value["address_line2"] is None
        assert outcome.value["details"][0] == {
            "product_id": 501,
            "name": "Poster A2",
            "quantity": 2,
            "weight": 0.4,
            "ean_code": "8712345678906",
        }
        assert isinstance(outcome.value["details"][0]["quantity"], int)

    def test_email_kept_as_sent(self):
        outcome = validate_order(make_payload(email="Jan.Novak@Shop.NL"))

        assert outcome.need_fix is False
        assert outcome.value["email"] == "Jan.Novak@Shop.NL"

    def test_details_optional(self):
        payload = make_payload()
        del payload["details"]
        outcome = validate_order(payload)

        assert outcome.need_fix is False
        assert outcome.value["details"] == []

    @pytest.mark.parametrize("field", ["id", "fullName", "email", "phone", "addressLine1", "zipCode", "city"])
    def test_missing_required_field(self, field):
        payload = make_payload()
        del payload[field]
        outcome = validate_order(payload)

        assert outcome.need_fix is True
        assert outcome.value is None
        assert outcome.need_fix_reason.startswith(f'"{field}"')

    @pytest.mark.parametrize("overrides,field", [
        ({"email": "not-an-email"}, "email"),
        ({"fullName": ""}, "fullName"),
        ({"id": "abc"}, "id"),
        ({"id": True}, "id"),
        ({"zipCode": 1012}, "zipCode"),
        ({"company": ""}, "company"),
    ])
    def test_type_violations(self, overrides, field):
        outcome = validate_order(make_payload(**overrides))

        assert outcome.need_fix is True
        assert outcome.value is None
        assert outcome.need_fix_reason.startswith(f'"{field}"')

    def test_line_item_requires_product_and_quantity(self):
        outcome = validate_order(make_payload(details=[{"quantity": 1}]))

        assert outcome.need_fix is True
        assert outcome.need_fix_reason.startswith('"details.0.productId"')

        outcome = validate_order(make_payload(details=[{"productId": 1}]))
        assert outcome.need_fix_reason.startswith('"details.0.quantity"')

    def test_unknown_key_rejected(self):
        outcome = validate_order(make_payload(discountCode="SUMMER"))

        assert outcome.need_fix is True
        assert outcome.value is None
        assert "discountCode" in outcome.need_fix_reason

    @pytest.mark.parametrize("raw", [None, [], "order", 42])
    def test_not_a_mapping(self, raw):
        outcome = validate_order(raw)

        assert outcome.need_fix is True
        assert outcome.value is None
        assert outcome.need_fix_reason.startswith('"value"')

    def test_structural_failure_wins_over_unknown_carrier(self):
        outcome = validate_order(make_payload(email="nope", carrierKey="XYZ"))

        assert outcome.value is None
        assert outcome.need_fix_reason.startswith('"email"')


class TestReferences:

    def test_unknown_carrier(self):
        outcome = validate_order(make_payload(carrierKey="XYZ"))

        assert outcome.need_fix is True
        assert outcome.need_fix_reason == 'Unknown carrierKey "XYZ"'
        assert outcome.value is not None
        assert outcome.value["full_name"] == "Jan Novak"

    def test_unknown_country(self):
        outcome = validate_order(make_payload(country="ZZ"))

        assert outcome.need_fix is True
        assert outcome.need_fix_reason == 'Unknown country "ZZ"'
        assert outcome.value["country"] == "ZZ"

    def test_carrier_checked_before_country(self):
        outcome = validate_order(make_payload(carrierKey="XYZ", country="ZZ"))

        assert outcome.need_fix_reason == 'Unknown carrierKey "XYZ"'

    def test_missing_carrier_is_unknown(self):
        payload = make_payload()
        del payload["carrierKey"]
        outcome = validate_order(payload)

        assert outcome.need_fix is True
        assert outcome.need_fix_reason == 'Unknown carrierKey "None"'
        assert outcome.value is not None
