# lookups.py
"""
Static reference data shared by intake validation and the Submit stage.

CARRIERS maps the partner's carrier key to the Fulfillment API CarrierID.
COUNTRY_CODES maps the partner's country key to the Fulfillment API CountryCode.
Both are read-only; edit here and redeploy to add an entry.
"""
from types import MappingProxyType

CARRIERS = MappingProxyType({
    "DPD": 1,
    "PPL": 2,
    "GLS": 3,
    "UPS": 4,
    "DHL": 5,
    "FEDEX": 6,
    "POSTNL": 7,
    "TNT": 8,
    "CESKA_POSTA": 9,
    "ZASILKOVNA": 10,
})

COUNTRY_CODES = MappingProxyType({
    "AT": "AT",
    "BE": "BE",
    "CZ": "CZ",
    "DE": "DE",
    "DK": "DK",
    "ES": "ES",
    "FR": "FR",
    "GB": "GB",
    "HU": "HU",
    "IT": "IT",
    "LU": "LU",
    "NL": "NL",
    "PL": "PL",
    "PT": "PT",
    "SE": "SE",
    "SK": "SK",
    "US": "US",
})


def carrier_id(carrier_key: str) -> int:
    return CARRIERS[carrier_key]


def country_code(country: str) -> str:
    return COUNTRY_CODES[country]
