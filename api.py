#api.py
import json
from typing import Any, Dict, Optional

import requests

from config import (
    SESSION,
    HTTP_TIMEOUT_SECONDS,
    FULFILLMENT_API_URL,
    FULFILLMENT_API_USER,
    FULFILLMENT_API_PASSWORD,
    PARTNER_API_URL,
    PARTNER_API_KEY,
)
from exceptions import WorkflowApiError
from models import ApiResult, OutboundRequest
from logger import get_logger

log = get_logger("api")


def decode_response(resp: requests.Response) -> ApiResult:
    """HTTP status + body text, plus parsed JSON when the body is JSON."""
    text = resp.text or ""
    payload = None

    stripped = text.strip()
    if stripped.startswith("{") or stripped.startswith("["):
        try:
            payload = json.loads(stripped)
        except ValueError as e:
            log.debug(f"Response body looked like JSON but did not parse: {e}")

    return ApiResult(status_code=resp.status_code, text=text, payload=payload)


class ApiClient:
    """Sends OutboundRequests to one base URL with fixed auth/headers."""

    name = "api"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[tuple] = None,
        session: Optional[requests.Session] = None,
        timeout: int = HTTP_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json", "Accept": "application/json", **(headers or {})}
        self.auth = auth
        self.session = session or SESSION
        self.timeout = timeout

    def send(self, request: OutboundRequest) -> ApiResult:
        url = f"{self.base_url}{request.path}"
        log.debug(f"[{self.name}] {request.method} {url} payload: {request.body}")

        kwargs: Dict[str, Any] = {"headers": self.headers, "timeout": self.timeout}
        if request.body is not None:
            kwargs["json"] = request.body
        if self.auth:
            kwargs["auth"] = self.auth

        try:
            resp = self.session.request(request.method, url, **kwargs)
        except requests.RequestException as e:
            raise WorkflowApiError(
                f"{self.name} {request.method} {request.path} failed: {e}",
                api_name=self.name,
            ) from e

        log.debug(f"[{self.name}] Response: {resp.status_code} {resp.text}")
        return decode_response(resp)


class FulfillmentClient(ApiClient):
    name = "fulfillment"

    def __init__(self, base_url: str = FULFILLMENT_API_URL, user: str = FULFILLMENT_API_USER,
                 password: str = FULFILLMENT_API_PASSWORD, **kwargs):
        super().__init__(base_url, auth=(user, password), **kwargs)

    def submit_order(self, request: OutboundRequest) -> ApiResult:
        return self.send(request)

    def get_order_state(self, request: OutboundRequest) -> ApiResult:
        return self.send(request)


class PartnerClient(ApiClient):
    name = "partner"

    def __init__(self, base_url: str = PARTNER_API_URL, api_key: str = PARTNER_API_KEY, **kwargs):
        super().__init__(base_url, headers={"X-API-KEY": api_key}, **kwargs)

    def notify_order_state(self, request: OutboundRequest) -> ApiResult:
        return self.send(request)
