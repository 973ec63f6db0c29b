import os
from datetime import datetime, timezone
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

ENV = os.getenv("ENV", "TEST").upper()

DEFAULTS = {
    "TEST": {
        "FULFILLMENT_API_URL": "https://test.fulfillment.local",
        "PARTNER_API_URL": "https://test.partner.local",
    },
    "LIVE": {
        "FULFILLMENT_API_URL": "https://fulfillment.local",
        "PARTNER_API_URL": "https://partner.local",
    }
}

cfg = DEFAULTS["LIVE"] if ENV == "LIVE" else DEFAULTS["TEST"]

FULFILLMENT_API_URL      = os.getenv("FULFILLMENT_API_URL", cfg["FULFILLMENT_API_URL"]).rstrip("/")
FULFILLMENT_API_USER     = os.getenv("FULFILLMENT_API_USER", "")
FULFILLMENT_API_PASSWORD = os.getenv("FULFILLMENT_API_PASSWORD", "")

PARTNER_API_URL = os.getenv("PARTNER_API_URL", cfg["PARTNER_API_URL"]).rstrip("/")
PARTNER_API_KEY = os.getenv("PARTNER_API_KEY", "")

# Shared secret the partner sends us in X-API-KEY. Empty = reject everything.
INTAKE_API_KEY = os.getenv("INTAKE_API_KEY", "")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5050"))

HTTP_TIMEOUT_SECONDS = int(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))
HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", "2"))

# Sync cycles
CYCLE_PERIOD_SECONDS = float(os.getenv("CYCLE_PERIOD_SECONDS", "60"))
SUBMIT_INITIAL_DELAY_SECONDS = float(os.getenv("SUBMIT_INITIAL_DELAY_SECONDS", "2"))
POLL_STATUS_INITIAL_DELAY_SECONDS = float(os.getenv("POLL_STATUS_INITIAL_DELAY_SECONDS", "20"))
NOTIFY_PARTNER_INITIAL_DELAY_SECONDS = float(os.getenv("NOTIFY_PARTNER_INITIAL_DELAY_SECONDS", "40"))
MAX_ORDERS_PER_RUN = int(os.getenv("MAX_ORDERS_PER_RUN", "200"))


# Email recipients for need-fix alerts
ADMIN_EMAILS = [e.strip() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

EMAIL_CONFIG = {
    "smtp_server": os.getenv("SMTP_SERVER", "smtp.office365.com"),
    "smtp_port": int(os.getenv("SMTP_PORT", 587)),
    "smtp_username": os.getenv("SMTP_USERNAME", ""),
    "smtp_password": os.getenv("SMTP_PASSWORD", ""),  # set via ENV
    "from_addr": os.getenv("FROM_EMAIL", "order-sync@localhost"),
}

# ---------------- Paths (stable, absolute) ----------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Logging
LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
LOG_FILE = os.getenv("LOG_FILE", "order_sync.log")

# Order record store (SQLite)
STATE_DB_PATH = os.getenv("STATE_DB_PATH", os.path.join(BASE_DIR, "orders.db"))


# -------------- HTTP Session --------------
# Only idempotent GETs are retried at transport level, without backoff.
# Everything else waits for the next cycle.
SESSION = requests.Session()
retries = Retry(
    total=HTTP_RETRIES,
    backoff_factor=0,
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET"],
    raise_on_status=False,
)
SESSION.mount("http://", HTTPAdapter(max_retries=retries))
SESSION.mount("https://", HTTPAdapter(max_retries=retries))

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
