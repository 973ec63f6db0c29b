# order_sync/app.py

import signal

from waitress import serve

from config import ENV, HOST, PORT
from api import FulfillmentClient, PartnerClient
from db import init_state_db
from scheduler import SyncScheduler
from logger import get_logger

log = get_logger("app")


def build_scheduler() -> SyncScheduler:
    return SyncScheduler(FulfillmentClient(), PartnerClient())


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def main() -> None:
    init_state_db()

    from server import app as web_app

    scheduler = build_scheduler()
    web_app.config["SCHEDULER"] = scheduler

    # waitress only handles SIGINT itself; make SIGTERM behave the same
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    log.info(f"===== ORDER SYNC START: env={ENV} listening on {HOST}:{PORT}")
    scheduler.start()
    try:
        serve(web_app, host=HOST, port=PORT)
    except KeyboardInterrupt:
        log.info("Shutdown requested")
    finally:
        scheduler.stop()
        web_app.config["SCHEDULER"] = None
        log.info("===== ORDER SYNC EXIT")


if __name__ == "__main__":
    main()
