# order_sync/scheduler.py
"""
Sync cycles.

Each pipeline stage gets one SyncCycle: a worker thread fired by its own
timer (initial delay, then a fixed period) or by an on-demand wake(). A cycle
never runs concurrently with itself. Triggers that arrive while it is busy
are dropped, not queued. Within one execution records are processed one at a
time, each API call finishing before the next starts.
"""

import threading
import time
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Optional

from config import (
    CYCLE_PERIOD_SECONDS,
    MAX_ORDERS_PER_RUN,
    NOTIFY_PARTNER_INITIAL_DELAY_SECONDS,
    POLL_STATUS_INITIAL_DELAY_SECONDS,
    SUBMIT_INITIAL_DELAY_SECONDS,
)
from db import close_run, find_orders_by_state, mark_run, update_order
from emailer import send_need_fix_alert
from models import STATE_RESOLVED
from services.notify_partner import NotifyPartnerProcessor
from services.poll_status import PollStatusProcessor
from services.submit_order import SubmitProcessor
from logger import get_logger

log = get_logger("scheduler")

STAGE_SUBMIT = SubmitProcessor.stage
STAGE_POLL_STATUS = PollStatusProcessor.stage
STAGE_NOTIFY_PARTNER = NotifyPartnerProcessor.stage

DEFAULT_INITIAL_DELAYS = {
    STAGE_SUBMIT: SUBMIT_INITIAL_DELAY_SECONDS,
    STAGE_POLL_STATUS: POLL_STATUS_INITIAL_DELAY_SECONDS,
    STAGE_NOTIFY_PARTNER: NOTIFY_PARTNER_INITIAL_DELAY_SECONDS,
}


class SyncCycle:
    def __init__(
        self,
        name: str,
        job: Callable[[threading.Event], Any],
        initial_delay: float,
        period: float,
    ):
        if period <= 0:
            raise ValueError(f"Cycle {name}: period must be > 0 (got {period})")

        self.name = name
        self.job = job
        self.initial_delay = max(0.0, initial_delay)
        self.period = period
        self.executions = 0

        self._wake = threading.Event()
        self._stop = threading.Event()
        self._busy = threading.Lock()
        self._lifecycle = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def start(self) -> None:
        with self._lifecycle:
            if self.running:
                return
            # Fresh events per start: a worker left over from an earlier stop()
            # keeps its own (set) stop event and winds down on its own.
            self._stop = threading.Event()
            self._wake = threading.Event()
            self._thread = threading.Thread(
                target=self._loop,
                args=(self._stop, self._wake),
                name=f"cycle-{self.name}",
                daemon=True,
            )
            self._thread.start()
        log.info(f"[{self.name}] cycle started (first run in {self.initial_delay}s, every {self.period}s)")

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        with self._lifecycle:
            thread = self._thread
            self._thread = None
            self._stop.set()
            self._wake.set()

        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                log.warning(f"[{self.name}] cycle still waiting on an API call after stop")
        log.info(f"[{self.name}] cycle stopped")

    def wake(self) -> bool:
        """Ask for an immediate run. Dropped when stopped or already executing."""
        if self._stop.is_set() or not self.running:
            log.debug(f"[{self.name}] wake ignored (cycle not running)")
            return False
        if self.busy:
            log.debug(f"[{self.name}] wake dropped (execution in progress)")
            return False
        self._wake.set()
        return True

    def run_once(self, stop: Optional[threading.Event] = None) -> bool:
        """Execute the job now unless an execution is already in flight."""
        if stop is None:
            stop = self._stop
        if not self._busy.acquire(blocking=False):
            log.debug(f"[{self.name}] trigger dropped (execution in progress)")
            return False
        try:
            if stop.is_set():
                return False
            self.executions += 1
            self.job(stop)
        except Exception as e:
            # One failing execution must never end the cycle
            log.exception(f"[{self.name}] cycle execution failed: {e}")
        finally:
            self._busy.release()
        return True

    def _loop(self, stop: threading.Event, wake: threading.Event) -> None:
        next_tick = time.monotonic() + self.initial_delay

        while not stop.is_set():
            woken = wake.wait(max(0.0, next_tick - time.monotonic()))
            if stop.is_set():
                break
            if woken:
                wake.clear()

            self.run_once(stop)

            # ticks that fell inside the execution are skipped, not replayed
            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.period


class SyncScheduler:
    """Owns the three stage cycles and the per-execution batch loop."""

    def __init__(
        self,
        fulfillment,
        partner,
        period: float = CYCLE_PERIOD_SECONDS,
        initial_delays: Optional[Dict[str, float]] = None,
        batch_size: int = MAX_ORDERS_PER_RUN,
    ):
        self.batch_size = batch_size
        self.processors = {
            p.stage: p
            for p in (
                SubmitProcessor(fulfillment),
                PollStatusProcessor(fulfillment),
                NotifyPartnerProcessor(partner),
            )
        }

        delays = {**DEFAULT_INITIAL_DELAYS, **(initial_delays or {})}
        self.cycles = {
            stage: SyncCycle(stage, partial(self.run_stage, stage), delays[stage], period)
            for stage in self.processors
        }

    def start(self) -> None:
        for cycle in self.cycles.values():
            cycle.start()

    def stop(self) -> None:
        for cycle in self.cycles.values():
            cycle.stop()

    def wake(self, stage: str) -> bool:
        return self.cycles[stage].wake()

    def wake_submit(self) -> bool:
        return self.wake(STAGE_SUBMIT)

    def wake_notify_partner(self) -> bool:
        return self.wake(STAGE_NOTIFY_PARTNER)

    def run_stage(self, stage: str, stop_event: Optional[threading.Event] = None) -> Optional[Dict[str, int]]:
        """
        One execution of one stage: fetch a bounded batch, process it record by
        record. Returns counts, or None when there was nothing to do.
        """
        processor = self.processors[stage]
        orders = find_orders_by_state(processor.source_state, self.batch_size)
        if not orders:
            return None

        run_id = str(uuid.uuid4())
        mark_run(run_id, stage, datetime.now(timezone.utc).isoformat(), len(orders))
        log.info(f"===== {stage.upper()} RUN START: {run_id} | {len(orders)} {processor.source_state} order(s)")

        updated = 0
        flagged = 0
        failed = 0

        for order in orders:
            if stop_event is not None and stop_event.is_set():
                log.info(f"[{stage}] stop requested; remaining orders wait for the next start")
                break

            try:
                update = processor.process(order)
                if update is None:
                    continue
                if not update_order(order.id, update):
                    continue

                updated += 1
                if update.get("need_fix"):
                    flagged += 1
                    send_need_fix_alert(order, stage, update.get("need_fix_reason"))
                if update.get("state") == STATE_RESOLVED:
                    self.wake_notify_partner()

            except Exception as e:
                failed += 1
                log.exception(f"[{stage}] Order record {order.id} failed (retry next cycle): {e}")

        close_run(run_id, datetime.now(timezone.utc).isoformat(), updated, flagged, failed)
        log.info(
            f"===== {stage.upper()} RUN END: {run_id} | "
            f"fetched={len(orders)}, updated={updated}, flagged={flagged}, failed={failed}"
        )
        return {"fetched": len(orders), "updated": updated, "flagged": flagged, "failed": failed}
