# scripts/run_stage_once.py
# Usage: run_stage_once.py <submit|poll_status|notify_partner>
import os, sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from app import build_scheduler
from db import init_state_db
from logger import get_logger

log = get_logger("run_stage_once")


def main(argv):
    scheduler = build_scheduler()

    if len(argv) < 2 or argv[1] not in scheduler.processors:
        print(f"usage: {argv[0]} <{'|'.join(scheduler.processors)}>")
        return 2

    stage = argv[1]
    init_state_db()
    log.info(f"Manual run of stage {stage}")

    result = scheduler.run_stage(stage)
    if result is None:
        print(f"{stage}: nothing to do")
    else:
        print(f"{stage}: {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
