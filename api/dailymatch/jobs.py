import logging
import time

from .database import SessionLocal
from .services.calendar import SYSTEM_CLOCK, next_sweep_at
from .services.lifecycle import SweepResult, expire_stale_sessions

logger = logging.getLogger(__name__)


def run_daily_sweep(clock=SYSTEM_CLOCK) -> SweepResult:
    """Entry point for the external scheduler; safe to call at any time and any number of times."""
    with SessionLocal() as db:
        return expire_stale_sessions(db, clock=clock)


def run_sweep_loop(clock=SYSTEM_CLOCK, sleep=time.sleep, max_runs: int | None = None) -> int:
    runs = 0
    while max_runs is None or runs < max_runs:
        now = clock.now()
        due = next_sweep_at(now)
        wait_seconds = max(0.0, (due - now).total_seconds())
        logger.info("[SWEEP] next run at %s (in %.0fs)", due.isoformat(), wait_seconds)
        sleep(wait_seconds)
        run_daily_sweep(clock)
        runs += 1
    return runs
