import logging
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from earlyjob.models import utcnow

logger = logging.getLogger(__name__)


def next_run_at(now: datetime, interval_hours: int) -> datetime:
    """Next wall-clock boundary of the interval, e.g. 00:00, 04:00, 08:00 for 4h"""
    base = now.replace(minute=0, second=0, microsecond=0)
    hours_ahead = interval_hours - (base.hour % interval_hours)
    return base + timedelta(hours=hours_ahead)


class Scheduler:
    """Runs a task immediately, then on every interval boundary.

    The task is expected to report its own failures; anything it raises is
    logged and the loop keeps going.
    """

    def __init__(
        self,
        task: Callable[[], Any],
        interval_hours: int = 4,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not 1 <= interval_hours <= 24:
            raise ValueError("interval_hours must be between 1 and 24")
        self.task = task
        self.interval_hours = interval_hours
        self.clock = clock
        self.sleep = sleep

    def _run_task(self):
        try:
            self.task()
        except Exception:
            logger.exception("Scheduled run failed")

    def run_forever(self, max_runs: Optional[int] = None) -> int:
        runs = 0
        logger.info("Running initial ingestion")
        self._run_task()
        runs += 1

        while max_runs is None or runs < max_runs:
            now = self.clock()
            target = next_run_at(now, self.interval_hours)
            logger.info("Next run at %s", target.isoformat())
            self.sleep(max(0.0, (target - now).total_seconds()))
            self._run_task()
            runs += 1

        return runs
