import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from earlyjob.db import JobStore
from earlyjob.models import utcnow

logger = logging.getLogger(__name__)


class RotationSelector:
    """Picks the next upstream API to query based on quota state.

    Among the `window` least-recently-used active APIs that are still under
    their monthly limit, the one with the lowest usage ratio wins.
    """

    def __init__(
        self,
        store: JobStore,
        clock: Callable[[], datetime] = utcnow,
        window: int = 3,
    ):
        self.store = store
        self.clock = clock
        self.window = window

    def ensure_registered(self, api_name: str, monthly_limit: int):
        self.store.ensure_rotation_state(api_name, monthly_limit)

    def select_next(self, exclude: Iterable[str] = ()) -> Optional[str]:
        excluded = set(exclude)
        candidates = [
            state
            for state in self.store.list_active_rotation_states()
            if state.api_name not in excluded
        ][: self.window]

        eligible = [state for state in candidates if state.has_capacity]
        if not eligible:
            logger.warning("No API has capacity (checked %d candidates)", len(candidates))
            return None

        # min() keeps the first of equal ratios, i.e. the least recently used
        chosen = min(eligible, key=lambda state: state.usage_ratio)
        logger.info(
            "Selected %s (%d/%d used)",
            chosen.api_name,
            chosen.requests_used,
            chosen.monthly_limit,
        )
        return chosen.api_name

    def record_usage(self, api_name: str, success: bool, error: Optional[str] = None):
        state = self.store.get_rotation_state(api_name)
        if state is None:
            logger.warning("No rotation state for %s, usage not recorded", api_name)
            return

        state.requests_used += 1
        state.last_used_at = self.clock()
        if not success:
            state.error_count += 1
            state.last_error = error
            state.status = "error"
            logger.warning("Marked %s as error: %s", api_name, error)

        self.store.update_rotation_state(state)
