from __future__ import annotations

import logging
import time
from typing import Callable

from raidline.contracts import ActionRequest, ActionType, MatchStatus
from raidline.core import make_id
from raidline.runtime.session import LiveMatchRuntime

logger = logging.getLogger("raidline.driver")

IDLE_STATUSES = frozenset({MatchStatus.COMPLETED, MatchStatus.LOCKED})


class ClockDriver:
    """Feeds one-second ticks into a runtime against a wall clock.

    Sleeps until the next whole-second deadline rather than a fixed second,
    so time spent handling a tick is not lost; when the loop falls behind it
    delivers the missed seconds in a single tick request.
    """

    def __init__(
        self,
        runtime: LiveMatchRuntime,
        interval: float = 1.0,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runtime = runtime
        self.interval = interval
        self._monotonic = monotonic
        self._sleep = sleep
        self._stopped = False
        self.ticks_sent = 0

    def stop(self) -> None:
        self._stopped = True

    def run(self, max_ticks: int | None = None) -> int:
        deadline = self._monotonic() + self.interval
        while not self._should_stop(max_ticks):
            remaining = deadline - self._monotonic()
            if remaining > 0:
                self._sleep(remaining)
            now = self._monotonic()
            due = max(int((now - deadline) // self.interval) + 1, 1)
            if max_ticks is not None:
                due = min(due, max_ticks - self.ticks_sent)
            deadline += due * self.interval
            result = self.runtime.handle_action(ActionRequest(make_id("req"), ActionType.TICK, {"seconds": due}))
            self.ticks_sent += due
            if due > 1:
                logger.info(f"[clock-catchup] match={self.runtime.state.match_id} seconds={due}")
            if not result.success:
                logger.warning(f"[clock-stop] match={self.runtime.state.match_id} reason={result.message}")
                break
        return self.ticks_sent

    def _should_stop(self, max_ticks: int | None) -> bool:
        if self._stopped or self.runtime.halted:
            return True
        if self.runtime.state.status in IDLE_STATUSES:
            return True
        return max_ticks is not None and self.ticks_sent >= max_ticks
