"""Live timers for thinking and tool segments that are still running.

Each open segment gets one periodic task keyed by ``(block_id, kind)``.
``TimerEngine.sync`` is called with the full block list after every
normalization pass; it starts missing timers, cancels stale ones and never
runs two tasks for the same key. Timers only write derived elapsed values
and never touch block data.
"""

import asyncio
import logging
import time
from typing import Callable, Hashable, Optional

from .config import get_dots_interval, get_tick_interval
from .core import Message, WorkflowBlock

logger = logging.getLogger(__name__)

THINKING = "thinking"
TOOL = "tool"
DOTS_KEY = ("*", "dots")
DOT_STATES = ("", ".", "..", "...")

TimerKey = tuple[str, str]


class PeriodicScheduler:
    """Cancellable periodic callbacks on the running asyncio loop."""

    def __init__(self):
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, interval: float, callback: Callable[[], None]) -> bool:
        """Run ``callback`` every ``interval`` seconds.

        Returns False if ``key`` is already running, or if no event loop is
        running; in that case nothing is registered and a later call made
        on the loop starts the timer.
        """
        task = self._tasks.get(key)
        if task is not None and not task.done():
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, deferring timer %s", key)
            return False
        self._tasks[key] = loop.create_task(self._run(key, interval, callback))
        return True

    def cancel(self, key: Hashable) -> None:
        task = self._tasks.pop(key, None)
        if task is not None:
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def keys(self) -> set:
        return {k for k, t in self._tasks.items() if not t.done()}

    async def _run(self, key: Hashable, interval: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception:
                logger.exception("Timer callback for %s failed", key)


class TimerEngine:
    """Tracks elapsed time of open segments across a block list."""

    def __init__(
        self,
        scheduler: Optional[PeriodicScheduler] = None,
        clock: Callable[[], float] = time.time,
        tick_interval: Optional[float] = None,
        dots_interval: Optional[float] = None,
    ):
        self.scheduler = scheduler or PeriodicScheduler()
        self.clock = clock
        self.tick_interval = tick_interval or get_tick_interval()
        self.dots_interval = dots_interval or get_dots_interval()
        self._starts: dict[TimerKey, float] = {}
        self._elapsed: dict[TimerKey, float] = {}
        self._dots = 0

    # ── Public API ───────────────────────────────────────────────────

    def sync(self, blocks: list[WorkflowBlock]) -> None:
        """Reconcile running timers with the open segments of ``blocks``."""
        wanted = {}
        for block in blocks:
            wanted.update(open_segments(block))

        for key in list(self._starts):
            if key not in wanted:
                self._stop(key)

        for key, started in wanted.items():
            self._starts[key] = started
            self._tick(key)
            self.scheduler.schedule(key, self.tick_interval, lambda k=key: self._tick(k))

        if any(kind == THINKING for _, kind in wanted):
            self.scheduler.schedule(DOTS_KEY, self.dots_interval, self._advance_dots)
        else:
            self.scheduler.cancel(DOTS_KEY)
            self._dots = 0

    def elapsed(self, block_id: str, kind: str) -> Optional[float]:
        """Seconds since the open segment started, as of the last tick."""
        return self._elapsed.get((block_id, kind))

    def active_keys(self) -> set[TimerKey]:
        return set(self._starts)

    @property
    def dots(self) -> str:
        return DOT_STATES[self._dots]

    def reset(self) -> None:
        """Tear down every timer, e.g. on project switch."""
        for key in list(self._starts):
            self._stop(key)
        self.scheduler.cancel(DOTS_KEY)
        self._dots = 0

    # ── Private helpers ──────────────────────────────────────────────

    def _tick(self, key: TimerKey) -> None:
        started = self._starts.get(key)
        if started is not None:
            self._elapsed[key] = max(0.0, self.clock() - started)

    def _advance_dots(self) -> None:
        self._dots = (self._dots + 1) % len(DOT_STATES)

    def _stop(self, key: TimerKey) -> None:
        self.scheduler.cancel(key)
        self._starts.pop(key, None)
        self._elapsed.pop(key, None)


def open_segments(block: WorkflowBlock) -> dict[TimerKey, float]:
    """Return ``{(block_id, kind): start_epoch_seconds}`` for segments to time.

    Completed blocks have nothing to time. Only the latest tool message by
    position is considered; earlier tools are never re-timed.
    """
    if block.is_complete:
        return {}

    segments = {}
    thinking = [m for m in block.messages if m.type == THINKING and m.is_open]
    if thinking and thinking[-1].timestamp is not None:
        segments[(block.id, THINKING)] = thinking[-1].timestamp.timestamp()

    last_tool = _last_tool(block.messages)
    if last_tool is not None and last_tool.is_open and last_tool.timestamp is not None:
        segments[(block.id, TOOL)] = last_tool.timestamp.timestamp()

    return segments


def _last_tool(messages: list[Message]) -> Optional[Message]:
    for message in reversed(messages):
        if message.type == TOOL:
            return message
    return None
