import asyncio
import contextlib
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

import structlog

from tokenlens.formatters import format_duration_ms
from tokenlens.models import UsageSnapshot
from tokenlens.status import LIVE_THRESHOLDS, Status, StatusThresholds, classify

logger = structlog.get_logger()

LOG_CAPACITY = 50
TICK_INTERVAL_SECONDS = 3.0
CRITICAL_USAGE_PERCENT = 95.0
HIGH_USAGE_PERCENT = 80.0
RESET_SOON_MS = 3_600_000

RefreshCallback = Callable[[], Awaitable[object]]


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class MonitorState(Enum):
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class LogEntry:
    id: "str"
    timestamp: "datetime"
    severity: "Severity"
    message: "str"
    glyph: "str"


class NarrationLog:
    """
    NarrationLog is a bounded, newest-first buffer of log entries.
    Once capacity is reached the oldest entry is dropped on every
    add; that's normal operation, not an error.
    """

    def __init__(
        self,
        capacity: "int" = LOG_CAPACITY,
        on_entry: "Callable[[LogEntry], None] | None" = None,
    ) -> "None":
        self._entries: "deque[LogEntry]" = deque(maxlen=capacity)
        # called with every entry right after it was added
        self._on_entry = on_entry

    @property
    def capacity(self) -> "int":
        return self._entries.maxlen or 0

    @property
    def entries(self) -> "list[LogEntry]":
        return list(self._entries)

    def add(self, severity: "Severity", message: "str", glyph: "str") -> "LogEntry":
        entry = LogEntry(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            severity=severity,
            message=message,
            glyph=glyph,
        )
        self._entries.appendleft(entry)
        logger.debug("narration_entry", severity=severity.value, message=message)
        if self._on_entry is not None:
            self._on_entry(entry)
        return entry

    def clear(self) -> "None":
        self._entries.clear()

    def __len__(self) -> "int":
        return len(self._entries)


class LiveMonitor:
    """
    LiveMonitor drives the live view: while running it refreshes
    the data every `interval` seconds and narrates each refresh,
    and it narrates usage and reset conditions for every snapshot
    handed to evaluate().

    The tick task is owned by the monitor. start() and resume()
    schedule it, pause() stops scheduling without cancelling a
    refresh that's already in flight, close() tears it down.
    """

    def __init__(
        self,
        refresh: "RefreshCallback",
        log: "NarrationLog | None" = None,
        interval: "float" = TICK_INTERVAL_SECONDS,
        thresholds: "StatusThresholds" = LIVE_THRESHOLDS,
    ) -> "None":
        self._refresh = refresh
        self.log = log if log is not None else NarrationLog()
        self._interval = interval
        self._thresholds = thresholds
        self._state: "MonitorState" = MonitorState.RUNNING
        self._wakeup: "asyncio.Event" = asyncio.Event()
        self._task: "asyncio.Task[None] | None" = None
        self.last_update: "datetime | None" = None

    @property
    def state(self) -> "MonitorState":
        return self._state

    @property
    def is_running(self) -> "bool":
        return self._state is MonitorState.RUNNING

    def start(self) -> "None":
        """
        schedules the tick loop. Must be called from a running
        event loop; calling it twice is a no-op.
        """
        if self._state is not MonitorState.RUNNING:
            return
        if self._task is None or self._task.done():
            self._wakeup.clear()
            self._task = asyncio.get_running_loop().create_task(self._run())

    def pause(self) -> "None":
        if self._state is MonitorState.PAUSED:
            return
        self._state = MonitorState.PAUSED
        self._wakeup.set()
        logger.info("live_monitor_paused")

    def resume(self) -> "None":
        if self._state is MonitorState.RUNNING:
            return
        self._state = MonitorState.RUNNING
        logger.info("live_monitor_resumed")
        # a loop still finishing its last refresh picks up from here
        if self._task is not None and not self._task.done():
            self._wakeup.clear()
            return
        self.start()

    def toggle(self) -> "MonitorState":
        if self.is_running:
            self.pause()
        else:
            self.resume()
        return self._state

    async def close(self) -> "None":
        """
        stops the loop for good, cancelling whatever it's doing.
        """
        self._state = MonitorState.PAUSED
        self._wakeup.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _run(self) -> "None":
        # ticks follow a fixed cadence, independent of refresh time
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._interval
        while self._state is MonitorState.RUNNING:
            try:
                await asyncio.wait_for(
                    self._wakeup.wait(), timeout=max(0.0, deadline - loop.time())
                )
            except TimeoutError:
                pass

            if self._state is not MonitorState.RUNNING:
                break
            self._wakeup.clear()
            await self.tick()

            deadline += self._interval
            # a refresh that overran skips the missed slots
            if deadline < loop.time():
                deadline = loop.time() + self._interval

    async def tick(self) -> "None":
        """
        one refresh cycle: refreshes the data and narrates it.
        A failed refresh is narrated too and never stops the loop.
        """
        try:
            await self._refresh()
        except Exception as e:
            logger.exception("live_refresh_failed")
            self.log.add(Severity.ERROR, f"Refresh failed: {e}", "❌")
            return

        self.last_update = datetime.now(timezone.utc)
        self.log.add(Severity.INFO, "Data refreshed", "🔄")

    async def force_refresh(self) -> "LogEntry":
        try:
            await self._refresh()
        except Exception as e:
            logger.exception("manual_refresh_failed")
            return self.log.add(Severity.ERROR, f"Refresh failed: {e}", "❌")

        self.last_update = datetime.now(timezone.utc)
        return self.log.add(Severity.SUCCESS, "Manual refresh completed", "✅")

    def checkpoint(self) -> "LogEntry":
        return self.log.add(Severity.INFO, "Checkpoint created", "📍")

    def clear(self) -> "None":
        self.log.clear()

    def evaluate(self, snapshot: "UsageSnapshot") -> "list[LogEntry]":
        """
        narrates the conditions of a new snapshot. Nothing is
        de-duplicated: a condition that still holds is narrated
        again on every evaluation.
        """
        added: "list[LogEntry]" = []
        percentage = snapshot.percentage_used

        if percentage >= CRITICAL_USAGE_PERCENT:
            added.append(
                self.log.add(Severity.ERROR, f"Critical usage: {percentage:.1f}%", "🚨")
            )
        elif percentage >= HIGH_USAGE_PERCENT:
            added.append(
                self.log.add(Severity.WARNING, f"High usage: {percentage:.1f}%", "⚠️")
            )

        reset = snapshot.reset_info
        time_until = reset.time_until_reset_ms if reset is not None else None
        if time_until is not None and 0 < time_until < RESET_SOON_MS:
            added.append(
                self.log.add(
                    Severity.INFO, f"Reset in {format_duration_ms(time_until)}", "⏰"
                )
            )
        return added

    def status(self, snapshot: "UsageSnapshot") -> "Status":
        return classify(snapshot.percentage_used, self._thresholds)
