import asyncio
import time
from typing import Awaitable, Callable

import structlog

from tokenlens.metrics import MetricsUpdater
from tokenlens.models import UsageSnapshot
from tokenlens.source.base import SnapshotSource

logger = structlog.get_logger()

SnapshotListener = Callable[[UsageSnapshot], None]


class UsageSession:
    """
    UsageSession holds the snapshot every view renders from. It
    keeps the last-known-good snapshot when the source fails and
    records the failure in `error` next to it, so views can show
    stale data together with the error. A later success clears
    the error. No retries happen here.
    """

    def __init__(
        self,
        source: "SnapshotSource",
        metrics_updater: "MetricsUpdater | None" = None,
    ) -> "None":
        self._source = source
        self._metrics = metrics_updater
        self._listeners: "list[SnapshotListener]" = []
        self._unsubscribe: "Callable[[], None] | None" = None
        self._push_tasks: "set[asyncio.Task[UsageSnapshot | None]]" = set()
        self.snapshot: "UsageSnapshot | None" = None
        self.error: "str | None" = None
        self.loading: "bool" = False
        self.last_update: "float | None" = None

    def add_listener(self, listener: "SnapshotListener") -> "None":
        """
        registers a callback invoked with every new snapshot,
        whether it was pulled or pushed.
        """
        self._listeners.append(listener)

    def attach(self) -> "None":
        """
        subscribes to the source's push notifications.
        """
        if self._unsubscribe is None:
            self._unsubscribe = self._source.subscribe(self._on_push_notification)

    def detach(self) -> "None":
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def load(self) -> "UsageSnapshot | None":
        """
        initial or silent load through get_snapshot(). Returns the
        new snapshot, or None when the source failed.
        """
        return await self._acquire(self._source.get_snapshot, stage="load")

    async def refresh(self) -> "str | None":
        """
        manual refresh through refresh_snapshot(). Returns the
        success message for the user, or None on failure.
        """
        snapshot = await self._acquire(self._source.refresh_snapshot, stage="refresh")
        if snapshot is None:
            return None
        return "Latest usage data loaded"

    async def on_push(self) -> "UsageSnapshot | None":
        """
        reacts to an unsolicited update the same way as load(),
        without any success narration.
        """
        return await self._acquire(self._source.get_snapshot, stage="push")

    async def close(self) -> "None":
        self.detach()
        for task in list(self._push_tasks):
            task.cancel()
        await self._source.close()

    def _on_push_notification(self) -> "None":
        # push callbacks are synchronous, so the fetch is scheduled
        # on the running loop and tracked until it completes
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("snapshot_push_without_loop", source=self._source.name)
            return
        task = loop.create_task(self.on_push())
        self._push_tasks.add(task)
        task.add_done_callback(self._push_tasks.discard)

    async def _acquire(
        self,
        fetch: "Callable[[], Awaitable[UsageSnapshot]]",
        stage: "str",
    ) -> "UsageSnapshot | None":
        self.loading = True
        try:
            snapshot = await fetch()
        except Exception as e:
            self.error = str(e) or type(e).__name__
            logger.error(
                "snapshot_acquisition_failed",
                source=self._source.name,
                stage=stage,
                error=self.error,
                has_previous=self.snapshot is not None,
            )
            if self._metrics is not None:
                self._metrics.inc_refresh_error(self._source.name, stage)
            return None
        finally:
            self.loading = False

        self.snapshot = snapshot
        self.error = None
        self.last_update = time.time()
        logger.debug("snapshot_acquired", source=self._source.name, stage=stage)

        if self._metrics is not None:
            self._metrics.update_snapshot(snapshot)
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
