import asyncio
import json
import os
from pathlib import Path
from typing import Callable

import structlog

from tokenlens.models import SnapshotFormatError, UsageSnapshot
from tokenlens.source.base import SnapshotCallback, SnapshotUnavailableError, Subscribers

logger = structlog.get_logger()


class FileSnapshotSource:
    """
    FileSnapshotSource reads the snapshot JSON that the collector
    process writes to disk. "Refreshing" simply re-reads the file;
    poll() notifies subscribers when the file's mtime moves.
    """

    def __init__(self, path: "str | Path") -> "None":
        self._path = Path(path)
        self._subscribers = Subscribers()
        self._last_mtime: "float | None" = None

    @property
    def name(self) -> "str":
        return "file"

    async def get_snapshot(self) -> "UsageSnapshot":
        return await asyncio.to_thread(self._read)

    async def refresh_snapshot(self) -> "UsageSnapshot":
        return await self.get_snapshot()

    def subscribe(self, callback: "SnapshotCallback") -> "Callable[[], None]":
        return self._subscribers.add(callback)

    def poll(self) -> "bool":
        """
        checks the file once and notifies subscribers if it changed
        since the last poll. Returns whether it changed.
        """
        try:
            mtime = os.stat(self._path).st_mtime
        except OSError:
            return False

        changed = self._last_mtime is not None and mtime != self._last_mtime
        self._last_mtime = mtime
        if changed:
            logger.debug("snapshot_file_changed", path=str(self._path))
            self._subscribers.notify(
                lambda e: logger.error("snapshot_subscriber_failed", error=str(e))
            )
        return changed

    async def close(self) -> "None":
        pass

    def _read(self) -> "UsageSnapshot":
        try:
            with open(self._path, encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError as e:
            raise SnapshotUnavailableError(f"snapshot file not found: {self._path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise SnapshotUnavailableError(f"unreadable snapshot file {self._path}: {e}") from e

        try:
            return UsageSnapshot.from_dict(payload)
        except SnapshotFormatError as e:
            raise SnapshotUnavailableError(f"malformed snapshot in {self._path}: {e}") from e
