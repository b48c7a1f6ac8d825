from typing import Any, Callable

import httpx
import structlog

from tokenlens.models import SnapshotFormatError, UsageSnapshot
from tokenlens.source.base import SnapshotCallback, SnapshotUnavailableError, Subscribers

logger = structlog.get_logger()


class HttpSnapshotSource:
    """
    HttpSnapshotSource talks to a collector that serves the current
    snapshot at GET {base_url}/usage and recollects on
    POST {base_url}/refresh. Errors are raised as
    SnapshotUnavailableError; retrying is left to the collector.
    """

    def __init__(self, base_url: "str", timeout: "float" = 10.0) -> "None":
        self._base_url = base_url.rstrip("/")
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(timeout=timeout)
        self._subscribers = Subscribers()

    @property
    def name(self) -> "str":
        return "http"

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def get_snapshot(self) -> "UsageSnapshot":
        return await self._request("GET", "/usage")

    async def refresh_snapshot(self) -> "UsageSnapshot":
        return await self._request("POST", "/refresh")

    def subscribe(self, callback: "SnapshotCallback") -> "Callable[[], None]":
        return self._subscribers.add(callback)

    def notify_updated(self) -> "None":
        """
        forwards an "usage updated" announcement from the collector
        (e.g. received over a webhook) to the subscribers.
        """
        self._subscribers.notify(
            lambda e: logger.error("snapshot_subscriber_failed", error=str(e))
        )

    async def _request(self, method: "str", path: "str") -> "UsageSnapshot":
        url = f"{self._base_url}{path}"
        logger.debug("snapshot_request", method=method, url=url)

        try:
            resp = await self._client.request(method, url)
            resp.raise_for_status()
            payload: "Any" = resp.json()
        except httpx.HTTPStatusError as e:
            raise SnapshotUnavailableError(
                f"collector returned {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise SnapshotUnavailableError(f"collector unreachable: {e}") from e
        except ValueError as e:
            raise SnapshotUnavailableError(f"collector sent invalid JSON: {e}") from e

        try:
            return UsageSnapshot.from_dict(payload)
        except SnapshotFormatError as e:
            raise SnapshotUnavailableError(f"malformed snapshot: {e}") from e
