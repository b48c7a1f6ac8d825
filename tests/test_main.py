import asyncio
from typing import Callable

import pytest

from tokenlens.__main__ import _build_source, _parse_listen_address, _watch
from tokenlens.config import Config
from tokenlens.models import UsageSnapshot
from tokenlens.session import UsageSession
from tokenlens.source.base import SnapshotUnavailableError
from tokenlens.source.file import FileSnapshotSource
from tokenlens.source.http import HttpSnapshotSource


class TestListenAddress:
    def test_port_only(self) -> "None":
        assert _parse_listen_address(":9186") == ("0.0.0.0", 9186)

    def test_host_and_port(self) -> "None":
        assert _parse_listen_address("127.0.0.1:9000") == ("127.0.0.1", 9000)


class TestBuildSource:
    @pytest.mark.asyncio
    async def test_url_wins_over_file(self) -> "None":
        source = _build_source(Config(snapshot_path="usage.json", source_url="http://c.test"))
        assert isinstance(source, HttpSnapshotSource)
        await source.close()

    def test_file_source(self) -> "None":
        source = _build_source(Config(snapshot_path="usage.json"))
        assert isinstance(source, FileSnapshotSource)


class RecordingSource:
    """
    A file-less source that records which acquisition path was used.
    """

    def __init__(self, snapshot: "UsageSnapshot") -> "None":
        self._snapshot = snapshot
        self.calls: "list[str]" = []

    @property
    def name(self) -> "str":
        return "recording"

    async def get_snapshot(self) -> "UsageSnapshot":
        self.calls.append("get")
        return self._snapshot

    async def refresh_snapshot(self) -> "UsageSnapshot":
        self.calls.append("refresh")
        return self._snapshot

    def subscribe(self, callback: "Callable[[], None]") -> "Callable[[], None]":
        return lambda: None

    async def close(self) -> "None":
        pass


class TestWatch:
    @pytest.mark.asyncio
    async def test_ticks_recollect_and_narrate_once(
        self,
        make_snapshot,
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        source = RecordingSource(make_snapshot(percentage_used=96))
        session = UsageSession(source)
        stop_event = asyncio.Event()

        watch = asyncio.create_task(_watch(session, 0.01, stop_event))
        await asyncio.sleep(0.1)
        stop_event.set()
        await watch

        assert source.calls
        assert set(source.calls) == {"refresh"}

        out = capsys.readouterr().out
        refreshes = out.count("🔄 Data refreshed")
        assert refreshes == len(source.calls)
        assert out.count("🚨 Critical usage: 96.0%") == refreshes

    @pytest.mark.asyncio
    async def test_failed_tick_is_narrated(
        self,
        make_snapshot,
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        source = RecordingSource(make_snapshot())

        async def _down() -> "UsageSnapshot":
            source.calls.append("refresh")
            raise SnapshotUnavailableError("collector unreachable: refused")

        source.refresh_snapshot = _down
        session = UsageSession(source)
        stop_event = asyncio.Event()

        watch = asyncio.create_task(_watch(session, 0.01, stop_event))
        await asyncio.sleep(0.05)
        stop_event.set()
        await watch

        assert "❌ Refresh failed: collector unreachable: refused" in capsys.readouterr().out
        assert session.error == "collector unreachable: refused"
