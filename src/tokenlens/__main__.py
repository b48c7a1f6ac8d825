import asyncio
import signal
import sys

import structlog
from prometheus_client import start_http_server

from tokenlens.cli import parse_args
from tokenlens.config import Config, Preferences
from tokenlens.logging import setup_logging
from tokenlens.metrics import MetricsUpdater
from tokenlens.narration import LiveMonitor, LogEntry, NarrationLog
from tokenlens.series import TimeRange
from tokenlens.session import UsageSession
from tokenlens.source.base import SnapshotSource, SnapshotUnavailableError
from tokenlens.source.file import FileSnapshotSource
from tokenlens.source.http import HttpSnapshotSource
from tokenlens.terminal import render, render_analytics

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _build_source(config: "Config") -> "SnapshotSource":
    if config.source_url:
        return HttpSnapshotSource(config.source_url)
    return FileSnapshotSource(config.snapshot_path)


def _print_entry(entry: "LogEntry") -> "None":
    print(f"{entry.timestamp:%H:%M:%S} {entry.glyph} {entry.message}", flush=True)


async def _watch(
    session: "UsageSession",
    interval: "float",
    stop_event: "asyncio.Event | None" = None,
) -> "None":
    async def _refresh() -> "None":
        # every tick asks the collector to recollect, like a manual refresh
        if await session.refresh() is None:
            raise SnapshotUnavailableError(session.error or "refresh failed")

    monitor = LiveMonitor(
        refresh=_refresh,
        log=NarrationLog(on_entry=_print_entry),
        interval=interval,
    )
    session.add_listener(monitor.evaluate)

    if stop_event is None:
        stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    # for SIGINT and SIGTERM, stop the live loop gracefully
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    monitor.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("shutting_down")
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await monitor.close()
        logger.info("shutdown_complete")


def main() -> "None":
    config, args = parse_args()
    setup_logging(config.log_level, json_output=args.log_json)

    if not config.source_configured:
        raise SystemExit(
            "No snapshot source configured. Use --snapshot or --source.url "
            "(or TOKENLENS_SNAPSHOT_PATH / TOKENLENS_SOURCE_URL)."
        )

    preferences = (
        Preferences.load(config.preferences_path)
        if config.preferences_path
        else Preferences()
    )

    metrics_updater: "MetricsUpdater | None" = None
    if config.listen_address:
        metrics_updater = MetricsUpdater()
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    source = _build_source(config)
    session = UsageSession(source, metrics_updater)

    async def _run() -> "int":
        try:
            snapshot = await session.load()
            if snapshot is None:
                print(f"error: {session.error}", file=sys.stderr)
                if not args.watch:
                    return 1
            elif args.view == "analytics":
                print(render_analytics(snapshot, TimeRange(args.time_range)))
            else:
                print(render(snapshot, preferences))

            if args.watch:
                await _watch(session, config.refresh_interval)
            return 0
        finally:
            await session.close()

    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
