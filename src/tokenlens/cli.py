import argparse

from tokenlens.config import Config


def parse_args(argv: "list[str] | None" = None) -> "tuple[Config, argparse.Namespace]":
    parser = argparse.ArgumentParser(
        prog="tokenlens",
        description="Token usage analytics and projections for a metered plan",
    )
    parser.add_argument(
        "--snapshot",
        dest="snapshot_path",
        default=None,
        help="Path to a usage snapshot JSON file written by the collector",
    )
    parser.add_argument(
        "--source.url",
        dest="source_url",
        default=None,
        help="Base URL of a collector serving /usage and /refresh",
    )
    parser.add_argument(
        "--preferences",
        dest="preferences_path",
        default=None,
        help="Path to the preferences JSON file",
    )
    parser.add_argument(
        "--view",
        choices=["terminal", "analytics"],
        default="terminal",
        help="Readout to print (default: terminal)",
    )
    parser.add_argument(
        "--range",
        dest="time_range",
        choices=["7d", "30d"],
        default="7d",
        help="Window used by the analytics view (default: 7d)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and narrate live usage until interrupted",
    )
    parser.add_argument(
        "--refresh.interval",
        dest="refresh_interval",
        type=float,
        default=3.0,
        help="Live refresh period in seconds (default: 3)",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default="",
        help="Expose derived values as Prometheus metrics on this address, e.g. :9186",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.json",
        dest="log_json",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.snapshot_path is not None:
        config.snapshot_path = args.snapshot_path
    if args.source_url is not None:
        config.source_url = args.source_url
    if args.preferences_path is not None:
        config.preferences_path = args.preferences_path
    config.refresh_interval = args.refresh_interval
    config.listen_address = args.listen_address
    config.log_level = args.log_level
    return config, args
