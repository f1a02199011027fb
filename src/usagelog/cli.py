import argparse

from usagelog.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="usagelog",
        description="Usage snapshot log retention service",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to expose metrics on (default: :9186)",
    )
    parser.add_argument(
        "--purge.interval",
        dest="purge_interval",
        type=int,
        default=3600,
        help="Retention purge interval in seconds (default: 3600)",
    )
    parser.add_argument(
        "--retention.days",
        dest="retention_days",
        type=int,
        default=90,
        help="Days of snapshots to keep (default: 90)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    if args.retention_days <= 0:
        parser.error("--retention.days must be positive")
    if args.purge_interval <= 0:
        parser.error("--purge.interval must be positive")

    config = Config.from_env()
    config.listen_address = args.listen_address
    config.purge_interval = args.purge_interval
    config.retention_days = args.retention_days
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
