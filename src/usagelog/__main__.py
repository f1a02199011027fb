import asyncio
import signal

import structlog
from prometheus_client import start_http_server
from sqlalchemy import create_engine

from usagelog.cli import parse_args
from usagelog.logging import setup_logging
from usagelog.metrics import UsageLogMetrics
from usagelog.retention import RetentionScheduler
from usagelog.store.sql import SqlSnapshotStore
from usagelog.usage_log import FetchPolicy, UsageLog

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, json_output=config.log_format == "json")

    engine = create_engine(config.database_url, pool_pre_ping=True)
    store = SqlSnapshotStore(engine)
    store.create_schema()
    logger.info("store_ready", url=engine.url.render_as_string(hide_password=True))

    metrics = UsageLogMetrics()
    usage_log = UsageLog(
        store,
        metrics,
        FetchPolicy(margin_factor=config.fetch_margin_factor),
    )

    host, port = _parse_listen_address(config.listen_address)
    start_http_server(port, addr=host)
    logger.info("metrics_server_started", host=host, port=port)

    scheduler = RetentionScheduler(
        usage_log,
        config.retention_ms,
        config.purge_interval,
    )

    async def _run() -> "None":
        loop = asyncio.get_running_loop()
        # for SIGINT and SIGTERM, signal the scheduler
        # to stop gracefully
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, scheduler.stop)

        try:
            await scheduler.run()
        finally:
            logger.info("shutting_down")
            engine.dispose()
            logger.info("shutdown_complete")

    asyncio.run(_run())


if __name__ == "__main__":
    main()
