import os
from dataclasses import dataclass

_DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class Config:
    # listen_address: format ":9186" or
    # "0.0.0.0:9186"
    listen_address: "str" = ":9186"
    # retention purge interval in seconds
    purge_interval: "int" = 3600
    # snapshots older than this are purged
    retention_days: "int" = 90
    log_level: "str" = "info"
    log_format: "str" = "console"
    # margin multiplier for the report fetch upper bound
    fetch_margin_factor: "int" = 2

    database_url: "str" = "sqlite:///usagelog.db"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            database_url=os.environ.get(
                "USAGELOG_DATABASE_URL", "sqlite:///usagelog.db"
            ),
            fetch_margin_factor=int(os.environ.get("USAGELOG_FETCH_MARGIN", "2")),
        )

    @property
    def retention_ms(self) -> "int":
        return self.retention_days * _DAY_MS
