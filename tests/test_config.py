from usagelog.config import Config


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch: "object") -> "None":
        monkeypatch.delenv("USAGELOG_DATABASE_URL", raising=False)
        monkeypatch.delenv("USAGELOG_FETCH_MARGIN", raising=False)
        config = Config.from_env()
        assert config.database_url == "sqlite:///usagelog.db"
        assert config.fetch_margin_factor == 2

    def test_reads_env_vars(self, monkeypatch: "object") -> "None":
        monkeypatch.setenv("USAGELOG_DATABASE_URL", "postgresql://db/usage")
        monkeypatch.setenv("USAGELOG_FETCH_MARGIN", "3")
        config = Config.from_env()
        assert config.database_url == "postgresql://db/usage"
        assert config.fetch_margin_factor == 3


class TestRetention:
    def test_retention_ms(self) -> "None":
        config = Config(retention_days=2)
        assert config.retention_ms == 2 * 24 * 60 * 60 * 1000
