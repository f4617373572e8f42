import logging
from decimal import Decimal

from recovery_plans.config import Settings, configure_logging
from recovery_plans.db import build_engine


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.database_url.startswith("postgresql+asyncpg://")
        assert s.moratory_markup_options == [Decimal("2"), Decimal("4")]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///recovery.db")
        monkeypatch.setenv("MORATORY_MARKUP_OPTIONS", "[2, 4, 6]")
        s = Settings(_env_file=None)
        assert s.database_url == "sqlite+aiosqlite:///recovery.db"
        assert Decimal("6") in s.moratory_markup_options


class TestConfigureLogging:
    def test_package_level(self):
        configure_logging("DEBUG")
        assert logging.getLogger("recovery_plans").level == logging.DEBUG
        configure_logging("warning")
        assert logging.getLogger("recovery_plans").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("verbose")
        assert logging.getLogger("recovery_plans").level == logging.INFO

    async def test_engine_construction_configures_logging(self):
        logging.getLogger("recovery_plans").setLevel(logging.NOTSET)
        engine = build_engine("sqlite+aiosqlite://")
        assert logging.getLogger("recovery_plans").level == logging.INFO
        await engine.dispose()
