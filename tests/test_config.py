"""Tests for settings loading."""

from datetime import date

import pytest

from core.config import DEFAULT_AS_OF_START, load_settings, resolve_data_dir
from core.errors import ConfigurationError


class TestLoadSettings:
    def test_defaults(self, tmp_path):
        settings = load_settings({}, data_dir=tmp_path)
        assert settings.db_path == tmp_path / "app.db"
        assert settings.chunk_size == 250
        assert settings.page_size == 20
        assert settings.as_of_start == DEFAULT_AS_OF_START == date(2025, 7, 1)
        assert settings.warehouse_ids is None
        assert settings.environment == "development"

    def test_environment_overrides(self, tmp_path):
        settings = load_settings(
            {
                "STOCK_REPORTS_CHUNK_SIZE": "100",
                "STOCK_REPORTS_PAGE_SIZE": "10",
                "STOCK_REPORTS_FETCH_WORKERS": "2",
                "STOCK_REPORTS_QUERY_TIMEOUT": "2.5",
                "STOCK_REPORTS_AS_OF_START": "2026-01-01",
                "STOCK_REPORTS_WAREHOUSE_IDS": "8, 9,18",
                "STOCK_REPORTS_LOG_LEVEL": "debug",
                "STOCK_REPORTS_ENV": "Production",
            },
            data_dir=tmp_path,
        )
        assert settings.chunk_size == 100
        assert settings.page_size == 10
        assert settings.fetch_workers == 2
        assert settings.query_timeout_seconds == 2.5
        assert settings.as_of_start == date(2026, 1, 1)
        assert settings.warehouse_ids == (8, 9, 18)
        assert settings.log_level == "DEBUG"
        assert settings.environment == "production"

    @pytest.mark.parametrize(
        "env",
        [
            {"STOCK_REPORTS_CHUNK_SIZE": "zero"},
            {"STOCK_REPORTS_CHUNK_SIZE": "0"},
            {"STOCK_REPORTS_QUERY_TIMEOUT": "-1"},
            {"STOCK_REPORTS_AS_OF_START": "July"},
            {"STOCK_REPORTS_WAREHOUSE_IDS": "8,x"},
            {"STOCK_REPORTS_LOG_LEVEL": "LOUD"},
        ],
    )
    def test_invalid_values(self, tmp_path, env):
        with pytest.raises(ConfigurationError):
            load_settings(env, data_dir=tmp_path)


class TestResolveDataDir:
    def test_session_beats_environment(self, tmp_path):
        env = {"STOCK_REPORTS_DATA_DIR": str(tmp_path / "env")}
        assert resolve_data_dir(env, str(tmp_path / "session")) == (tmp_path / "session").resolve()
        assert resolve_data_dir(env) == (tmp_path / "env").resolve()
