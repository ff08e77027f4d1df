# tests/test_config.py
import asyncio

import pytest

from opendata_gateway.config import DATASETS, GatewaySettings, get_dataset, list_datasets
from opendata_gateway.fetchers.base import BaseFetcher, env_token_provider


class TestGatewaySettings:
    """Test settings defaults and environment overrides."""

    def test_defaults(self):
        settings = GatewaySettings()
        assert settings.api_host == "https://data.cityofnewyork.us"
        assert settings.min_interval == 3.6
        assert settings.max_attempts == 3

    def test_from_env_casts_types(self):
        settings = GatewaySettings.from_env({
            "OPENDATA_MIN_INTERVAL": "1.5",
            "OPENDATA_MAX_ATTEMPTS": "5",
            "OPENDATA_API_HOST": "http://localhost:8080",
            "OPENDATA_TTL_SHORT": "",
        })
        assert settings.min_interval == 1.5
        assert settings.max_attempts == 5
        assert settings.api_host == "http://localhost:8080"
        assert settings.ttl_short == 3600

    def test_no_token_in_settings(self):
        assert not any("token" in f and f != "token_env_var" for f in vars(GatewaySettings()))


class TestTokenProvider:
    """Test application token lookup."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPENDATA_APP_TOKEN", " abc ")
        assert env_token_provider("OPENDATA_APP_TOKEN")() == "abc"

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("OPENDATA_APP_TOKEN", raising=False)
        assert env_token_provider("OPENDATA_APP_TOKEN")() is None
        assert "X-App-Token" not in BaseFetcher().get_headers()


class TestBaseFetcher:
    """Test session construction."""

    def test_session_bounded_by_max_concurrent(self):
        async def run():
            session = BaseFetcher(GatewaySettings(max_concurrent=4)).create_session()
            try:
                return session.connector.limit
            finally:
                await session.close()

        assert asyncio.run(run()) == 4


class TestDatasets:
    """Test the dataset registry."""

    def test_lookup(self):
        assert get_dataset("housing_violations").dataset_id == "wvxf-dwi5"

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_dataset("parking")

    def test_listing(self):
        listed = list_datasets()
        assert len(listed) == len(DATASETS)
        assert {"key", "dataset_id", "description", "tier"} <= set(listed[0])

    def test_resource_path(self):
        assert get_dataset("building_footprints").resource_path() == "/resource/nqwf-w8eh.json"
