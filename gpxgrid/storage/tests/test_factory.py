"""Tests for storage driver selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from gpxgrid.config import Settings
from gpxgrid.errors import ConfigurationError
from gpxgrid.storage.bucket import BucketStorageDriver
from gpxgrid.storage.factory import build_storage_driver, resolve_driver_name
from gpxgrid.storage.local import LocalStorageDriver


def _settings(**overrides) -> Settings:
    values = {
        "storage_driver": None,
        "storage_bucket_name": None,
        "storage_bucket_endpoint": None,
        "storage_bucket_access_key_id": None,
        "storage_bucket_secret_access_key": None,
        "storage_bucket_session_token": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestResolveDriverName:
    def test_defaults_to_local(self) -> None:
        assert resolve_driver_name(_settings()) == "local"

    def test_bucket_inferred_from_complete_credentials(self) -> None:
        settings = _settings(
            storage_bucket_name="b",
            storage_bucket_access_key_id="AKID",
            storage_bucket_secret_access_key="secret",
        )
        assert resolve_driver_name(settings) == "bucket"

    def test_partial_credentials_stay_local(self) -> None:
        settings = _settings(storage_bucket_name="b", storage_bucket_access_key_id="AKID")
        assert resolve_driver_name(settings) == "local"

    @pytest.mark.parametrize(("raw", "expected"), [("LOCAL", "local"), (" Bucket ", "bucket")])
    def test_explicit_driver_case_insensitive(self, raw: str, expected: str) -> None:
        assert resolve_driver_name(_settings(storage_driver=raw)) == expected

    def test_blank_driver_means_infer(self) -> None:
        assert _settings(storage_driver="  ").storage_driver is None


class TestBuildStorageDriver:
    def test_local_driver_uses_root(self, tmp_path: Path) -> None:
        driver = build_storage_driver(_settings(storage_root=tmp_path))
        assert isinstance(driver, LocalStorageDriver)
        assert driver.root == tmp_path

    def test_bucket_driver_with_custom_endpoint(self) -> None:
        driver = build_storage_driver(
            _settings(
                storage_driver="bucket",
                storage_bucket_name="b",
                storage_bucket_endpoint="http://localhost:9000",
                storage_bucket_access_key_id="AKID",
                storage_bucket_secret_access_key="secret",
            )
        )
        assert isinstance(driver, BucketStorageDriver)
        assert driver.NAME == "bucket"
        assert driver.path_style is True

    def test_aws_alias_region(self) -> None:
        settings = Settings(_env_file=None, aws_region="ap-southeast-2")
        assert settings.storage_bucket_region == "ap-southeast-2"

    @pytest.mark.asyncio
    async def test_explicit_bucket_without_name_fails_on_first_request(self) -> None:
        driver = build_storage_driver(
            _settings(
                storage_driver="bucket",
                storage_bucket_access_key_id="AKID",
                storage_bucket_secret_access_key="secret",
            )
        )
        with pytest.raises(ConfigurationError):
            await driver.read("k.json")
