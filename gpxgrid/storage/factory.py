"""Pick and build the configured storage driver."""

from __future__ import annotations

import logging

import httpx

from gpxgrid.config import Settings, get_settings
from gpxgrid.storage.base import StorageDriver
from gpxgrid.storage.bucket import BucketStorageDriver
from gpxgrid.storage.local import LocalStorageDriver
from gpxgrid.storage.sigv4 import AwsCredentials

logger = logging.getLogger("gpxgrid.storage.factory")


def resolve_driver_name(settings: Settings) -> str:
    """Return ``"local"`` or ``"bucket"`` for the given settings.

    An explicit ``STORAGE_DRIVER`` wins.  Otherwise a bucket name together
    with both halves of the access key pair selects the bucket driver.
    """
    if settings.storage_driver:
        return settings.storage_driver
    if (
        settings.storage_bucket_name
        and settings.storage_bucket_access_key_id
        and settings.storage_bucket_secret_access_key
    ):
        return "bucket"
    return "local"


def build_storage_driver(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> StorageDriver:
    """Construct a fresh storage driver from settings.

    Args:
        settings:    Settings to read; defaults to the cached app settings.
        http_client: Optional shared httpx client for the bucket driver.
    """
    s = settings or get_settings()
    name = resolve_driver_name(s)

    if name == "local":
        logger.info("Using local storage at %s", s.storage_root)
        return LocalStorageDriver(s.storage_root)

    credentials = None
    if s.storage_bucket_access_key_id and s.storage_bucket_secret_access_key:
        credentials = AwsCredentials(
            access_key_id=s.storage_bucket_access_key_id,
            secret_access_key=s.storage_bucket_secret_access_key,
            session_token=s.storage_bucket_session_token,
        )

    driver = BucketStorageDriver(
        bucket_name=s.storage_bucket_name,
        credentials=credentials,
        region=s.storage_bucket_region,
        endpoint=s.storage_bucket_endpoint,
        prefix=s.storage_bucket_prefix,
        force_path_style=s.storage_bucket_force_path_style,
        http_client=http_client,
    )
    logger.info(
        "Using bucket storage %s (region=%s, path_style=%s)",
        s.storage_bucket_name,
        s.storage_bucket_region,
        driver.path_style,
    )
    return driver
