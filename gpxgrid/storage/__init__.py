"""Keyed blob storage.

Modules:
    base    — StorageDriver ABC and key normalization
    local   — Filesystem driver
    bucket  — S3-compatible driver
    sigv4   — AWS Signature Version 4 signer used by the bucket driver
    factory — Driver selection from settings
"""

from gpxgrid.storage.base import StorageDriver, normalize_key
from gpxgrid.storage.bucket import BucketStorageDriver
from gpxgrid.storage.factory import build_storage_driver, resolve_driver_name
from gpxgrid.storage.local import LocalStorageDriver
from gpxgrid.storage.sigv4 import AwsCredentials, SigV4Signer

__all__ = [
    "StorageDriver",
    "LocalStorageDriver",
    "BucketStorageDriver",
    "AwsCredentials",
    "SigV4Signer",
    "build_storage_driver",
    "resolve_driver_name",
    "normalize_key",
]
