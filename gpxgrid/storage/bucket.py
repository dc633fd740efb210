"""S3-compatible bucket storage driver (AWS, Cloudflare R2, MinIO, ...).

Requests are signed with our own SigV4 implementation and sent with httpx;
no vendor SDK is involved.

Addressing:
    path style     — https://endpoint/<bucket>/<prefix>/<key>
    virtual hosted — https://<bucket>.endpoint/<prefix>/<key>
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

import httpx

from gpxgrid.errors import ConfigurationError, NotFoundError, TransportError
from gpxgrid.storage.base import StorageDriver, normalize_key
from gpxgrid.storage.sigv4 import AwsCredentials, SigV4Signer, encode_key

logger = logging.getLogger("gpxgrid.storage.bucket")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BucketStorageDriver(StorageDriver):
    """Object storage driver speaking the S3 REST API."""

    NAME = "bucket"

    def __init__(
        self,
        bucket_name: str | None,
        credentials: AwsCredentials | None,
        region: str = "us-east-1",
        endpoint: str | None = None,
        prefix: str | None = None,
        force_path_style: bool | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the bucket driver.

        Args:
            bucket_name:      Target bucket.  Checked lazily, before the first request.
            credentials:      Access key pair (+ optional session token).
            region:           Signing region.
            endpoint:         Custom endpoint URL; defaults to AWS S3 for ``region``.
            prefix:           Optional key namespace inside the bucket.
            force_path_style: Explicit addressing style; ``None`` means path
                              style iff a custom endpoint is configured.
            http_client:      Optional pre-configured httpx client (for testing).
            timeout_seconds:  Timeout for the per-call client when none is injected.
            clock:            Returns the signing time.
        """
        self._bucket_name = bucket_name
        self._credentials = credentials
        self._region = region
        self._prefix = (prefix or "").strip("/")
        self._path_style = (
            force_path_style if force_path_style is not None else bool(endpoint)
        )
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._clock = clock

        raw_endpoint = endpoint or f"https://s3.{region}.amazonaws.com"
        try:
            self._endpoint = httpx.URL(raw_endpoint)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid STORAGE_BUCKET_ENDPOINT: {exc}") from exc
        if self._endpoint.scheme not in ("http", "https") or not self._endpoint.host:
            raise ConfigurationError(f"Invalid STORAGE_BUCKET_ENDPOINT: {raw_endpoint!r}")

        self._signer = (
            SigV4Signer(credentials, region) if credentials is not None else None
        )

    @property
    def path_style(self) -> bool:
        return self._path_style

    # ------------------------------------------------------------------
    # StorageDriver interface
    # ------------------------------------------------------------------

    async def read(self, key: str) -> bytes:
        response = await self._send("GET", key)
        if response.status_code == 404:
            raise NotFoundError(key)
        if not response.is_success:
            raise TransportError("Bucket read failed", response.status_code, response.text)
        return response.content

    async def write(
        self, key: str, data: bytes | str, content_type: str | None = None
    ) -> None:
        payload = self._to_bytes(data)
        response = await self._send("PUT", key, body=payload, content_type=content_type)
        if not response.is_success:
            raise TransportError("Bucket write failed", response.status_code, response.text)
        logger.debug("PUT %s (%d bytes)", key, len(payload))

    async def delete(self, key: str) -> None:
        response = await self._send("DELETE", key)
        if not response.is_success and response.status_code != 404:
            raise TransportError("Bucket delete failed", response.status_code, response.text)
        logger.debug("DELETE %s -> %d", key, response.status_code)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def object_key(self, key: str) -> str:
        """Return the percent-encoded object key, including the prefix."""
        normalized = normalize_key(key)
        full_key = f"{self._prefix}/{normalized}" if self._prefix else normalized
        return encode_key(full_key)

    def request_target(self, key: str) -> tuple[str, str]:
        """Return ``(host, canonical_uri)`` for an object.

        The host carries the port only when it is not the scheme default.
        """
        bucket = self._require_bucket()
        host = self._endpoint.host
        if self._endpoint.port is not None:
            host = f"{host}:{self._endpoint.port}"

        encoded_key = self.object_key(key)
        if self._path_style:
            return host, f"/{bucket}/{encoded_key}"
        return f"{bucket}.{host}", f"/{encoded_key}"

    def _require_bucket(self) -> str:
        if not self._bucket_name:
            raise ConfigurationError("Missing STORAGE_BUCKET_NAME for bucket storage")
        return self._bucket_name

    def _require_signer(self) -> SigV4Signer:
        if self._signer is None:
            raise ConfigurationError(
                "Missing STORAGE_BUCKET_ACCESS_KEY_ID/SECRET or "
                "AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY for bucket storage"
            )
        return self._signer

    async def _send(
        self,
        method: str,
        key: str,
        body: bytes = b"",
        content_type: str | None = None,
    ) -> httpx.Response:
        """Sign and send one request.

        Raises:
            ConfigurationError: If the bucket name or credentials are missing.
        """
        self._require_bucket()
        signer = self._require_signer()

        host, canonical_uri = self.request_target(key)
        signed = signer.sign(
            method,
            host,
            canonical_uri,
            body=body,
            content_type=content_type,
            now=self._clock(),
        )
        url = f"{self._endpoint.scheme}://{host}{canonical_uri}"
        content = body or None

        if self._http_client:
            return await self._http_client.request(
                method, url, headers=signed.headers, content=content
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(
                method, url, headers=signed.headers, content=content
            )
