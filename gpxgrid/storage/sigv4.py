"""AWS Signature Version 4 request signing for S3-compatible object storage.

Only header-based signing with an empty query string is implemented, which
is all the bucket driver needs for GET / PUT / DELETE of a single object.

Signing steps:
    1. payload hash   = hex(SHA256(body))
    2. canonical req  = METHOD \\n URI \\n "" \\n HEADERS \\n \\n SIGNED \\n HASH
    3. credential scope = YYYYMMDD/REGION/SERVICE/aws4_request
    4. string to sign = ALGORITHM \\n AMZ_DATE \\n SCOPE \\n hex(SHA256(canonical req))
    5. signing key    = HMAC chain over date, region, service, "aws4_request"
    6. signature      = hex(HMAC(signing key, string to sign))
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import quote

from gpxgrid.storage.base import split_key_segments

ALGORITHM = "AWS4-HMAC-SHA256"
EMPTY_PAYLOAD_HASH = hashlib.sha256(b"").hexdigest()


@dataclass(frozen=True)
class AwsCredentials:
    """Static credentials used to sign requests.

    Attributes:
        access_key_id:     Public access key id, embedded in the Credential field.
        secret_access_key: Secret used to derive the signing key.  Never logged.
        session_token:     Optional STS token, sent as x-amz-security-token.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class SignedRequest:
    """Everything produced while signing one request.

    ``headers`` is what goes on the wire (``host`` is left to the HTTP
    client); the intermediate strings are kept for debugging and tests.
    """

    method: str
    host: str
    canonical_uri: str
    headers: dict[str, str]
    signed_headers: str
    canonical_request: str
    string_to_sign: str
    authorization: str


def encode_rfc3986(value: str) -> str:
    """Percent-encode one path segment per RFC 3986.

    Everything except unreserved characters (``A-Z a-z 0-9 - _ . ~``) is
    encoded, including ``!'()*`` and ``/``.
    """
    return quote(value, safe="")


def encode_key(key: str) -> str:
    """Percent-encode every segment of a storage key, keeping ``/`` separators."""
    return "/".join(encode_rfc3986(segment) for segment in split_key_segments(key))


def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def format_amz_date(moment: datetime) -> str:
    """Format a timestamp as ``YYYYMMDDTHHMMSSZ`` in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def derive_signing_key(
    secret_access_key: str, date_stamp: str, region: str, service: str = "s3"
) -> bytes:
    """Derive the SigV4 signing key for one day / region / service.

    Args:
        secret_access_key: AWS secret access key.
        date_stamp:        ``YYYYMMDD``.
        region:            Region name, e.g. ``us-east-1``.
        service:           Service name, ``s3`` for object storage.

    Returns:
        The 32-byte kSigning key.
    """
    k_date = _hmac(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


class SigV4Signer:
    """Sign single-object requests with AWS Signature Version 4.

    Usage::

        signer = SigV4Signer(AwsCredentials("AKIA...", "secret"), region="eu-west-1")
        signed = signer.sign("GET", "bucket.s3.eu-west-1.amazonaws.com", "/key.json")
        response = await client.get(url, headers=signed.headers)
    """

    def __init__(
        self, credentials: AwsCredentials, region: str, service: str = "s3"
    ) -> None:
        self._credentials = credentials
        self._region = region
        self._service = service

    @property
    def region(self) -> str:
        return self._region

    def credential_scope(self, date_stamp: str) -> str:
        return f"{date_stamp}/{self._region}/{self._service}/aws4_request"

    def sign(
        self,
        method: str,
        host: str,
        canonical_uri: str,
        *,
        body: bytes = b"",
        content_type: str | None = None,
        extra_headers: dict[str, str] | None = None,
        now: datetime | None = None,
    ) -> SignedRequest:
        """Sign a request.

        Args:
            method:        HTTP method, e.g. ``"PUT"``.
            host:          Value of the Host header (``host[:port]``).
            canonical_uri: Already percent-encoded absolute path.
            body:          Request body; empty for GET / DELETE.
            content_type:  Signed and sent when given.
            extra_headers: Additional headers to sign and send (e.g. ``range``).
            now:           Signing time; defaults to the current UTC time.

        Returns:
            SignedRequest whose ``headers`` carry the Authorization header.
        """
        amz_date = format_amz_date(now or datetime.now(timezone.utc))
        date_stamp = amz_date[:8]
        payload_hash = sha256_hex(body)

        signing_headers: dict[str, str] = {
            "host": host,
            "x-amz-date": amz_date,
            "x-amz-content-sha256": payload_hash,
        }
        if self._credentials.session_token:
            signing_headers["x-amz-security-token"] = self._credentials.session_token
        if content_type:
            signing_headers["content-type"] = content_type
        for name, value in (extra_headers or {}).items():
            signing_headers[name.lower()] = value

        names = sorted(signing_headers)
        canonical_headers = "\n".join(
            f"{name}:{signing_headers[name].strip()}" for name in names
        )
        signed_headers = ";".join(names)

        canonical_request = "\n".join(
            [
                method.upper(),
                canonical_uri,
                "",
                f"{canonical_headers}\n",
                signed_headers,
                payload_hash,
            ]
        )

        scope = self.credential_scope(date_stamp)
        string_to_sign = "\n".join(
            [ALGORITHM, amz_date, scope, sha256_hex(canonical_request)]
        )
        signing_key = derive_signing_key(
            self._credentials.secret_access_key, date_stamp, self._region, self._service
        )
        signature = hmac.new(
            signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        authorization = (
            f"{ALGORITHM} Credential={self._credentials.access_key_id}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

        headers = {name: value for name, value in signing_headers.items() if name != "host"}
        headers["authorization"] = authorization

        return SignedRequest(
            method=method.upper(),
            host=host,
            canonical_uri=canonical_uri,
            headers=headers,
            signed_headers=signed_headers,
            canonical_request=canonical_request,
            string_to_sign=string_to_sign,
            authorization=authorization,
        )
