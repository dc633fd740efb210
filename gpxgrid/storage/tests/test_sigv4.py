"""Tests for the SigV4 signer against the published AWS S3 signing examples."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gpxgrid.storage.sigv4 import (
    EMPTY_PAYLOAD_HASH,
    AwsCredentials,
    SigV4Signer,
    derive_signing_key,
    encode_key,
    encode_rfc3986,
    format_amz_date,
    sha256_hex,
)
from gpxgrid.storage.tests.conftest import FIXED_NOW, TEST_ACCESS_KEY, TEST_SECRET_KEY

EXAMPLE_HOST = "examplebucket.s3.amazonaws.com"


@pytest.fixture
def signer(credentials: AwsCredentials) -> SigV4Signer:
    return SigV4Signer(credentials, region="us-east-1")


class TestPrimitives:
    def test_empty_payload_hash(self) -> None:
        assert EMPTY_PAYLOAD_HASH == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
        assert sha256_hex(b"") == EMPTY_PAYLOAD_HASH

    def test_amz_date_format(self) -> None:
        assert format_amz_date(datetime(2013, 5, 24, 1, 2, 3)) == "20130524T010203Z"

    def test_amz_date_converts_to_utc(self) -> None:
        cet = timezone(timedelta(hours=2))
        assert format_amz_date(datetime(2013, 5, 24, 2, 0, 0, tzinfo=cet)) == "20130524T000000Z"

    def test_derived_signing_key_matches_aws_example(self) -> None:
        # Key-derivation example from the AWS General Reference (IAM service).
        key = derive_signing_key(
            "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY", "20120215", "us-east-1", "iam"
        )
        assert key.hex() == "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"

    @pytest.mark.parametrize(
        ("raw", "encoded"),
        [
            ("plain-name_1.~x", "plain-name_1.~x"),
            ("a b", "a%20b"),
            ("it's(1)*!", "it%27s%281%29%2A%21"),
            ("test$file.text", "test%24file.text"),
            ("café", "caf%C3%A9"),
            ("a+b=c&d", "a%2Bb%3Dc%26d"),
        ],
    )
    def test_rfc3986_segment_encoding(self, raw: str, encoded: str) -> None:
        assert encode_rfc3986(raw) == encoded

    def test_encode_key_keeps_separators(self) -> None:
        assert encode_key("/users/a b/it's.json") == "users/a%20b/it%27s.json"


class TestAwsExamples:
    def test_get_object_example(self, signer: SigV4Signer) -> None:
        signed = signer.sign(
            "GET",
            EXAMPLE_HOST,
            "/test.txt",
            extra_headers={"Range": "bytes=0-9"},
            now=FIXED_NOW,
        )

        assert signed.canonical_request == "\n".join(
            [
                "GET",
                "/test.txt",
                "",
                f"host:{EXAMPLE_HOST}",
                "range:bytes=0-9",
                f"x-amz-content-sha256:{EMPTY_PAYLOAD_HASH}",
                "x-amz-date:20130524T000000Z",
                "",
                "host;range;x-amz-content-sha256;x-amz-date",
                EMPTY_PAYLOAD_HASH,
            ]
        )
        assert signed.authorization == (
            f"AWS4-HMAC-SHA256 Credential={TEST_ACCESS_KEY}/20130524/us-east-1/s3/aws4_request, "
            "SignedHeaders=host;range;x-amz-content-sha256;x-amz-date, "
            "Signature=f0e8bdb87c964420e857bd35b5d6ed310bd44f0170aba48dd91039c6036bdb41"
        )

    def test_put_object_example(self, signer: SigV4Signer) -> None:
        body = b"Welcome to Amazon S3."
        signed = signer.sign(
            "PUT",
            EXAMPLE_HOST,
            "/" + encode_key("test$file.text"),
            body=body,
            extra_headers={
                "Date": "Fri, 24 May 2013 00:00:00 GMT",
                "x-amz-storage-class": "REDUCED_REDUNDANCY",
            },
            now=FIXED_NOW,
        )

        assert signed.headers["x-amz-content-sha256"] == (
            "44ce7dd67c959e0d3524ffac1771dfbba87d2b6b4b4e99e42034a8b803f8b072"
        )
        assert signed.signed_headers == (
            "date;host;x-amz-content-sha256;x-amz-date;x-amz-storage-class"
        )
        assert signed.authorization.endswith(
            "Signature=98ad721746da40c64f1a55b78f14c238d841ea1380cd77a1b5971af0ece108bd"
        )


class TestSignerHeaders:
    def test_minimal_signed_header_set(self, signer: SigV4Signer) -> None:
        signed = signer.sign("DELETE", EXAMPLE_HOST, "/k", now=FIXED_NOW)
        assert signed.signed_headers == "host;x-amz-content-sha256;x-amz-date"
        assert "host" not in signed.headers
        assert signed.headers["x-amz-date"] == "20130524T000000Z"
        assert signed.headers["authorization"] == signed.authorization

    def test_string_to_sign_layout(self, signer: SigV4Signer) -> None:
        signed = signer.sign("GET", EXAMPLE_HOST, "/k", now=FIXED_NOW)
        lines = signed.string_to_sign.split("\n")
        assert lines[:3] == [
            "AWS4-HMAC-SHA256",
            "20130524T000000Z",
            "20130524/us-east-1/s3/aws4_request",
        ]
        assert lines[3] == sha256_hex(signed.canonical_request)

    def test_session_token_and_content_type_are_signed(self) -> None:
        signer = SigV4Signer(
            AwsCredentials(TEST_ACCESS_KEY, TEST_SECRET_KEY, session_token="  tok  "),
            region="eu-west-1",
        )
        signed = signer.sign(
            "PUT", EXAMPLE_HOST, "/k", body=b"{}", content_type="application/json", now=FIXED_NOW
        )
        assert signed.signed_headers == (
            "content-type;host;x-amz-content-sha256;x-amz-date;x-amz-security-token"
        )
        # Values are trimmed in the canonical form only.
        assert "x-amz-security-token:tok\n" in signed.canonical_request
        assert signed.headers["content-type"] == "application/json"
        assert "/eu-west-1/s3/aws4_request" in signed.authorization

    def test_signature_changes_with_body(self, signer: SigV4Signer) -> None:
        a = signer.sign("PUT", EXAMPLE_HOST, "/k", body=b"a", now=FIXED_NOW)
        b = signer.sign("PUT", EXAMPLE_HOST, "/k", body=b"b", now=FIXED_NOW)
        assert a.authorization != b.authorization

    def test_secret_not_in_repr(self) -> None:
        creds = AwsCredentials(TEST_ACCESS_KEY, TEST_SECRET_KEY, session_token="tok")
        assert TEST_SECRET_KEY not in repr(creds)
        assert "tok" not in repr(creds)
