"""Tests for ledger token signing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json

import pytest

from src.ledger.errors import EncodingError
from src.ledger.models import Credentials
from src.ledger.signer import AuthSigner, dump_body, urlsafe_b64
from tests.conftest import make_credentials


def _expected_token(app_id: str, app_key: str, dev_key: str, body: bytes) -> str:
    def safe(raw: bytes) -> str:
        return base64.b64encode(raw).decode().replace("=", "").replace("/", "_").replace("+", "-")

    metadata = safe(json.dumps({"id": app_id}, separators=(",", ":")).encode())
    first = base64.b64encode(
        hmac.new(dev_key.encode(), app_key.encode(), hashlib.sha256).digest(),
    ).decode()
    second = safe(hmac.new(first.encode(), body, hashlib.sha256).digest())
    return f"{metadata}.{second}"


class TestUrlsafeB64:
    def test_strips_padding_and_swaps_alphabet(self) -> None:
        # b"\xfb\xff" encodes to "+/8=" in standard Base64
        assert urlsafe_b64(b"\xfb\xff") == "-_8"

    def test_plain_bytes(self) -> None:
        assert urlsafe_b64(b"abc") == "YWJj"


class TestDumpBody:
    def test_compact_separators(self) -> None:
        assert dump_body({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'

    def test_preserves_key_order(self) -> None:
        assert dump_body({"pesan": "x", "kode_reseller": "R1"}) == b'{"pesan":"x","kode_reseller":"R1"}'

    def test_non_ascii_kept_as_utf8(self) -> None:
        assert dump_body({"pesan": "héllo"}) == '{"pesan":"héllo"}'.encode()

    def test_unserializable_raises_encoding_error(self) -> None:
        with pytest.raises(EncodingError):
            dump_body({"x": object()})

    def test_nan_raises_encoding_error(self) -> None:
        with pytest.raises(EncodingError):
            dump_body({"x": float("nan")})


class TestAuthSigner:
    def test_matches_two_stage_hmac(self) -> None:
        creds = make_credentials(application_key="k1", developer_key="d1")
        body = b'{"phone":"08123456789"}'
        token = AuthSigner(creds).sign(body)
        assert token == _expected_token("OtomaX.Addon", "k1", "d1", body)

    def test_known_answer(self) -> None:
        creds = Credentials(
            application_id="OtomaX.Addon",
            application_key="app-key",
            developer_key="dev-key",
        )
        token = AuthSigner(creds).sign(b'{"phone":"08123456789"}')
        # first-stage key is the standard-alphabet, padded "WMUbHjljwK7/F3OPcWnNjnCQv9BFk1bm4CWBwwh/SJ8="
        assert token == (
            "eyJpZCI6Ik90b21hWC5BZGRvbiJ9"
            ".3z3iKSs8juKBWjMkz36Ykq8Wcp0yd_vML1n8fe4YG84"
        )

    def test_deterministic(self) -> None:
        signer = AuthSigner(make_credentials())
        assert signer.sign(b"{}") == signer.sign(b"{}")

    def test_token_is_url_safe(self) -> None:
        signer = AuthSigner(make_credentials())
        for i in range(50):
            token = signer.sign(f'{{"n":{i}}}'.encode())
            assert "=" not in token
            assert "+" not in token
            assert "/" not in token

    def test_token_shape(self) -> None:
        token = AuthSigner(make_credentials()).sign(b"{}")
        metadata, _, signature = token.partition(".")
        assert signature
        padded = metadata.replace("_", "/").replace("-", "+") + "=" * (-len(metadata) % 4)
        assert json.loads(base64.b64decode(padded)) == {"id": "OtomaX.Addon"}

    def test_different_bodies_different_tokens(self) -> None:
        signer = AuthSigner(make_credentials())
        assert signer.sign(b'{"a":1}') != signer.sign(b'{"a":2}')

    def test_different_keys_different_tokens(self) -> None:
        a = AuthSigner(make_credentials(developer_key="one")).sign(b"{}")
        b = AuthSigner(make_credentials(developer_key="two")).sign(b"{}")
        assert a.split(".")[0] == b.split(".")[0]
        assert a != b
