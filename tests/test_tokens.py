"""Tests for signed request encoding, signing and parsing."""

import hashlib
import hmac
import json

import pytest

from riodatamine.auth.errors import (
    MalformedEncodingError,
    MalformedTokenError,
    UnsupportedAlgorithmError,
)
from riodatamine.auth.tokens import (
    base64_url_decode,
    base64_url_encode,
    create_signed_request,
    parse_signed_request,
    valid_signature,
)

SECRET = "53cr3tz"


def _sign(encoded_payload: str, secret: str = SECRET) -> str:
    digest = hmac.new(secret.encode(), encoded_payload.encode(), hashlib.sha256).digest()
    return base64_url_encode(digest)


def _encode_payload(payload) -> str:
    return base64_url_encode(json.dumps(payload).encode())


class TestBase64Url:
    def test_encode_uses_url_safe_alphabet_without_padding(self):
        assert base64_url_encode(b"\xfb\xff") == "-_8"

    def test_decode_url_safe_alphabet(self):
        assert base64_url_decode("-_8") == b"\xfb\xff"

    @pytest.mark.parametrize("raw", [b"a", b"ab", b"abc", b"abcd"])
    def test_decode_restores_padding(self, raw):
        encoded = base64_url_encode(raw)
        assert "=" not in encoded
        assert base64_url_decode(encoded) == raw

    def test_decode_accepts_already_padded_input(self):
        assert base64_url_decode("YQ==") == b"a"

    @pytest.mark.parametrize("value", ["ab*c", "a b", "+/8", "ab/c"])
    def test_decode_rejects_characters_outside_alphabet(self, value):
        with pytest.raises(MalformedEncodingError):
            base64_url_decode(value)

    def test_decode_rejects_impossible_length(self):
        with pytest.raises(MalformedEncodingError):
            base64_url_decode("A")

    def test_encoding_error_is_a_token_error(self):
        assert issubclass(MalformedEncodingError, MalformedTokenError)


class TestValidSignature:
    def test_matching_signature(self):
        signature = hmac.new(b"key", b"message", hashlib.sha256).digest()
        assert valid_signature("key", signature, "message") is True

    def test_wrong_key(self):
        signature = hmac.new(b"key", b"message", hashlib.sha256).digest()
        assert valid_signature("other", signature, "message") is False

    def test_truncated_signature(self):
        signature = hmac.new(b"key", b"message", hashlib.sha256).digest()
        assert valid_signature("key", signature[:-1], "message") is False

    def test_accepts_bytes(self):
        signature = hmac.new(b"key", b"message", hashlib.sha256).digest()
        assert valid_signature(b"key", signature, b"message") is True


class TestParseSignedRequest:
    def test_round_trip(self):
        payload = {
            "algorithm": "HMAC-SHA256",
            "oauth_token": "m4c0d3z",
            "user_id": "42",
            "issued_at": 1300000000,
        }
        token = create_signed_request(payload, SECRET)
        assert parse_signed_request(token, SECRET) == payload

    def test_create_defaults_algorithm(self):
        token = create_signed_request({"code": "abc"}, SECRET)
        assert parse_signed_request(token, SECRET) == {"algorithm": "HMAC-SHA256", "code": "abc"}

    def test_wrong_secret_returns_none(self):
        token = create_signed_request({"oauth_token": "m4c0d3z"}, SECRET)
        assert parse_signed_request(token, "not-the-secret") is None

    def test_signature_from_other_payload_returns_none(self):
        signature = create_signed_request({"user_id": "1"}, SECRET).split(".")[0]
        forged = _encode_payload({"algorithm": "HMAC-SHA256", "user_id": "2"})
        assert parse_signed_request(f"{signature}.{forged}", SECRET) is None

    def test_signature_covers_encoded_payload(self):
        """Signing the decoded JSON instead of its base64 text is not accepted."""
        raw = json.dumps({"algorithm": "HMAC-SHA256", "oauth_token": "x"})
        encoded = base64_url_encode(raw.encode())
        digest = hmac.new(SECRET.encode(), raw.encode(), hashlib.sha256).digest()
        assert parse_signed_request(f"{base64_url_encode(digest)}.{encoded}", SECRET) is None

    def test_hand_built_token(self):
        encoded = _encode_payload({"algorithm": "HMAC-SHA256", "oauth_token": "m4c0d3z"})
        result = parse_signed_request(f"{_sign(encoded)}.{encoded}", SECRET)
        assert result["oauth_token"] == "m4c0d3z"

    def test_unsupported_algorithm_with_valid_signature(self):
        encoded = _encode_payload({"algorithm": "HMAC-SHA1", "oauth_token": "x"})
        with pytest.raises(UnsupportedAlgorithmError, match="HMAC-SHA1") as exc_info:
            parse_signed_request(f"{_sign(encoded)}.{encoded}", SECRET)
        assert exc_info.value.algorithm == "HMAC-SHA1"

    def test_unsupported_algorithm_with_invalid_signature(self):
        encoded = _encode_payload({"algorithm": "none"})
        with pytest.raises(UnsupportedAlgorithmError):
            parse_signed_request(f"{_sign(encoded, 'other')}.{encoded}", SECRET)

    def test_missing_algorithm(self):
        encoded = _encode_payload({"oauth_token": "x"})
        with pytest.raises(UnsupportedAlgorithmError):
            parse_signed_request(f"{_sign(encoded)}.{encoded}", SECRET)

    @pytest.mark.parametrize("value", ["", "no-dot", ".payload", "signature.", "."])
    def test_wrong_segment_count(self, value):
        with pytest.raises(MalformedTokenError):
            parse_signed_request(value, SECRET)

    def test_extra_dot_is_malformed(self):
        token = create_signed_request({"oauth_token": "x"}, SECRET)
        with pytest.raises(MalformedEncodingError):
            parse_signed_request(token + ".extra", SECRET)

    def test_payload_not_json(self):
        encoded = base64_url_encode(b"not json")
        with pytest.raises(MalformedTokenError):
            parse_signed_request(f"{_sign(encoded)}.{encoded}", SECRET)

    def test_payload_not_an_object(self):
        encoded = _encode_payload(["HMAC-SHA256"])
        with pytest.raises(MalformedTokenError):
            parse_signed_request(f"{_sign(encoded)}.{encoded}", SECRET)
