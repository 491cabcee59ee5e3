"""Signed request utilities.

A signed request is ``<signature>.<payload>`` where both segments use unpadded
URL-safe base64. The payload is a JSON object and the signature is an
HMAC-SHA256 digest of the *encoded* payload segment, keyed with the OAuth
client secret.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging

from riodatamine.auth.errors import (
    MalformedEncodingError,
    MalformedTokenError,
    UnsupportedAlgorithmError,
)

logger = logging.getLogger(__name__)

SIGNED_REQUEST_ALGORITHM = "HMAC-SHA256"

_URL_SAFE_TO_STANDARD = str.maketrans("-_", "+/")


def base64_url_decode(value: str) -> bytes:
    """Decode unpadded URL-safe base64.

    Raises:
        MalformedEncodingError: If ``value`` contains characters outside the
            URL-safe alphabet or has an impossible length.
    """
    if "+" in value or "/" in value:
        raise MalformedEncodingError("signed request segment is not URL-safe base64")

    value += "=" * ((4 - len(value) % 4) % 4)
    try:
        return base64.b64decode(value.translate(_URL_SAFE_TO_STANDARD), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncodingError(f"invalid base64 in signed request: {e}") from e


def base64_url_encode(value: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(value).rstrip(b"=").decode("ascii")


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def valid_signature(secret: str | bytes, signature: bytes, message: str | bytes) -> bool:
    """Check ``signature`` against HMAC-SHA256(secret, message) in constant time."""
    expected = hmac.new(_to_bytes(secret), _to_bytes(message), hashlib.sha256).digest()
    return hmac.compare_digest(expected, signature)


def create_signed_request(payload: dict, secret: str | bytes) -> str:
    """Build a signed request for ``payload``.

    ``algorithm`` defaults to HMAC-SHA256 when the payload does not set it.
    """
    payload = {"algorithm": SIGNED_REQUEST_ALGORITHM, **payload}
    encoded_payload = base64_url_encode(json.dumps(payload, separators=(",", ":")).encode())
    signature = hmac.new(_to_bytes(secret), encoded_payload.encode(), hashlib.sha256).digest()
    return f"{base64_url_encode(signature)}.{encoded_payload}"


def parse_signed_request(value: str, secret: str | bytes) -> dict | None:
    """Decode and verify a signed request.

    Returns:
        The claims dict, or ``None`` when the signature does not match.

    Raises:
        MalformedTokenError: The token does not have two non-empty segments
            or the payload is not a JSON object.
        MalformedEncodingError: A segment is not valid base64.
        UnsupportedAlgorithmError: The payload declares any algorithm other
            than HMAC-SHA256, whether or not the signature is valid.
    """
    parts = value.split(".", 1)
    if len(parts) != 2 or not all(parts):
        raise MalformedTokenError("signed request must have a signature and a payload")

    encoded_signature, encoded_payload = parts
    signature = base64_url_decode(encoded_signature)

    try:
        payload = json.loads(base64_url_decode(encoded_payload))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedTokenError(f"signed request payload is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedTokenError("signed request payload must be a JSON object")

    algorithm = payload.get("algorithm")
    if algorithm != SIGNED_REQUEST_ALGORITHM:
        raise UnsupportedAlgorithmError(algorithm)

    if not valid_signature(secret, signature, encoded_payload):
        logger.debug("Signed request signature mismatch")
        return None

    return payload
