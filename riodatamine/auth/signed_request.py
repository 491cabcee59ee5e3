"""Locating signed requests and choosing how a callback gets its access token."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

SIGNED_REQUEST_PARAM = "signed_request"
SIGNED_REQUEST_COOKIE_PREFIX = "fbsr_"


class CredentialSource(Enum):
    """Where a raw signed request was found."""

    REQUEST_PARAMETER = "request_parameter"
    COOKIE = "cookie"


class AuthorizationMode(Enum):
    """How the callback phase obtains its access token."""

    DIRECT_TOKEN = "direct_token"
    CODE_FROM_REQUEST = "code_from_request"
    CODE_FROM_SIGNED_PAYLOAD = "code_from_signed_payload"
    UNAVAILABLE = "unavailable"


def signed_request_cookie_name(client_id: str) -> str:
    return f"{SIGNED_REQUEST_COOKIE_PREFIX}{client_id}"


def resolve_raw_signed_request(
    params: Mapping[str, Any],
    cookies: Mapping[str, Any],
    client_id: str,
) -> tuple[str, CredentialSource] | None:
    """Find a raw signed request, preferring the request parameter.

    1. the ``signed_request`` param (server-side flow from canvas pages)
    2. the ``fbsr_<client_id>`` cookie (client-side flow via the JS SDK)
    """
    value = params.get(SIGNED_REQUEST_PARAM)
    if value:
        return value, CredentialSource.REQUEST_PARAMETER

    value = cookies.get(signed_request_cookie_name(client_id))
    if value:
        return value, CredentialSource.COOKIE

    return None


def classify(
    signed_payload: Mapping[str, Any] | None,
    params: Mapping[str, Any],
) -> AuthorizationMode:
    """Pick the authorization mode for a request.

    An embedded access token always wins. Otherwise a ``code`` request param
    (manual callback from the standard server-side flow) beats a code carried
    by the signed request.
    """
    if signed_payload and signed_payload.get("oauth_token"):
        return AuthorizationMode.DIRECT_TOKEN
    if params.get("code"):
        return AuthorizationMode.CODE_FROM_REQUEST
    if signed_payload and signed_payload.get("code"):
        return AuthorizationMode.CODE_FROM_SIGNED_PAYLOAD
    return AuthorizationMode.UNAVAILABLE
