"""Minimal async OAuth2 client for the authorization-code grant."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, urlencode, urljoin

import httpx

from riodatamine.auth.errors import ExchangeError, ProfileFetchError
from riodatamine.config import AccessTokenOptions, ClientOptions, TokenParams
from riodatamine.lib.observability import span

logger = logging.getLogger(__name__)


def _parse_body(text: str, content_type: str, parse: str | None = None) -> Any:
    """Decode a response body as JSON or as a query string."""
    if parse is None:
        parse = "json" if "json" in content_type else "query"
    if parse == "json":
        return json.loads(text) if text else {}
    return dict(parse_qsl(text, keep_blank_values=True))


@dataclass
class OAuth2Response:
    """Response from an authenticated API call."""

    status_code: int
    headers: dict[str, str]
    text: str

    @property
    def parsed(self) -> Any:
        return _parse_body(self.text, self.headers.get("content-type", ""))


class OAuth2Client:
    """Talks to the provider's authorize and token endpoints."""

    def __init__(
        self,
        id: str,
        secret: str,
        client_options: ClientOptions | None = None,
        token_params: TokenParams | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.id = id
        self.secret = secret
        self.options = client_options if client_options is not None else ClientOptions()
        self.token_params = token_params if token_params is not None else TokenParams()
        self.timeout = timeout
        self.transport = transport

    @property
    def site(self) -> str:
        return self.options.site

    def resolve_url(self, url: str) -> str:
        """Resolve a path relative to the provider site; absolute URLs pass through."""
        return urljoin(self.site.rstrip("/") + "/", url)

    def authorize_url(self, params: dict[str, Any]) -> str:
        query = urlencode({"client_id": self.id, "response_type": "code", **params})
        return f"{self.resolve_url(self.options.authorize_url)}?{query}"

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        token_options: AccessTokenOptions | None = None,
    ) -> AccessToken:
        """Exchange an authorization code for an access token.

        ``redirect_uri`` must equal the value sent during the authorize step,
        including the empty string.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self.id,
            "client_secret": self.secret,
        }
        token_url = self.resolve_url(self.options.token_url)

        with span("riodatamine.exchange_code", token_url=token_url):
            try:
                async with self.http_client() as client:
                    response = await client.post(
                        token_url, data=data, headers={"Accept": "application/json"}
                    )
            except httpx.HTTPError as e:
                raise ExchangeError(f"Token request failed: {e}") from e

        if not response.is_success:
            logger.warning("Token exchange rejected with status %s", response.status_code)
            raise ExchangeError(
                f"Failed to exchange code for tokens: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            tokens = _parse_body(
                response.text,
                response.headers.get("content-type", ""),
                self.token_params.parse,
            )
        except ValueError as e:
            raise ExchangeError(
                f"Unparseable token response: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise ExchangeError(
                "No access token received",
                status_code=response.status_code,
                body=response.text,
            )

        return AccessToken.from_response(self, tokens, token_options)


@dataclass
class AccessToken:
    """A bearer token plus whatever metadata came with it."""

    client: OAuth2Client
    token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    expires_at: int | None = None
    params: dict[str, Any] = field(default_factory=dict)
    options: AccessTokenOptions = field(default_factory=AccessTokenOptions)

    def __post_init__(self):
        if self.expires_at is None and self.expires_in:
            self.expires_at = int(time.time()) + int(self.expires_in)

    @classmethod
    def from_response(
        cls,
        client: OAuth2Client,
        data: dict[str, Any],
        options: AccessTokenOptions | None = None,
    ) -> AccessToken:
        """Build a token from a token-endpoint response.

        Legacy endpoints report the lifetime as ``expires`` rather than
        ``expires_in``; both are treated as seconds from now.
        """
        params = dict(data)
        token = params.pop("access_token")
        refresh_token = params.pop("refresh_token", None) or None
        expires_in = params.pop("expires_in", None) or params.pop("expires", None)
        expires_at = params.pop("expires_at", None)
        return cls(
            client=client,
            token=token,
            refresh_token=refresh_token,
            expires_in=int(expires_in) if expires_in else None,
            expires_at=int(expires_at) if expires_at else None,
            params=params,
            options=options if options is not None else AccessTokenOptions(),
        )

    @property
    def expires(self) -> bool:
        return self.expires_at is not None

    def _auth_kwargs(self) -> dict[str, Any]:
        if self.options.mode == "query":
            return {"params": {self.options.param_name: self.token}}
        return {"headers": {"Authorization": self.options.header_format % self.token}}

    async def get(self, path: str) -> OAuth2Response:
        """GET a provider API path with this token."""
        url = self.client.resolve_url(path)
        with span("riodatamine.api_get", url=url):
            try:
                async with self.client.http_client() as client:
                    response = await client.get(url, **self._auth_kwargs())
            except httpx.HTTPError as e:
                raise ProfileFetchError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            raise ProfileFetchError(
                f"Failed to fetch {path}",
                status_code=response.status_code,
                body=response.text,
            )

        return OAuth2Response(
            status_code=response.status_code,
            headers=dict(response.headers),
            text=response.text,
        )
