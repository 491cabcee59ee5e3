"""Riodatamine login strategy.

One ``RiodatamineStrategy`` is created per request. It resolves a signed
request from the ``signed_request`` param or the ``fbsr_<client_id>`` cookie,
then obtains an access token in one of three ways:

1. adopt the ``oauth_token`` embedded in a verified signed request,
2. exchange a ``code`` request param (standard server-side flow),
3. exchange the ``code`` embedded in a verified signed request.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from functools import cached_property
from typing import Any, Iterator
from urllib.parse import urlencode, urlsplit

from riodatamine.auth.errors import (
    MalformedTokenError,
    MissingAuthorizationError,
    ProfileFetchError,
)
from riodatamine.auth.oauth2 import AccessToken, OAuth2Client
from riodatamine.auth.signed_request import (
    SIGNED_REQUEST_PARAM,
    AuthorizationMode,
    CredentialSource,
    classify,
    resolve_raw_signed_request,
)
from riodatamine.auth.tokens import parse_signed_request
from riodatamine.config import RiodatamineConfig
from riodatamine.lib.observability import span
from riodatamine.lib.prune import prune

logger = logging.getLogger(__name__)


@dataclass
class AuthRequest:
    """The parts of an inbound HTTP request the strategy reads."""

    params: dict[str, Any] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    url: str = ""
    env: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Private copies; the strategy mutates params during a code exchange
        self.params = dict(self.params)
        self.cookies = dict(self.cookies)


@dataclass
class AuthHash:
    """Normalized result of a successful login."""

    provider: str
    uid: str | None
    info: dict[str, Any]
    credentials: dict[str, Any]
    extra: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RiodatamineStrategy:
    name = "riodatamine"

    def __init__(
        self,
        config: RiodatamineConfig,
        request: AuthRequest,
        client: OAuth2Client | None = None,
    ):
        self.config = config
        self.request = request
        self.client = client or OAuth2Client(
            config.client_id,
            config.client_secret,
            client_options=config.client_options,
            token_params=config.token_params,
            timeout=config.timeout,
        )
        self.access_token: AccessToken | None = None
        self._raw_info: dict[str, Any] | None = None

    @cached_property
    def raw_signed_request(self) -> tuple[str, CredentialSource] | None:
        return resolve_raw_signed_request(
            self.request.params, self.request.cookies, self.client.id
        )

    @cached_property
    def signed_request(self) -> dict[str, Any] | None:
        """The verified signed request claims, or None.

        Malformed tokens are treated as absent. An unsupported algorithm is
        raised to the caller.
        """
        if self.raw_signed_request is None:
            return None

        value, source = self.raw_signed_request
        try:
            return parse_signed_request(value, self.client.secret)
        except MalformedTokenError as e:
            logger.warning("Ignoring malformed signed request from %s: %s", source.value, e)
            return None

    @cached_property
    def authorization_mode(self) -> AuthorizationMode:
        return classify(self.signed_request, self.request.params)

    @property
    def callback_url(self) -> str:
        if self.config.callback_url:
            return self.config.callback_url

        parts = urlsplit(self.request.url)
        root_path = self.request.env.get("root_path", "")
        callback_path = self.config.callback_path or f"{self.config.request_path.rstrip('/')}/callback"
        return f"{parts.scheme}://{parts.netloc}{root_path}{callback_path}"

    def authorize_params(self) -> dict[str, str]:
        """Authorize-step params, forwarded from the request when present.

        e.g. ``/auth/riodatamine?display=popup&state=ABC``
        """
        params = {}
        for key in self.config.authorize_options:
            value = self.request.params.get(key)
            if value:
                params[key] = value
        if not params.get("scope"):
            params["scope"] = self.config.scope
        return params

    def request_phase(self) -> str:
        """Return the URL the user agent should be redirected to."""
        if self.authorization_mode is AuthorizationMode.DIRECT_TOKEN:
            # We already hold an access token, so skip the consent step and
            # pass the signed request straight to the callback
            params = {SIGNED_REQUEST_PARAM: self.raw_signed_request[0]}
            state = self.request.params.get("state")
            if state:
                params["state"] = state

            url = self.callback_url
            if "?" not in url:
                url += "?"
            elif not url.endswith(("?", "&")):
                url += "&"
            return url + urlencode(params)

        return self.client.authorize_url(
            {"redirect_uri": self.callback_url, **self.authorize_params()}
        )

    @contextmanager
    def _authorization_code_from_signed_request(self) -> Iterator[str]:
        """Expose the signed request's code as the ``code`` param.

        Yields the redirect URI for the exchange. The provider sets an empty
        redirect_uri during the embedded authorize step and the token request
        must match it exactly.
        """
        params = self.request.params
        had_code = "code" in params
        previous = params.get("code")
        params["code"] = self.signed_request["code"]
        try:
            yield ""
        finally:
            if had_code:
                params["code"] = previous
            else:
                params.pop("code", None)

    def _access_token_from_signed_request(self) -> AccessToken:
        claims = dict(self.signed_request)
        token = claims.pop("oauth_token")
        # Absolute unix timestamp; 0 means the token does not expire
        expires = claims.pop("expires", None)
        try:
            expires_at = int(float(expires)) if expires else None
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedTokenError(f"invalid expires claim: {expires!r}") from e
        return AccessToken(
            client=self.client,
            token=token,
            expires_at=expires_at,
            params=claims,
            options=self.config.access_token_options,
        )

    async def build_access_token(self) -> AccessToken:
        mode = self.authorization_mode
        options = self.config.access_token_options
        logger.debug("Building access token via %s", mode.value)

        if mode is AuthorizationMode.DIRECT_TOKEN:
            self.access_token = self._access_token_from_signed_request()
        elif mode is AuthorizationMode.CODE_FROM_REQUEST:
            self.access_token = await self.client.exchange_code(
                self.request.params["code"], self.callback_url, options
            )
        elif mode is AuthorizationMode.CODE_FROM_SIGNED_PAYLOAD:
            with self._authorization_code_from_signed_request() as redirect_uri:
                self.access_token = await self.client.exchange_code(
                    self.request.params["code"], redirect_uri, options
                )
        else:
            raise MissingAuthorizationError()

        return self.access_token

    def _require_access_token(self) -> AccessToken:
        if self.access_token is None:
            raise RuntimeError("build_access_token() must be awaited first")
        return self.access_token

    async def raw_info(self) -> dict[str, Any]:
        if self._raw_info is None:
            response = await self._require_access_token().get(self.config.profile_path)
            try:
                parsed = response.parsed
            except ValueError as e:
                raise ProfileFetchError(
                    f"Unparseable response from {self.config.profile_path}: {e}",
                    status_code=response.status_code,
                    body=response.text,
                ) from e
            self._raw_info = parsed if isinstance(parsed, dict) else {}
        return self._raw_info

    async def uid(self) -> str | None:
        user_id = (await self.raw_info()).get("id")
        return str(user_id) if user_id is not None else None

    async def info(self) -> dict[str, Any]:
        raw_info = await self.raw_info()
        return prune({"name": raw_info.get("name")})

    def credentials(self) -> dict[str, Any]:
        token = self._require_access_token()
        credentials = {"token": token.token}
        if token.expires and token.refresh_token:
            credentials["refresh_token"] = token.refresh_token
        if token.expires:
            credentials["expires_at"] = token.expires_at
        credentials["expires"] = bool(token.expires)
        return prune(credentials)

    async def extra(self) -> dict[str, Any]:
        return prune({"raw_info": await self.raw_info()})

    async def callback_phase(self) -> AuthHash:
        with span("riodatamine.callback_phase", mode=self.authorization_mode.value):
            await self.build_access_token()
            return AuthHash(
                provider=self.name,
                uid=await self.uid(),
                info=await self.info(),
                credentials=self.credentials(),
                extra=await self.extra(),
            )
