"""Shared pytest fixtures."""

import httpx
import pytest

from riodatamine.auth.oauth2 import OAuth2Client
from riodatamine.auth.strategy import AuthRequest, RiodatamineStrategy
from riodatamine.config import RiodatamineConfig
from riodatamine.lib.hooks import hooks

CLIENT_ID = "123"
CLIENT_SECRET = "53cr3tz"


@pytest.fixture
def config():
    return RiodatamineConfig(client_id=CLIENT_ID, client_secret=CLIENT_SECRET)


@pytest.fixture
def recorded_requests():
    return []


@pytest.fixture
def make_transport(recorded_requests):
    """Factory for an httpx.MockTransport that records every request it sees."""

    def _make(handler):
        def _record(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return httpx.MockTransport(_record)

    return _make


@pytest.fixture
def offline_transport(make_transport):
    """Transport that fails any test which reaches the network."""

    def handler(request):
        raise AssertionError(f"unexpected network call to {request.url}")

    return make_transport(handler)


@pytest.fixture
def make_strategy(config, offline_transport):
    """Factory for strategies bound to a fake request."""

    def _make(params=None, cookies=None, url="http://auth.request.com/auth/riodatamine", transport=None, **config_overrides):
        strategy_config = config.model_copy(update=config_overrides) if config_overrides else config
        client = OAuth2Client(
            strategy_config.client_id,
            strategy_config.client_secret,
            client_options=strategy_config.client_options,
            token_params=strategy_config.token_params,
            transport=transport or offline_transport,
        )
        request = AuthRequest(params=params or {}, cookies=cookies or {}, url=url)
        return RiodatamineStrategy(strategy_config, request, client=client)

    return _make


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    original_filters = {k: list(v) for k, v in hooks._filters.items()}
    original_actions = {k: list(v) for k, v in hooks._actions.items()}
    yield
    hooks.clear()
    hooks._filters.update(original_filters)
    hooks._actions.update(original_actions)
