import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so YAML interpolation can see its variables
load_dotenv(Path.cwd() / ".env")

# Matches $VAR_NAME references in app.yaml values
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

DEFAULT_SCOPE = "email,offline_access"
DEFAULT_REQUEST_PATH = "/auth/riodatamine"


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    return Path(os.environ.get("RIODATAMINE_CONFIG", Path.cwd() / "app.yaml"))


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class ClientOptions(BaseModel):
    """Provider endpoints."""

    site: str = "http://api.riodatamine.com.br"
    authorize_url: str = "/oauth/authorize"
    token_url: str = "/oauth/access_token"


class TokenParams(BaseModel):
    """How the token endpoint's response body is parsed."""

    parse: Literal["query", "json"] = "query"


class AccessTokenOptions(BaseModel):
    """How an access token is presented to the provider's API."""

    header_format: str = "OAuth %s"
    param_name: str = "access_token"
    mode: Literal["header", "query"] = "header"


class RiodatamineConfig(BaseModel):
    """Riodatamine OAuth client configuration."""

    client_id: str
    client_secret: str
    client_options: ClientOptions = ClientOptions()
    token_params: TokenParams = TokenParams()
    access_token_options: AccessTokenOptions = AccessTokenOptions()
    scope: str = DEFAULT_SCOPE
    authorize_options: list[str] = ["display", "state", "scope"]
    callback_url: str | None = None
    request_path: str = DEFAULT_REQUEST_PATH
    # Defaults to request_path + "/callback"
    callback_path: str | None = None
    profile_path: str = "/me"
    success_redirect: str = "/"
    timeout: float = 10.0


class LogfireConfig(BaseModel):
    """Pydantic Logfire observability configuration."""

    enabled: bool = False
    service_name: str = "riodatamine"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    debug: bool = False

    # Loaded from app.yaml
    riodatamine: RiodatamineConfig | None = None
    logfire: LogfireConfig = LogfireConfig()


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}

    if "riodatamine" in app_config:
        updates["riodatamine"] = RiodatamineConfig(**app_config["riodatamine"])

    if "logfire" in app_config:
        updates["logfire"] = LogfireConfig(**app_config["logfire"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
