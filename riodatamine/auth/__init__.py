from riodatamine.auth.errors import (
    ExchangeError,
    MalformedEncodingError,
    MalformedTokenError,
    MissingAuthorizationError,
    ProfileFetchError,
    RiodatamineAuthError,
    UnsupportedAlgorithmError,
)
from riodatamine.auth.signed_request import AuthorizationMode, CredentialSource, classify
from riodatamine.auth.strategy import AuthHash, AuthRequest, RiodatamineStrategy
from riodatamine.auth.tokens import create_signed_request, parse_signed_request

__all__ = [
    "AuthHash",
    "AuthRequest",
    "AuthorizationMode",
    "CredentialSource",
    "ExchangeError",
    "MalformedEncodingError",
    "MalformedTokenError",
    "MissingAuthorizationError",
    "ProfileFetchError",
    "RiodatamineAuthError",
    "RiodatamineStrategy",
    "UnsupportedAlgorithmError",
    "classify",
    "create_signed_request",
    "parse_signed_request",
]
