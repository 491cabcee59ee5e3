"""Exceptions raised by the Riodatamine authentication pipeline."""


class RiodatamineAuthError(Exception):
    """Base class for all authentication failures."""

    error_key = "authentication_failed"


class MalformedTokenError(RiodatamineAuthError):
    """A signed request is structurally invalid."""

    error_key = "malformed_signed_request"


class MalformedEncodingError(MalformedTokenError):
    """A segment is not valid unpadded URL-safe base64."""


class UnsupportedAlgorithmError(RiodatamineAuthError):
    """A signed request declares an algorithm other than HMAC-SHA256."""

    error_key = "unsupported_algorithm"

    def __init__(self, algorithm):
        self.algorithm = algorithm
        super().__init__(f"unknown algorithm: {algorithm}")


class MissingAuthorizationError(RiodatamineAuthError):
    """Neither an authorization code nor a signed request was supplied."""

    error_key = "missing_authorization"

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "must pass either a `code` parameter or a signed request "
            "(via `signed_request` parameter or a `fbsr_XXX` cookie)"
        )


class ExchangeError(RiodatamineAuthError):
    """The provider rejected or failed a token request."""

    error_key = "exchange_failed"

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ProfileFetchError(ExchangeError):
    """The provider's profile endpoint returned an error."""
