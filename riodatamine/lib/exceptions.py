import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from riodatamine.auth.errors import RiodatamineAuthError

logger = logging.getLogger(__name__)


def _json_error(status_code: int, error: str, detail: str) -> Response:
    return Response(
        content={"status_code": status_code, "error": error, "detail": detail},
        status_code=status_code,
        media_type="application/json",
    )


def auth_exception_handler(request: Request, exc: RiodatamineAuthError) -> Response:
    """Report a failed login as a 400 carrying the error's key."""
    logger.info("Riodatamine login failed (%s): %s", exc.error_key, exc)
    return _json_error(HTTP_400_BAD_REQUEST, exc.error_key, str(exc))


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _json_error(exc.status_code, "http_error", detail)


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    logger.error("Unhandled error during %s %s", request.method, request.url.path, exc_info=exc)
    return _json_error(HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal Server Error")
