"""ASGI application factory.

Run with ``uvicorn riodatamine.asgi:app``. Configuration comes from ``.env``
and ``app.yaml`` (see ``riodatamine.config``).
"""

import logging
from typing import Any

from litestar import Litestar, Router
from litestar.datastructures import State
from litestar.exceptions import HTTPException

from riodatamine.auth.errors import RiodatamineAuthError
from riodatamine.config import DEFAULT_REQUEST_PATH, Settings, get_settings
from riodatamine.controllers.auth import RiodatamineAuthController
from riodatamine.lib import observability
from riodatamine.lib.exceptions import (
    auth_exception_handler,
    http_exception_handler,
    internal_server_error_handler,
)

logger = logging.getLogger(__name__)

EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    RiodatamineAuthError: auth_exception_handler,
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}


def create_app(settings: Settings | None = None) -> Litestar:
    """Create the Litestar app serving the Riodatamine login routes."""
    settings = settings or get_settings()

    observability.configure(settings)
    observability.instrument_httpx()

    if settings.riodatamine is None:
        logger.warning("No riodatamine section in app.yaml; login routes will return 404")
        request_path = DEFAULT_REQUEST_PATH
    else:
        request_path = settings.riodatamine.request_path

    auth_router = Router(path=request_path, route_handlers=[RiodatamineAuthController])

    return Litestar(
        route_handlers=[auth_router],
        exception_handlers=EXCEPTION_HANDLERS,
        state=State({"settings": settings}),
        debug=settings.debug,
    )


app = observability.instrument_app(create_app())
