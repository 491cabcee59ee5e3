"""Riodatamine login routes.

``GET /auth/riodatamine`` starts a login; the provider (or a client already
holding a signed request) comes back to ``/auth/riodatamine/callback``.
Canvas pages POST ``signed_request`` to the callback, so it accepts both
GET and POST. The ``/auth/riodatamine`` prefix comes from the configured
``request_path`` (see ``riodatamine.asgi.create_app``).

Register an action on ``riodatamine.authenticated`` to receive the
normalized ``AuthHash``.
"""

from typing import Any

from litestar import Controller, Request, Response, get, route
from litestar.exceptions import NotFoundException
from litestar.response import Redirect
from litestar.status_codes import HTTP_200_OK

from riodatamine.auth.strategy import AuthRequest, RiodatamineStrategy
from riodatamine.config import Settings
from riodatamine.lib.hooks import AUTHENTICATED, CALLBACK_RESPONSE, hooks


def _get_strategy(request: Request, form_data: dict[str, Any] | None = None) -> RiodatamineStrategy:
    """Build a fresh strategy for this request."""
    settings: Settings = request.app.state.settings
    if settings.riodatamine is None:
        raise NotFoundException("Provider riodatamine not configured")

    params = dict(request.query_params)
    if form_data:
        params.update(form_data)

    auth_request = AuthRequest(
        params=params,
        cookies=dict(request.cookies),
        url=str(request.url),
        env={"root_path": request.scope.get("root_path", "")},
    )
    return RiodatamineStrategy(settings.riodatamine, auth_request)


class RiodatamineAuthController(Controller):
    path = "/"

    @get("/")
    async def login(self, request: Request) -> Redirect:
        """Redirect to the provider's consent screen, or straight to the callback."""
        strategy = _get_strategy(request)
        return Redirect(path=strategy.request_phase())

    @route("/callback", http_method=["GET", "POST"], status_code=HTTP_200_OK)
    async def callback(self, request: Request) -> Response:
        """Finish the login and hand the auth hash to the host application."""
        form_data = None
        if request.method == "POST":
            # File uploads are not credentials
            form = await request.form()
            form_data = {key: value for key, value in form.items() if isinstance(value, str)}

        strategy = _get_strategy(request, form_data)
        auth_hash = await strategy.callback_phase()

        await hooks.do_action(AUTHENTICATED, auth_hash, request)

        response = Redirect(path=strategy.config.success_redirect)
        return await hooks.apply_filters(CALLBACK_RESPONSE, response, auth_hash, request)
