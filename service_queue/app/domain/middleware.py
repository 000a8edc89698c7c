"""
HTTP integration of the queue gateway.
"""

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shared.logging import get_logger
from .gateway import GatewayDecision, GatewayRequest, Outcome, QueueGateway

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Cache-Control": "no-store",
}


def request_target(request: Request) -> str:
    """The request target as the client sent it (path plus query).

    ASGI servers reduce an absolute-form target (``GET http://host/x``) to its
    path before the app sees it, so over HTTP only the scheme-relative forms
    (``//host``, ``/\\host``) reach the redirect guard. ``scheme:`` targets
    are still refused when the gateway is driven directly.
    """
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def to_gateway_request(request: Request) -> GatewayRequest:
    return GatewayRequest(
        path=request.url.path,
        target=request_target(request),
        headers=request.headers,
        cookies=request.cookies,
    )


def apply_cookies(response: Response, decision: GatewayDecision, secure: bool) -> None:
    for cookie in decision.set_cookies:
        response.set_cookie(
            cookie.name,
            cookie.value,
            expires=datetime.fromtimestamp(cookie.expires_at, tz=timezone.utc),
            path="/",
            secure=secure,
            httponly=True,
            samesite="lax",
        )
    for name in decision.clear_cookies:
        response.delete_cookie(name, path="/", secure=secure, httponly=True, samesite="lax")


class QueueGatewayMiddleware(BaseHTTPMiddleware):
    """Runs every request through the gateway before the hosted application."""

    def __init__(self, app, gateway: QueueGateway):
        super().__init__(app)
        self.gateway = gateway
        self.logger = get_logger("gateway.middleware")

    async def dispatch(self, request: Request, call_next):
        decision = await self.gateway.evaluate(to_gateway_request(request))

        if decision.outcome is Outcome.BYPASS:
            return await call_next(request)

        if decision.outcome is Outcome.CONTINUE:
            response = await call_next(request)
        elif decision.outcome is Outcome.REDIRECT:
            response = RedirectResponse(decision.redirect_to or "/", status_code=302)
        else:
            response = HTMLResponse(decision.body or "", status_code=200, headers=SECURITY_HEADERS)

        apply_cookies(response, decision, secure=self.gateway.settings.cookie_secure)
        return response


def install_gateway(app: FastAPI, gateway: QueueGateway) -> None:
    """Put ``gateway`` in front of every route of ``app``."""
    app.add_middleware(QueueGatewayMiddleware, gateway=gateway)
