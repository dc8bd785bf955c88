"""
Doc Up HTTP API.

Mounted behind the chat server, which forwards requests on behalf of
a logged-in user and sets the Mattermost-User-ID header.

Endpoints:
    POST /create   — Create a documentation issue from a post
    GET  /health   — Liveness; no identity required

/create body:
    {"type": "admin"|"developer"|"handbook", "title": ..., "body": ..., "post_id": ...}

Status codes only; no error payloads.
    200 issue created and reply posted
    401 no Mattermost-User-ID header
    400 type doesn't map to a configured repository
    500 anything else (logged)
"""

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from docup.handler import RequestError
from docup.plugin import Plugin

USER_ID_HEADER = "Mattermost-User-ID"


class RequireUserID(BaseHTTPMiddleware):
    """Rejects requests the chat server didn't vouch for."""

    def __init__(self, app, protected: tuple[str, ...] = ("/create",)):
        super().__init__(app)
        self.protected = protected

    async def dispatch(self, request: Request, call_next):
        if request.url.path not in self.protected:
            return await call_next(request)

        if not request.headers.get(USER_ID_HEADER):
            return PlainTextResponse("Not authorized", status_code=401)

        return await call_next(request)


def create_rest_app(plugin: Plugin) -> Starlette:
    """Create the HTTP app serving an (activated) plugin."""

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "ok",
            "service": "docup",
            "activated": plugin.activated,
        })

    async def create_issue(request: Request) -> Response:
        handler = plugin.handler
        if handler is None:
            return PlainTextResponse("Plugin not activated", status_code=500)

        user_id = request.headers.get(USER_ID_HEADER, "")
        raw = await request.body()
        try:
            await run_in_threadpool(handler.handle, user_id, raw)
        except RequestError as exc:
            return Response(status_code=exc.status_code)
        return Response(status_code=200)

    return Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/create", create_issue, methods=["POST"]),
        ],
        middleware=[
            Middleware(RequireUserID),
        ],
    )
