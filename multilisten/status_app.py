"""
The app served when no other app is given on the command line.
It only reports what is running, which is enough to check that the listeners are up.
"""

from typing import cast

from hypercorn.typing import ASGIFramework
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route


def make_status_asgi_app(name: str, version: str) -> ASGIFramework:
    async def status(_request: Request) -> Response:
        return JSONResponse({"name": name, "version": version})

    async def ping(_request: Request) -> Response:
        return PlainTextResponse("pong")

    routes = [
        Route("/", status),
        Route("/-/ping", ping),
    ]

    app = Starlette(routes=routes)

    # We don't have a typing package shared between Starlette and Hypercorn,
    # so this will have to do
    return cast("ASGIFramework", app)
