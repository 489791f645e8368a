"""Starlette ASGI binding.

A single POST route hands the raw body to ``Server.call``.  Protocol
errors travel inside the JSON body, so every answer is HTTP 200; a call
that produces nothing (notifications only) answers ``null``.
"""

from __future__ import annotations

import logging

import anyio
from starlette.applications import Starlette
from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from rpcdispatch.context import Context
from rpcdispatch.server import Server

log = logging.getLogger(__name__)

MEDIA_TYPE = "application/json; charset=UTF-8"


async def _watch_disconnect(request: Request, ctx: Context) -> None:
    """Cancel *ctx* once the client goes away."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            ctx.cancel()
            return


def rpc_endpoint(server: Server):
    """Build the ``/rpc`` handler bound to *server*."""

    async def endpoint(request: Request) -> JSONResponse:
        try:
            body = await request.body()
        except ClientDisconnect as exc:
            log.warning("reading request body failed: %r", exc)
            body = b""

        ctx = Context(request=request)
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_disconnect, request, ctx)
            out = await server.call(ctx, body)
            tg.cancel_scope.cancel()

        return JSONResponse(out, media_type=MEDIA_TYPE)

    return endpoint


# ── App factory ──────────────────────────────────────────────────────


def create_app(server: Server, path: str = "/rpc", debug: bool = False) -> Starlette:
    return Starlette(
        debug=debug,
        routes=[Route(path, rpc_endpoint(server), methods=["POST"])],
    )
