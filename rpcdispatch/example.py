"""Example calculator service.

Run directly::

    python -m rpcdispatch.example --port 8090

then::

    curl -d '{"jsonrpc":"2.0","method":"Subtract","params":[5,2],"id":1}' \
        http://127.0.0.1:8090/rpc
"""

from __future__ import annotations

import argparse
import logging

from rpcdispatch.config import Settings
from rpcdispatch.context import Context
from rpcdispatch.asgi import create_app
from rpcdispatch.jsonrpc import ServerError
from rpcdispatch.server import Server

log = logging.getLogger(__name__)


class Calculator:
    def Add(self, ctx: Context, a: int, b: int) -> int:
        return a + b

    def Subtract(self, ctx: Context, a: float, b: float) -> float:
        return a - b

    def Divide(self, a: float, b: float) -> float:
        if b == 0:
            raise ServerError(-32001, "divide by zero")
        return a / b


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="JSON-RPC 2.0 calculator")
    parser.add_argument("--host", type=str, default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument("--path", type=str, default=settings.path, help="Route serving JSON-RPC")
    parser.add_argument("--log-level", type=str, default=settings.log_level, help="Logging level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    import uvicorn

    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = create_app(Server(Calculator()), path=args.path)
    log.info("listening on %s:%d%s", args.host, args.port, args.path)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
