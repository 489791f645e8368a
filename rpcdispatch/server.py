"""JSON-RPC 2.0 dispatch engine.

``Server.call`` takes a raw payload and returns what the transport
should serialise: a response dict, a list of response dicts for a
batch, or ``None`` when nothing must be sent back.

Per element the pipeline is decode → lookup → bind → invoke → shape,
stopping at the first failure.  Every failure becomes an error response;
notifications (absent or null ``id``) are answered with nothing.
"""

from __future__ import annotations

import logging
from typing import Any

import anyio
import anyio.to_thread
from pydantic import TypeAdapter

from rpcdispatch.binder import bind_params
from rpcdispatch.context import Context
from rpcdispatch.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    MISSING,
    PARSE_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    RpcError,
    ServerError,
    loads,
    parse_request,
    request_from_json,
)
from rpcdispatch.registry import Method, Registry

log = logging.getLogger(__name__)

_ANY = TypeAdapter(Any)


class Server:
    """Dispatches JSON-RPC calls to the operations of *handler*.

    Parameters
    ----------
    handler : object | Mapping[str, Callable] | Registry
        The operation set.  Anything but a ``Registry`` goes through
        ``Registry.build`` once, here.
    logger : logging.Logger, optional
        Where failures with an internal cause are reported.  Defaults to
        this module's logger.
    """

    def __init__(self, handler: Any, *, logger: logging.Logger | None = None) -> None:
        self.registry = handler if isinstance(handler, Registry) else Registry.build(handler)
        self.log = logger or log

    # -- Entry points --------------------------------------------------

    async def call(self, ctx: Context, payload: bytes | str) -> dict | list[dict] | None:
        """Handle one raw payload: a single request or a batch."""
        if isinstance(payload, str):
            payload = payload.encode()
        if not payload:
            return self._reject(JsonRpcError.of(PARSE_ERROR))
        if payload[:1] == b"[" and payload[-1:] == b"]":
            return await self._batch(ctx, payload)

        try:
            req = parse_request(payload)
        except RpcError as exc:
            return self._reject(exc.error)
        resp = await self._handle(ctx, req, offload=False)
        return resp.to_dict() if resp is not None else None

    def call_sync(self, payload: bytes | str, ctx: Context | None = None) -> dict | list[dict] | None:
        """Run ``call`` on a fresh event loop, for scripts and REPL use."""
        return anyio.run(self.call, ctx or Context.background(), payload)

    # -- Batch ---------------------------------------------------------

    async def _batch(self, ctx: Context, payload: bytes) -> dict | list[dict] | None:
        if payload == b"[]":
            return self._reject(JsonRpcError.of(INVALID_REQUEST))
        try:
            elements = loads(payload)
        except ValueError as exc:
            return self._reject(JsonRpcError.of(PARSE_ERROR, cause=exc))
        if not elements:
            return self._reject(JsonRpcError.of(INVALID_REQUEST))

        responses: list[dict] = []
        lock = anyio.Lock()

        async def worker(raw: Any) -> None:
            try:
                req = request_from_json(raw)
            except RpcError as exc:
                resp: JsonRpcResponse | None = self._fail(None, exc.error)
            else:
                resp = await self._handle(ctx, req, offload=True)
            if resp is not None:
                async with lock:
                    responses.append(resp.to_dict())

        # Completion order, not request order: callers correlate by id.
        async with anyio.create_task_group() as tg:
            for raw in elements:
                tg.start_soon(worker, raw)

        return responses or None

    # -- Single request ------------------------------------------------

    async def _handle(
        self, ctx: Context, req: JsonRpcRequest, *, offload: bool
    ) -> JsonRpcResponse | None:
        self.log.debug("rpc ← %s(id=%r)", req.method, req.id)
        try:
            method = self.registry.lookup(req.method)
            args = bind_params(method, req.params)
            result = await self._invoke(ctx, method, args, offload=offload)
        except RpcError as exc:
            resp = self._fail(req.id, exc.error, req.method)
        else:
            resp = JsonRpcResponse.success(req.id, result)

        if req.is_notification:
            return None
        return resp

    async def _invoke(
        self, ctx: Context, method: Method, args: list[Any], *, offload: bool
    ) -> Any:
        """Call *method* and shape what it returns into a result.

        Coroutine functions are awaited.  Plain functions run inline, or
        on a worker thread when *offload* is set so batch elements do not
        serialise behind each other.
        """
        if method.takes_context:
            args = [ctx, *args]
        try:
            if method.is_async:
                out = await method.fn(*args)
            elif offload:
                out = await anyio.to_thread.run_sync(method.fn, *args)
            else:
                out = method.fn(*args)
        except RpcError:
            raise
        except Exception as exc:
            raise RpcError(_error_from(exc)) from exc
        return _shape(method, out)

    # -- Error plumbing ------------------------------------------------

    def _fail(
        self, req_id: Any, error: JsonRpcError, method: str | None = None
    ) -> JsonRpcResponse:
        if error.cause is not None:
            self.log.error(
                "rpc %s failed: [%d] %s",
                method or "<undecoded>",
                error.code,
                error.message,
                exc_info=error.cause,
            )
        return JsonRpcResponse.fail(req_id, error)

    def _reject(self, error: JsonRpcError) -> dict:
        """Answer a payload that yielded no usable id."""
        return self._fail(None, error).to_dict()


def _error_from(exc: Any) -> JsonRpcError:
    if isinstance(exc, ServerError):
        return exc.to_error()
    if not isinstance(exc, BaseException):
        exc = TypeError(f"operation reported a non-exception error: {exc!r}")
    return JsonRpcError.of(INTERNAL_ERROR, cause=exc)


def _shape(method: Method, out: Any) -> Any:
    """Turn raw return value(s) into a JSON-ready result or ``MISSING``."""
    n = len(method.returns)
    if n == 0:
        values: tuple[Any, ...] = ()
    elif n == 1:
        values = (out,)
    elif isinstance(out, (tuple, list)) and len(out) == n:
        values = tuple(out)
    else:
        raise RpcError(
            JsonRpcError.of(
                INTERNAL_ERROR,
                cause=TypeError(f"{method.name} must return {n} values, got {out!r}"),
            )
        )

    if method.error_like_return:
        err, values = values[-1], values[:-1]
        if err is not None:
            raise RpcError(_error_from(err))

    try:
        if not values:
            return MISSING
        if len(values) == 1:
            return _ANY.dump_python(values[0], mode="json")
        return [_ANY.dump_python(v, mode="json") for v in values]
    except ValueError as exc:
        # PydanticSerializationError and circular-reference errors alike
        raise RpcError(JsonRpcError.of(INTERNAL_ERROR, cause=exc)) from exc
