"""JSON-RPC 2.0 wire-format models.

Pure data: no I/O, no dispatch.  The server decodes inbound payloads into
these and renders them back to plain dicts for the transport.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

# ── Standard error codes (JSON-RPC 2.0 §5.1) ────────────────────────
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

MESSAGES: dict[int, str] = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
}

# Operation-supplied codes always go out under this message.
SERVER_ERROR_MESSAGE = "Server error"

VERSION = "2.0"


# ── Request id ───────────────────────────────────────────────────────
class _Missing:
    """Marker for a member that was absent from the payload."""

    __slots__ = ()
    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

# absent | null | number | string
RequestId = Union[_Missing, None, int, float, str]


def is_notification(req_id: RequestId) -> bool:
    """Absent and explicit-null ids both mark a notification."""
    return req_id is None or req_id is MISSING


def _check_id(value: Any) -> RequestId:
    if value is None or value is MISSING:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError("'id' must be a string, number or null")
    return value


# ── Errors ───────────────────────────────────────────────────────────
@dataclass(slots=True)
class JsonRpcError:
    """JSON-RPC 2.0 error object.

    ``cause`` is the exception behind the error.  It is kept for logging
    and never serialised.
    """

    code: int
    message: str
    data: Any = None
    cause: BaseException | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d

    @classmethod
    def of(
        cls, code: int, data: Any = None, cause: BaseException | None = None
    ) -> "JsonRpcError":
        """Build a standard error, taking the message from ``MESSAGES``."""
        return cls(code=code, message=MESSAGES[code], data=data, cause=cause)


class RpcError(Exception):
    """Carries a ``JsonRpcError`` out of a pipeline stage."""

    def __init__(self, error: JsonRpcError) -> None:
        self.error = error
        super().__init__(f"[{error.code}] {error.message}")

    @property
    def code(self) -> int:
        return self.error.code


class ServerError(Exception):
    """Raised by an operation to report an application-defined error.

    The code and data are sent to the caller verbatim, under the fixed
    message ``"Server error"``.
    """

    def __init__(self, code: int, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(f"ServerError: {data}")

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=SERVER_ERROR_MESSAGE, data=self.data)


# ── Models ───────────────────────────────────────────────────────────
@dataclass(slots=True)
class JsonRpcRequest:
    """Inbound JSON-RPC 2.0 request.

    ``params`` and ``id`` default to ``MISSING``; a request without an
    ``id`` (or with ``"id": null``) is a notification.
    """

    method: str
    params: Any = MISSING
    id: RequestId = MISSING
    jsonrpc: str = VERSION

    @property
    def is_notification(self) -> bool:
        return is_notification(self.id)

    # -- Convenience ---------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not MISSING:
            d["params"] = self.params
        if self.id is not MISSING:
            d["id"] = self.id
        return d

    @classmethod
    def from_dict(cls, raw: Any) -> "JsonRpcRequest":
        """Populate a request from decoded JSON.

        Raises ``ValueError`` when the value has the wrong shape.  The
        ``jsonrpc`` member is type-checked but its value is not enforced,
        and an absent ``method`` decodes as ``""``.
        """
        if not isinstance(raw, dict):
            raise ValueError("request must be a JSON object")
        version = raw.get("jsonrpc", VERSION)
        if not isinstance(version, str):
            raise ValueError("'jsonrpc' must be a string")
        method = raw.get("method", "")
        if not isinstance(method, str):
            raise ValueError("'method' must be a string")
        req_id = _check_id(raw.get("id", MISSING))
        return cls(
            method=method,
            params=raw.get("params", MISSING),
            id=req_id,
            jsonrpc=version,
        )


@dataclass(slots=True)
class JsonRpcResponse:
    """Outbound JSON-RPC 2.0 response.

    A ``MISSING`` result renders without a ``result`` member; that is how
    operations declared to return nothing answer.
    """

    id: RequestId
    result: Any = MISSING
    error: JsonRpcError | None = None
    jsonrpc: str = VERSION

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        elif self.result is not MISSING:
            d["result"] = self.result
        d["id"] = None if self.id is MISSING else self.id
        return d

    # -- Factories -----------------------------------------------------
    @classmethod
    def success(cls, req_id: RequestId, result: Any = MISSING) -> "JsonRpcResponse":
        return cls(id=req_id, result=result)

    @classmethod
    def fail(cls, req_id: RequestId, error: JsonRpcError) -> "JsonRpcResponse":
        return cls(id=req_id, error=error)


# ── Decoding ─────────────────────────────────────────────────────────
def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON literal {name}")


def loads(payload: bytes | str) -> Any:
    """Strict ``json.loads``: NaN and Infinity are syntax errors.

    Every failure surfaces as ``ValueError`` (``JSONDecodeError``,
    ``UnicodeDecodeError`` and over-deep nesting included).
    """
    try:
        return json.loads(payload, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError("JSON nested too deeply") from exc


def parse_request(payload: bytes | str) -> JsonRpcRequest:
    """Decode one request, telling syntax errors from shape errors.

    Raises ``RpcError`` with ``PARSE_ERROR`` for malformed JSON and with
    ``INVALID_REQUEST`` for valid JSON that is not a request.
    """
    try:
        raw = loads(payload)
    except ValueError as exc:
        raise RpcError(JsonRpcError.of(PARSE_ERROR, cause=exc)) from exc
    return request_from_json(raw)


def request_from_json(raw: Any) -> JsonRpcRequest:
    """Like ``JsonRpcRequest.from_dict`` but raising ``RpcError``."""
    try:
        return JsonRpcRequest.from_dict(raw)
    except ValueError as exc:
        raise RpcError(JsonRpcError.of(INVALID_REQUEST, cause=exc)) from exc
