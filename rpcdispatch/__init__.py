"""rpcdispatch: serve an object's methods over JSON-RPC 2.0."""

from rpcdispatch.context import Context
from rpcdispatch.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    MISSING,
    PARSE_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    RpcError,
    ServerError,
)
from rpcdispatch.registry import Method, MethodNotFoundError, Registry, RegistryError
from rpcdispatch.server import Server

__all__ = [
    "Server",
    "Context",
    "Registry",
    "RegistryError",
    "Method",
    "MethodNotFoundError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "JsonRpcError",
    "RpcError",
    "ServerError",
    "MISSING",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
]
