"""Positional parameter binding.

Each declared parameter type gets a pydantic ``TypeAdapter`` when the
registry is built.  Binding re-encodes every positional element and
validates it as JSON in strict mode, so a value binds only if it decodes
into the declared type: ``"5"`` is not a float and ``true`` is not an
int, while an integer is still a valid float.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, get_origin

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from rpcdispatch.jsonrpc import INVALID_PARAMS, MISSING, JsonRpcError, RpcError

if TYPE_CHECKING:
    from rpcdispatch.registry import Method

log = logging.getLogger(__name__)


def adapter_for(tp: Any) -> TypeAdapter | None:
    """Return a validator for *tp*, or ``None`` when pydantic has no schema.

    Decoded JSON is never an instance of such a type, so a parameter
    without an adapter always answers Invalid params.
    """
    try:
        return TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        log.warning("no schema for %s, parameter can never bind", type_name(tp))
        return None


def type_name(tp: Any) -> str:
    if isinstance(tp, type) and get_origin(tp) is None:
        return tp.__name__
    return str(tp).replace("typing.", "")


def bind_params(method: "Method", params: Any) -> list[Any]:
    """Decode the positional *params* of one request for *method*.

    Absent params bind like ``[]``.  Raises ``RpcError`` with
    ``INVALID_PARAMS`` when *params* is not an array, has the wrong
    length, or an element does not fit its declared type.
    """
    if params is MISSING:
        params = []
    if not isinstance(params, list) or len(params) != method.arity:
        raise RpcError(JsonRpcError.of(INVALID_PARAMS))

    args: list[Any] = []
    for k, (value, adapter) in enumerate(zip(params, method.param_adapters)):
        try:
            if adapter is None:
                raise TypeError(f"no decoder for {type_name(method.param_types[k])}")
            args.append(adapter.validate_json(json.dumps(value), strict=True))
        except (ValidationError, RecursionError, TypeError) as exc:
            expected = type_name(method.param_types[k])
            raise RpcError(
                JsonRpcError.of(
                    INVALID_PARAMS,
                    data={"position": k, "expected": expected},
                    cause=exc,
                )
            ) from exc
    return args
