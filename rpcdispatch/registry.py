"""Method registry.

``Registry.build`` introspects a handler once and records, for every
public operation, the signature descriptor the dispatcher needs: which
positional types to decode, whether the first parameter takes the call
``Context``, and how the return value is shaped into a result.
"""

from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterator, Union, get_args, get_origin, get_type_hints

from pydantic import TypeAdapter

from rpcdispatch.binder import adapter_for
from rpcdispatch.context import Context
from rpcdispatch.jsonrpc import METHOD_NOT_FOUND, JsonRpcError, RpcError

log = logging.getLogger(__name__)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class RegistryError(TypeError):
    """The handler cannot be turned into a registry."""


class MethodNotFoundError(RpcError):
    """Raised when no operation is registered under the requested name."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(JsonRpcError.of(METHOD_NOT_FOUND))


# ── Signature descriptor ─────────────────────────────────────────────
@dataclass(frozen=True, slots=True)
class Method:
    """Everything needed to call one operation.

    ``param_types`` excludes a leading context parameter.  ``returns``
    holds one entry per declared return value: empty for ``-> None``,
    one per element for ``-> tuple[A, B]``.
    """

    name: str
    fn: Callable[..., Any]
    param_names: tuple[str, ...]
    param_types: tuple[Any, ...]
    param_adapters: tuple[TypeAdapter | None, ...]
    returns: tuple[Any, ...]
    takes_context: bool = False
    error_like_return: bool = False
    is_async: bool = False

    @property
    def arity(self) -> int:
        return len(self.param_types)

    @classmethod
    def from_callable(cls, name: str, fn: Callable[..., Any]) -> "Method":
        """Build a descriptor, raising ``RegistryError`` if *fn* cannot be called positionally."""
        target = fn if inspect.isroutine(fn) else getattr(fn, "__call__", fn)
        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError) as exc:
            raise RegistryError(f"{name}: no signature ({exc})") from exc
        try:
            hints = get_type_hints(target)
        except (NameError, TypeError) as exc:
            raise RegistryError(f"{name}: cannot resolve annotations ({exc})") from exc

        names: list[str] = []
        types_: list[Any] = []
        takes_context = False
        for i, param in enumerate(sig.parameters.values()):
            if param.kind not in _POSITIONAL:
                if param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is not param.empty:
                    continue
                raise RegistryError(f"{name}: parameter {param.name!r} is not positional")
            tp = hints.get(param.name, Any)
            if i == 0 and _is_context(tp):
                takes_context = True
                continue
            names.append(param.name)
            types_.append(tp)

        returns = _split_return(hints.get("return", Any))
        return cls(
            name=name,
            fn=fn,
            param_names=tuple(names),
            param_types=tuple(types_),
            param_adapters=tuple(adapter_for(tp) for tp in types_),
            returns=returns,
            takes_context=takes_context,
            error_like_return=bool(returns) and _is_error_like(returns[-1]),
            is_async=inspect.iscoroutinefunction(target),
        )


def _is_routine(raw: Any) -> bool:
    return inspect.isroutine(raw) or isinstance(raw, (staticmethod, classmethod))


def _is_context(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, Context)


def _split_return(tp: Any) -> tuple[Any, ...]:
    if tp is None or tp is type(None):
        return ()
    if get_origin(tp) is tuple:
        args = get_args(tp)
        if args and args[-1] is not Ellipsis:
            return args
    return (tp,)


def _is_error_like(tp: Any) -> bool:
    if get_origin(tp) in (Union, types.UnionType):
        members = [a for a in get_args(tp) if a is not type(None)]
    else:
        members = [tp]
    return bool(members) and all(
        isinstance(m, type) and issubclass(m, BaseException) for m in members
    )


# ── Registry ─────────────────────────────────────────────────────────
class Registry(Mapping[str, Method]):
    """Immutable name → ``Method`` lookup.

    Usage::

        class Calculator:
            def Add(self, ctx: Context, a: int, b: int) -> int:
                return a + b

        registry = Registry.build(Calculator())
        registry["Add"].arity  # 2

    Names are exact and case-sensitive.  Nothing mutates the registry
    after ``build``, so concurrent readers need no locking.
    """

    def __init__(self, methods: Mapping[str, Method]) -> None:
        self._methods = MappingProxyType(dict(methods))

    # -- Construction --------------------------------------------------
    @classmethod
    def build(cls, handler: Any) -> "Registry":
        """Register every public operation of *handler*.

        *handler* is either an object, whose public methods become the
        operations, or a mapping of name → callable.  Operations that
        cannot be called positionally are skipped with a warning; a
        handler with no usable operation at all raises ``RegistryError``.
        """
        if isinstance(handler, Mapping):
            candidates = list(handler.items())
        elif inspect.isclass(handler):
            raise RegistryError(f"pass an instance of {handler.__name__}, not the class")
        else:
            # Properties and plain attributes are never evaluated.
            candidates = [
                (name, getattr(handler, name))
                for name in dir(handler)
                if not name.startswith("_") and _is_routine(inspect.getattr_static(handler, name))
            ]

        methods: dict[str, Method] = {}
        for name, fn in candidates:
            if not isinstance(name, str) or not callable(fn) or inspect.isclass(fn):
                continue
            try:
                methods[name] = Method.from_callable(name, fn)
            except RegistryError as exc:
                log.warning("skipping operation: %s", exc)
                continue
            log.debug("registered %r → %s", name, getattr(fn, "__qualname__", fn))

        if not methods:
            raise RegistryError(f"{type(handler).__name__} exposes no callable operations")
        return cls(methods)

    # -- Lookup --------------------------------------------------------
    def lookup(self, name: str) -> Method:
        """Return the ``Method`` for *name* or raise ``MethodNotFoundError``."""
        method = self._methods.get(name)
        if method is None:
            raise MethodNotFoundError(name)
        return method

    def __getitem__(self, name: str) -> Method:
        return self._methods[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._methods)

    def __len__(self) -> int:
        return len(self._methods)

    # -- Introspection -------------------------------------------------
    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    def is_registered(self, name: str) -> bool:
        return name in self._methods
