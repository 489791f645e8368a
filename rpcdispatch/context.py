"""Per-call context handed to operations.

An operation opts in by declaring a ``Context`` as its first parameter::

    def Slow(self, ctx: Context, n: int) -> int:
        for i in range(n):
            if ctx.cancelled:
                break
            ...

The dispatcher never interrupts an operation; cancellation is only
observed by operations that look at ``ctx.cancelled``.
"""

from __future__ import annotations

import threading
from typing import Any


class Context:
    """Cancellation flag plus request-scoped values.

    The flag is a ``threading.Event`` so operations offloaded to worker
    threads see cancellation too.
    """

    def __init__(self, request: Any = None, **values: Any) -> None:
        self.request = request
        self._values = values
        self._cancel = threading.Event()

    @classmethod
    def background(cls) -> "Context":
        """A context that nobody cancels."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def with_values(self, **values: Any) -> "Context":
        """Derive a context with extra values that shares this one's cancellation."""
        child = Context(self.request, **{**self._values, **values})
        child._cancel = self._cancel
        return child

    def __repr__(self) -> str:
        return f"Context(cancelled={self.cancelled}, values={sorted(self._values)})"
