"""Tests for the per-call context."""

import threading

from rpcdispatch.context import Context


def test_background_not_cancelled():
    assert not Context.background().cancelled


def test_cancel():
    ctx = Context()
    ctx.cancel()
    assert ctx.cancelled


def test_values():
    ctx = Context(request="req", user="alice")
    assert ctx.request == "req"
    assert ctx.get("user") == "alice"
    assert ctx.get("missing", 1) == 1


def test_with_values_shares_cancellation():
    parent = Context(user="alice")
    child = parent.with_values(trace="t1")
    assert child.get("user") == "alice"
    assert child.get("trace") == "t1"
    assert parent.get("trace") is None
    parent.cancel()
    assert child.cancelled


def test_cancel_seen_from_other_thread():
    ctx = Context()
    seen = []
    t = threading.Thread(target=lambda: seen.append(ctx.cancelled))
    ctx.cancel()
    t.start()
    t.join()
    assert seen == [True]
