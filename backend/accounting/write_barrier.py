# accounting/write_barrier.py
"""
Write barrier for ledger tables.

Ledger rows may only be written from inside a named write context.
Commands enter ``command_writes_allowed()``. A save outside any allowed
context raises RuntimeError, so a stray ``Model.objects.create()`` in
a view or serializer cannot bypass the period lock or balance checks.
"""

from contextlib import contextmanager
import threading

from django.conf import settings


_state = threading.local()


def _context_stack() -> list[str]:
    stack = getattr(_state, "write_context_stack", None)
    if stack is None:
        stack = []
        _state.write_context_stack = stack
    return stack


def current_write_context() -> str | None:
    stack = _context_stack()
    return stack[-1] if stack else None


def write_context_allowed(allowed_contexts: set[str]) -> bool:
    ctx = current_write_context()
    return ctx is not None and ctx in allowed_contexts


def assert_write_allowed(model_name: str, allowed_contexts: set[str]) -> None:
    """Raise unless the current context may write ``model_name`` rows."""
    if getattr(settings, "TESTING", False):
        return
    if not write_context_allowed(allowed_contexts):
        raise RuntimeError(
            f"{model_name} is a ledger table. Use accounting.commands to modify it. "
            "Direct saves are only allowed within command_writes_allowed()."
        )


@contextmanager
def _push_write_context(name: str):
    stack = _context_stack()
    stack.append(name)
    try:
        yield
    finally:
        stack.pop()


@contextmanager
def command_writes_allowed():
    with _push_write_context("command"):
        yield

