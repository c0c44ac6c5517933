"""Ambient properties attached to every event logged in the current context."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Callable, Iterator, Mapping

Context = Mapping[str, Any]

_CONTEXT: ContextVar[Mapping[str, Any]] = ContextVar("gcl_sink_context", default={})


def push_context(**context: Any) -> Token:
    current = dict(_CONTEXT.get())
    current.update(context)
    return _CONTEXT.set(current)


def pop_context(token: Token) -> None:
    _CONTEXT.reset(token)


def get_context() -> Mapping[str, Any]:
    return dict(_CONTEXT.get())


def clear_context() -> None:
    _CONTEXT.set({})


@contextmanager
def logger_context(**context: Any) -> Iterator[None]:
    """Context manager for temporary ambient properties."""

    token = push_context(**context)
    try:
        yield
    finally:
        pop_context(token)


def capture_context(extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Return a shallow copy of the current context, e.g. to hand to a worker thread."""

    payload = dict(get_context())
    if extra:
        payload.update(extra)
    return payload


def run_with_context(
    context: Context,
    func: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Execute ``func`` with the provided context bound."""

    token = push_context(**context)
    try:
        return func(*args, **kwargs)
    finally:
        pop_context(token)
