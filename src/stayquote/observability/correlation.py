"""Correlation ID management for tracing a quote request across calls."""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token, copy_context
from typing import Callable, Iterator, TypeVar

T = TypeVar("T")

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block.

    Reuses the ID already in context when *cid* is None, generating one only
    when none is set.
    """
    cid = cid or get_correlation_id() or generate_correlation_id()
    token = set_correlation_id(cid)
    try:
        yield cid
    finally:
        reset_correlation_id(token)


def bind_context(fn: Callable[..., T]) -> Callable[..., T]:
    """Wrap *fn* so it runs in a copy of the caller's context.

    Thread pool workers do not inherit context variables on their own.
    """
    ctx = copy_context()

    def runner(*args, **kwargs) -> T:
        return ctx.copy().run(fn, *args, **kwargs)

    return runner
