"""Execution context shared by request handling and the consistency engine."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-ID"

_request_id_ctx_var: ContextVar[str] = ContextVar("request_id", default="-")
_operation_ctx_var: ContextVar[str] = ContextVar("operation", default="-")


def get_request_id() -> str:
    """Return the request identifier for the current execution context."""

    return _request_id_ctx_var.get()


def bind_request_id(request_id: str) -> Token[str]:
    """Bind a request identifier to the current execution context."""

    return _request_id_ctx_var.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _request_id_ctx_var.reset(token)


def get_operation() -> str:
    """Return the engine operation currently running, or ``"-"``."""

    return _operation_ctx_var.get()


@contextmanager
def operation_scope(name: str) -> Iterator[None]:
    """Tag log records emitted inside the block with an engine operation name."""

    token = _operation_ctx_var.set(name)
    try:
        yield
    finally:
        _operation_ctx_var.reset(token)


__all__ = [
    "REQUEST_ID_HEADER",
    "bind_request_id",
    "get_operation",
    "get_request_id",
    "operation_scope",
    "reset_request_id",
]
