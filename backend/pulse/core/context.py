"""Per-request and per-trigger context utilities."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
trigger_ctx_var: ContextVar[str | None] = ContextVar("planner_trigger", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_trigger() -> str | None:
    """Return the name of the planner trigger currently being processed."""
    return trigger_ctx_var.get()


@contextmanager
def planner_trigger(name: str) -> Iterator[None]:
    """Mark everything logged inside the block as caused by ``name``."""
    token = trigger_ctx_var.set(name)
    try:
        yield
    finally:
        trigger_ctx_var.reset(token)
