"""Clock and query-deadline state shared by store adapters."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class QueryDeadline:
    timeout_s: float
    expires_at: float

    @classmethod
    def after(cls, timeout_s: float) -> "QueryDeadline":
        return cls(timeout_s=timeout_s, expires_at=time.monotonic() + timeout_s)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


_deadline_var: ContextVar[QueryDeadline | None] = ContextVar(
    "actiongraph_query_deadline",
    default=None,
)


def current_deadline() -> QueryDeadline | None:
    return _deadline_var.get()


@contextmanager
def query_deadline(timeout_s: float | None) -> Iterator[QueryDeadline | None]:
    """Bound every store statement issued in this context by ``timeout_s``.

    Adapters that can interrupt a running statement (``ActionStore`` does)
    stop it once the deadline passes. ``None`` leaves reads unbounded.
    """
    deadline = None if timeout_s is None else QueryDeadline.after(timeout_s)
    token = _deadline_var.set(deadline)
    try:
        yield deadline
    finally:
        _deadline_var.reset(token)
