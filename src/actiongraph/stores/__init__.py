from __future__ import annotations

from .action import ActionStore
from .base import EdgeSide, GraphStore
from .state import QueryDeadline, current_deadline, now_ms, query_deadline

__all__ = [
    "ActionStore",
    "EdgeSide",
    "GraphStore",
    "QueryDeadline",
    "current_deadline",
    "now_ms",
    "query_deadline",
]
