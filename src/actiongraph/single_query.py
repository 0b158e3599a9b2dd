"""Pushdown strategy: the workability predicate as one SQL statement."""

from __future__ import annotations

import logging
import time
from typing import Any

from .model import DEPENDS_ON, FAMILY, Action
from .policy import Policy
from .stores.base import GraphStore

logger = logging.getLogger(__name__)

_INCOMPLETE_CTE = """
    incomplete_actions AS (
        SELECT id, title, done, version, created_at, updated_at
        FROM actions
        WHERE done = 0
    )"""

_INCOMPLETE_DEPS_CTE = """
    has_incomplete_deps AS (
        SELECT DISTINCT e.dst AS action_id
        FROM edges e
        JOIN actions prerequisite ON prerequisite.id = e.src
        WHERE e.kind = ?
          AND e.dst IN (SELECT id FROM incomplete_actions)
          AND prerequisite.done = 0
    )"""

_INCOMPLETE_CHILDREN_CTE = """
    has_incomplete_children AS (
        SELECT DISTINCT e.src AS action_id
        FROM edges e
        JOIN actions child ON child.id = e.dst
        WHERE e.kind = ?
          AND e.src IN (SELECT id FROM incomplete_actions)
          AND child.done = 0
    )"""


def build_workable_query(policy: Policy, limit: int | None) -> tuple[str, list[Any]]:
    ctes = [_INCOMPLETE_CTE, _INCOMPLETE_DEPS_CTE]
    params: list[Any] = [DEPENDS_ON]
    where = ["a.id NOT IN (SELECT action_id FROM has_incomplete_deps)"]
    if policy.checks_children:
        ctes.append(_INCOMPLETE_CHILDREN_CTE)
        params.append(FAMILY)
        where.append("a.id NOT IN (SELECT action_id FROM has_incomplete_children)")

    query = (
        "WITH"
        + ",".join(ctes)
        + """
    SELECT a.id, a.title, a.done, a.version, a.created_at, a.updated_at
    FROM incomplete_actions a
    WHERE """
        + "\n      AND ".join(where)
        + """
    ORDER BY a.updated_at DESC, a.id ASC
    LIMIT ?
"""
    )
    # SQLite reads a negative LIMIT as "no limit".
    params.append(-1 if limit is None else int(limit))
    return query, params


class SingleQueryStrategy:
    name = "single_query"

    def __init__(self, store: GraphStore, policy: Policy) -> None:
        self.store = store
        self.policy = policy

    def workable(self, limit: int | None = None) -> list[Action]:
        started = time.perf_counter()
        query, params = build_workable_query(self.policy, limit)
        rows = self.store.execute_aggregate_query(query, params)
        logger.debug(
            "[%s/%s] %d workable in %.1fms",
            self.name,
            self.policy.name,
            len(rows),
            (time.perf_counter() - started) * 1000,
        )
        return rows
