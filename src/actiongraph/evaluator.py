"""Staged workability evaluation: bulk load, resolve status, filter in memory."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from .loader import GraphIndex, GraphLoader
from .model import Action
from .policy import Policy
from .status import resolve_done_status
from .stores.base import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    index: GraphIndex
    done_of: dict[str, bool]


def _blocks(done_of: dict[str, bool], action_id: str) -> bool:
    # Only an explicit done=False blocks; unknown ids do not.
    return done_of.get(action_id) is False


def unmet_requirements(
    action_id: str,
    index: GraphIndex,
    done_of: dict[str, bool],
) -> list[str]:
    """Ids currently keeping ``action_id`` from being workable."""
    unmet = [
        prerequisite
        for prerequisite in index.dependencies_of.get(action_id, ())
        if _blocks(done_of, prerequisite)
    ]
    if index.policy.checks_children:
        unmet.extend(
            child
            for child in index.children_of.get(action_id, ())
            if _blocks(done_of, child) and child not in unmet
        )
    return unmet


def is_workable(action: Action, index: GraphIndex, done_of: dict[str, bool]) -> bool:
    if action.done:
        return False
    if any(_blocks(done_of, p) for p in index.dependencies_of.get(action.id, ())):
        return False
    if index.policy.checks_children and any(
        _blocks(done_of, c) for c in index.children_of.get(action.id, ())
    ):
        return False
    return True


def evaluate(snapshot: GraphSnapshot, *, limit: int | None = None) -> list[Action]:
    """Filter the loaded candidates, stopping once ``limit`` are collected.

    Candidates are visited in the order the store returned them.
    """
    workable: list[Action] = []
    for action in snapshot.index.actions:
        if not is_workable(action, snapshot.index, snapshot.done_of):
            continue
        workable.append(action)
        if limit is not None and len(workable) >= limit:
            break
    return workable


class StagedStrategy:
    name = "staged"

    def __init__(self, store: GraphStore, policy: Policy) -> None:
        self.store = store
        self.policy = policy
        self.loader = GraphLoader(store, policy)

    def snapshot(self) -> GraphSnapshot:
        index = self.loader.load()
        started = time.perf_counter()
        done_of = resolve_done_status(self.store, index.referenced_ids())
        logger.debug(
            "resolved %d statuses in %.1fms",
            len(done_of),
            (time.perf_counter() - started) * 1000,
        )
        return GraphSnapshot(index=index, done_of=done_of)

    def workable(self, limit: int | None = None) -> list[Action]:
        started = time.perf_counter()
        snapshot = self.snapshot()
        filter_started = time.perf_counter()
        rows = evaluate(snapshot, limit=limit)
        finished = time.perf_counter()
        logger.debug(
            "[%s/%s] %d workable of %d incomplete (filter %.1fms, total %.1fms)",
            self.name,
            self.policy.name,
            len(rows),
            len(snapshot.index.actions),
            (finished - filter_started) * 1000,
            (finished - started) * 1000,
        )
        return rows
