"""Bulk graph loading and in-memory indexing."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from .model import DEPENDS_ON, FAMILY, Action, Edge
from .policy import Policy
from .stores.base import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphIndex:
    """Reverse-adjacency view over one bulk load.

    ``dependencies_of`` maps an action to its prerequisites (edge ``dst`` ->
    ``src``). ``children_of`` maps a parent to its children and is only
    populated under a policy that checks children.
    """

    policy: Policy
    actions: tuple[Action, ...]
    actions_by_id: dict[str, Action]
    dependencies_of: dict[str, list[str]] = field(default_factory=dict)
    children_of: dict[str, list[str]] = field(default_factory=dict)

    def referenced_ids(self) -> set[str]:
        """Ids whose completion status decides some candidate."""
        ids: set[str] = set()
        for prerequisites in self.dependencies_of.values():
            ids.update(prerequisites)
        if self.policy.checks_children:
            for children in self.children_of.values():
                ids.update(children)
        return ids


def index_edges(
    policy: Policy,
    actions: list[Action],
    edges_by_kind: dict[str, list[Edge]],
) -> GraphIndex:
    dependencies_of: dict[str, list[str]] = {}
    for edge in edges_by_kind.get(DEPENDS_ON, []):
        if edge.src and edge.dst:
            dependencies_of.setdefault(edge.dst, []).append(edge.src)

    children_of: dict[str, list[str]] = {}
    if policy.checks_children:
        for edge in edges_by_kind.get(FAMILY, []):
            if edge.src and edge.dst:
                children_of.setdefault(edge.src, []).append(edge.dst)

    return GraphIndex(
        policy=policy,
        actions=tuple(actions),
        actions_by_id={action.id: action for action in actions},
        dependencies_of=dependencies_of,
        children_of=children_of,
    )


class GraphLoader:
    """Issues the seed reads: incomplete actions, then one read per edge kind."""

    def __init__(self, store: GraphStore, policy: Policy) -> None:
        self.store = store
        self.policy = policy

    def load(self) -> GraphIndex:
        started = time.perf_counter()
        actions = self.store.load_incomplete()
        loaded_actions = time.perf_counter()
        logger.debug(
            "loaded %d incomplete actions in %.1fms",
            len(actions),
            (loaded_actions - started) * 1000,
        )
        if not actions:
            return index_edges(self.policy, actions, {})

        edges_by_kind: dict[str, list[Edge]] = {}
        if self.policy.checks_children:
            incomplete_ids = [action.id for action in actions]
            edges_by_kind[DEPENDS_ON] = self.store.load_edges_by_kind(
                DEPENDS_ON,
                touching=incomplete_ids,
                side="dst",
            )
            edges_by_kind[FAMILY] = self.store.load_edges_by_kind(
                FAMILY,
                touching=incomplete_ids,
                side="src",
            )
        else:
            edges_by_kind[DEPENDS_ON] = self.store.load_edges_by_kind(DEPENDS_ON)

        logger.debug(
            "loaded %s edges in %.1fms",
            ", ".join(f"{len(rows)} {kind}" for kind, rows in edges_by_kind.items()),
            (time.perf_counter() - loaded_actions) * 1000,
        )
        return index_edges(self.policy, actions, edges_by_kind)
