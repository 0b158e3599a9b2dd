"""Which incomplete actions hold up the most other incomplete actions."""

from __future__ import annotations

from .evaluator import GraphSnapshot, unmet_requirements
from .model import BlockingDependency


def blocking_dependencies(snapshot: GraphSnapshot) -> list[BlockingDependency]:
    index = snapshot.index
    blocked_by: dict[str, list[str]] = {}
    for action in index.actions:
        for blocker_id in unmet_requirements(action.id, index, snapshot.done_of):
            blocked_by.setdefault(blocker_id, []).append(action.id)

    report: list[BlockingDependency] = []
    for blocker_id, blocked_ids in blocked_by.items():
        blocker = index.actions_by_id.get(blocker_id)
        if blocker is None:
            # Completed or deleted between the two bulk reads.
            continue
        blocked = tuple(
            index.actions_by_id[blocked_id]
            for blocked_id in dict.fromkeys(blocked_ids)
        )
        report.append(BlockingDependency(blocker=blocker, blocked=blocked))

    report.sort(key=lambda row: (-row.block_count, row.blocker.id))
    return report
