from __future__ import annotations

from actiongraph.model import DEPENDS_ON, FAMILY
from actiongraph.service import WorkableService
from actiongraph.stores.action import ActionStore


def test_blockers_ranked_by_number_of_blocked_actions(store: ActionStore) -> None:
    hub = store.create("Hub")
    minor = store.create("Minor")
    first = store.create("First")
    second = store.create("Second")
    third = store.create("Third")
    store.add_edge(hub.id, DEPENDS_ON, first.id)
    store.add_edge(hub.id, DEPENDS_ON, second.id)
    store.add_edge(minor.id, DEPENDS_ON, third.id)

    report = WorkableService(store).blocking_dependencies()

    assert [row.blocker.id for row in report] == [hub.id, minor.id]
    assert {action.id for action in report[0].blocked} == {first.id, second.id}
    assert report[0].block_count == 2
    assert report[1].to_dict()["block_count"] == 1


def test_completed_prerequisites_are_not_blockers(store: ActionStore) -> None:
    finished = store.create("Finished", done=True)
    dependent = store.create("Dependent")
    store.add_edge(finished.id, DEPENDS_ON, dependent.id)

    assert WorkableService(store).blocking_dependencies() == []


def test_legacy_children_block_their_parent(store: ActionStore) -> None:
    parent = store.create("Parent")
    child = store.create("Child")
    store.add_edge(parent.id, FAMILY, child.id)

    consolidated = WorkableService(store).blocking_dependencies()
    legacy = WorkableService(store, policy="legacy").blocking_dependencies()

    assert consolidated == []
    assert [row.blocker.id for row in legacy] == [child.id]
    assert [action.id for action in legacy[0].blocked] == [parent.id]


def test_child_counted_once_when_edge_kinds_overlap(store: ActionStore) -> None:
    parent = store.create("Parent")
    child = store.create("Child")
    store.add_edge(parent.id, FAMILY, child.id)
    store.add_edge(child.id, DEPENDS_ON, parent.id)

    report = WorkableService(store, policy="legacy").blocking_dependencies()

    assert len(report) == 1
    assert report[0].block_count == 1


def test_cycle_members_block_each_other(store: ActionStore) -> None:
    a = store.create("A")
    b = store.create("B")
    store.add_edge(a.id, DEPENDS_ON, b.id)
    store.add_edge(b.id, DEPENDS_ON, a.id)

    report = WorkableService(store).blocking_dependencies()

    assert sorted(row.blocker.id for row in report) == sorted([a.id, b.id])
