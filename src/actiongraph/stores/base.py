from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Literal, Protocol

from ..model import Action, DoneStatus, Edge

EdgeSide = Literal["src", "dst"]


class GraphStore(Protocol):
    """Read port the workability core consumes.

    Every method is one round-trip to the store. Implementations convert
    rows into ``Action``/``Edge``/``DoneStatus`` before returning.
    """

    def load_incomplete(self) -> list[Action]: ...

    def load_edges_by_kind(
        self,
        kind: str,
        *,
        touching: Iterable[str] | None = None,
        side: EdgeSide = "dst",
    ) -> list[Edge]: ...

    def load_done_status(self, ids: Iterable[str]) -> list[DoneStatus]: ...

    def execute_aggregate_query(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> list[Action]: ...
