"""Typed records crossing the store boundary."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping


FAMILY = "family"
DEPENDS_ON = "depends_on"
EDGE_KINDS = (
    FAMILY,
    DEPENDS_ON,
)
_EDGE_KIND_ALIASES = {
    "family": FAMILY,
    "composition": FAMILY,
    "child": FAMILY,
    "parent": FAMILY,
    "depends_on": DEPENDS_ON,
    "dependency": DEPENDS_ON,
    "blocks": DEPENDS_ON,
}


def normalize_edge_kind(kind: str) -> str:
    value = kind.strip().lower().replace("-", "_")
    try:
        return _EDGE_KIND_ALIASES[value]
    except KeyError:
        raise ValueError(f"invalid edge kind: {kind}") from None


@dataclass(frozen=True)
class Action:
    id: str
    title: str
    done: bool
    version: int
    created_at: int
    updated_at: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Action":
        return cls(
            id=str(row["id"]),
            title=str(row["title"]),
            done=bool(row["done"]),
            version=int(row["version"]),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Edge:
    src: str
    dst: str
    kind: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Edge":
        return cls(
            src=str(row["src"]),
            dst=str(row["dst"]),
            kind=str(row["kind"]),
        )


@dataclass(frozen=True)
class DoneStatus:
    id: str
    done: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DoneStatus":
        return cls(id=str(row["id"]), done=bool(row["done"]))


@dataclass(frozen=True)
class BlockingDependency:
    blocker: Action
    blocked: tuple[Action, ...]

    @property
    def block_count(self) -> int:
        return len(self.blocked)

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocker": self.blocker.to_dict(),
            "blocked": [action.to_dict() for action in self.blocked],
            "block_count": self.block_count,
        }
