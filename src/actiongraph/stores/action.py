from __future__ import annotations

import json
import os
import sqlite3
import uuid
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import StoreError, StoreTimeoutError
from ..model import DEPENDS_ON, FAMILY, Action, DoneStatus, Edge, normalize_edge_kind
from .base import EdgeSide
from .state import current_deadline, now_ms

STATE_DIR_NAME = ".actiongraph"
STATE_DIR_ENV = "ACTIONGRAPH_STATE_DIR"
# SQLite VM instructions between deadline checks.
_PROGRESS_STEPS = 1_000


# Edges carry no foreign keys: a reference to a missing action is legal data
# and readers treat it as not blocking.
_SCHEMA = """
PRAGMA journal_mode=WAL;
CREATE TABLE IF NOT EXISTS actions (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    done INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS edges (
    src TEXT NOT NULL,
    dst TEXT NOT NULL,
    kind TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    PRIMARY KEY(src, dst, kind)
);
CREATE INDEX IF NOT EXISTS idx_actions_done_updated
    ON actions(done, updated_at DESC);
CREATE INDEX IF NOT EXISTS idx_edges_kind_dst ON edges(kind, dst);
CREATE INDEX IF NOT EXISTS idx_edges_kind_src ON edges(kind, src);
"""

_ACTION_COLUMNS = "id, title, done, version, created_at, updated_at"
_EDGE_SIDES = ("src", "dst")


def _new_action_id() -> str:
    return f"action-{uuid.uuid4().hex[:8]}"


def _id_array(ids: Iterable[str]) -> str:
    # One JSON parameter expanded by json_each keeps every bulk read a single
    # statement, independent of SQLITE_MAX_VARIABLE_NUMBER.
    return json.dumps(sorted({str(value) for value in ids}))


@dataclass
class ActionStore:
    root: Path
    create_on_connect: bool = True

    @classmethod
    def from_workdir(
        cls,
        cwd: Path | None = None,
        *,
        create: bool = True,
    ) -> "ActionStore":
        """Open the store for ``cwd``.

        ``ACTIONGRAPH_STATE_DIR`` wins; otherwise the nearest ``.actiongraph``
        directory at or above ``cwd`` is used, falling back to a new one in
        ``cwd``. With ``create=False`` nothing is written to disk.
        """
        override = os.environ.get(STATE_DIR_ENV, "").strip()
        if override:
            root = Path(override).expanduser().resolve()
        else:
            start = (cwd or Path.cwd()).resolve()
            root = next(
                (
                    base / STATE_DIR_NAME
                    for base in (start, *start.parents)
                    if (base / STATE_DIR_NAME).is_dir()
                ),
                start / STATE_DIR_NAME,
            )
        if create:
            root.mkdir(parents=True, exist_ok=True)
        return cls(root, create_on_connect=create)

    @property
    def db_path(self) -> Path:
        return self.root / "actions.sqlite3"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self.create_on_connect:
            self.root.mkdir(parents=True, exist_ok=True)
        elif not self.db_path.exists():
            raise FileNotFoundError(str(self.db_path))
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self.db_path}: {exc}") from exc
        deadline = current_deadline()
        try:
            conn.row_factory = sqlite3.Row
            if deadline is not None:
                # A non-zero return aborts the running statement.
                conn.set_progress_handler(
                    lambda: int(deadline.expired()),
                    _PROGRESS_STEPS,
                )
            with conn:
                conn.executescript(_SCHEMA)
                yield conn
        except sqlite3.Error as exc:
            if deadline is not None and deadline.expired():
                raise StoreTimeoutError(deadline.timeout_s, phase="store query") from exc
            raise StoreError(f"store query failed: {exc}") from exc
        finally:
            conn.close()

    # -- writes -------------------------------------------------------------

    def create(
        self,
        title: str,
        *,
        done: bool = False,
        at: int | None = None,
    ) -> Action:
        action_title = title.strip()
        if not action_title:
            raise ValueError("title cannot be empty")

        now = now_ms() if at is None else int(at)
        action_id = _new_action_id()
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO actions({_ACTION_COLUMNS})
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (action_id, action_title, int(done), 0, now, now),
            )

        action = self.get(action_id)
        if action is None:
            raise RuntimeError("created action could not be loaded")
        return action

    def set_done(self, action_id: str, done: bool, *, at: int | None = None) -> Action:
        action_key = action_id.strip()
        if not action_key:
            raise ValueError("action id cannot be empty")

        now = now_ms() if at is None else int(at)
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE actions
                SET done = ?, version = version + 1, updated_at = ?
                WHERE id = ?
                """,
                (int(done), now, action_key),
            )
            if cur.rowcount == 0:
                raise ValueError(f"unknown action: {action_key}")

        action = self.get(action_key)
        if action is None:
            raise ValueError(f"unknown action: {action_key}")
        return action

    def delete(self, action_id: str) -> dict[str, Any]:
        action_key = action_id.strip()
        if not action_key:
            raise ValueError("action id cannot be empty")
        if self.get(action_key) is None:
            raise ValueError(f"unknown action: {action_key}")

        with self._connect() as conn:
            conn.execute(
                "DELETE FROM edges WHERE src = ? OR dst = ?",
                (action_key, action_key),
            )
            conn.execute("DELETE FROM actions WHERE id = ?", (action_key,))

        return {"id": action_key, "deleted": True}

    def add_edge(self, src_id: str, kind: str, dst_id: str) -> Edge:
        src = src_id.strip()
        dst = dst_id.strip()
        if not src or not dst:
            raise ValueError("source and destination action ids are required")
        if src == dst:
            raise ValueError("edge cannot reference the same action")

        edge_kind = normalize_edge_kind(kind)
        if self.get(src) is None:
            raise ValueError(f"unknown action: {src}")
        if self.get(dst) is None:
            raise ValueError(f"unknown action: {dst}")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO edges(src, dst, kind, created_at)
                VALUES(?, ?, ?, ?)
                """,
                (src, dst, edge_kind, now_ms()),
            )
        return Edge(src=src, dst=dst, kind=edge_kind)

    def remove_edge(self, src_id: str, kind: str, dst_id: str) -> bool:
        edge_kind = normalize_edge_kind(kind)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM edges WHERE src = ? AND dst = ? AND kind = ?",
                (src_id.strip(), dst_id.strip(), edge_kind),
            )
            return cur.rowcount > 0

    def consolidate_family_edges(self) -> int:
        """Give every ``family`` edge a matching child-to-parent dependency.

        Returns the number of ``depends_on`` edges inserted. Running it again
        inserts nothing.
        """
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO edges(src, dst, kind, created_at)
                SELECT family.dst, family.src, ?, ?
                FROM edges family
                WHERE family.kind = ?
                  AND NOT EXISTS (
                    SELECT 1
                    FROM edges dep
                    WHERE dep.src = family.dst
                      AND dep.dst = family.src
                      AND dep.kind = ?
                  )
                """,
                (DEPENDS_ON, now_ms(), FAMILY, DEPENDS_ON),
            )
            return int(cur.rowcount)

    # -- reads --------------------------------------------------------------

    def get(self, action_id: str) -> Action | None:
        action_key = action_id.strip()
        if not action_key:
            return None
        if not self.db_path.exists():
            return None
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_ACTION_COLUMNS} FROM actions WHERE id = ?",
                (action_key,),
            ).fetchone()
        if row is None:
            return None
        return Action.from_row(row)

    def edges(self, action_id: str) -> list[Edge]:
        action_key = action_id.strip()
        if not action_key or not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT src, dst, kind
                FROM edges
                WHERE src = ? OR dst = ?
                ORDER BY created_at ASC, src ASC, dst ASC
                """,
                (action_key, action_key),
            ).fetchall()
        return [Edge.from_row(row) for row in rows]

    def load_incomplete(self) -> list[Action]:
        if not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_ACTION_COLUMNS}
                FROM actions
                WHERE done = 0
                ORDER BY updated_at DESC, id ASC
                """
            ).fetchall()
        return [Action.from_row(row) for row in rows]

    def load_edges_by_kind(
        self,
        kind: str,
        *,
        touching: Iterable[str] | None = None,
        side: EdgeSide = "dst",
    ) -> list[Edge]:
        edge_kind = normalize_edge_kind(kind)
        if side not in _EDGE_SIDES:
            raise ValueError(f"invalid edge side: {side}")
        if not self.db_path.exists():
            return []

        query = "SELECT src, dst, kind FROM edges WHERE kind = ?"
        params: list[Any] = [edge_kind]
        if touching is not None:
            query += f" AND {side} IN (SELECT value FROM json_each(?))"
            params.append(_id_array(touching))
        query += " ORDER BY created_at ASC, src ASC, dst ASC"

        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [Edge.from_row(row) for row in rows]

    def load_done_status(self, ids: Iterable[str]) -> list[DoneStatus]:
        if not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, done
                FROM actions
                WHERE id IN (SELECT value FROM json_each(?))
                """,
                (_id_array(ids),),
            ).fetchall()
        return [DoneStatus.from_row(row) for row in rows]

    def execute_aggregate_query(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> list[Action]:
        if not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [Action.from_row(row) for row in rows]
