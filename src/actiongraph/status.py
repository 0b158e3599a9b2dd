from __future__ import annotations

import logging
from collections.abc import Collection

from .stores.base import GraphStore

logger = logging.getLogger(__name__)


def resolve_done_status(store: GraphStore, ids: Collection[str]) -> dict[str, bool]:
    """Fetch completion flags for ``ids`` in one read.

    Ids the store does not return are left out of the map; callers treat a
    missing entry as not blocking.
    """
    if not ids:
        return {}
    done_of = {row.id: row.done for row in store.load_done_status(ids)}
    missing = len(ids) - len(done_of)
    if missing:
        logger.debug("%d referenced ids not found in store", missing)
    return done_of
