from __future__ import annotations

from collections.abc import Iterable

from .model import Action


def recency_key(action: Action) -> tuple[int, str]:
    return (-action.updated_at, action.id)


def select_next(candidates: Iterable[Action]) -> Action | None:
    """Most recently updated workable action, or None when nothing is workable.

    Recency is the only ranking signal; ties fall back to id order so the
    pick is stable across strategies.
    """
    return min(candidates, key=recency_key, default=None)
