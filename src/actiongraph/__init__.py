from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "Action",
    "ActionStore",
    "Edge",
    "Policy",
    "StoreError",
    "StoreTimeoutError",
    "WorkableService",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .errors import StoreError, StoreTimeoutError
    from .model import Action, Edge
    from .policy import Policy
    from .service import WorkableService
    from .stores.action import ActionStore


def __getattr__(name: str):
    if name in {"Action", "Edge"}:
        from . import model

        return getattr(model, name)
    if name in {"StoreError", "StoreTimeoutError"}:
        from . import errors

        return getattr(errors, name)
    if name == "Policy":
        from .policy import Policy

        return Policy
    if name == "WorkableService":
        from .service import WorkableService

        return WorkableService
    if name == "ActionStore":
        from .stores.action import ActionStore

        return ActionStore
    raise AttributeError(f"module 'actiongraph' has no attribute {name!r}")
