from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

from .blocking import blocking_dependencies
from .errors import StoreTimeoutError
from .evaluator import StagedStrategy
from .model import Action, BlockingDependency
from .policy import Policy, resolve_policy
from .selector import select_next
from .single_query import SingleQueryStrategy
from .stores.base import GraphStore
from .stores.state import query_deadline

if TYPE_CHECKING:
    from .config import WorkableSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGED = "staged"
SINGLE_QUERY = "single_query"
STRATEGIES = (STAGED, SINGLE_QUERY)
DEFAULT_TIMEOUT_S = 50.0
DEFAULT_LIMIT = 50


class WorkableStrategy(Protocol):
    name: str

    def workable(self, limit: int | None = None) -> list[Action]: ...


def normalize_strategy(strategy: str) -> str:
    value = strategy.strip().lower().replace("-", "_")
    if value not in STRATEGIES:
        expected = ", ".join(STRATEGIES)
        raise ValueError(f"invalid strategy {strategy!r}; expected one of: {expected}")
    return value


def _normalize_limit(limit: int) -> int:
    value = int(limit)
    if value < 1:
        raise ValueError("limit must be at least 1")
    return value


class _LoadWorker(threading.Thread, Generic[T]):
    """Runs one bulk load under a query deadline and reports through ``future``.

    Daemonic so an abandoned load never keeps the interpreter alive.
    """

    def __init__(self, fn: Callable[[], T], *, timeout_s: float) -> None:
        super().__init__(name="actiongraph-load", daemon=True)
        self._fn = fn
        self._timeout_s = timeout_s
        self.future: Future[T] = Future()

    def run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            with query_deadline(self._timeout_s):
                result = self._fn()
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class WorkableService:
    """Entry point for consumers asking what can be worked on right now.

    Stateless between calls: every method reloads from the store. Store reads
    run on a worker thread under one wall-clock ceiling; exceeding it raises
    ``StoreTimeoutError`` and no partial result is returned.
    """

    def __init__(
        self,
        store: GraphStore,
        *,
        policy: str | Policy | None = None,
        strategy: str = STAGED,
        timeout_s: float | None = DEFAULT_TIMEOUT_S,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self.store = store
        self.policy = resolve_policy(policy)
        self.strategy_name = normalize_strategy(strategy)
        self.timeout_s = timeout_s
        self.default_limit = _normalize_limit(default_limit)

    @classmethod
    def from_settings(
        cls,
        store: GraphStore,
        settings: "WorkableSettings",
        *,
        policy: str | None = None,
        strategy: str | None = None,
        timeout_s: float | None = None,
    ) -> "WorkableService":
        """Build from file settings; keyword arguments that are set win."""
        return cls(
            store,
            policy=policy or settings.policy,
            strategy=strategy or settings.strategy,
            timeout_s=settings.timeout_s if timeout_s is None else timeout_s,
            default_limit=settings.default_limit,
        )

    def _strategy(self) -> WorkableStrategy:
        if self.strategy_name == SINGLE_QUERY:
            return SingleQueryStrategy(self.store, self.policy)
        return StagedStrategy(self.store, self.policy)

    def _within_deadline(self, fn: Callable[[], T], *, phase: str) -> T:
        if self.timeout_s is None:
            return fn()
        worker = _LoadWorker(fn, timeout_s=self.timeout_s)
        worker.start()
        try:
            return worker.future.result(timeout=self.timeout_s)
        except TimeoutError:
            if worker.future.done():
                # The store itself raised TimeoutError.
                raise
            logger.warning("%s exceeded %.1fs; abandoning result", phase, self.timeout_s)
            raise StoreTimeoutError(self.timeout_s, phase=phase) from None

    def get_workable(self, limit: int | None = None) -> list[Action]:
        requested = self.default_limit if limit is None else _normalize_limit(limit)
        strategy = self._strategy()
        return self._within_deadline(
            lambda: strategy.workable(requested),
            phase=f"{strategy.name} workable query",
        )

    def get_next(self) -> Action | None:
        strategy = self._strategy()
        candidates = self._within_deadline(
            lambda: strategy.workable(None),
            phase=f"{strategy.name} next-action query",
        )
        return select_next(candidates)

    def blocking_dependencies(self) -> list[BlockingDependency]:
        staged = StagedStrategy(self.store, self.policy)
        snapshot = self._within_deadline(staged.snapshot, phase="blocking report")
        return blocking_dependencies(snapshot)
