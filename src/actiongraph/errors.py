from __future__ import annotations


class ActiongraphError(Exception):
    pass


class StoreError(ActiongraphError):
    """A store read failed. Propagated to the caller unchanged in meaning."""

    retryable = False


class StoreTimeoutError(StoreError):
    retryable = True

    def __init__(self, timeout_s: float, *, phase: str = "bulk load") -> None:
        super().__init__(f"{phase} timed out after {timeout_s:g}s")
        self.timeout_s = timeout_s
        self.phase = phase


class ConfigValidationError(ValueError):
    pass
