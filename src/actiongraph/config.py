from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomllib

from .errors import ConfigValidationError
from .policy import POLICIES, DEFAULT_POLICY
from .service import DEFAULT_LIMIT, DEFAULT_TIMEOUT_S, STAGED, STRATEGIES

_WORKABLE_KEYS = ("policy", "strategy", "timeout_s", "default_limit")


@dataclass(frozen=True)
class WorkableSettings:
    policy: str = DEFAULT_POLICY.name
    strategy: str = STAGED
    timeout_s: float = DEFAULT_TIMEOUT_S
    default_limit: int = DEFAULT_LIMIT


@dataclass(frozen=True)
class ActiongraphFileConfig:
    root: Path
    path: Path
    workable: WorkableSettings = field(default_factory=WorkableSettings)
    error: str | None = None


def _as_choice(value: object, *, field: str, choices: tuple[str, ...]) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigValidationError(f"{field} must be a non-empty string")
    lowered = value.strip().lower().replace("-", "_")
    if lowered not in choices:
        expected = ", ".join(choices)
        raise ConfigValidationError(f"{field} must be one of: {expected}")
    return lowered


def _as_positive_float(value: object, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(f"{field} must be a number")
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise ConfigValidationError(f"{field} must be positive")
    return number


def _as_positive_int(value: object, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(f"{field} must be an integer")
    if value < 1:
        raise ConfigValidationError(f"{field} must be at least 1")
    return value


def _parse_workable(raw: object) -> WorkableSettings:
    if raw is None:
        return WorkableSettings()
    if not isinstance(raw, dict):
        raise ConfigValidationError("[workable] must be a table")

    unknown = sorted(set(raw) - set(_WORKABLE_KEYS))
    if unknown:
        raise ConfigValidationError(
            f"unknown key(s) in [workable]: {', '.join(unknown)}"
        )

    defaults = WorkableSettings()
    return WorkableSettings(
        policy=(
            _as_choice(
                raw["policy"],
                field="[workable].policy",
                choices=tuple(POLICIES),
            )
            if "policy" in raw
            else defaults.policy
        ),
        strategy=(
            _as_choice(
                raw["strategy"],
                field="[workable].strategy",
                choices=STRATEGIES,
            )
            if "strategy" in raw
            else defaults.strategy
        ),
        timeout_s=(
            _as_positive_float(raw["timeout_s"], field="[workable].timeout_s")
            if "timeout_s" in raw
            else defaults.timeout_s
        ),
        default_limit=(
            _as_positive_int(raw["default_limit"], field="[workable].default_limit")
            if "default_limit" in raw
            else defaults.default_limit
        ),
    )


def load_config(state_dir: Path) -> ActiongraphFileConfig:
    path = state_dir / "actiongraph.toml"
    if not path.exists():
        return ActiongraphFileConfig(root=state_dir, path=path)

    raw: dict[str, Any]
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        return ActiongraphFileConfig(
            root=state_dir,
            path=path,
            error=f"invalid TOML in {path.name}: {exc}",
        )

    try:
        workable = _parse_workable(raw.get("workable"))
    except ConfigValidationError as exc:
        return ActiongraphFileConfig(
            root=state_dir,
            path=path,
            error=f"{path.name}: {exc}",
        )

    return ActiongraphFileConfig(root=state_dir, path=path, workable=workable)
