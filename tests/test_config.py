from __future__ import annotations

from pathlib import Path

from actiongraph.config import WorkableSettings, load_config
from actiongraph.service import WorkableService
from actiongraph.stores.action import ActionStore


def _write_config(state_dir: Path, body: str) -> None:
    state_dir.mkdir(parents=True, exist_ok=True)
    (state_dir / "actiongraph.toml").write_text(body.strip() + "\n", encoding="utf-8")


def test_missing_config_yields_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)

    assert cfg.error is None
    assert cfg.workable == WorkableSettings()
    assert cfg.workable.policy == "consolidated"
    assert cfg.workable.strategy == "staged"


def test_workable_table_is_parsed(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[workable]
policy = "Legacy"
strategy = "single-query"
timeout_s = 5
default_limit = 10
""",
    )

    cfg = load_config(tmp_path)

    assert cfg.error is None
    assert cfg.workable == WorkableSettings(
        policy="legacy",
        strategy="single_query",
        timeout_s=5.0,
        default_limit=10,
    )


def test_invalid_toml_is_reported(tmp_path: Path) -> None:
    _write_config(tmp_path, "[workable\npolicy = ")

    cfg = load_config(tmp_path)

    assert cfg.error is not None
    assert "invalid TOML in actiongraph.toml" in cfg.error


def test_invalid_values_are_reported(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[workable]
policy = "strict"
""",
    )

    cfg = load_config(tmp_path)

    assert cfg.error == (
        "actiongraph.toml: [workable].policy must be one of: consolidated, legacy"
    )


def test_unknown_keys_and_bad_numbers_are_reported(tmp_path: Path) -> None:
    _write_config(tmp_path, "[workable]\npriority = 1\n")
    assert "unknown key(s) in [workable]: priority" in (load_config(tmp_path).error or "")

    _write_config(tmp_path, "[workable]\ntimeout_s = -1\n")
    assert "[workable].timeout_s must be positive" in (load_config(tmp_path).error or "")

    _write_config(tmp_path, "[workable]\ndefault_limit = true\n")
    assert "[workable].default_limit must be an integer" in (
        load_config(tmp_path).error or ""
    )


def test_service_from_settings(store: ActionStore) -> None:
    settings = WorkableSettings(policy="legacy", strategy="single_query", default_limit=7)

    service = WorkableService.from_settings(store, settings)

    assert service.policy.name == "legacy"
    assert service.strategy_name == "single_query"
    assert service.default_limit == 7


def test_from_settings_lets_explicit_arguments_win(store: ActionStore) -> None:
    settings = WorkableSettings(policy="legacy", strategy="single_query", timeout_s=9.0)

    service = WorkableService.from_settings(
        store,
        settings,
        policy="consolidated",
        timeout_s=2.5,
    )

    assert service.policy.name == "consolidated"
    assert service.strategy_name == "single_query"
    assert service.timeout_s == 2.5
