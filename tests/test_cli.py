from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from actiongraph import cli
from actiongraph.errors import StoreTimeoutError
from actiongraph.service import WorkableService
from actiongraph.stores.action import ActionStore


def _new(capsys: pytest.CaptureFixture[str], title: str) -> str:
    cli.main(["new", title])
    return capsys.readouterr().out.strip()


def test_next_on_empty_workdir_reports_all_done_without_side_effects(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    cli.main(["next"])

    assert "(all done)" in capsys.readouterr().out
    assert not (tmp_path / ".actiongraph").exists()


def test_workable_json_respects_dependencies(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    first = _new(capsys, "Design schema")
    second = _new(capsys, "Write migration")
    cli.main(["dep", "add", first, "depends_on", second])
    capsys.readouterr()

    cli.main(["workable", "--json"])
    rows = json.loads(capsys.readouterr().out)

    assert [row["id"] for row in rows] == [first]
    assert rows[0]["title"] == "Design schema"
    assert rows[0]["done"] is False


@pytest.mark.parametrize("strategy", ["staged", "single_query"])
def test_done_and_undo_change_what_is_workable(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    strategy: str,
) -> None:
    monkeypatch.chdir(tmp_path)
    first = _new(capsys, "First")
    second = _new(capsys, "Second")
    cli.main(["dep", "add", first, "blocks", second])
    cli.main(["done", first])
    capsys.readouterr()

    cli.main(["workable", "--strategy", strategy, "--output", "plain"])
    after_done = capsys.readouterr().out

    cli.main(["undo", first])
    capsys.readouterr()
    cli.main(["workable", "--strategy", strategy, "--output", "plain"])
    after_undo = capsys.readouterr().out

    assert second in after_done and first not in after_done
    assert first in after_undo and second not in after_undo


def test_next_json_returns_single_action(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    store = ActionStore.from_workdir(tmp_path)
    store.create("Old", at=1_000)
    fresh = store.create("Fresh", at=2_000)

    cli.main(["next", "--json"])

    assert json.loads(capsys.readouterr().out)["id"] == fresh.id


def test_blockers_and_consolidate_use_legacy_family_edges(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    parent = _new(capsys, "Parent")
    child = _new(capsys, "Child")
    cli.main(["dep", "add", parent, "family", child])
    capsys.readouterr()

    cli.main(["blockers", "--json"])
    assert json.loads(capsys.readouterr().out) == []

    cli.main(["consolidate"])
    assert "inserted 1 depends_on edge(s)" in capsys.readouterr().out

    cli.main(["blockers", "--json"])
    report = json.loads(capsys.readouterr().out)
    assert [row["blocker"]["id"] for row in report] == [child]
    assert [row["id"] for row in report[0]["blocked"]] == [parent]


def test_config_policy_is_used_unless_overridden(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    parent = _new(capsys, "Parent")
    child = _new(capsys, "Child")
    cli.main(["dep", "add", parent, "child", child])
    (tmp_path / ".actiongraph" / "actiongraph.toml").write_text(
        '[workable]\npolicy = "legacy"\n',
        encoding="utf-8",
    )
    capsys.readouterr()

    cli.main(["workable", "--json"])
    legacy_ids = {row["id"] for row in json.loads(capsys.readouterr().out)}
    cli.main(["workable", "--json", "--policy", "consolidated"])
    consolidated_ids = {row["id"] for row in json.loads(capsys.readouterr().out)}

    assert legacy_ids == {child}
    assert consolidated_ids == {parent, child}


def test_invalid_config_exits_with_usage_error(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    state_dir = tmp_path / ".actiongraph"
    state_dir.mkdir()
    (state_dir / "actiongraph.toml").write_text(
        '[workable]\nstrategy = "fast"\n',
        encoding="utf-8",
    )

    with pytest.raises(SystemExit) as raised:
        cli.main(["workable"])

    assert raised.value.code == 2
    assert "[workable].strategy must be one of" in capsys.readouterr().err


def test_unknown_action_prints_error(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    _new(capsys, "Seed")

    with pytest.raises(SystemExit) as raised:
        cli.main(["done", "action-missing"])

    assert raised.value.code == 1
    assert "error: unknown action: action-missing" in capsys.readouterr().err


def test_timeout_exits_with_tempfail(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)

    def _timeout(self: WorkableService, limit: int | None = None) -> list:
        raise StoreTimeoutError(0.5, phase="staged workable query")

    monkeypatch.setattr(WorkableService, "get_workable", _timeout)

    with pytest.raises(SystemExit) as raised:
        cli.main(["workable"])

    assert raised.value.code == cli.EXIT_TEMPFAIL
    assert "timed out after 0.5s (retryable)" in capsys.readouterr().err


def test_rich_output_renders_table(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    _new(capsys, "Visible")

    cli.main(["workable", "--output", "rich"])

    out = capsys.readouterr().out
    assert "Workable Actions" in out
    assert "Visible" in out


def test_verbose_flag_only_claims_the_logger_for_that_run(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.chdir(tmp_path)
    logger = logging.getLogger("actiongraph")

    cli.main(["-v", "next"])
    assert any(isinstance(handler, RichHandler) for handler in logger.handlers)
    assert logger.propagate is False

    cli.main(["next"])
    capsys.readouterr()
    assert not any(isinstance(handler, RichHandler) for handler in logger.handlers)

    with caplog.at_level(logging.WARNING, logger="actiongraph"):
        logging.getLogger("actiongraph.service").warning("load abandoned")
    assert "load abandoned" in caplog.text
