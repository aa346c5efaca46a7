"""Tests for the snipsync command line."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from fakes import MemoryRemoteStore
from snipsync import cli


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    yield
    logger = logging.getLogger("snipsync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    (root / "config").mkdir(parents=True)
    (root / "config" / "20-local.yml").write_text(
        "github:\n  repo: octo/snippets\n",
        encoding="utf-8",
    )
    (root / "snippets").mkdir()
    return root


@pytest.fixture
def remote(monkeypatch: pytest.MonkeyPatch) -> MemoryRemoteStore:
    store = MemoryRemoteStore()
    monkeypatch.setattr(cli, "open_remote", lambda bundle: store)
    return store


def _write(workspace: Path, name: str, content: str) -> None:
    (workspace / "snippets" / name).write_text(content, encoding="utf-8")


def test_push_uploads_new_snippets(workspace, remote, capsys):
    _write(workspace, "a.css", "body{color:red}")

    code = cli.main(["--workspace", str(workspace), "push"])

    assert code == cli.EXIT_OK
    assert remote.files == {"a.css": "body{color:red}"}
    out = capsys.readouterr().out
    assert "Uploaded" in out
    assert "1 uploaded" in out


def test_push_reports_conflicts_with_nonzero_exit(workspace, remote, capsys):
    _write(workspace, "a.css", "body{color:blue}")
    remote.files["a.css"] = "body{color:red}"

    code = cli.main(["--workspace", str(workspace), "push"])

    assert code == cli.EXIT_SYNC_FAILED
    assert remote.writes == []
    assert "1 conflicts" in capsys.readouterr().out


def test_forced_push_of_named_snippet(workspace, remote):
    _write(workspace, "a.css", "body{color:blue}")
    _write(workspace, "b.css", "b")
    remote.files["a.css"] = "body{color:red}"

    code = cli.main(["--workspace", str(workspace), "push", "--force", "a.css"])

    assert code == cli.EXIT_OK
    assert remote.files == {"a.css": "body{color:blue}"}


def test_pull_writes_into_snippet_directory(workspace, remote):
    remote.files["themes/dark.css"] = ".dark{}"

    code = cli.main(["--workspace", str(workspace), "pull"])

    assert code == cli.EXIT_OK
    assert (workspace / "snippets" / "dark.css").read_text(encoding="utf-8") == ".dark{}"


def test_diff_shows_actions(workspace, remote, capsys):
    _write(workspace, "a.css", "a")
    _write(workspace, "b.css", "b")
    remote.files["b.css"] = "b"

    code = cli.main(["--workspace", str(workspace), "diff"])

    assert code == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "upload" in out
    assert "skip" in out
    assert "1 of 2 snippets need syncing" in out
    assert remote.writes == []


def test_status_lists_counts(workspace, remote, capsys):
    _write(workspace, "a.css", "a")
    remote.files["a.css"] = "a"

    assert cli.main(["--workspace", str(workspace), "status"]) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "octo/snippets" in out
    assert "Local Snippets" in out


def test_resolve_keep_remote(workspace, remote):
    _write(workspace, "a.css", "local")
    remote.files["a.css"] = "remote"

    code = cli.main(["--workspace", str(workspace), "resolve", "a.css", "--keep", "remote"])

    assert code == cli.EXIT_OK
    assert (workspace / "snippets" / "a.css").read_text(encoding="utf-8") == "remote"


def test_verify_round_trip(workspace, remote, capsys):
    code = cli.main(["--workspace", str(workspace), "verify"])

    assert code == cli.EXIT_OK
    assert "Round trip consistent" in capsys.readouterr().out
    assert remote.files == {}


def test_remote_failure_is_reported(workspace, remote, capsys):
    _write(workspace, "a.css", "a")
    remote.fail_listing = True

    code = cli.main(["--workspace", str(workspace), "push"])

    assert code == cli.EXIT_SYNC_FAILED
    assert "push failed" in capsys.readouterr().err


def test_missing_workspace_exits_with_config_error(tmp_path, capsys):
    code = cli.main(["--workspace", str(tmp_path / "nope"), "status"])

    assert code == cli.EXIT_CONFIG
    assert "[config]" in capsys.readouterr().err


def test_unconfigured_repository_is_an_error(tmp_path, capsys):
    root = tmp_path / "ws"
    root.mkdir()

    code = cli.main(["--workspace", str(root), "status"])

    assert code == cli.EXIT_SYNC_FAILED
    assert "No repository configured" in capsys.readouterr().err


def test_remote_store_is_closed_after_command(workspace, remote):
    cli.main(["--workspace", str(workspace), "status"])

    assert remote.closed is True


def test_push_json_output(workspace, remote, capsys):
    _write(workspace, "a.css", "a")

    code = cli.main(["--workspace", str(workspace), "--json", "push"])

    assert code == cli.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["uploaded"] == ["a.css"]
    assert data["success"] is True


def test_diff_json_output(workspace, remote, capsys):
    _write(workspace, "a.css", "a")

    code = cli.main(["--workspace", str(workspace), "--json", "diff"])

    assert code == cli.EXIT_OK
    [record] = json.loads(capsys.readouterr().out)
    assert record["name"] == "a.css"
    assert record["action"] == "upload"


def test_push_of_unknown_name_fails(workspace, remote, capsys):
    _write(workspace, "a.css", "a")

    code = cli.main(["--workspace", str(workspace), "push", "typo.css"])

    assert code == cli.EXIT_SYNC_FAILED
    assert "typo.css" in capsys.readouterr().out
    assert remote.writes == []
