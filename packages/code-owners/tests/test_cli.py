from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from code_owners.cli import app


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys.modules["code_owners.cli.app"], "setup_logging", lambda level: None)


def _write_json(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _workspace(tmp_path: Path) -> tuple[Path, Path, Path]:
    checkout = tmp_path / "repo"
    (checkout / "foo").mkdir(parents=True)
    (checkout / "OWNERS").write_text("alice@example.com\n", encoding="utf-8")
    (checkout / "foo" / "OWNERS").write_text("bob@example.com\n", encoding="utf-8")

    accounts = _write_json(
        tmp_path / "accounts.json",
        {
            "accounts": [
                {"account_id": 2, "emails": ["alice@example.com"], "display_name": "Alice"},
                {"account_id": 3, "emails": ["bob@example.com"], "display_name": "Bob"},
                {"account_id": 4, "emails": ["carol@example.com"], "display_name": "Carol"},
            ],
            "project_owners": {"local": [2]},
        },
    )
    change = _write_json(
        tmp_path / "change.json",
        {
            "change": {
                "project": "local",
                "branch": "master",
                "number": 7,
                "owner": 4,
                "uploader": 4,
                "current_revision": "a" * 40,
                "reviewers": [2],
                "approvals": [{"account_id": 2, "label": "Code-Review", "value": 1}],
            },
            "changed_files": [{"old_path": "/foo/x.py", "new_path": "/foo/x.py", "kind": "modified"}],
        },
    )
    return checkout, accounts, change


def test_validate_reports_skipped_lines(tmp_path: Path) -> None:
    owners = tmp_path / "OWNERS"
    owners.write_text("a@x\n@bad\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["validate", str(owners)])
    assert result.exit_code == 0, result.output
    assert "skipped" in result.output
    assert "1 skipped line(s)" in result.output


def test_validate_fails_on_broken_structured_config(tmp_path: Path) -> None:
    metadata = tmp_path / "OWNERS_METADATA"
    metadata.write_text("owners_config {\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["validate", str(metadata), "--format", "proto"])
    assert result.exit_code == 1
    assert "unterminated block" in result.output


def test_format_canonicalises(tmp_path: Path) -> None:
    owners = tmp_path / "OWNERS"
    owners.write_text("b@x\n# comment\na@x\nb@x\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["format", str(owners)])
    assert result.exit_code == 0, result.output
    assert result.output == "a@x\nb@x\n"


def test_format_converts_between_formats(tmp_path: Path) -> None:
    owners = tmp_path / "OWNERS"
    owners.write_text("a@x\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["format", str(owners), "--to", "proto"])
    assert result.exit_code == 0, result.output
    assert 'email: "a@x"' in result.output


def test_format_reports_unsupported_features(tmp_path: Path) -> None:
    owners = tmp_path / "OWNERS"
    owners.write_text("per-file *.md=set noparent\nper-file *.md=a@x\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["format", str(owners), "--to", "proto"])
    assert result.exit_code == 1
    assert "ignoreGlobalAndParentOwners is not supported" in result.output


def test_unknown_format_is_rejected(tmp_path: Path) -> None:
    owners = tmp_path / "OWNERS"
    owners.write_text("a@x\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["validate", str(owners), "--format", "yaml"])
    assert result.exit_code != 0


def test_owners(tmp_path: Path) -> None:
    checkout, accounts, _ = _workspace(tmp_path)
    result = CliRunner().invoke(
        app, ["owners", "--checkout", str(checkout), "--path", "/foo/x.py", "--accounts", str(accounts)]
    )
    assert result.exit_code == 0, result.output
    assert "Bob" in result.output
    assert "Alice" in result.output


def test_status(tmp_path: Path) -> None:
    checkout, accounts, change = _workspace(tmp_path)
    result = CliRunner().invoke(
        app,
        ["status", "--checkout", str(checkout), "--change", str(change), "--accounts", str(accounts)],
    )
    assert result.exit_code == 0, result.output
    assert "APPROVED" in result.output
    assert "submittable yes" in result.output


def test_status_with_invalid_project_config(tmp_path: Path) -> None:
    checkout, accounts, change = _workspace(tmp_path)
    project_config = _write_json(tmp_path / "code-owners.json", {"required_approval": "nonsense"})
    result = CliRunner().invoke(
        app,
        [
            "status",
            "--checkout",
            str(checkout),
            "--change",
            str(change),
            "--accounts",
            str(accounts),
            "--project-config",
            str(project_config),
        ],
    )
    assert result.exit_code == 1
    assert "invalid project configuration" in result.output


def test_suggest(tmp_path: Path) -> None:
    checkout, accounts, change = _workspace(tmp_path)
    result = CliRunner().invoke(
        app,
        [
            "suggest",
            "--checkout",
            str(checkout),
            "--change",
            str(change),
            "--path",
            "/foo/x.py",
            "--accounts",
            str(accounts),
        ],
    )
    assert result.exit_code == 0, result.output
    assert result.output.index("Alice") < result.output.index("Bob")
