from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from docsctl.core import exit_codes
from docsctl.core.context import RunContext
from docsctl.core.errors import (
    AuthFailure,
    BuildFailure,
    EmptyArtifact,
    ProvisionFailure,
    ScriptError,
    SourceFailure,
    TransportFailure,
)
from docsctl.core.fs import dumps_json, ensure_evidence_path, resolve_evidence_path, write_json
from docsctl.core.git import UNKNOWN_SHA, read_git_context, read_head_commit
from docsctl.core.logging import log_event
from docsctl.core.process import NOT_FOUND_CODE, TIMEOUT_CODE, run_command
from docsctl.core.schema import validate_payload
from helpers import git, requires_git


def _ctx(tmp_path: Path, **kwargs: bool) -> RunContext:
    return RunContext.from_args("core-run", str(tmp_path), str(tmp_path / "evidence"), **kwargs)  # type: ignore[arg-type]


def test_error_registry_codes_are_unique() -> None:
    codes = [
        exit_codes.ERR_USAGE,
        exit_codes.ERR_CONFIG,
        exit_codes.ERR_PROVISION,
        exit_codes.ERR_SOURCE,
        exit_codes.ERR_BUILD,
        exit_codes.ERR_ARTIFACT,
        exit_codes.ERR_AUTH,
        exit_codes.ERR_TRANSPORT,
        exit_codes.ERR_INTERNAL,
    ]
    assert len(set(codes)) == len(codes)
    assert exit_codes.OK not in codes


@pytest.mark.parametrize(
    ("error", "kind", "stage", "code"),
    [
        (ProvisionFailure, "provision_failure", "provision", exit_codes.ERR_PROVISION),
        (SourceFailure, "source_failure", "source", exit_codes.ERR_SOURCE),
        (BuildFailure, "build_failure", "build", exit_codes.ERR_BUILD),
        (EmptyArtifact, "empty_artifact", "publish", exit_codes.ERR_ARTIFACT),
        (AuthFailure, "auth_failure", "publish", exit_codes.ERR_AUTH),
        (TransportFailure, "transport_failure", "publish", exit_codes.ERR_TRANSPORT),
    ],
)
def test_failure_kinds_carry_stage_and_code(error: type[ScriptError], kind: str, stage: str, code: int) -> None:
    exc = error("boom")
    assert isinstance(exc, ScriptError)
    assert (exc.kind, exc.stage, exc.code, str(exc)) == (kind, stage, code, "boom")


def test_run_default_run_id_and_evidence_root(tmp_path: Path) -> None:
    with patch.dict("os.environ", {}, clear=True):
        ctx = RunContext.from_args(None, str(tmp_path), None)
    assert re.fullmatch(r"docs-\d{8}-\d{6}-[0-9a-z]+", ctx.run_id)
    assert ctx.evidence_root == (tmp_path / "artifacts/docsctl").resolve()
    assert ctx.run_dir == ctx.evidence_root / ctx.run_id


def test_run_id_and_evidence_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUN_ID", "ci-42")
    monkeypatch.setenv("EVIDENCE_ROOT", "out/reports")
    ctx = RunContext.from_args(None, str(tmp_path), None)
    assert ctx.run_id == "ci-42"
    assert ctx.evidence_root == (tmp_path / "out/reports").resolve()


def test_run_command_captures_output(tmp_path: Path) -> None:
    res = run_command([sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"], tmp_path)
    assert res.ok
    assert (res.stdout.strip(), res.stderr.strip()) == ("out", "err")
    assert res.combined_output == "out\nerr"


def test_run_command_nonzero_exit(tmp_path: Path) -> None:
    res = run_command([sys.executable, "-c", "raise SystemExit(3)"], tmp_path)
    assert res.code == 3
    assert not res.ok


def test_run_command_timeout(tmp_path: Path) -> None:
    res = run_command([sys.executable, "-c", "import time; time.sleep(5)"], tmp_path, timeout_seconds=1)
    assert res.code == TIMEOUT_CODE
    assert "timed out after 1s" in res.stderr


def test_run_command_missing_binary(tmp_path: Path) -> None:
    res = run_command(["definitely-not-a-real-binary"], tmp_path)
    assert res.code == NOT_FOUND_CODE
    assert "cannot execute definitely-not-a-real-binary" in res.stderr


def test_run_command_env_is_merged(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCS_BASE", "kept")
    code = "import os; print(os.environ['DOCS_BASE'], os.environ['DOCS_EXTRA'])"
    res = run_command([sys.executable, "-c", code], tmp_path, env={"DOCS_EXTRA": "added"})
    assert res.stdout.strip() == "kept added"


def test_run_command_redacts_secrets_in_output_and_log(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ctx = _ctx(tmp_path, log_json=True, verbose=True)
    capsys.readouterr()
    res = run_command([sys.executable, "-c", "print('token=s3cr3t-value')"], tmp_path, secrets=("s3cr3t-value",), ctx=ctx)
    assert res.stdout.strip() == "token=***"
    err = capsys.readouterr().err
    assert "s3cr3t-value" not in err
    assert '"action": "run-command"' in err


def test_log_event_text_format(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log_event(_ctx(tmp_path), "info", "pipeline", "transition", state="built", previous="source_ready")
    line = capsys.readouterr().err.strip()
    assert "level=info run_id=core-run component=pipeline action=transition" in line
    assert line.endswith("previous=source_ready state=built")


def test_log_event_json_format(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log_event(_ctx(tmp_path, log_json=True), "error", "pipeline", "fail", kind="build_failure")
    payload = json.loads(capsys.readouterr().err)
    assert payload["level"] == "error"
    assert payload["kind"] == "build_failure"
    assert payload["file"].endswith("test_core.py")


def test_log_event_levels(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log_event(_ctx(tmp_path), "debug", "cli", "start")
    quiet = _ctx(tmp_path, quiet=True)
    log_event(quiet, "info", "pipeline", "start")
    log_event(quiet, "error", "pipeline", "fail")
    lines = capsys.readouterr().err.strip().splitlines()
    assert len(lines) == 1
    assert "action=fail" in lines[0]


def test_write_json_stays_under_evidence_root(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    out = write_json(ctx, ctx.run_dir / "run-report.json", {"b": 1, "a": 2})
    assert out.read_text(encoding="utf-8") == '{\n  "a": 2,\n  "b": 1\n}\n'
    with pytest.raises(ScriptError) as exc:
        ensure_evidence_path(ctx, tmp_path / "elsewhere.json")
    assert exc.value.kind == "forbidden_write_path"


def test_report_schema_rejects_unknown_status() -> None:
    payload = {
        "schema_version": 1,
        "tool": "docsctl",
        "run_id": "r",
        "status": "maybe",
        "state": "built",
        "trigger": {"branch": "main", "commit": "abc123", "event": "push"},
        "history": [],
        "failure": None,
        "artifact": None,
        "publish": None,
    }
    with pytest.raises(ScriptError) as exc:
        validate_payload(payload, "run-report.schema.json", what="run report")
    assert "status" in exc.value.message
    assert exc.value.code == exit_codes.ERR_CONFIG


def test_resolve_evidence_path_does_not_create_directories(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    out = resolve_evidence_path(ctx, ctx.run_dir / "run-report.json")
    assert out == (tmp_path / "evidence/core-run/run-report.json").resolve()
    assert not out.parent.exists()
    with pytest.raises(ScriptError):
        resolve_evidence_path(ctx, ctx.evidence_root / ".." / ".." / "escape.json")


def test_dumps_json_sorts_keys() -> None:
    assert dumps_json({"b": 1, "a": [2]}) == '{"a": [2], "b": 1}'
    assert dumps_json({"b": 1, "a": 2}, pretty=True) == '{\n  "a": 2,\n  "b": 1\n}'


def test_git_context_outside_a_work_tree(tmp_path: Path) -> None:
    with patch.dict("os.environ", {"GIT_CEILING_DIRECTORIES": str(tmp_path.parent)}):
        ctx = read_git_context(tmp_path)
        assert ctx.sha == UNKNOWN_SHA
        assert ctx.is_dirty is True
        assert read_head_commit(tmp_path) is None


@requires_git
def test_git_context_reads_head_and_dirty_state(tmp_path: Path) -> None:
    git("init", "--quiet", cwd=tmp_path)
    (tmp_path / "lib.rs").write_text("pub fn f() {}\n", encoding="utf-8")
    git("add", "lib.rs", cwd=tmp_path)
    git("-c", "user.name=t", "-c", "user.email=t@example.com", "-c", "commit.gpgsign=false", "commit", "--quiet", "-m", "init", cwd=tmp_path)
    head = read_head_commit(tmp_path)
    assert head is not None and len(head) == 40
    clean = read_git_context(tmp_path)
    assert head.startswith(clean.sha)
    assert clean.is_dirty is False
    (tmp_path / "lib.rs").write_text("pub fn g() {}\n", encoding="utf-8")
    assert read_git_context(tmp_path).is_dirty is True
