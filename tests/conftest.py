from __future__ import annotations

import shutil
import socket
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from docsctl.config import BuildConfig, PipelineConfig, default_config
from docsctl.core.context import RunContext
from helpers import git

_ALLOWED_MARKERS = {"unit", "integration", "slow"}
_CI_ENV = (
    "CI",
    "RUN_ID",
    "EVIDENCE_ROOT",
    "GITHUB_REF",
    "GITHUB_REF_NAME",
    "GITHUB_SHA",
    "GITHUB_EVENT_NAME",
    "GITHUB_REPOSITORY",
    "GITHUB_TOKEN",
    "DOCSCTL_TRACKED_BRANCH",
    "DOCSCTL_PUBLISH_BRANCH",
    "DOCSCTL_REPOSITORY",
)

FAKE_GENERATOR = '''\
import sys
from pathlib import Path

if Path("BROKEN").exists():
    sys.stderr.write("error[E0425]: cannot find value `x` in this scope\\n")
    raise SystemExit(101)
out = Path("target/doc")
for module in sys.argv[1:]:
    page = out / module / "index.html"
    page.parent.mkdir(parents=True, exist_ok=True)
    page.write_text(f"<html><body>{module}</body></html>\\n", encoding="utf-8")
(out / "search-index.js").write_text("var searchIndex = {};\\n", encoding="utf-8")
'''


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


@pytest.fixture(autouse=True)
def clean_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _CI_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def rust_source(tmp_path: Path) -> Path:
    src = tmp_path / "source"
    (src / "src").mkdir(parents=True)
    (src / "Cargo.toml").write_text(
        '[package]\nname = "demo-crate"\nversion = "0.1.0"\nedition = "2021"\n',
        encoding="utf-8",
    )
    (src / "src/lib.rs").write_text("/// Adds one.\npub fn add_one(x: i32) -> i32 { x + 1 }\n", encoding="utf-8")
    return src


@pytest.fixture
def fake_generator(tmp_path: Path) -> Path:
    script = tmp_path / "fake_rustdoc.py"
    script.write_text(FAKE_GENERATOR, encoding="utf-8")
    return script


@pytest.fixture
def build_config(fake_generator: Path) -> BuildConfig:
    return BuildConfig(command=(sys.executable, str(fake_generator), "demo_crate"), output_dir="target/doc")


@pytest.fixture
def ctx(rust_source: Path, tmp_path: Path) -> RunContext:
    return RunContext.from_args("test-run", str(rust_source), str(tmp_path / "evidence"), quiet=True)


@pytest.fixture
def pipeline_config(build_config: BuildConfig, tmp_path: Path) -> PipelineConfig:
    base = default_config()
    return replace(
        base,
        provision=replace(base.provision, tools=()),
        build=build_config,
        publish=replace(base.publish, repository=str(tmp_path / "remote.git")),
    )


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    remote = tmp_path / "remote.git"
    git("init", "--quiet", "--bare", str(remote))
    return remote
