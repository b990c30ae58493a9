from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..core.env import getenv
from ..core.errors import ScriptError
from ..core.exit_codes import ERR_CONFIG
from ..core.schema import validate_payload

DEFAULT_CONFIG_NAME = "docsctl.yaml"

DEFAULTS: dict[str, Any] = {
    "tracked_branch": "main",
    "provision": {
        "tools": ["protoc", "cargo", "rustdoc"],
        "rust_toolchain": "stable",
        "rust_components": ["rustfmt"],
        "install": False,
    },
    "build": {
        "command": ["cargo", "doc", "--no-deps"],
        "output_dir": "target/doc",
        "env": {},
        "timeout_seconds": 0,
    },
    "publish": {
        "branch": "gh-pages",
        "repository": None,
        "token_env": "GITHUB_TOKEN",
        "allow_empty_commit": False,
        "nojekyll": False,
        "cname": None,
        "user_name": "github-actions[bot]",
        "user_email": "41898282+github-actions[bot]@users.noreply.github.com",
        "commit_message": "deploy: {commit}",
    },
}

_ENV_OVERRIDES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("DOCSCTL_TRACKED_BRANCH", ("tracked_branch",)),
    ("DOCSCTL_PUBLISH_BRANCH", ("publish", "branch")),
    ("DOCSCTL_REPOSITORY", ("publish", "repository")),
)


@dataclass(frozen=True)
class ProvisionConfig:
    tools: tuple[str, ...]
    rust_toolchain: str
    rust_components: tuple[str, ...]
    install: bool


@dataclass(frozen=True)
class BuildConfig:
    command: tuple[str, ...]
    output_dir: str
    env: dict[str, str] = field(default_factory=dict)
    timeout_seconds: int = 0


@dataclass(frozen=True)
class PublishConfig:
    branch: str
    repository: str | None
    token_env: str
    allow_empty_commit: bool
    nojekyll: bool
    cname: str | None
    user_name: str
    user_email: str
    commit_message: str

    def render_message(self, commit: str) -> str:
        return self.commit_message.replace("{commit}", commit)


@dataclass(frozen=True)
class PipelineConfig:
    tracked_branch: str
    provision: ProvisionConfig
    build: BuildConfig
    publish: PublishConfig
    path: Path | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "tracked_branch": self.tracked_branch,
            "provision": {
                "tools": list(self.provision.tools),
                "rust_toolchain": self.provision.rust_toolchain,
                "rust_components": list(self.provision.rust_components),
                "install": self.provision.install,
            },
            "build": {
                "command": list(self.build.command),
                "output_dir": self.build.output_dir,
                "env": dict(self.build.env),
                "timeout_seconds": self.build.timeout_seconds,
            },
            "publish": {
                "branch": self.publish.branch,
                "repository": self.publish.repository,
                "token_env": self.publish.token_env,
                "allow_empty_commit": self.publish.allow_empty_commit,
                "nojekyll": self.publish.nojekyll,
                "cname": self.publish.cname,
                "user_name": self.publish.user_name,
                "user_email": self.publish.user_email,
                "commit_message": self.publish.commit_message,
            },
        }


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ScriptError(f"invalid YAML in {path}: {exc}", ERR_CONFIG, kind="config_error", stage="config") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ScriptError(f"{path}: root must be mapping", ERR_CONFIG, kind="config_error", stage="config")
    return data


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    for name, key_path in _ENV_OVERRIDES:
        value = getenv(name)
        if not value:
            continue
        target = raw
        for key in key_path[:-1]:
            target = target.setdefault(key, {})
        target[key_path[-1]] = value
    publish = raw.setdefault("publish", {})
    if not publish.get("repository"):
        publish["repository"] = getenv("GITHUB_REPOSITORY") or None
    return raw


def resolve_config_path(source_root: Path, explicit: str | None) -> Path | None:
    if explicit:
        path = Path(explicit)
        path = path if path.is_absolute() else (source_root / path)
        if not path.is_file():
            raise ScriptError(f"config file not found: {path}", ERR_CONFIG, kind="config_error", stage="config")
        return path
    candidate = source_root / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


def load_config(source_root: Path, explicit: str | None = None) -> PipelineConfig:
    path = resolve_config_path(source_root, explicit)
    file_data = _read_yaml(path) if path is not None else {}
    raw = _apply_env_overrides(_deep_merge(DEFAULTS, file_data))
    validate_payload(raw, "config.schema.json", what=str(path or "config"))
    return config_from_mapping(raw, path)


def config_from_mapping(raw: dict[str, Any], path: Path | None = None) -> PipelineConfig:
    prov = raw["provision"]
    build = raw["build"]
    pub = raw["publish"]
    return PipelineConfig(
        tracked_branch=raw["tracked_branch"],
        provision=ProvisionConfig(
            tools=tuple(prov["tools"]),
            rust_toolchain=prov["rust_toolchain"],
            rust_components=tuple(prov["rust_components"]),
            install=bool(prov["install"]),
        ),
        build=BuildConfig(
            command=tuple(build["command"]),
            output_dir=build["output_dir"],
            env=dict(build["env"]),
            timeout_seconds=int(build["timeout_seconds"]),
        ),
        publish=PublishConfig(
            branch=pub["branch"],
            repository=pub.get("repository"),
            token_env=pub["token_env"],
            allow_empty_commit=bool(pub["allow_empty_commit"]),
            nojekyll=bool(pub["nojekyll"]),
            cname=pub.get("cname"),
            user_name=pub["user_name"],
            user_email=pub["user_email"],
            commit_message=pub["commit_message"],
        ),
        path=path,
    )


def default_config() -> PipelineConfig:
    return config_from_mapping(copy.deepcopy(DEFAULTS))
