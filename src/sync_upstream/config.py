"""Configuration loader and run input resolution."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError


DEFAULT_CONFIG = {
    "inputs": {
        "upstream-url": None,
        "upstream-branch": "main",
        "target-branch": "main",
        "user-email": "action@github.com",
        "user-name": "GitHub Action",
        "pr-title": "Merge upstream changes",
        "pr-body": "This PR merges changes from upstream.",
        "pr-branch-prefix": "sync-upstream",
        "github-token": None,
        "always-use-pr": "true",
    },
    "api": {
        "timeout_seconds": 30,
        "per_page": 100,
    },
}

REQUIRED_INPUTS = ("upstream-url", "github-token")
DEFAULT_API_URL = "https://api.github.com"

_TRUE_VALUES = {"true", "yes", "1", "on"}
_FALSE_VALUES = {"false", "no", "0", "off"}


@dataclass(frozen=True)
class RunConfig:
    upstream_url: str
    github_token: str
    upstream_branch: str = "main"
    target_branch: str = "main"
    user_email: str = "action@github.com"
    user_name: str = "GitHub Action"
    pr_title: str = "Merge upstream changes"
    pr_body: str = "This PR merges changes from upstream."
    pr_branch_prefix: str = "sync-upstream"
    always_use_pr: bool = True

    @property
    def upstream_ref(self) -> str:
        return f"upstream/{self.upstream_branch}"

    def sync_branch(self, run_id: str) -> str:
        """Branch name for a given run: ``{prefix}-{run_id}``."""
        return f"{self.pr_branch_prefix}-{run_id}"

    def redacted(self) -> dict[str, Any]:
        return {
            "upstream-url": self.upstream_url,
            "upstream-branch": self.upstream_branch,
            "target-branch": self.target_branch,
            "user-email": self.user_email,
            "user-name": self.user_name,
            "pr-title": self.pr_title,
            "pr-body": self.pr_body,
            "pr-branch-prefix": self.pr_branch_prefix,
            "github-token": "***" if self.github_token else "",
            "always-use-pr": self.always_use_pr,
        }


@dataclass(frozen=True)
class RunContext:
    run_id: str
    owner: str
    repo: str
    api_url: str = DEFAULT_API_URL

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def load_config(path: str | None) -> dict:
    """Load config from YAML file, falling back to defaults."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not path:
        return config

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        _deep_merge(config, user_config)

    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def input_env_name(name: str) -> str:
    """Environment variable the Actions runner uses for an input."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(
    name: str,
    overrides: Mapping[str, Any] | None = None,
    config: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    required: bool = False,
) -> str:
    """Resolve one input: override, then environment, then config file.

    Empty strings count as unset at every level.
    """
    env = os.environ if env is None else env
    candidates = [
        (overrides or {}).get(name),
        env.get(input_env_name(name)),
        ((config or {}).get("inputs") or {}).get(name),
    ]
    for value in candidates:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    if required:
        raise ConfigError(f"Input required and not supplied: {name}")
    return ""


def parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Input {name} must be a boolean (true/false), got {value!r}")


def load_run_config(
    overrides: Mapping[str, Any] | None = None,
    config: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> RunConfig:
    config = DEFAULT_CONFIG if config is None else config
    defaults = DEFAULT_CONFIG["inputs"]

    def _value(name: str) -> str:
        return get_input(name, overrides, config, env) or str(defaults[name])

    return RunConfig(
        upstream_url=get_input("upstream-url", overrides, config, env, required=True),
        github_token=get_input("github-token", overrides, config, env, required=True),
        upstream_branch=_value("upstream-branch"),
        target_branch=_value("target-branch"),
        user_email=_value("user-email"),
        user_name=_value("user-name"),
        pr_title=_value("pr-title"),
        pr_body=_value("pr-body"),
        pr_branch_prefix=_value("pr-branch-prefix"),
        always_use_pr=parse_bool("always-use-pr", _value("always-use-pr")),
    )


def load_run_context(
    run_id: str | None = None,
    repository: str | None = None,
    env: Mapping[str, str] | None = None,
) -> RunContext:
    """Read run coordinates from the Actions environment."""
    env = os.environ if env is None else env
    run_id = (run_id or env.get("GITHUB_RUN_ID") or "").strip()
    repository = (repository or env.get("GITHUB_REPOSITORY") or "").strip()
    api_url = (env.get("GITHUB_API_URL") or DEFAULT_API_URL).strip().rstrip("/")

    if not run_id:
        raise ConfigError("Run identifier is missing (set GITHUB_RUN_ID or pass --run-id)")
    if repository.count("/") != 1:
        raise ConfigError(
            f"Repository must look like owner/name (set GITHUB_REPOSITORY), got {repository!r}"
        )
    owner, name = repository.split("/")
    if not owner or not name:
        raise ConfigError(f"Repository must look like owner/name, got {repository!r}")

    return RunContext(run_id=run_id, owner=owner, repo=name, api_url=api_url)
