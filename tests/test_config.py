import pytest
import yaml

from sync_upstream.config import (
    DEFAULT_CONFIG,
    RunConfig,
    get_input,
    input_env_name,
    load_config,
    load_run_config,
    load_run_context,
)
from sync_upstream.errors import ConfigError

REQUIRED_ENV = {
    "INPUT_UPSTREAM-URL": "https://github.com/test/upstream.git",
    "INPUT_GITHUB-TOKEN": "fake-token",
}


def test_input_env_name_matches_actions_runner():
    assert input_env_name("upstream-url") == "INPUT_UPSTREAM-URL"
    assert input_env_name("pr title") == "INPUT_PR_TITLE"


def test_load_run_config_applies_defaults():
    cfg = load_run_config(env=REQUIRED_ENV)

    assert cfg.upstream_url == "https://github.com/test/upstream.git"
    assert cfg.github_token == "fake-token"
    assert cfg.upstream_branch == "main"
    assert cfg.target_branch == "main"
    assert cfg.user_email == "action@github.com"
    assert cfg.user_name == "GitHub Action"
    assert cfg.pr_title == "Merge upstream changes"
    assert cfg.pr_body == "This PR merges changes from upstream."
    assert cfg.pr_branch_prefix == "sync-upstream"
    assert cfg.always_use_pr is True


def test_empty_input_counts_as_unset():
    env = dict(REQUIRED_ENV, **{"INPUT_TARGET-BRANCH": "  ", "INPUT_PR-TITLE": ""})

    cfg = load_run_config(env=env)

    assert cfg.target_branch == "main"
    assert cfg.pr_title == "Merge upstream changes"


@pytest.mark.parametrize("missing", ["INPUT_UPSTREAM-URL", "INPUT_GITHUB-TOKEN"])
def test_missing_required_input_raises(missing):
    env = dict(REQUIRED_ENV)
    del env[missing]
    name = missing.removeprefix("INPUT_").lower()

    with pytest.raises(ConfigError) as excinfo:
        load_run_config(env=env)

    assert str(excinfo.value) == f"Input required and not supplied: {name}"


def test_input_precedence_override_env_file():
    config = load_config(None)
    config["inputs"]["pr-title"] = "From file"
    config["inputs"]["target-branch"] = "develop"
    config["inputs"]["user-name"] = "File User"
    env = dict(REQUIRED_ENV, **{"INPUT_TARGET-BRANCH": "release", "INPUT_USER-NAME": "Env User"})

    cfg = load_run_config(overrides={"user-name": "Cli User"}, config=config, env=env)

    assert cfg.pr_title == "From file"
    assert cfg.target_branch == "release"
    assert cfg.user_name == "Cli User"


def test_get_input_returns_empty_string_when_unset():
    assert get_input("pr-body", env={}) == ""


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("FALSE", False), ("yes", True), ("0", False)],
)
def test_always_use_pr_parses_booleans(raw, expected):
    cfg = load_run_config(env=dict(REQUIRED_ENV, **{"INPUT_ALWAYS-USE-PR": raw}))

    assert cfg.always_use_pr is expected


def test_always_use_pr_rejects_garbage():
    with pytest.raises(ConfigError):
        load_run_config(env=dict(REQUIRED_ENV, **{"INPUT_ALWAYS-USE-PR": "sometimes"}))


def test_sync_branch_is_prefix_dash_run_id():
    cfg = RunConfig(upstream_url="u", github_token="t", pr_branch_prefix="test-sync")

    assert cfg.sync_branch("12345") == "test-sync-12345"
    assert cfg.upstream_ref == "upstream/main"


def test_redacted_hides_token():
    cfg = load_run_config(env=REQUIRED_ENV)

    assert cfg.redacted()["github-token"] == "***"
    assert "fake-token" not in str(cfg.redacted())


def test_load_config_merges_yaml_without_mutating_defaults(tmp_path):
    cfg_file = tmp_path / "sync.yaml"
    cfg_file.write_text(yaml.safe_dump({"inputs": {"pr-title": "Nightly sync"}, "api": {"per_page": 50}}))

    config = load_config(str(cfg_file))
    fresh = load_config(str(tmp_path / "missing.yaml"))

    assert config["inputs"]["pr-title"] == "Nightly sync"
    assert config["inputs"]["pr-branch-prefix"] == "sync-upstream"
    assert config["api"]["per_page"] == 50
    assert config["api"]["timeout_seconds"] == 30
    assert fresh["inputs"]["pr-title"] == DEFAULT_CONFIG["inputs"]["pr-title"]
    assert DEFAULT_CONFIG["api"]["per_page"] == 100


def test_load_config_rejects_non_mapping(tmp_path):
    cfg_file = tmp_path / "sync.yaml"
    cfg_file.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError):
        load_config(str(cfg_file))


def test_load_run_context_reads_actions_environment():
    ctx = load_run_context(env={"GITHUB_RUN_ID": "987", "GITHUB_REPOSITORY": "acme/widget"})

    assert ctx.run_id == "987"
    assert ctx.owner == "acme"
    assert ctx.repo == "widget"
    assert ctx.api_url == "https://api.github.com"
    assert ctx.full_name == "acme/widget"


def test_load_run_context_prefers_explicit_values():
    ctx = load_run_context(
        run_id="42",
        repository="octo/cat",
        env={
            "GITHUB_RUN_ID": "987",
            "GITHUB_REPOSITORY": "acme/widget",
            "GITHUB_API_URL": "https://ghe.example.com/api/v3/",
        },
    )

    assert (ctx.run_id, ctx.owner, ctx.repo) == ("42", "octo", "cat")
    assert ctx.api_url == "https://ghe.example.com/api/v3"


@pytest.mark.parametrize(
    "env",
    [
        {"GITHUB_REPOSITORY": "acme/widget"},
        {"GITHUB_RUN_ID": "1"},
        {"GITHUB_RUN_ID": "1", "GITHUB_REPOSITORY": "acme"},
        {"GITHUB_RUN_ID": "1", "GITHUB_REPOSITORY": "/widget"},
    ],
)
def test_load_run_context_rejects_incomplete_environment(env):
    with pytest.raises(ConfigError):
        load_run_context(env=env)
