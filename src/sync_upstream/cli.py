"""CLI entry point for sync-upstream."""

import json

import click

from . import actions
from .config import load_config, load_run_config, load_run_context
from .errors import ConfigError

_INPUT_OPTIONS = [
    ("upstream-url", "Upstream repository URL"),
    ("upstream-branch", "Upstream branch to merge"),
    ("target-branch", "Branch that receives upstream changes"),
    ("user-email", "Committer email"),
    ("user-name", "Committer name"),
    ("pr-title", "Pull request title"),
    ("pr-body", "Pull request body"),
    ("pr-branch-prefix", "Prefix for sync branch names"),
    ("github-token", "Token for the GitHub API"),
    ("always-use-pr", "Open a pull request instead of pushing to the target branch"),
]


def input_options(func):
    """Attach one ``--<input>`` option per action input."""
    for name, help_text in reversed(_INPUT_OPTIONS):
        func = click.option(f"--{name}", name.replace("-", "_"), default=None, help=help_text)(func)
    return func


def _overrides(params: dict) -> dict:
    return {
        name: params[name.replace("-", "_")]
        for name, _ in _INPUT_OPTIONS
        if params.get(name.replace("-", "_")) is not None
    }


@click.group()
@click.option("--config", "-c", default="sync-upstream.yaml", help="Config file path")
@click.pass_context
def main(ctx, config):
    """Keep a branch in sync with an upstream repository."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except ConfigError as exc:
        raise click.ClickException(str(exc))


@main.command()
@input_options
@click.option("--run-id", default=None, help="Run identifier (defaults to $GITHUB_RUN_ID)")
@click.option("--repository", default=None, help="owner/name (defaults to $GITHUB_REPOSITORY)")
@click.option("--workdir", type=click.Path(file_okay=False), default=None, help="Git working tree")
@click.pass_context
def run(ctx, run_id, repository, workdir, **params):
    """Fetch upstream, merge it and open a sync pull request."""
    from .git import Git
    from .github_api import GitHubClient
    from .runner import SyncRunner

    cfg = ctx.obj["config"]
    try:
        run_config = load_run_config(_overrides(params), cfg)
        context = load_run_context(run_id=run_id, repository=repository)
    except ConfigError as exc:
        actions.set_failed(str(exc))
        ctx.exit(1)

    actions.add_mask(run_config.github_token)
    api_cfg = cfg.get("api", {})

    def _github():
        return GitHubClient(
            run_config.github_token,
            context,
            timeout=api_cfg.get("timeout_seconds", 30),
            per_page=api_cfg.get("per_page", 100),
        )

    runner = SyncRunner(run_config, context, git=Git(workdir), github_factory=_github)
    result = runner.run()
    if result.failed:
        ctx.exit(1)


@main.command(name="show-config")
@input_options
@click.pass_context
def show_config(ctx, **params):
    """Print the resolved inputs with the token redacted."""
    try:
        run_config = load_run_config(_overrides(params), ctx.obj["config"])
    except ConfigError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(run_config.redacted(), indent=2))


if __name__ == "__main__":
    main()
