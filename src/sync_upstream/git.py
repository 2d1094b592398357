"""Thin wrapper around the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path

from . import actions
from .errors import GitCommandError

UPSTREAM_REMOTE = "upstream"
ORIGIN_REMOTE = "origin"


class Git:
    """Runs git in one working tree. Every failure raises ``GitCommandError``."""

    def __init__(self, workdir: str | Path | None = None, executable: str = "git"):
        self.workdir = Path(workdir) if workdir else None
        self.executable = executable

    def run(self, *args: str, silent: bool = False) -> str:
        """Run ``git <args>`` and return its stdout."""
        cmd = [self.executable, *args]
        if not silent:
            actions.command(cmd)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.workdir,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            raise GitCommandError(cmd, exc.returncode, exc.stdout, exc.stderr) from exc
        except FileNotFoundError as exc:
            raise GitCommandError(cmd, 127, stderr=f"Unable to locate executable: {self.executable}") from exc

        if not silent and result.stdout and result.stdout.strip():
            actions.info(result.stdout.rstrip())
        return result.stdout

    def set_identity(self, name: str, email: str) -> None:
        self.run("config", "--local", "user.name", name)
        self.run("config", "--local", "user.email", email)

    def remote_exists(self, remote: str = UPSTREAM_REMOTE) -> bool:
        # Any failure of `remote get-url` is read as "not registered yet".
        try:
            self.run("remote", "get-url", remote, silent=True)
        except GitCommandError:
            return False
        return True

    def add_remote(self, url: str, remote: str = UPSTREAM_REMOTE) -> None:
        self.run("remote", "add", remote, url)

    def set_remote_url(self, url: str, remote: str = UPSTREAM_REMOTE) -> None:
        self.run("remote", "set-url", remote, url)

    def fetch(self, branch: str, remote: str = UPSTREAM_REMOTE) -> None:
        self.run("fetch", remote, branch)

    def checkout(self, branch: str) -> None:
        self.run("checkout", branch)

    def create_branch(self, branch: str) -> None:
        self.run("checkout", "-b", branch)

    def count_commits(self, since: str, until: str) -> str:
        """Raw ``rev-list --count since..until`` output."""
        return self.run("rev-list", "--count", f"{since}..{until}")

    def merge(self, ref: str) -> None:
        self.run("merge", "--allow-unrelated-histories", ref)

    def push(self, branch: str, remote: str = ORIGIN_REMOTE, set_upstream: bool = False) -> None:
        if set_upstream:
            self.run("push", "-u", remote, branch)
        else:
            self.run("push", remote, branch)
