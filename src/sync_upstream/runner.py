"""Sync pipeline: merge upstream into a fresh branch and open a pull request."""

from __future__ import annotations

from typing import Callable, Optional

from . import actions
from .config import RunConfig, RunContext
from .errors import GitCommandError, MergeConflictError, SyncError
from .git import Git
from .github_api import GitHubClient
from .models import PullRequest, SyncResult, SyncStep

NO_CHANGES_MESSAGE = "No new commits from upstream. Exiting."
SUPERSEDED_COMMENT = "Closing this PR as a new sync PR has been created: #{number}"

# Log group each step's work is reported under.
_GROUPS = {
    SyncStep.INIT: "Setting up git config",
    SyncStep.CONFIGURED: "Adding upstream remote and fetching",
    SyncStep.REMOTE_READY: "Adding upstream remote and fetching",
    SyncStep.FETCHED: "Checking out target branch",
    SyncStep.CHECKED_OUT: "Checking for new commits",
    SyncStep.CHANGES_FOUND: "Creating PR branch and merging",
    SyncStep.BRANCHED: "Creating PR branch and merging",
    SyncStep.MERGED: "Creating PR branch and merging",
    SyncStep.PUSHED: "Creating pull request",
    SyncStep.PR_CREATED: "Checking for old PRs to close",
}


class SyncRunner:
    """Runs one upstream sync from INIT to a terminal step.

    Each non-terminal ``SyncStep`` maps to one handler that performs the
    step's side effects and returns the next step. The first error raised by
    a handler ends the run in ``FAILED`` and is reported through
    ``actions.set_failed``. With ``always_use_pr`` off there is no sync
    branch, so the run goes from ``CHANGES_FOUND`` straight to ``MERGED``.
    """

    def __init__(
        self,
        config: RunConfig,
        context: RunContext,
        git: Optional[Git] = None,
        github: Optional[GitHubClient] = None,
        github_factory: Optional[Callable[[], GitHubClient]] = None,
    ) -> None:
        self.config = config
        self.context = context
        self.git = git or Git()
        self._github = github
        self._github_factory = github_factory
        self._owns_github = False
        self._handlers: dict[SyncStep, Callable[[SyncResult], SyncStep]] = {
            SyncStep.INIT: self._configure_identity,
            SyncStep.CONFIGURED: self._ensure_upstream_remote,
            SyncStep.REMOTE_READY: self._fetch_upstream,
            SyncStep.FETCHED: self._checkout_target,
            SyncStep.CHECKED_OUT: self._detect_changes,
            SyncStep.CHANGES_FOUND: self._create_sync_branch,
            SyncStep.BRANCHED: self._merge_upstream,
            SyncStep.MERGED: self._push,
            SyncStep.PUSHED: self._open_pull_request,
            SyncStep.PR_CREATED: self._close_superseded,
        }

    @property
    def github(self) -> GitHubClient:
        if self._github is None:
            if self._github_factory is not None:
                self._github = self._github_factory()
            else:
                self._github = GitHubClient(self.config.github_token, self.context)
            self._owns_github = True
        return self._github

    def run(self) -> SyncResult:
        result = SyncResult()
        try:
            self._run_steps(result)
        except SyncError as exc:
            self._fail(result, str(exc))
        except Exception as exc:
            self._fail(result, str(exc) or type(exc).__name__)
        finally:
            if self._owns_github and self._github is not None:
                self._github.close()

        try:
            self._publish_outputs(result)
        except OSError as exc:
            self._fail(result, f"Could not write step outputs: {exc}")

        if result.step is SyncStep.NO_CHANGES:
            actions.info(NO_CHANGES_MESSAGE)
        elif not result.failed:
            actions.info("Sync complete")
        return result

    def _fail(self, result: SyncResult, message: str) -> None:
        result.error = message
        result.advance(SyncStep.FAILED)
        actions.set_failed(message)

    def _run_steps(self, result: SyncResult) -> None:
        current_group = None
        try:
            while not result.step.terminal:
                group = _GROUPS.get(result.step)
                if group != current_group:
                    if current_group is not None:
                        actions.end_group()
                    actions.start_group(group)
                    current_group = group
                result.advance(self._handlers[result.step](result))
        finally:
            if current_group is not None:
                actions.end_group()

    def _configure_identity(self, result: SyncResult) -> SyncStep:
        self.git.set_identity(self.config.user_name, self.config.user_email)
        return SyncStep.CONFIGURED

    def _ensure_upstream_remote(self, result: SyncResult) -> SyncStep:
        if self.git.remote_exists():
            self.git.set_remote_url(self.config.upstream_url)
        else:
            self.git.add_remote(self.config.upstream_url)
        return SyncStep.REMOTE_READY

    def _fetch_upstream(self, result: SyncResult) -> SyncStep:
        self.git.fetch(self.config.upstream_branch)
        return SyncStep.FETCHED

    def _checkout_target(self, result: SyncResult) -> SyncStep:
        self.git.checkout(self.config.target_branch)
        return SyncStep.CHECKED_OUT

    def _detect_changes(self, result: SyncResult) -> SyncStep:
        raw = self.git.count_commits("HEAD", self.config.upstream_ref).strip()
        try:
            result.commit_count = int(raw)
        except ValueError:
            raise SyncError(f"Could not parse commit count from git output: {raw!r}") from None

        has_changes = result.commit_count > 0
        actions.info(f"Has changes: {str(has_changes).lower()} ({raw} commits)")
        return SyncStep.CHANGES_FOUND if has_changes else SyncStep.NO_CHANGES

    def _create_sync_branch(self, result: SyncResult) -> SyncStep:
        if not self.config.always_use_pr:
            # No sync branch: merge straight into the checked-out target.
            actions.info(f"always-use-pr is disabled; merging directly into {self.config.target_branch}")
            result.branch = self.config.target_branch
            return self._merge_upstream(result)

        result.branch = self.config.sync_branch(self.context.run_id)
        self.git.create_branch(result.branch)
        return SyncStep.BRANCHED

    def _merge_upstream(self, result: SyncResult) -> SyncStep:
        try:
            self.git.merge(self.config.upstream_ref)
        except GitCommandError as exc:
            raise MergeConflictError(f"Merge failed with conflicts: {exc.detail}") from exc
        actions.info("Merge successful!")
        return SyncStep.MERGED

    def _push(self, result: SyncResult) -> SyncStep:
        if not self.config.always_use_pr:
            self.git.push(self.config.target_branch)
            actions.info(f"Pushed upstream changes to {self.config.target_branch}")
            return SyncStep.PUSHED_TO_TARGET

        self.git.push(result.branch, set_upstream=True)
        return SyncStep.PUSHED

    def _open_pull_request(self, result: SyncResult) -> SyncStep:
        result.pull_request = self.github.create_pull(
            title=self.config.pr_title,
            body=self.config.pr_body,
            head=result.branch,
            base=self.config.target_branch,
        )
        actions.info(f"Pull request created: {result.pull_request.url}")
        return SyncStep.PR_CREATED

    def _close_superseded(self, result: SyncResult) -> SyncStep:
        current = result.pull_request
        for old_pr in self.github.list_open_pulls():
            if not old_pr.superseded_by(self.config.pr_branch_prefix, self.config.pr_title, current.number):
                continue
            self._close_pull_request(old_pr, current)
            result.closed_pull_requests.append(old_pr.number)
        return SyncStep.OLD_PRS_CLOSED

    def _close_pull_request(self, old_pr: PullRequest, current: PullRequest) -> None:
        actions.info(f"Closing old PR #{old_pr.number}: {old_pr.title}")
        self.github.create_issue_comment(
            old_pr.number, SUPERSEDED_COMMENT.format(number=current.number)
        )
        self.github.update_pull_state(old_pr.number, "closed")
        actions.info(f"Closed PR #{old_pr.number}")

    def _publish_outputs(self, result: SyncResult) -> None:
        if result.counted:
            actions.set_output("has-changes", str(result.has_changes).lower())
            actions.set_output("commit-count", result.commit_count)
        if result.branch:
            actions.set_output("branch", result.branch)
        if result.pull_request is not None:
            actions.set_output("pr-number", result.pull_request.number)
            actions.set_output("pr-url", result.pull_request.url)
        if result.closed_pull_requests:
            actions.set_output("closed-prs", ",".join(str(n) for n in result.closed_pull_requests))
