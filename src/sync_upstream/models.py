"""Data models for a sync run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SyncStep(str, Enum):
    INIT = "init"
    CONFIGURED = "configured"
    REMOTE_READY = "remote_ready"
    FETCHED = "fetched"
    CHECKED_OUT = "checked_out"
    NO_CHANGES = "no_changes"
    CHANGES_FOUND = "changes_found"
    BRANCHED = "branched"
    MERGED = "merged"
    PUSHED = "pushed"
    PUSHED_TO_TARGET = "pushed_to_target"
    PR_CREATED = "pr_created"
    OLD_PRS_CLOSED = "old_prs_closed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STEPS


_TERMINAL_STEPS = {
    SyncStep.NO_CHANGES,
    SyncStep.PUSHED_TO_TARGET,
    SyncStep.OLD_PRS_CLOSED,
    SyncStep.FAILED,
}


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    head_ref: str
    base_ref: str
    url: str = ""
    body: Optional[str] = None
    state: str = "open"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "PullRequest":
        """Map a GitHub REST pull request payload."""
        return cls(
            number=int(payload["number"]),
            title=payload.get("title") or "",
            head_ref=(payload.get("head") or {}).get("ref") or "",
            base_ref=(payload.get("base") or {}).get("ref") or "",
            url=payload.get("html_url") or "",
            body=payload.get("body"),
            state=payload.get("state") or "open",
        )

    def superseded_by(self, prefix: str, title: str, current_number: int) -> bool:
        """True for an older sync PR the current one replaces."""
        return (
            self.head_ref.startswith(prefix)
            and self.title == title
            and self.number != current_number
        )


@dataclass
class SyncResult:
    step: SyncStep = SyncStep.INIT
    history: list[SyncStep] = field(default_factory=lambda: [SyncStep.INIT])
    commit_count: int = 0
    branch: Optional[str] = None
    pull_request: Optional[PullRequest] = None
    closed_pull_requests: list[int] = field(default_factory=list)
    error: Optional[str] = None

    def advance(self, step: SyncStep) -> None:
        self.step = step
        self.history.append(step)

    @property
    def failed(self) -> bool:
        return self.step is SyncStep.FAILED

    @property
    def counted(self) -> bool:
        """True once change detection has produced a commit count."""
        return SyncStep.NO_CHANGES in self.history or SyncStep.CHANGES_FOUND in self.history

    @property
    def has_changes(self) -> bool:
        return self.commit_count > 0
