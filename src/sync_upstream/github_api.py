"""GitHub REST client for the pull request calls a sync run makes."""

from __future__ import annotations

from typing import Any

import httpx

from .config import DEFAULT_API_URL, RunContext
from .errors import GitHubAPIError
from .models import PullRequest

API_VERSION = "2022-11-28"
MAX_PER_PAGE = 100


class GitHubClient:
    def __init__(
        self,
        token: str,
        context: RunContext,
        timeout: float = 30,
        per_page: int = MAX_PER_PAGE,
        client: httpx.Client | None = None,
    ) -> None:
        if not token:
            raise GitHubAPIError("GitHub token is required.")
        self._context = context
        self._per_page = max(1, min(int(per_page), MAX_PER_PAGE))
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": "sync-upstream",
        }
        if client is None:
            client = httpx.Client(
                base_url=context.api_url or DEFAULT_API_URL,
                headers=headers,
                timeout=timeout,
            )
        else:
            client.headers.update(headers)
        self._client = client

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self._context.owner}/{self._context.repo}"

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, json=payload, params=params)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GitHub API request {method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API error {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                f"GitHub API returned a non-JSON body for {method} {path} "
                f"(HTTP {response.status_code})",
                status_code=response.status_code,
            ) from exc

    def create_pull(self, title: str, body: str, head: str, base: str) -> PullRequest:
        response = self._request(
            "POST",
            f"{self._repo_path}/pulls",
            {"title": title, "body": body, "head": head, "base": base},
        )
        if not isinstance(response, dict) or "number" not in response:
            raise GitHubAPIError("Unexpected response from GitHub API.")
        return PullRequest.from_api(response)

    def list_open_pulls(self) -> list[PullRequest]:
        """Every open pull request, walking all pages."""
        pulls: list[PullRequest] = []
        page = 1
        while True:
            batch = self._request(
                "GET",
                f"{self._repo_path}/pulls",
                params={"state": "open", "per_page": self._per_page, "page": page},
            )
            if not batch:
                break
            if not isinstance(batch, list):
                raise GitHubAPIError("Unexpected response from GitHub API.")

            pulls.extend(PullRequest.from_api(item) for item in batch)

            if len(batch) < self._per_page:
                break
            page += 1
        return pulls

    def create_issue_comment(self, number: int, body: str) -> None:
        self._request(
            "POST",
            f"{self._repo_path}/issues/{number}/comments",
            {"body": body},
        )

    def update_pull_state(self, number: int, state: str) -> None:
        self._request(
            "PATCH",
            f"{self._repo_path}/pulls/{number}",
            {"state": state},
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        message = str(data["message"])
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            details = [
                str(err.get("message") or err) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            message = f"{message} ({'; '.join(details)})"
        return message
    return response.text.strip() or response.reason_phrase
