"""GitHub REST client and PR comment upsert.

Comments are matched by COMMENT_MARKER: the first issue comment whose body
contains the marker is the one a later run replaces.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from costdelta.render import COMMENT_MARKER

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubError(RuntimeError):
    """Raised when the GitHub API answers with a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


@dataclass(frozen=True)
class PullRequestContext:
    """The pull request an action run belongs to."""
    owner: str
    repo: str
    number: int
    head_sha: str
    base_sha: str

    @classmethod
    def from_event(cls, payload: Mapping[str, Any], repository: str) -> Optional["PullRequestContext"]:
        """Build the context from a webhook payload.

        Returns None when the payload is not a pull_request event. Raises
        ValueError when the pull request lacks head or base SHAs.
        """
        pull = payload.get("pull_request")
        if not pull:
            return None

        head_sha = (pull.get("head") or {}).get("sha")
        base_sha = (pull.get("base") or {}).get("sha")
        if not head_sha or not base_sha:
            raise ValueError("Pull request is missing head or base SHA information")

        if "/" in repository:
            owner, repo = repository.split("/", 1)
        else:
            repo_info = payload.get("repository") or {}
            owner = (repo_info.get("owner") or {}).get("login", "")
            repo = repo_info.get("name", "")

        return cls(owner=owner, repo=repo, number=int(pull["number"]),
                   head_sha=head_sha, base_sha=base_sha)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def load_event(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read the webhook payload from $GITHUB_EVENT_PATH (empty if unset)."""
    env = os.environ if environ is None else environ
    event_path = env.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        return {}
    with open(event_path, encoding="utf-8") as f:
        return json.load(f)


class GitHubClient:
    """Minimal GitHub REST client for issue comments."""

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, timeout: float = 30.0):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = Request(url, data=data, method=method, headers={
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
            "User-Agent": "CloudCost",
        })
        logger.debug("GitHub %s %s", method, path)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except HTTPError as e:
            detail = e.read().decode("utf-8", errors="ignore")
            raise GitHubError(f"GitHub API {method} {path} returned {e.code}: {detail}",
                              status=e.code, body=detail) from e
        return json.loads(body) if body else None

    def list_issue_comments(self, owner: str, repo: str, number: int,
                            per_page: int = 100) -> List[Dict[str, Any]]:
        return self._request(
            "GET", f"/repos/{owner}/{repo}/issues/{number}/comments?per_page={per_page}"
        ) or []

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> Dict[str, Any]:
        return self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/comments", {"body": body})

    def update_issue_comment(self, owner: str, repo: str, comment_id: int, body: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/repos/{owner}/{repo}/issues/comments/{comment_id}", {"body": body})


def find_marked_comment(comments: List[Dict[str, Any]],
                        marker: str = COMMENT_MARKER) -> Optional[Dict[str, Any]]:
    """First comment whose body contains the marker."""
    for comment in comments:
        if marker in (comment.get("body") or ""):
            return comment
    return None


def upsert_pr_comment(client: GitHubClient, pr: PullRequestContext, body: str,
                      update_existing: bool = True,
                      marker: str = COMMENT_MARKER) -> Tuple[str, Dict[str, Any]]:
    """Replace the marked comment on the PR, or create a new one.

    When update_existing is False a new comment is always created, even if a
    marked comment exists.

    Returns:
        ("updated" | "created", comment payload returned by GitHub)
    """
    comments = client.list_issue_comments(pr.owner, pr.repo, pr.number, per_page=100)
    logger.info("Found %d existing comments on PR #%d", len(comments), pr.number)
    existing = find_marked_comment(comments, marker)

    if existing and update_existing:
        logger.info("Updating existing CloudCost comment %s", existing["id"])
        return "updated", client.update_issue_comment(pr.owner, pr.repo, existing["id"], body)

    if existing:
        logger.info("Existing comment %s found but updates are disabled; creating a new one",
                    existing["id"])
    logger.info("Creating new CloudCost comment on PR #%d", pr.number)
    return "created", client.create_issue_comment(pr.owner, pr.repo, pr.number, body)
