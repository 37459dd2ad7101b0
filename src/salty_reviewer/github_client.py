"""GitHub API client for pull request data, reviews and replies."""

from __future__ import annotations

import base64
import logging
import posixpath
import re
from dataclasses import asdict, dataclass
from urllib.parse import quote

import httpx

from .errors import GitHubError, PRReferenceError

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
PER_PAGE = 100

_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)")
_SHORT_PATTERN = re.compile(r"^([^/]+)/([^#]+)#(\d+)$")

REVIEW_EVENTS = ("APPROVE", "REQUEST_CHANGES", "COMMENT")


@dataclass(frozen=True)
class PRReference:
    """Owner, repository and number of a pull request."""

    owner: str
    repo: str
    number: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


def parse_pr_reference(ref: str) -> PRReference:
    """Parse ``owner/repo#123`` or ``https://github.com/owner/repo/pull/123``.

    Raises:
        PRReferenceError: If neither form matches
    """
    ref = ref.strip()
    match = _URL_PATTERN.search(ref)
    if match is None:
        match = _SHORT_PATTERN.match(ref)
    if match is None:
        raise PRReferenceError(
            f"invalid PR reference format: {ref} (use owner/repo#123 or GitHub URL)"
        )
    return PRReference(owner=match[1], repo=match[2], number=int(match[3]))


@dataclass
class PullRequest:
    """The parts of a pull request the reviewer needs."""

    number: int
    title: str
    author: str
    head_sha: str
    body: str = ""
    url: str = ""

    @classmethod
    def from_api(cls, data: dict) -> PullRequest:
        return cls(
            number=data.get("number", 0),
            title=data.get("title", ""),
            author=(data.get("user") or {}).get("login", ""),
            head_sha=(data.get("head") or {}).get("sha", ""),
            body=data.get("body") or "",
            url=data.get("html_url", ""),
        )


@dataclass
class FileChange:
    """A file changed by a pull request."""

    filename: str
    status: str  # added, modified, removed, renamed
    additions: int = 0
    deletions: int = 0
    patch: str = ""
    previous_filename: str = ""  # only set for renamed files

    @classmethod
    def from_api(cls, data: dict) -> FileChange:
        status = data.get("status", "")
        return cls(
            filename=data.get("filename", ""),
            status=status,
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            patch=data.get("patch", "") or "",
            previous_filename=data.get("previous_filename", "") if status == "renamed" else "",
        )


@dataclass
class ReviewComment:
    """An inline comment to be posted as part of a review."""

    path: str
    line: int
    body: str
    side: str = "RIGHT"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PRComment:
    """An existing review comment on a pull request."""

    id: int
    user: str
    body: str
    path: str = ""
    line: int = 0
    created_at: str = ""
    in_reply_to: int | None = None

    @classmethod
    def from_api(cls, data: dict) -> PRComment:
        return cls(
            id=data["id"],
            user=(data.get("user") or {}).get("login", ""),
            body=data.get("body", "") or "",
            path=data.get("path", "") or "",
            line=data.get("line") or data.get("original_line") or 0,
            created_at=data.get("created_at", "") or "",
            in_reply_to=data.get("in_reply_to_id"),
        )


def related_file_candidates(path: str) -> list[str]:
    """Paths where tests for ``path`` conventionally live."""
    directory, filename = posixpath.split(path)
    base, ext = posixpath.splitext(filename)

    def _join(name: str) -> str:
        return posixpath.join(directory, name) if directory else name

    return [
        _join(f"{base}_test{ext}"),
        _join(f"{base}.test{ext}"),
        _join(f"{base}.spec{ext}"),
        f"test/{path}",
        f"tests/{path}",
    ]


def _error_for(resp: httpx.Response, action: str) -> GitHubError:
    status = resp.status_code
    if status == 401:
        message = f"failed to {action}: GitHub token is invalid or expired"
    elif status == 403:
        message = (
            f"failed to {action}: GitHub returned 403. "
            "Check the token scopes and rate limit"
        )
    elif status == 404:
        message = f"failed to {action}: not found (check the repository, PR number and token access)"
    else:
        detail = ""
        try:
            detail = resp.json().get("message", "")
        except (ValueError, AttributeError):
            detail = resp.text[:200]
        message = f"failed to {action}: HTTP {status} {detail}".rstrip()
    return GitHubError(message, status_code=status)


class GitHubClient:
    """Async wrapper around the parts of the GitHub REST API used here."""

    def __init__(self, token: str, base_url: str = GITHUB_API) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _request(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubError(f"failed to {action}: {e}") from e
        if resp.is_error:
            raise _error_for(resp, action)
        return resp

    async def _paginate(self, url: str, action: str) -> list[dict]:
        items: list[dict] = []
        next_url: str | None = url
        params: dict | None = {"per_page": PER_PAGE}
        while next_url:
            resp = await self._request("GET", next_url, action, params=params)
            items.extend(resp.json())
            next_url = resp.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None
        return items

    async def get_authenticated_user(self) -> str:
        """Login of the user the token belongs to."""
        resp = await self._request("GET", "/user", "fetch authenticated user")
        return resp.json().get("login", "")

    async def get_pr(self, ref: PRReference) -> PullRequest:
        resp = await self._request(
            "GET",
            f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}",
            "fetch PR",
        )
        return PullRequest.from_api(resp.json())

    async def get_pr_files(self, ref: PRReference) -> list[FileChange]:
        """All changed files of a PR, following pagination."""
        items = await self._paginate(
            f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}/files",
            "fetch PR files",
        )
        return [FileChange.from_api(item) for item in items]

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        """Decoded content of a file at a given commit.

        Raises:
            GitHubError: If the file does not exist or is not a regular file
        """
        resp = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            "fetch file content",
            params={"ref": ref},
        )
        data = resp.json()
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise GitHubError(f"failed to fetch file content: {path} is not a file")
        content = data.get("content", "")
        if data.get("encoding") == "base64":
            try:
                return base64.b64decode(content).decode("utf-8", errors="replace")
            except ValueError as e:
                raise GitHubError(f"failed to decode file content: {e}") from e
        return content

    async def get_related_files(self, owner: str, repo: str, path: str, ref: str) -> dict[str, str]:
        """Fetch test files that sit next to ``path``, keyed by path.

        Candidates that do not exist are skipped.
        """
        related: dict[str, str] = {}
        for candidate in related_file_candidates(path):
            try:
                related[candidate] = await self.get_file_content(owner, repo, candidate, ref)
            except GitHubError:
                continue
        return related

    async def get_pr_comments(self, ref: PRReference) -> list[PRComment]:
        """All inline review comments on a PR, following pagination."""
        items = await self._paginate(
            f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}/comments",
            "fetch PR comments",
        )
        return [PRComment.from_api(item) for item in items]

    async def post_review(
        self,
        ref: PRReference,
        body: str,
        event: str,
        comments: list[ReviewComment],
    ) -> dict:
        """Submit a review with inline comments.

        Args:
            ref: Pull request to review
            body: Top-level review body
            event: One of APPROVE, REQUEST_CHANGES, COMMENT
            comments: Inline comments to attach
        """
        if event not in REVIEW_EVENTS:
            raise ValueError(f"unknown review event: {event}")
        resp = await self._request(
            "POST",
            f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}/reviews",
            "post review",
            json={
                "body": body,
                "event": event,
                "comments": [c.to_dict() for c in comments],
            },
        )
        return resp.json()

    async def reply_to_comment(self, ref: PRReference, comment_id: int, body: str) -> dict:
        resp = await self._request(
            "POST",
            f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}/comments/{comment_id}/replies",
            "reply to comment",
            json={"body": body},
        )
        return resp.json()
