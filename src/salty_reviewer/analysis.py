"""Two-stage issue detection.

The first pass asks the model for candidate issues across the whole diff.
Each candidate is then re-judged on its own with the full file and nearby
tests in view, which is where most false positives get dropped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass

from .errors import AnalysisError, GitHubError
from .github_client import FileChange, GitHubClient, PRReference, PullRequest
from .models import ChatClient, ModelResponse, system_message, user_message
from .prompts import (
    DEEP_ANALYSIS_SYSTEM_PROMPT,
    FIRST_PASS_PROMPT,
    NITPICK_SYSTEM_PROMPT,
    build_deep_analysis_prompt,
    build_extra_nitpick_prompt,
)

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 60_000  # Truncate diffs to keep model context manageable
FILE_UNAVAILABLE = "(File content unavailable)"


@dataclass
class Issue:
    """A candidate issue from the first pass."""

    file: str
    line: int
    code: str = ""
    issue: str = ""
    confidence: int = 0  # 1-10
    might_be_intentional: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Issue:
        return cls(
            file=str(data.get("file", "")),
            line=_as_int(data.get("line")),
            code=str(data.get("code", "") or ""),
            issue=str(data.get("issue", "") or ""),
            confidence=_as_int(data.get("confidence")),
            might_be_intentional=str(data.get("might_be_intentional", "") or ""),
        )

    def describe(self) -> str:
        return f"File: {self.file}, Line: {self.line}\nCode: {self.code}\nIssue: {self.issue}"


@dataclass
class DeepAnalysis:
    """Second-stage verdict on a single candidate issue."""

    still_an_issue: bool
    confidence: int  # 0-100
    reasoning: str = ""
    possible_author_intent: str = ""
    final_verdict: str = "SKIP"  # COMMENT or SKIP

    @classmethod
    def from_dict(cls, data: dict) -> DeepAnalysis:
        return cls(
            still_an_issue=bool(data.get("still_an_issue", False)),
            confidence=max(0, min(100, _as_int(data.get("confidence")))),
            reasoning=str(data.get("reasoning", "") or ""),
            possible_author_intent=str(data.get("possible_author_intent", "") or ""),
            final_verdict=str(data.get("final_verdict", "SKIP") or "SKIP").strip().upper(),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalyzedIssue:
    """A candidate issue paired with its deep analysis."""

    original: Issue
    analysis: DeepAnalysis


@dataclass
class Nitpick:
    file: str
    line: int
    comment: str


def _as_int(value: object) -> int:
    try:
        return int(float(value))  # models sometimes answer "7" or 7.5
    except (TypeError, ValueError):
        return 0


def _truncate_diff(diff: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    """Truncate diff to fit model context windows."""
    if len(diff) <= max_chars:
        return diff
    half = max_chars // 2
    return (
        diff[:half]
        + f"\n\n... [TRUNCATED {len(diff) - max_chars} chars] ...\n\n"
        + diff[-half:]
    )


def build_diff(files: list[FileChange]) -> str:
    """Concatenate the patches of all changed files."""
    parts = [f"\n--- {f.filename} ---\n{f.patch}\n" for f in files]
    return _truncate_diff("".join(parts))


def _parse(response: ModelResponse, what: str) -> dict:
    try:
        parsed = response.parse_json()
    except json.JSONDecodeError as e:
        raise AnalysisError(
            f"failed to parse {what}: {e} (response: {response.content[:500]})"
        ) from e
    if not isinstance(parsed, dict):
        raise AnalysisError(f"failed to parse {what}: expected a JSON object")
    return parsed


class Analyzer:
    """Runs the model calls behind a review."""

    def __init__(self, chat_client: ChatClient, github_client: GitHubClient) -> None:
        self.chat = chat_client
        self.github = github_client

    async def first_pass(self, files: list[FileChange]) -> list[Issue]:
        """Identify candidate issues across the whole diff.

        Raises:
            ChatError: If the model call fails
            AnalysisError: If the response is not the expected JSON
        """
        response = await self.chat.chat([
            system_message(FIRST_PASS_PROMPT),
            user_message(build_diff(files)),
        ])
        parsed = _parse(response, "first pass result")

        raw_issues = parsed.get("issues") or []
        if not isinstance(raw_issues, list):
            raise AnalysisError("failed to parse first pass result: 'issues' is not a list")

        issues = []
        for item in raw_issues:
            if not isinstance(item, dict) or not item.get("file"):
                logger.debug("Ignoring malformed first-pass issue: %r", item)
                continue
            issues.append(Issue.from_dict(item))
        return issues

    async def deep_analyze(
        self, issue: Issue, ref: PRReference, pr: PullRequest
    ) -> DeepAnalysis:
        """Re-judge one candidate with the full file and related tests.

        A file that cannot be fetched is replaced by a placeholder rather than
        failing the analysis.
        """
        try:
            full_content = await self.github.get_file_content(
                ref.owner, ref.repo, issue.file, pr.head_sha
            )
        except GitHubError as e:
            logger.debug("Could not fetch %s: %s", issue.file, e)
            full_content = FILE_UNAVAILABLE

        related = await self.github.get_related_files(
            ref.owner, ref.repo, issue.file, pr.head_sha
        )
        related_text = "".join(
            f"\n--- {path} ---\n{content}\n" for path, content in related.items()
        )

        response = await self.chat.chat([
            system_message(DEEP_ANALYSIS_SYSTEM_PROMPT),
            user_message(build_deep_analysis_prompt(issue.describe(), full_content, related_text)),
        ])
        return DeepAnalysis.from_dict(_parse(response, "deep analysis"))

    async def generate_extra_nitpicks(
        self, files: list[FileChange], existing_comments: list[str]
    ) -> list[Nitpick]:
        """Come up with a few more minor comments on top of the existing ones."""
        prompt = build_extra_nitpick_prompt(build_diff(files), "\n".join(existing_comments))
        response = await self.chat.chat([
            system_message(NITPICK_SYSTEM_PROMPT),
            user_message(prompt),
        ])
        parsed = _parse(response, "nitpicks")

        nitpicks = []
        for item in parsed.get("nitpicks") or []:
            if not isinstance(item, dict):
                continue
            comment = str(item.get("comment", "") or "").strip()
            line = _as_int(item.get("line"))
            # Inline comments need a real line on the right-hand side
            if not item.get("file") or not comment or line < 1:
                continue
            nitpicks.append(Nitpick(file=str(item["file"]), line=line, comment=comment))
        return nitpicks
