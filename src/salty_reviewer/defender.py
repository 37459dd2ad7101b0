"""Answer review comments on your own pull request.

Every top-level comment from someone else is analysed with the assumption that
the reviewer is wrong. The defender only concedes when the model is close to
certain the comment points at a real problem.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from .config import Config
from .errors import AnalysisError, GitHubError, SaltyError
from .github_client import GitHubClient, PRComment, PRReference, parse_pr_reference
from .models import ChatClient, system_message, user_message
from .defense_prompts import (
    build_comment_analysis_prompt,
    build_concession_prompt,
    build_defense_response_prompt,
    build_defense_system_prompt,
)

logger = logging.getLogger(__name__)

CONCEDE = "CONCEDE"
DEFEND = "DEFEND"

# Validity confidence at which we concede regardless of the recommendation
CONCEDE_CONFIDENCE = 95
CONTEXT_RADIUS = 5


@dataclass
class CommentAnalysis:
    """Model assessment of a reviewer comment."""

    is_valid_issue: bool = False
    confidence_its_valid: int = 0  # 0-100
    defense_points: list[str] = field(default_factory=list)
    what_they_missed: str = ""
    recommended_action: str = DEFEND

    @classmethod
    def from_dict(cls, data: dict) -> CommentAnalysis:
        try:
            confidence = int(float(data.get("confidence_its_valid", 0)))
        except (TypeError, ValueError):
            confidence = 0
        points = data.get("defense_points") or []
        if not isinstance(points, list):
            points = [str(points)]
        return cls(
            is_valid_issue=bool(data.get("is_valid_issue", False)),
            confidence_its_valid=max(0, min(100, confidence)),
            defense_points=[str(p) for p in points],
            what_they_missed=str(data.get("what_they_missed", "") or ""),
            recommended_action=str(data.get("recommended_action", DEFEND) or DEFEND).strip().upper(),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def should_concede(self) -> bool:
        return (
            self.recommended_action == CONCEDE
            or self.confidence_its_valid >= CONCEDE_CONFIDENCE
        )


@dataclass
class CommentResponse:
    """A planned reply to a reviewer comment."""

    original: PRComment
    response: str
    action: str  # DEFEND or CONCEDE


@dataclass
class DefenseStats:
    comments_analyzed: int = 0
    defended: int = 0
    conceded: int = 0
    skipped: int = 0
    replies_posted: int = 0


@dataclass
class DefenseResult:
    responses: list[CommentResponse] = field(default_factory=list)
    stats: DefenseStats = field(default_factory=DefenseStats)


def truncate(text: str, max_len: int) -> str:
    """Single-line preview of ``text`` no longer than ``max_len``."""
    text = text.replace("\n", " ")
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.split("\n"))


def extract_context(content: str, line: int, radius: int = CONTEXT_RADIUS) -> str:
    """Lines around a 1-based line number, or an empty string if out of range."""
    lines = content.split("\n")
    if not 1 <= line <= len(lines):
        return ""
    start = max(0, line - radius)
    end = min(len(lines), line + radius)
    return "\n".join(lines[start:end])


def comments_to_answer(comments: list[PRComment], my_username: str) -> list[PRComment]:
    """Top-level comments written by someone other than ``my_username``."""
    return [c for c in comments if c.user != my_username and not c.in_reply_to]


class Defender:
    """Analyses and replies to review comments on a pull request."""

    def __init__(
        self,
        config: Config,
        github_client: GitHubClient,
        chat_client: ChatClient,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.github = github_client
        self.chat = chat_client
        self.console = console or Console()

    async def defend(
        self, pr_ref: str, dry_run: bool = False, interactive: bool = False
    ) -> DefenseResult:
        """Analyse and answer every reviewer comment on a PR.

        Args:
            pr_ref: ``owner/repo#123`` or a GitHub PR URL
            dry_run: Print the replies instead of posting them
            interactive: Ask before posting each reply

        Returns:
            DefenseResult with the planned replies and stats
        """
        ref = parse_pr_reference(pr_ref)
        self.console.print(f"[bold blue]🛡️  Fetching PR #{ref.number} from {escape(ref.full_name)}...")

        pr = await self.github.get_pr(ref)
        me = await self.github.get_authenticated_user()
        if pr.author != me:
            self.console.print(
                f"[yellow]⚠️  Warning: This PR was created by @{escape(pr.author)}, not you (@{escape(me)})"
            )
        self.console.print(f"📝 PR: {escape(pr.title)}")

        comments = comments_to_answer(await self.github.get_pr_comments(ref), me)
        self.console.print(f"💬 Found {len(comments)} comments from reviewers")

        if not comments:
            self.console.print("[green]🎉 No comments to respond to!")
            return DefenseResult()

        result = DefenseResult(stats=DefenseStats(comments_analyzed=len(comments)))
        file_contents = await self._fetch_file_contents(ref, pr.head_sha)

        for i, comment in enumerate(comments, 1):
            self.console.print(
                f"\n📍 [{i}/{len(comments)}] Comment from @{comment.user} on {comment.path}",
                markup=False,
            )
            self.console.print(f'   "{truncate(comment.body, 80)}"', markup=False)

            code_context = ""
            if comment.path in file_contents:
                code_context = extract_context(file_contents[comment.path], comment.line)

            response = await self._respond(comment, code_context, result)
            if response is not None:
                result.responses.append(response)

        if dry_run:
            self._print_dry_run(result)
        else:
            await self._post_responses(ref, result, interactive)

        self.console.print(
            f"\n📊 Summary: {result.stats.defended} defended, "
            f"{result.stats.conceded} conceded, {result.stats.skipped} skipped"
        )
        return result

    async def _fetch_file_contents(self, ref: PRReference, head_sha: str) -> dict[str, str]:
        try:
            files = await self.github.get_pr_files(ref)
        except GitHubError as e:
            logger.warning("Could not list PR files, continuing without code context: %s", e)
            return {}

        contents: dict[str, str] = {}
        for f in files:
            if f.status == "removed":
                continue
            try:
                contents[f.filename] = await self.github.get_file_content(
                    ref.owner, ref.repo, f.filename, head_sha
                )
            except GitHubError as e:
                logger.debug("Could not fetch %s: %s", f.filename, e)
        return contents

    async def _respond(
        self, comment: PRComment, code_context: str, result: DefenseResult
    ) -> CommentResponse | None:
        try:
            analysis = await self.analyze_comment(comment, code_context)
        except SaltyError as e:
            logger.warning("Analysis of comment %s failed: %s", comment.id, e)
            self.console.print(f"   [yellow]⚠️  Analysis failed: {escape(str(e))}")
            result.stats.skipped += 1
            return None

        if analysis.should_concede:
            self.console.print(
                f"   😤 Grudgingly conceding (they're {analysis.confidence_its_valid}% right)"
            )
            action = CONCEDE
        else:
            self.console.print(
                f"   💪 Defending! (only {analysis.confidence_its_valid}% valid, "
                f"found {len(analysis.defense_points)} defense points)"
            )
            action = DEFEND

        try:
            if action == CONCEDE:
                text = await self.generate_concession(comment.body)
            else:
                text = await self.generate_defense(comment.body, analysis)
        except SaltyError as e:
            logger.warning("Response generation for comment %s failed: %s", comment.id, e)
            self.console.print(f"   [yellow]⚠️  Response generation failed: {escape(str(e))}")
            result.stats.skipped += 1
            return None

        if action == CONCEDE:
            result.stats.conceded += 1
        else:
            result.stats.defended += 1
        return CommentResponse(original=comment, response=text, action=action)

    async def analyze_comment(self, comment: PRComment, code_context: str) -> CommentAnalysis:
        response = await self.chat.chat([
            system_message(build_defense_system_prompt(self.config.writing_style)),
            user_message(build_comment_analysis_prompt(comment.body, code_context)),
        ])
        try:
            parsed = response.parse_json()
        except json.JSONDecodeError as e:
            raise AnalysisError(f"failed to parse analysis: {e}") from e
        if not isinstance(parsed, dict):
            raise AnalysisError("failed to parse analysis: expected a JSON object")
        return CommentAnalysis.from_dict(parsed)

    async def generate_defense(self, comment: str, analysis: CommentAnalysis) -> str:
        style = self.config.writing_style
        prompt = build_defense_response_prompt(comment, json.dumps(analysis.to_dict()), style)
        return await self._complete(prompt)

    async def generate_concession(self, comment: str) -> str:
        return await self._complete(build_concession_prompt(comment, self.config.writing_style))

    async def _complete(self, prompt: str) -> str:
        response = await self.chat.chat([
            system_message(build_defense_system_prompt(self.config.writing_style)),
            user_message(prompt),
        ])
        text = response.content.strip()
        if not text:
            raise AnalysisError("model returned an empty response")
        return text

    async def _post_responses(self, ref: PRReference, result: DefenseResult, interactive: bool) -> None:
        self.console.print("\n📤 Posting responses...")
        total = len(result.responses)
        for i, r in enumerate(result.responses, 1):
            if interactive:
                self.console.print(Panel(
                    Text(r.response),
                    title=Text(f"{r.action} → @{r.original.user}"),
                    border_style="cyan",
                ))
                if not Confirm.ask("Post this response?", default=True, console=self.console):
                    self.console.print(f"   Skipped response {i}/{total}")
                    continue
            try:
                await self.github.reply_to_comment(ref, r.original.id, r.response)
            except GitHubError as e:
                logger.warning("Failed to post response %d: %s", i, e)
                self.console.print(f"   [red]⚠️  Failed to post response {i}: {escape(str(e))}")
                continue
            result.stats.replies_posted += 1
            self.console.print(f"   [green]✅ Posted response {i}/{total}")

    def _print_dry_run(self, result: DefenseResult) -> None:
        self.console.print("\n[bold yellow]📋 DRY RUN - Would post the following responses:")
        self.console.rule()
        for r in result.responses:
            self.console.print(f"\n📍 In reply to @{r.original.user}:", markup=False)
            self.console.print(f'   Original: "{truncate(r.original.body, 60)}"', markup=False)
            self.console.print(f"   Action: {r.action}", markup=False)
            self.console.print(f"   Response:\n{indent(r.response, '   ')}", markup=False)
        self.console.rule()
