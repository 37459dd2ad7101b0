"""Pull request review orchestration.

Pipeline:
1. Fetch the PR and its changed files
2. First pass: candidate issues across the whole diff
3. Deep analysis of each candidate against an author-dependent threshold
4. Rewrite confirmed issues in the configured writing style
5. Extra nitpicks for disliked authors
6. Post the review, or preview it on a dry run
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from jinja2 import Template
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from .analysis import AnalyzedIssue, Analyzer
from .config import Config, WritingStyle
from .errors import AnalysisError, SaltyError
from .github_client import GitHubClient, PullRequest, ReviewComment, parse_pr_reference
from .models import ChatClient, system_message, user_message
from .prompts import build_comment_formatting_prompt, build_system_prompt

logger = logging.getLogger(__name__)

# Effective nitpicky level at which any comment turns the review into REQUEST_CHANGES
REQUEST_CHANGES_LEVEL = 7

SUMMARY_INTROS: dict[WritingStyle, tuple[str, str]] = {
    WritingStyle.CORPORATE: (
        "## Code Review Summary",
        "Thank you for your contribution to this project. "
        "Please find below my observations regarding this pull request.",
    ),
    WritingStyle.PASSIVE_AGGRESSIVE: (
        "## Review Notes",
        "I've had a chance to look over this PR. "
        "I'm sure most of my comments are probably unnecessary, but just in case...",
    ),
    WritingStyle.TECH_BRO: (
        "## Quick Review 🚀",
        "Took a pass through this. Some thoughts below. "
        "Let's iterate quickly on these and ship it.",
    ),
    WritingStyle.ACADEMIC: (
        "## Review Commentary",
        "Upon examination of the proposed changes, "
        "several observations warrant discussion.",
    ),
}

NO_COMMENT_LINES: dict[WritingStyle, str] = {
    WritingStyle.CORPORATE: (
        "No significant issues identified at this time. "
        "Approved pending standard verification procedures."
    ),
    WritingStyle.PASSIVE_AGGRESSIVE: "I couldn't find anything to comment on. I'm sure it's fine. Probably.",
    WritingStyle.TECH_BRO: "LGTM! Ship it. 🚀",
    WritingStyle.ACADEMIC: "The implementation appears sound. No substantive concerns identified.",
}

SUMMARY_TEMPLATE = Template(
    """{{ header }}

{{ intro }}

**Files reviewed:** {{ files_reviewed }}
**Comments:** {{ comment_count }}
{% if comment_count == 0 %}
{{ no_comments }}
{%- endif %}
"""
)


@dataclass
class ReviewStats:
    """Counters for a single review run."""

    files_reviewed: int = 0
    issues_found: int = 0
    issues_after_deep: int = 0
    nitpicks_added: int = 0
    comments_posted: int = 0


@dataclass
class ReviewResult:
    """Final output of a review."""

    summary: str = ""
    comments: list[ReviewComment] = field(default_factory=list)
    stats: ReviewStats = field(default_factory=ReviewStats)
    event: str = "COMMENT"


def acceptance_threshold(effective_level: int) -> int:
    """Minimum deep-analysis confidence (percent) for an issue to be kept.

    Level 1 needs 85%, level 10 needs 40%.
    """
    return 90 - effective_level * 5


def is_confirmed(confidence: int, verdict: str, threshold: int) -> bool:
    return confidence >= threshold and verdict == "COMMENT"


def review_event(comment_count: int, effective_level: int) -> str:
    if comment_count > 0 and effective_level >= REQUEST_CHANGES_LEVEL:
        return "REQUEST_CHANGES"
    return "COMMENT"


def generate_summary(style: WritingStyle, files_reviewed: int, comment_count: int) -> str:
    """Top-level review body in the voice of the writing style."""
    header, intro = SUMMARY_INTROS.get(style, SUMMARY_INTROS[WritingStyle.PASSIVE_AGGRESSIVE])
    return SUMMARY_TEMPLATE.render(
        header=header,
        intro=intro,
        files_reviewed=files_reviewed,
        comment_count=comment_count,
        no_comments=NO_COMMENT_LINES.get(style, ""),
    ).strip()


class Reviewer:
    """Reviews a pull request end to end."""

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
        self.analyzer = Analyzer(chat_client, github_client)
        self.console = console or Console()

    async def review(
        self, pr_ref: str, dry_run: bool = False, interactive: bool = False
    ) -> ReviewResult:
        """Run a full review of a pull request.

        Args:
            pr_ref: ``owner/repo#123`` or a GitHub PR URL
            dry_run: Print the review instead of posting it
            interactive: Ask before including each comment in the posted review

        Returns:
            ReviewResult with the summary, comments and stats

        Raises:
            SaltyError: If the PR cannot be fetched, the first pass fails, or
                posting the review fails
        """
        ref = parse_pr_reference(pr_ref)
        self.console.print(f"[bold blue]🔍 Fetching PR #{ref.number} from {escape(ref.full_name)}...")

        pr = await self.github.get_pr(ref)
        author = pr.author
        self.console.print(f"📝 PR by @{escape(author)}: {escape(pr.title)}")

        effective = self.config.effective_nitpicky_level(author)
        if self.config.is_liked_reviewer(author):
            self.console.print(f"[green]💚 Author is liked - going easy (nitpicky: {effective})")
        elif self.config.is_disliked_reviewer(author):
            self.console.print(f"[red]🔴 Author is disliked - extra scrutiny (nitpicky: {effective})")

        files = await self.github.get_pr_files(ref)
        self.console.print(f"📁 Reviewing {len(files)} changed files...")

        result = ReviewResult(stats=ReviewStats(files_reviewed=len(files)))

        # Step 1: candidates
        self.console.rule("[bold]First pass: identifying potential issues")
        try:
            issues = await self.analyzer.first_pass(files)
        except SaltyError as e:
            raise AnalysisError(f"first pass failed: {e}") from e
        result.stats.issues_found = len(issues)
        self.console.print(f"   Found {len(issues)} potential issues")

        # Step 2: re-judge each candidate
        self.console.rule("[bold]Deep analysis: verifying each issue")
        confirmed = await self._confirm_issues(issues, ref, pr, effective)
        result.stats.issues_after_deep = len(confirmed)
        self.console.print(f"   {len(confirmed)} issues confirmed after deep analysis")

        # Step 3: styled comments
        self.console.rule("[bold]Formatting comments")
        for item in confirmed:
            try:
                body = await self._format_comment(item, effective)
            except SaltyError as e:
                logger.warning("Failed to format comment for %s:%d: %s",
                               item.original.file, item.original.line, e)
                self.console.print(f"   [yellow]⚠️  Failed to format comment: {escape(str(e))}")
                continue
            result.comments.append(ReviewComment(
                path=item.original.file,
                line=item.original.line,
                body=body,
            ))

        # Step 4: extra nitpicks for disliked authors
        if self.config.is_disliked_reviewer(author):
            await self._add_nitpicks(files, result)

        result.summary = generate_summary(
            self.config.writing_style, result.stats.files_reviewed, len(result.comments)
        )

        if dry_run:
            result.event = review_event(len(result.comments), effective)
            self._print_dry_run(result)
            return result

        if interactive:
            result.comments = self._select_comments(result.comments)
            result.summary = generate_summary(
                self.config.writing_style, result.stats.files_reviewed, len(result.comments)
            )

        result.event = review_event(len(result.comments), effective)
        self.console.print("📤 Posting review...")
        await self.github.post_review(ref, result.summary, result.event, result.comments)
        result.stats.comments_posted = len(result.comments)
        self.console.print(
            f"[bold green]✅ Review posted with {len(result.comments)} comments ({result.event})"
        )
        return result

    async def _confirm_issues(self, issues, ref, pr: PullRequest, effective: int) -> list[AnalyzedIssue]:
        threshold = acceptance_threshold(effective)
        confirmed: list[AnalyzedIssue] = []

        for i, issue in enumerate(issues, 1):
            self.console.print(
                f"   [{i}/{len(issues)}] Analyzing: {issue.file} (line {issue.line})...",
                markup=False,
            )
            if issue.line < 1:
                logger.warning("Skipping issue in %s without a usable line number", issue.file)
                self.console.print("      [yellow]✗ Skipped (no line number)")
                continue
            try:
                analysis = await self.analyzer.deep_analyze(issue, ref, pr)
            except SaltyError as e:
                logger.warning("Deep analysis failed for %s:%d: %s", issue.file, issue.line, e)
                self.console.print(f"      [yellow]⚠️  Deep analysis failed: {escape(str(e))}")
                continue

            if is_confirmed(analysis.confidence, analysis.final_verdict, threshold):
                confirmed.append(AnalyzedIssue(original=issue, analysis=analysis))
                self.console.print(f"      [green]✓ Confirmed (confidence: {analysis.confidence}%)")
            else:
                self.console.print(
                    f"      [dim]✗ Skipped (confidence: {analysis.confidence}%, "
                    f"threshold: {threshold}%, verdict: {escape(analysis.final_verdict)})"
                )
        return confirmed

    async def _format_comment(self, item: AnalyzedIssue, effective: int) -> str:
        issue_desc = f"Issue: {item.original.issue}\nCode: {item.original.code}"
        analysis_desc = f"Reasoning: {item.analysis.reasoning}"
        style = self.config.writing_style

        response = await self.chat.chat([
            system_message(build_system_prompt(style, effective)),
            user_message(build_comment_formatting_prompt(issue_desc, analysis_desc, style)),
        ])
        body = response.content.strip()
        if not body:
            raise AnalysisError("model returned an empty comment")
        return body

    async def _add_nitpicks(self, files, result: ReviewResult) -> None:
        self.console.print("[magenta]😈 Generating extra nitpicks for disliked author...")
        existing = [c.body for c in result.comments]
        try:
            nitpicks = await self.analyzer.generate_extra_nitpicks(files, existing)
        except SaltyError as e:
            logger.warning("Nitpick generation failed: %s", e)
            self.console.print(f"   [yellow]⚠️  Nitpick generation failed: {escape(str(e))}")
            return

        for nitpick in nitpicks:
            result.comments.append(ReviewComment(
                path=nitpick.file,
                line=nitpick.line,
                body=nitpick.comment,
            ))
        result.stats.nitpicks_added = len(nitpicks)
        self.console.print(f"   Added {len(nitpicks)} extra nitpicks")

    def _select_comments(self, comments: list[ReviewComment]) -> list[ReviewComment]:
        selected = []
        for comment in comments:
            self.console.print(Panel(
                Text(comment.body),
                title=Text(f"📍 {comment.path}:{comment.line}"),
                border_style="cyan",
            ))
            if Confirm.ask("Include this comment?", default=True, console=self.console):
                selected.append(comment)
        return selected

    def _print_dry_run(self, result: ReviewResult) -> None:
        self.console.print()
        self.console.print("[bold yellow]📋 DRY RUN - Would post the following review:")
        self.console.print(f"Event: {result.event}")
        self.console.rule()
        self.console.print(result.summary, markup=False)
        for comment in result.comments:
            self.console.print(f"\n📍 {comment.path}:{comment.line}", markup=False)
            self.console.print(comment.body, markup=False)
        self.console.rule()
