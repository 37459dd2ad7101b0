"""CLI entry point for salty-reviewer.

Commands:
- init: interactive first-time setup
- review: review a pull request
- defend: answer review comments on your own pull request
- check: verify configuration and GitHub access
- config: show or edit settings
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import config as config_module
from .config import STYLE_DESCRIPTIONS, SETTABLE_KEYS, WritingStyle, mask_token
from .defender import Defender, DefenseResult
from .errors import ConfigError, SaltyError
from .github_client import GitHubClient
from .logging_config import configure_logging
from .models import ChatClient
from .reviewer import Reviewer, ReviewResult

console = Console()

STYLE_CHOICES = list(WritingStyle)


def _fail(message: str) -> None:
    console.print(f"[red]✗ {escape(message)}", highlight=False)
    sys.exit(1)


def _load_config() -> config_module.Config:
    try:
        return config_module.load()
    except ConfigError as e:
        _fail(str(e))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose):
    """🧂 salty: the satirical PR review assistant.

    Reviews PRs with deep analysis and a configurable personality, and defends
    your own PRs against "unreasonable" reviewer comments.
    """
    configure_logging(verbose)


@cli.command()
def init():
    """Initialize salty-reviewer configuration."""
    console.print(Panel("[bold cyan]🧂 Salty Code Reviewer - Initial Setup", border_style="cyan"))

    try:
        cfg = config_module.load_or_default()
    except ConfigError as e:
        console.print(f"[yellow]Existing config ignored: {escape(str(e))}")
        cfg = config_module.Config()

    cfg.github_token = click.prompt(
        "GitHub Personal Access Token",
        default=cfg.github_token,
        hide_input=True,
        show_default=False,
    ).strip()
    cfg.ai_api_url = click.prompt("AI API URL", default=cfg.ai_api_url).strip()
    cfg.ai_api_key = click.prompt(
        "AI API Key",
        default=cfg.ai_api_key,
        hide_input=True,
        show_default=False,
    ).strip()
    cfg.ai_model = click.prompt("AI Model", default=cfg.ai_model).strip()

    console.print("\n[bold]Writing Styles:")
    for i, style in enumerate(STYLE_CHOICES, 1):
        console.print(f"  {i}. {style.value:<20} - {STYLE_DESCRIPTIONS[style]}", markup=False)
    choice = click.prompt(
        "Choose style",
        default=STYLE_CHOICES.index(cfg.writing_style) + 1,
        type=click.IntRange(1, len(STYLE_CHOICES)),
    )
    cfg.writing_style = STYLE_CHOICES[choice - 1]

    cfg.nitpicky_level = click.prompt(
        "Nitpicky level (1-10)",
        default=cfg.nitpicky_level,
        type=click.IntRange(config_module.MIN_NITPICKY_LEVEL, config_module.MAX_NITPICKY_LEVEL),
    )

    try:
        path = cfg.save()
    except ConfigError as e:
        _fail(f"failed to save config: {e}")

    console.print(f"\n[bold green]✅ Configuration saved to {path}")
    console.print("\nYou can now use:")
    console.print("  salty review owner/repo#123    - Review a PR")
    console.print("  salty defend owner/repo#123    - Defend your PR")
    console.print("  salty config show              - View settings")


@cli.command()
@click.argument("pr_reference")
@click.option("--dry-run", is_flag=True, help="Show what would be posted without actually posting.")
@click.option("--interactive", is_flag=True, help="Confirm each comment before posting.")
def review(pr_reference, dry_run, interactive):
    """Review a pull request with deep analysis.

    \b
    Examples:
      salty review owner/repo#123
      salty review https://github.com/owner/repo/pull/123
      salty review --dry-run owner/repo#42
    """
    cfg = _load_config()

    async def _run() -> ReviewResult:
        async with GitHubClient(cfg.github_token) as github, ChatClient(
            cfg.ai_api_url, cfg.ai_api_key, cfg.ai_model
        ) as chat:
            return await Reviewer(cfg, github, chat, console).review(
                pr_reference, dry_run=dry_run, interactive=interactive
            )

    try:
        result = asyncio.run(_run())
    except SaltyError as e:
        _fail(str(e))

    _print_review_stats(result)


@cli.command()
@click.argument("pr_reference")
@click.option("--dry-run", is_flag=True, help="Show what would be posted without actually posting.")
@click.option("--interactive", is_flag=True, help="Confirm each response before posting.")
def defend(pr_reference, dry_run, interactive):
    """Defend your PR against reviewer comments.

    \b
    The defender will:
    - Assume each comment is wrong until proven otherwise
    - Only concede if an issue is 100% undeniable
    - Generate detailed rebuttals for everything else

    \b
    Examples:
      salty defend owner/repo#123
      salty defend --dry-run https://github.com/owner/repo/pull/42
    """
    cfg = _load_config()

    async def _run() -> DefenseResult:
        async with GitHubClient(cfg.github_token) as github, ChatClient(
            cfg.ai_api_url, cfg.ai_api_key, cfg.ai_model
        ) as chat:
            return await Defender(cfg, github, chat, console).defend(
                pr_reference, dry_run=dry_run, interactive=interactive
            )

    try:
        asyncio.run(_run())
    except SaltyError as e:
        _fail(str(e))


@cli.command()
def check():
    """Verify configuration and API access."""
    try:
        cfg = config_module.load(validate=False)
    except ConfigError as e:
        _fail(str(e))

    issues = cfg.validate()
    if issues:
        console.print("[bold red]Configuration issues found:\n")
        for issue in issues:
            console.print(f"  [red]✗ {escape(issue)}")
        console.print("\n[yellow]Run 'salty init' or 'salty config set' to fix them.")
        sys.exit(1)

    console.print("[bold green]✓ Configuration looks good!")
    console.print(f"  Writing style: {cfg.writing_style.value}")
    console.print(f"  Nitpicky level: {cfg.nitpicky_level}/10")
    console.print(f"  AI endpoint: {cfg.ai_api_url} ({cfg.ai_model})", markup=False)

    async def _whoami() -> str:
        async with GitHubClient(cfg.github_token) as github:
            return await github.get_authenticated_user()

    try:
        login = asyncio.run(_whoami())
    except SaltyError as e:
        console.print(f"  [red]✗ GitHub access failed: {escape(str(e))}")
        sys.exit(1)
    console.print(f"  [green]✓ GitHub access verified, authenticated as @{escape(login)}")


@cli.group(name="config")
def config_group():
    """Manage configuration."""


@config_group.command()
def show():
    """Show current configuration."""
    try:
        if config_module.config_path().exists():
            cfg = config_module.load(validate=False)
        else:
            console.print("[yellow]⚠️  No config found. Run 'salty init' to create one.")
            console.print("\nDefault settings:")
            cfg = config_module.load_or_default(apply_env=True)
    except ConfigError as e:
        _fail(str(e))

    table = Table(title="🧂 Salty Code Reviewer Configuration", border_style="cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Writing Style", cfg.writing_style.value)
    table.add_row("Nitpicky Level", f"{cfg.nitpicky_level}/10")
    table.add_row("AI API URL", cfg.ai_api_url)
    table.add_row("AI Model", cfg.ai_model)
    table.add_row("GitHub Token", mask_token(cfg.github_token))
    table.add_row("AI API Key", mask_token(cfg.ai_api_key))
    table.add_row("Liked Reviewers", ", ".join(cfg.liked_reviewers) or "-")
    table.add_row("Disliked Reviewers", ", ".join(cfg.disliked_reviewers) or "-")
    table.add_row("Config File", str(config_module.config_path()))
    console.print(table)


@config_group.command(name="set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
def set_value(key, value):
    """Set a configuration value.

    \b
    Available keys:
      writing_style      - corporate, passive_aggressive, tech_bro, academic
      nitpicky_level     - 1-10 (1=lenient, 10=maximum nitpicking)
      github_token       - Your GitHub personal access token
      ai_api_url         - AI API endpoint (OpenAI-compatible)
      ai_api_key         - AI API key
      ai_model           - AI model name
    """
    try:
        cfg = config_module.load_or_default()
        cfg.set_value(key, value)
        cfg.save()
    except ConfigError as e:
        _fail(str(e))

    shown = mask_token(value) if key in ("github_token", "ai_api_key") else value
    console.print(f"[green]✅ Set {key} = {escape(shown)}")


@config_group.command()
@click.argument("list_name", metavar="LIST", type=click.Choice(["liked_reviewer", "disliked_reviewer"]))
@click.argument("username")
def add(list_name, username):
    """Add a user to the liked or disliked reviewers list.

    \b
    Lists:
      liked_reviewer     - Go easy on these reviewers
      disliked_reviewer  - Extra scrutiny for these reviewers
    """
    username = username.lstrip("@")
    try:
        cfg = config_module.load_or_default()
        if list_name == "liked_reviewer":
            cfg.add_liked_reviewer(username)
            message = f"✅ Added @{username} to liked reviewers (will go easy on them)"
        else:
            cfg.add_disliked_reviewer(username)
            message = f"✅ Added @{username} to disliked reviewers (extra scrutiny mode)"
        cfg.save()
    except ConfigError as e:
        _fail(str(e))

    console.print(f"[green]{escape(message)}")


@config_group.command()
@click.argument("username")
def remove(username):
    """Remove a user from the liked and disliked lists."""
    username = username.lstrip("@")
    try:
        cfg = config_module.load_or_default()
        removed = cfg.remove_reviewer(username)
        if removed:
            cfg.save()
    except ConfigError as e:
        _fail(str(e))

    if removed:
        console.print(f"[green]✅ Removed @{escape(username)} from reviewer lists")
    else:
        console.print(f"[yellow]@{escape(username)} was not on any list")


def _print_review_stats(result: ReviewResult) -> None:
    """Print a summary table to the console."""
    stats = result.stats
    table = Table(title="Review Summary", border_style="cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Files reviewed", str(stats.files_reviewed))
    table.add_row("Potential issues", str(stats.issues_found))
    table.add_row("Confirmed after deep analysis", str(stats.issues_after_deep))
    table.add_row("Extra nitpicks", str(stats.nitpicks_added))
    table.add_row("Comments posted", str(stats.comments_posted))

    console.print(table)


if __name__ == "__main__":
    cli()
