"""Tests for salty_reviewer.cli — Click CLI entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import respx
import yaml
from click.testing import CliRunner

from salty_reviewer import config as config_module
from salty_reviewer.cli import cli
from salty_reviewer.config import WritingStyle
from salty_reviewer.defender import DefenseResult
from salty_reviewer.errors import AnalysisError, GitHubError
from salty_reviewer.github_client import GITHUB_API
from salty_reviewer.reviewer import ReviewResult, ReviewStats


def _saved_config() -> dict:
    return yaml.safe_load(config_module.config_path().read_text())


# ---------------------------------------------------------------------------
# CLI Group
# ---------------------------------------------------------------------------


class TestCliGroup:
    """Tests for the top-level CLI group."""

    def test_help_output(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "review", "defend", "check", "config"):
            assert command in result.output

    def test_config_help(self) -> None:
        result = CliRunner().invoke(cli, ["config", "--help"])
        assert result.exit_code == 0
        for command in ("show", "set", "add", "remove"):
            assert command in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInit:
    """Tests for the init command."""

    def test_creates_config(self) -> None:
        result = CliRunner().invoke(
            cli, ["init"], input="ghp_new_token\n\nsk-new-key\n\n3\n7\n"
        )
        assert result.exit_code == 0, result.output
        assert "Configuration saved to" in result.output

        saved = _saved_config()
        assert saved["github_token"] == "ghp_new_token"
        assert saved["ai_api_key"] == "sk-new-key"
        assert saved["ai_api_url"] == "https://api.openai.com/v1"
        assert saved["ai_model"] == "gpt-4"
        assert saved["writing_style"] == "tech_bro"
        assert saved["nitpicky_level"] == 7

    def test_keeps_existing_values_as_defaults(self, make_config: callable) -> None:
        make_config(liked_reviewers=["alice"], writing_style=WritingStyle.ACADEMIC).save()
        result = CliRunner().invoke(cli, ["init"], input="\n\n\n\n\n\n")
        assert result.exit_code == 0, result.output

        saved = _saved_config()
        assert saved["github_token"] == "ghp_test_token_123"
        assert saved["writing_style"] == "academic"
        assert saved["liked_reviewers"] == ["alice"]

    def test_rejects_out_of_range_level(self) -> None:
        result = CliRunner().invoke(cli, ["init"], input="t\n\nk\n\n1\n11\n4\n")
        assert result.exit_code == 0, result.output
        assert _saved_config()["nitpicky_level"] == 4


# ---------------------------------------------------------------------------
# review / defend
# ---------------------------------------------------------------------------


class TestReviewCommand:
    """Tests for the review command."""

    def test_requires_config(self) -> None:
        result = CliRunner().invoke(cli, ["review", "owner/repo#1"])
        assert result.exit_code == 1
        assert "salty init" in result.output

    def test_runs_reviewer(self, make_config: callable) -> None:
        make_config().save()
        review_result = ReviewResult(
            summary="## Review Notes",
            stats=ReviewStats(files_reviewed=3, issues_found=4, issues_after_deep=2, comments_posted=2),
        )
        with patch("salty_reviewer.cli.Reviewer") as mock_reviewer:
            mock_reviewer.return_value.review = AsyncMock(return_value=review_result)
            result = CliRunner().invoke(
                cli, ["review", "--dry-run", "https://github.com/owner/repo/pull/7"]
            )

        assert result.exit_code == 0, result.output
        mock_reviewer.return_value.review.assert_awaited_once_with(
            "https://github.com/owner/repo/pull/7", dry_run=True, interactive=False
        )
        cfg_arg = mock_reviewer.call_args.args[0]
        assert cfg_arg.github_token == "ghp_test_token_123"
        assert "Review Summary" in result.output
        assert "Files reviewed" in result.output

    def test_reports_errors(self, make_config: callable) -> None:
        make_config().save()
        with patch("salty_reviewer.cli.Reviewer") as mock_reviewer:
            mock_reviewer.return_value.review = AsyncMock(
                side_effect=GitHubError("failed to fetch PR: not found", status_code=404)
            )
            result = CliRunner().invoke(cli, ["review", "owner/repo#7"])

        assert result.exit_code == 1
        assert "failed to fetch PR" in result.output

    def test_error_with_brackets_printed_verbatim(self, make_config: callable) -> None:
        make_config().save()
        with patch("salty_reviewer.cli.Reviewer") as mock_reviewer:
            mock_reviewer.return_value.review = AsyncMock(
                side_effect=AnalysisError("first pass failed: reply was items[/i]")
            )
            result = CliRunner().invoke(cli, ["review", "owner/repo#7"])

        assert result.exit_code == 1
        assert "items[/i]" in result.output

    def test_env_token_is_enough(self, monkeypatch, make_config: callable) -> None:
        make_config(github_token="").save()
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")
        with patch("salty_reviewer.cli.Reviewer") as mock_reviewer:
            mock_reviewer.return_value.review = AsyncMock(return_value=ReviewResult())
            result = CliRunner().invoke(cli, ["review", "owner/repo#7"])

        assert result.exit_code == 0, result.output
        assert mock_reviewer.call_args.args[0].github_token == "ghp_from_env"


class TestDefendCommand:
    """Tests for the defend command."""

    def test_runs_defender(self, make_config: callable) -> None:
        make_config().save()
        with patch("salty_reviewer.cli.Defender") as mock_defender:
            mock_defender.return_value.defend = AsyncMock(return_value=DefenseResult())
            result = CliRunner().invoke(cli, ["defend", "--interactive", "owner/repo#9"])

        assert result.exit_code == 0, result.output
        mock_defender.return_value.defend.assert_awaited_once_with(
            "owner/repo#9", dry_run=False, interactive=True
        )

    def test_invalid_reference(self, make_config: callable) -> None:
        make_config().save()
        result = CliRunner().invoke(cli, ["defend", "owner/repo"])
        assert result.exit_code == 1
        assert "invalid PR reference format" in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheckCommand:
    """Tests for the check command."""

    def test_reports_issues(self, make_config: callable) -> None:
        make_config(ai_api_key="").save()
        result = CliRunner().invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "ai_api_key is required" in result.output

    @respx.mock
    def test_verifies_github_access(self, make_config: callable) -> None:
        make_config().save()
        respx.get(f"{GITHUB_API}/user").mock(
            return_value=httpx.Response(200, json={"login": "octocat"})
        )
        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 0, result.output
        assert "Configuration looks good" in result.output
        assert "@octocat" in result.output

    @respx.mock
    def test_github_access_failure(self, make_config: callable) -> None:
        make_config().save()
        respx.get(f"{GITHUB_API}/user").mock(
            return_value=httpx.Response(401, json={"message": "Bad credentials"})
        )
        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "GitHub access failed" in result.output


# ---------------------------------------------------------------------------
# config subcommands
# ---------------------------------------------------------------------------


class TestConfigShow:
    """Tests for config show."""

    def test_without_file_shows_defaults(self) -> None:
        result = CliRunner().invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "No config found" in result.output
        assert "passive_aggressive" in result.output

    def test_masks_secrets(self, make_config: callable) -> None:
        make_config(disliked_reviewers=["bob"]).save()
        result = CliRunner().invoke(cli, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "ghp_test_token_123" not in result.output
        assert "ghp_..._123" in result.output
        assert "bob" in result.output


class TestConfigSet:
    """Tests for config set."""

    def test_set_level(self, make_config: callable) -> None:
        make_config().save()
        result = CliRunner().invoke(cli, ["config", "set", "nitpicky_level", "9"])
        assert result.exit_code == 0, result.output
        assert _saved_config()["nitpicky_level"] == 9

    def test_set_without_existing_file(self) -> None:
        result = CliRunner().invoke(cli, ["config", "set", "writing_style", "corporate"])
        assert result.exit_code == 0, result.output
        assert _saved_config()["writing_style"] == "corporate"

    def test_invalid_value_leaves_file_untouched(self, make_config: callable) -> None:
        make_config().save()
        result = CliRunner().invoke(cli, ["config", "set", "nitpicky_level", "11"])
        assert result.exit_code == 1
        assert "nitpicky_level must be 1-10" in result.output
        assert _saved_config()["nitpicky_level"] == 5

    def test_unknown_key_rejected_by_click(self) -> None:
        result = CliRunner().invoke(cli, ["config", "set", "favourite_color", "blue"])
        assert result.exit_code == 2

    def test_secret_masked_in_output(self) -> None:
        result = CliRunner().invoke(cli, ["config", "set", "ai_api_key", "sk-abcdefghijkl"])
        assert result.exit_code == 0, result.output
        assert "sk-abcdefghijkl" not in result.output
        assert _saved_config()["ai_api_key"] == "sk-abcdefghijkl"

    def test_env_values_not_persisted(self, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env_only")
        result = CliRunner().invoke(cli, ["config", "set", "ai_model", "llama3"])
        assert result.exit_code == 0, result.output
        assert _saved_config()["github_token"] == ""


class TestConfigReviewerLists:
    """Tests for config add / remove."""

    def test_add_liked_strips_at(self) -> None:
        result = CliRunner().invoke(cli, ["config", "add", "liked_reviewer", "@alice"])
        assert result.exit_code == 0, result.output
        assert "@alice" in result.output
        assert _saved_config()["liked_reviewers"] == ["alice"]

    def test_add_disliked_moves_user(self, make_config: callable) -> None:
        make_config(liked_reviewers=["bob"]).save()
        result = CliRunner().invoke(cli, ["config", "add", "disliked_reviewer", "bob"])
        assert result.exit_code == 0, result.output
        saved = _saved_config()
        assert saved["liked_reviewers"] == []
        assert saved["disliked_reviewers"] == ["bob"]

    def test_add_unknown_list(self) -> None:
        result = CliRunner().invoke(cli, ["config", "add", "frenemy", "bob"])
        assert result.exit_code == 2

    def test_remove(self, make_config: callable) -> None:
        make_config(disliked_reviewers=["bob"]).save()
        result = CliRunner().invoke(cli, ["config", "remove", "@bob"])
        assert result.exit_code == 0, result.output
        assert "Removed @bob" in result.output
        assert _saved_config()["disliked_reviewers"] == []

    def test_remove_unknown(self) -> None:
        result = CliRunner().invoke(cli, ["config", "remove", "carol"])
        assert result.exit_code == 0
        assert "was not on any list" in result.output


def test_verbose_flag_configures_logging() -> None:
    with patch("salty_reviewer.cli.configure_logging") as mock_logging:
        result = CliRunner().invoke(cli, ["-v", "config", "show"])
    assert result.exit_code == 0
    mock_logging.assert_called_once_with(True)
