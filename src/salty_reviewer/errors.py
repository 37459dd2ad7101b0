"""Exception hierarchy for salty-reviewer."""

from __future__ import annotations


class SaltyError(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigError(SaltyError):
    """Configuration is missing, unreadable or invalid."""


class PRReferenceError(SaltyError, ValueError):
    """A pull request reference could not be parsed."""


class GitHubError(SaltyError):
    """A GitHub API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatError(SaltyError):
    """The chat-completions API call failed or returned no usable answer."""


class AnalysisError(SaltyError):
    """A model response could not be turned into analysis results."""
