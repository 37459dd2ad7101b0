"""Shared pytest fixtures for salty-reviewer test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from salty_reviewer.config import Config, WritingStyle
from salty_reviewer.github_client import FileChange, PRComment, PullRequest


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temp dir and clear env overrides."""
    home = tmp_path / "salty-home"
    monkeypatch.setenv("SALTY_HOME", str(home))
    for var in ("GITHUB_TOKEN", "AI_API_URL", "AI_API_KEY", "AI_MODEL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers that the CLI group installs on the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def make_config() -> callable:
    """Factory fixture that returns a valid Config with configurable fields."""

    def _factory(**overrides: Any) -> Config:
        defaults: dict[str, Any] = {
            "github_token": "ghp_test_token_123",
            "ai_api_url": "https://llm.example.com/v1",
            "ai_api_key": "sk-test-key-456",
            "ai_model": "gpt-4o",
            "writing_style": WritingStyle.PASSIVE_AGGRESSIVE,
            "nitpicky_level": 5,
        }
        defaults.update(overrides)
        return Config(**defaults)

    return _factory


@pytest.fixture()
def sample_pr() -> PullRequest:
    return PullRequest(
        number=42,
        title="Fix memory leak in parser",
        author="contributor123",
        head_sha="abc123",
        body="Closes unclosed file handles.",
        url="https://github.com/owner/repo/pull/42",
    )


@pytest.fixture()
def sample_files() -> list[FileChange]:
    return [
        FileChange(
            filename="src/parser.py",
            status="modified",
            additions=3,
            deletions=1,
            patch="@@ -10,6 +10,8 @@\n+    handle = open(path)\n+    data = handle.read()",
        ),
        FileChange(
            filename="tests/test_parser.py",
            status="added",
            additions=5,
            patch="@@ -0,0 +1,5 @@\n+def test_parse():\n+    assert parse('x')",
        ),
    ]


@pytest.fixture()
def sample_comment() -> callable:
    """Factory fixture for PRComment objects."""

    def _factory(**overrides: Any) -> PRComment:
        defaults: dict[str, Any] = {
            "id": 1001,
            "user": "grumpy_reviewer",
            "body": "This should use a context manager.",
            "path": "src/parser.py",
            "line": 11,
            "created_at": "2025-06-01T10:00:00Z",
            "in_reply_to": None,
        }
        defaults.update(overrides)
        return PRComment(**defaults)

    return _factory


@pytest.fixture()
def chat_client() -> MagicMock:
    """ChatClient stand-in whose ``chat`` coroutine is an AsyncMock."""
    client = MagicMock()
    client.chat = AsyncMock()
    return client


@pytest.fixture()
def github_client(sample_pr: PullRequest, sample_files: list[FileChange]) -> MagicMock:
    """GitHubClient stand-in with sensible async defaults."""
    client = MagicMock()
    client.get_pr = AsyncMock(return_value=sample_pr)
    client.get_pr_files = AsyncMock(return_value=sample_files)
    client.get_file_content = AsyncMock(return_value="line1\nline2\nline3")
    client.get_related_files = AsyncMock(return_value={})
    client.get_pr_comments = AsyncMock(return_value=[])
    client.get_authenticated_user = AsyncMock(return_value="contributor123")
    client.post_review = AsyncMock(return_value={"id": 1})
    client.reply_to_comment = AsyncMock(return_value={"id": 2})
    return client


@pytest.fixture()
def quiet_console() -> Console:
    """A console that records output instead of printing it."""
    return Console(record=True, width=200, force_terminal=False)
