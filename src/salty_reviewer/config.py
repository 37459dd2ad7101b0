"""Configuration persistence and reviewer preferences.

Settings live in ``~/.salty-reviewer/config.yaml`` (the directory can be moved
with ``SALTY_HOME``). Secrets and endpoints may also come from the environment
or a ``.env`` file, which take precedence over the file.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

CONFIG_DIR_NAME = ".salty-reviewer"
CONFIG_FILE_NAME = "config.yaml"

MIN_NITPICKY_LEVEL = 1
MAX_NITPICKY_LEVEL = 10

LIKED_BIAS = -2
DISLIKED_BIAS = 3

# Environment variables that override values read from the config file
ENV_OVERRIDES = {
    "GITHUB_TOKEN": "github_token",
    "AI_API_URL": "ai_api_url",
    "AI_API_KEY": "ai_api_key",
    "AI_MODEL": "ai_model",
}

SETTABLE_KEYS = [
    "writing_style",
    "nitpicky_level",
    "github_token",
    "ai_api_url",
    "ai_api_key",
    "ai_model",
]


class WritingStyle(str, Enum):
    """Tone used for review comments and defense replies."""

    CORPORATE = "corporate"
    PASSIVE_AGGRESSIVE = "passive_aggressive"
    TECH_BRO = "tech_bro"
    ACADEMIC = "academic"

    @classmethod
    def parse(cls, value: str) -> WritingStyle:
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(f"invalid writing style: {value}") from None


STYLE_DESCRIPTIONS: dict[WritingStyle, str] = {
    WritingStyle.CORPORATE: '"Per our established best practices..."',
    WritingStyle.PASSIVE_AGGRESSIVE: '"I\'m sure you already know this, but..."',
    WritingStyle.TECH_BRO: '"Actually, if you look at the Big O..."',
    WritingStyle.ACADEMIC: '"According to Martin Fowler (2018)..."',
}


def config_dir() -> Path:
    """Return the directory that holds the config file."""
    override = os.getenv("SALTY_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def config_path() -> Path:
    return config_dir() / CONFIG_FILE_NAME


@dataclass
class Config:
    """User configuration for reviews and defenses."""

    # GitHub
    github_token: str = ""

    # Any OpenAI-compatible chat-completions endpoint
    ai_api_url: str = "https://api.openai.com/v1"
    ai_api_key: str = ""
    ai_model: str = "gpt-4"

    # Review behaviour
    writing_style: WritingStyle = WritingStyle.PASSIVE_AGGRESSIVE
    nitpicky_level: int = 5
    liked_reviewers: list[str] = field(default_factory=list)
    disliked_reviewers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["writing_style"] = self.writing_style.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Build a config from parsed YAML, falling back to defaults for missing keys."""
        cfg = cls()
        for key in ("github_token", "ai_api_url", "ai_api_key", "ai_model"):
            value = data.get(key)
            if value is not None:
                setattr(cfg, key, str(value))

        style = data.get("writing_style")
        if style:
            cfg.writing_style = WritingStyle.parse(str(style))

        level = data.get("nitpicky_level")
        if level is not None:
            try:
                cfg.nitpicky_level = int(level)
            except (TypeError, ValueError):
                raise ConfigError(f"nitpicky_level must be an integer, got {level!r}") from None

        cfg.liked_reviewers = [str(u) for u in data.get("liked_reviewers") or []]
        cfg.disliked_reviewers = [str(u) for u in data.get("disliked_reviewers") or []]
        return cfg

    def apply_env_overrides(self) -> None:
        for env_var, attr in ENV_OVERRIDES.items():
            value = os.getenv(env_var, "").strip()
            if value:
                setattr(self, attr, value)

    def validate(self) -> list[str]:
        """Validate configuration, return list of issues."""
        issues = []
        if not self.github_token:
            issues.append("github_token is required")
        if not self.ai_api_key:
            issues.append("ai_api_key is required")
        if not MIN_NITPICKY_LEVEL <= self.nitpicky_level <= MAX_NITPICKY_LEVEL:
            issues.append("nitpicky_level must be between 1 and 10")
        return issues

    def save(self) -> Path:
        """Write the config to disk, readable only by the current user.

        Returns:
            Path of the written file
        """
        directory = config_dir()
        try:
            directory.mkdir(mode=0o700, parents=True, exist_ok=True)
            path = config_path()
            data = yaml.safe_dump(self.to_dict(), sort_keys=False)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
        except OSError as e:
            raise ConfigError(f"could not write config: {e}") from e
        return path

    # -- reviewer preferences -------------------------------------------------

    def is_liked_reviewer(self, username: str) -> bool:
        return username in self.liked_reviewers

    def is_disliked_reviewer(self, username: str) -> bool:
        return username in self.disliked_reviewers

    def add_liked_reviewer(self, username: str) -> None:
        """Add a user to the liked list, dropping them from the disliked list."""
        if not self.is_liked_reviewer(username):
            self.liked_reviewers.append(username)
        if username in self.disliked_reviewers:
            self.disliked_reviewers.remove(username)

    def add_disliked_reviewer(self, username: str) -> None:
        """Add a user to the disliked list, dropping them from the liked list."""
        if not self.is_disliked_reviewer(username):
            self.disliked_reviewers.append(username)
        if username in self.liked_reviewers:
            self.liked_reviewers.remove(username)

    def remove_reviewer(self, username: str) -> bool:
        """Forget any preference for a user. Returns True if one existed."""
        removed = False
        if username in self.liked_reviewers:
            self.liked_reviewers.remove(username)
            removed = True
        if username in self.disliked_reviewers:
            self.disliked_reviewers.remove(username)
            removed = True
        return removed

    def reviewer_bias(self, username: str) -> int:
        """Adjustment to the nitpicky level for a given PR author."""
        if self.is_liked_reviewer(username):
            return LIKED_BIAS
        if self.is_disliked_reviewer(username):
            return DISLIKED_BIAS
        return 0

    def effective_nitpicky_level(self, username: str) -> int:
        level = self.nitpicky_level + self.reviewer_bias(username)
        return max(MIN_NITPICKY_LEVEL, min(MAX_NITPICKY_LEVEL, level))

    def set_value(self, key: str, value: str) -> None:
        """Set one of the user-editable keys from its string form."""
        if key == "writing_style":
            self.writing_style = WritingStyle.parse(value)
        elif key == "nitpicky_level":
            try:
                level = int(value)
            except ValueError:
                level = 0
            if not MIN_NITPICKY_LEVEL <= level <= MAX_NITPICKY_LEVEL:
                raise ConfigError("nitpicky_level must be 1-10")
            self.nitpicky_level = level
        elif key in ("github_token", "ai_api_url", "ai_api_key", "ai_model"):
            setattr(self, key, value)
        else:
            raise ConfigError(f"unknown config key: {key}")


def load(validate: bool = True, apply_env: bool = True) -> Config:
    """Read the config from disk.

    Args:
        validate: Raise if required settings are missing or out of range
        apply_env: Let environment variables override file values

    Raises:
        ConfigError: If the file is missing, unreadable, unparseable or invalid
    """
    path = config_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError("config not found. Run 'salty init' first") from None
    except OSError as e:
        raise ConfigError(f"could not read config: {e}") from e

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"could not parse config: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"could not parse config: expected a mapping in {path}")

    cfg = Config.from_dict(data)
    if apply_env:
        cfg.apply_env_overrides()

    if validate:
        issues = cfg.validate()
        if issues:
            raise ConfigError("; ".join(issues))
    return cfg


def load_or_default(apply_env: bool = False) -> Config:
    """Load the config without validation, or return defaults if none exists.

    Environment overrides are off by default, so the result can be saved back
    without copying environment-only secrets into the file.
    """
    if not config_path().exists():
        cfg = Config()
    else:
        cfg = load(validate=False, apply_env=False)
    if apply_env:
        cfg.apply_env_overrides()
    return cfg


def mask_token(token: str) -> str:
    """Hide most of a secret for display."""
    if not token:
        return "(not set)"
    if len(token) <= 8:
        return "****"
    return token[:4] + "..." + token[-4:]
