"""salty-reviewer: a satirical pull request review assistant."""

__version__ = "0.1.0"

# Shared types
from .config import Config, WritingStyle
from .github_client import PRReference, parse_pr_reference
from .models import ModelResponse

__all__ = [
    "Config",
    "ModelResponse",
    "PRReference",
    "WritingStyle",
    "parse_pr_reference",
    "__version__",
]
