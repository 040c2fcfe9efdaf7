"""Runtime settings, read from environment variables.

AGENTIC_OPS_DEBUG               "1" turns on debug logging
AGENTIC_OPS_EXPRESSION_ERRORS   what a broken `if` expression means at match
                                time: "no-match" (default) or "match"
AGENTIC_OPS_SHELL_TOOLS         comma-separated tool names treated as shells
AGENTIC_OPS_DEFAULT_BRANCH      branch assumed when the caller doesn't know
                                the checked-out branch (default "HEAD")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional

from agentic_ops.logging_utils import setup_logging

ExpressionErrorPolicy = Literal["no-match", "match"]

EXPRESSION_ERROR_POLICIES = ("no-match", "match")
DEFAULT_SHELL_TOOLS = frozenset({"bash", "powershell", "sh", "cmd"})
DEFAULT_BRANCH = "HEAD"


@dataclass(frozen=True)
class Settings:
    """Settings for event synthesis and trigger matching."""

    debug: bool = False
    on_expression_error: ExpressionErrorPolicy = "no-match"
    shell_tools: frozenset[str] = field(default_factory=lambda: DEFAULT_SHELL_TOOLS)
    default_branch: str = DEFAULT_BRANCH

    def __post_init__(self) -> None:
        if self.on_expression_error not in EXPRESSION_ERROR_POLICIES:
            raise ValueError(
                f"Invalid expression error policy '{self.on_expression_error}'. "
                f"Must be one of: {', '.join(EXPRESSION_ERROR_POLICIES)}"
            )
        if not self.default_branch:
            raise ValueError("Default branch must not be empty")

    def configure_logging(self) -> None:
        """Set up root logging, at DEBUG level when ``debug`` is on."""
        setup_logging(verbose=self.debug)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ValueError: If a variable holds an unsupported value.

        >>> Settings.from_env({"AGENTIC_OPS_SHELL_TOOLS": "Bash, zsh"}).shell_tools == {"bash", "zsh"}
        True
        """
        env = os.environ if environ is None else environ

        shell_tools = DEFAULT_SHELL_TOOLS
        raw_tools = env.get("AGENTIC_OPS_SHELL_TOOLS", "").strip()
        if raw_tools:
            shell_tools = frozenset(t.strip().lower() for t in raw_tools.split(",") if t.strip())

        return cls(
            debug=env.get("AGENTIC_OPS_DEBUG", "") == "1",
            on_expression_error=env.get("AGENTIC_OPS_EXPRESSION_ERRORS", "no-match").strip().lower(),
            shell_tools=shell_tools,
            default_branch=env.get("AGENTIC_OPS_DEFAULT_BRANCH", DEFAULT_BRANCH).strip(),
        )
