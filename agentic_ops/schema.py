"""Workflow, event and decision models.

Workflows arrive already decoded from YAML; events arrive as hook JSON.
Both are validated into frozen pydantic models. Keys use their YAML/JSON
spelling (``paths-ignore``, ``permissionDecision``) as aliases, and the
Python field names are accepted too.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# --- Workflow definition ---

class ConcurrencyConfig(_Model):
    group: str
    max_parallel: int = Field(default=1, alias="max-parallel")


class HooksTrigger(_Model):
    types: list[str] = Field(default_factory=list)  # preToolUse, postToolUse
    tools: list[str] = Field(default_factory=list)


class ToolTrigger(_Model):
    name: str
    args: dict[str, str] = Field(default_factory=dict)  # arg name -> glob
    if_: Optional[str] = Field(default=None, alias="if")


class FileTrigger(_Model):
    types: list[str] = Field(default_factory=list)  # create, edit
    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")


class CommitTrigger(_Model):
    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")
    branches: list[str] = Field(default_factory=list)
    branches_ignore: list[str] = Field(default_factory=list, alias="branches-ignore")


class PushTrigger(_Model):
    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")
    branches: list[str] = Field(default_factory=list)
    branches_ignore: list[str] = Field(default_factory=list, alias="branches-ignore")
    tags: list[str] = Field(default_factory=list)
    tags_ignore: list[str] = Field(default_factory=list, alias="tags-ignore")


class OnConfig(_Model):
    hooks: Optional[HooksTrigger] = None
    tool: Optional[ToolTrigger] = None
    tools: list[ToolTrigger] = Field(default_factory=list)
    file: Optional[FileTrigger] = None
    commit: Optional[CommitTrigger] = None
    push: Optional[PushTrigger] = None


class Step(_Model):
    """One workflow step. Executed by the runner; the matcher never looks inside."""
    name: Optional[str] = None
    if_: Optional[str] = Field(default=None, alias="if")
    run: Optional[str] = None
    shell: Optional[str] = None  # pwsh, bash, sh, cmd
    uses: Optional[str] = None
    with_: dict[str, str] = Field(default_factory=dict, alias="with")
    env: dict[str, str] = Field(default_factory=dict)
    working_directory: Optional[str] = Field(default=None, alias="working-directory")
    timeout: Optional[int] = None  # seconds
    continue_on_error: bool = Field(default=False, alias="continue-on-error")


class Workflow(_Model):
    name: str
    description: Optional[str] = None
    blocking: Optional[bool] = None
    concurrency: Optional[ConcurrencyConfig] = None
    on: OnConfig = Field(default_factory=OnConfig)
    env: dict[str, str] = Field(default_factory=dict)
    steps: list[Step] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _yaml11_on_key(cls, data: Any) -> Any:
        # YAML 1.1 loaders decode a bare `on:` key as boolean True
        if isinstance(data, dict) and True in data and "on" not in data:
            data = dict(data)
            data["on"] = data.pop(True)
        return data

    @property
    def is_blocking(self) -> bool:
        """Whether a failing run should deny the action. Defaults to True."""
        return True if self.blocking is None else self.blocking


# --- Runtime events ---

class ToolEvent(_Model):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    hook_type: Optional[str] = None


class HookEvent(_Model):
    type: str  # preToolUse, postToolUse
    tool: Optional[ToolEvent] = None
    cwd: str = ""


class FileEvent(_Model):
    path: str
    action: str  # create, edit
    content: Optional[str] = None


class FileStatus(_Model):
    path: str
    status: str  # added, modified, deleted


class CommitEvent(_Model):
    sha: str = ""
    message: str = ""
    author: str = ""
    files: list[FileStatus] = Field(default_factory=list)
    branch: Optional[str] = None


class PushEvent(_Model):
    ref: str
    before: str = ""
    after: str = ""
    commits: list[CommitEvent] = Field(default_factory=list)


class Event(_Model):
    """Runtime context for one allow/deny decision.

    Any combination of the optional parts may be present, e.g. a shell
    tool call together with the commit it is about to make.
    """
    hook: Optional[HookEvent] = None
    tool: Optional[ToolEvent] = None
    file: Optional[FileEvent] = None
    commit: Optional[CommitEvent] = None
    push: Optional[PushEvent] = None
    cwd: str = ""
    timestamp: str = ""

    def to_context(self) -> dict[str, Any]:
        """Plain nested dict for the expression ``event`` namespace."""
        return self.model_dump(mode="json", exclude_none=True)


# --- Decision output ---

class WorkflowResult(_Model):
    permission_decision: Literal["allow", "deny"] = Field(alias="permissionDecision")
    permission_decision_reason: Optional[str] = Field(default=None, alias="permissionDecisionReason")

    @classmethod
    def allow(cls) -> "WorkflowResult":
        return cls(permission_decision="allow")

    @classmethod
    def deny(cls, reason: str) -> "WorkflowResult":
        return cls(permission_decision="deny", permission_decision_reason=reason)

    @property
    def allowed(self) -> bool:
        return self.permission_decision == "allow"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_hook_output(self, hook_event_name: str = "PreToolUse") -> dict[str, Any]:
        """Wrap the decision in the host runtime's hook response envelope.

        >>> WorkflowResult.deny("no .env edits").to_hook_output()["hookSpecificOutput"]["permissionDecision"]
        'deny'
        """
        return {"hookSpecificOutput": {"hookEventName": hook_event_name, **self.to_dict()}}
