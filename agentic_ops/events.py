"""Build `Event` values from raw hook payloads.

The payload is a JSON object with optional ``hook``, ``tool``, ``file``,
``commit`` and ``push`` sections. When the tool is a shell and the payload
carries no commit/push section, the command text is classified and a
pending commit or push event is synthesized from it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from agentic_ops.config import DEFAULT_BRANCH, DEFAULT_SHELL_TOOLS, Settings
from agentic_ops.git_detection import (
    extract_commit_message,
    extract_push_ref,
    is_git_commit_command,
    is_git_push_command,
)
from agentic_ops.logging_utils import loggable_command
from agentic_ops.schema import CommitEvent, Event, FileStatus, PushEvent, ToolEvent

logger = logging.getLogger(__name__)

PENDING_SHA = "pending"

# Claude Code tool name -> file action
_FILE_TOOL_ACTIONS = {
    "write": "create",
    "edit": "edit",
    "multiedit": "edit",
}


def is_shell_tool(name: str, shell_tools: Optional[Iterable[str]] = None) -> bool:
    """
    >>> is_shell_tool("PowerShell")
    True
    >>> is_shell_tool("edit")
    False
    """
    tools = DEFAULT_SHELL_TOOLS if shell_tools is None else {t.lower() for t in shell_tools}
    return name.lower() in tools


def _shell_command(tool: Optional[ToolEvent], shell_tools: Optional[Iterable[str]]) -> Optional[str]:
    if tool is None or not is_shell_tool(tool.name, shell_tools):
        return None
    command = tool.args.get("command")
    return command if isinstance(command, str) and command.strip() else None


def synthesize_commit(
    command: str,
    current_branch: Optional[str] = None,
    staged_files: Optional[Iterable[FileStatus]] = None,
) -> CommitEvent:
    """Pending commit for a ``git commit`` command that hasn't run yet.

    Files can't be read from the command; a caller that knows the staged
    files passes them in.
    """
    return CommitEvent(
        sha=PENDING_SHA,
        message=extract_commit_message(command),
        files=list(staged_files or []),
        branch=current_branch,
    )


def synthesize_push(command: str, current_branch: Optional[str] = None) -> PushEvent:
    return PushEvent(ref=extract_push_ref(command, current_branch or DEFAULT_BRANCH))


def parse_event_data(
    data: dict[str, Any],
    *,
    current_branch: Optional[str] = None,
    staged_files: Optional[Iterable[FileStatus]] = None,
    shell_tools: Optional[Iterable[str]] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> Event:
    """Validate a raw hook payload into an `Event`.

    ``current_branch`` is the checked-out branch if the caller knows it.
    Without it, pushes resolve against the configured default branch and
    synthesized commits carry no branch.

    Raises:
        pydantic.ValidationError: If a section is present but malformed.
    """
    fields: dict[str, Any] = {
        key: data[key] for key in ("hook", "tool", "file", "commit", "push") if data.get(key) is not None
    }
    event = Event.model_validate(fields)

    tool = event.tool
    if tool is None and event.hook is not None:
        tool = event.hook.tool

    cwd = data.get("cwd") or (event.hook.cwd if event.hook is not None else "")
    timestamp = data.get("timestamp") or (now or datetime.now(timezone.utc)).isoformat()

    settings = settings or Settings()
    if shell_tools is None:
        shell_tools = settings.shell_tools

    commit = event.commit
    push = event.push
    command = _shell_command(tool, shell_tools)
    if command is not None:
        if commit is None and is_git_commit_command(command):
            commit = synthesize_commit(command, current_branch, staged_files)
            logger.debug("Synthesized commit from command: %s", loggable_command(command))
        if push is None and is_git_push_command(command):
            push = synthesize_push(command, current_branch or settings.default_branch)
            logger.debug("Synthesized push to %s from command: %s", push.ref, loggable_command(command))

    return event.model_copy(
        update={"tool": tool, "commit": commit, "push": push, "cwd": cwd, "timestamp": timestamp}
    )


def _camel_hook_type(name: str) -> str:
    """'PreToolUse' -> 'preToolUse'."""
    return name[:1].lower() + name[1:] if name else name


def _project_relative(path: str, cwd: str) -> str:
    """Make an absolute path under cwd relative to it, so globs like `src/**` apply.

    >>> _project_relative("/repo/src/main.go", "/repo")
    'src/main.go'
    >>> _project_relative("/elsewhere/a.txt", "/repo")
    '/elsewhere/a.txt'
    """
    normalized = path.replace("\\", "/")
    root = cwd.replace("\\", "/").rstrip("/")
    if root and normalized.startswith(root + "/"):
        return normalized[len(root) + 1:]
    return path


def from_claude_hook(payload: dict[str, Any], **kwargs: Any) -> Event:
    """Build an `Event` from a Claude Code hook payload.

    Claude Code sends ``hook_event_name``, ``tool_name``, ``tool_input`` and
    ``cwd``. Tool names are lower-cased, ``file_path`` is mirrored to
    ``path`` (relative to ``cwd`` when inside it), and Write/Edit calls
    also produce a file event. Keyword arguments go to `parse_event_data`.
    """
    tool_name = str(payload.get("tool_name", "")).lower()
    args = dict(payload.get("tool_input") or {})
    if "file_path" in args and "path" not in args:
        args["path"] = _project_relative(str(args["file_path"]), str(payload.get("cwd", "")))

    tool = {"name": tool_name, "args": args} if tool_name else None
    cwd = payload.get("cwd", "")
    data: dict[str, Any] = {"tool": tool, "cwd": cwd}

    hook_type = _camel_hook_type(str(payload.get("hook_event_name", "")))
    if hook_type:
        data["hook"] = {"type": hook_type, "tool": tool, "cwd": cwd}

    action = _FILE_TOOL_ACTIONS.get(tool_name)
    if action and isinstance(args.get("path"), str):
        data["file"] = {"path": args["path"], "action": action, "content": args.get("content")}

    return parse_event_data(data, **kwargs)
