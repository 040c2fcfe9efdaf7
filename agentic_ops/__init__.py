"""
agentic-ops - policy workflows that gate AI coding agent actions.

Matches tool calls, file edits, commits and pushes against user-authored
workflow triggers so a runner can allow or deny the action before it
happens.
"""

__version__ = "0.1.0"

from agentic_ops.events import from_claude_hook, parse_event_data
from agentic_ops.schema import Event, Workflow, WorkflowResult
from agentic_ops.trigger import Matcher, match, match_workflows, validate_workflow

__all__ = [
    "__version__",
    "Event",
    "Matcher",
    "Workflow",
    "WorkflowResult",
    "from_claude_hook",
    "match",
    "match_workflows",
    "parse_event_data",
    "validate_workflow",
]
