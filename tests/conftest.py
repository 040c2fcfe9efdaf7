"""Shared fixtures for agentic_ops tests."""

import pytest

from agentic_ops.schema import CommitEvent, Event, FileStatus, PushEvent, ToolEvent, Workflow


@pytest.fixture
def make_workflow():
    """Factory for Workflow objects from an `on` mapping (YAML spelling)."""
    def _create(on=None, name="test-workflow", **extra):
        return Workflow.model_validate({"name": name, "on": on or {}, **extra})
    return _create


@pytest.fixture
def tool_event():
    """Factory for events carrying a tool invocation."""
    def _create(name="edit", **args):
        return Event(tool=ToolEvent(name=name, args=args))
    return _create


@pytest.fixture
def commit_event():
    """Factory for events carrying a commit touching the given paths."""
    def _create(*paths, branch=None, sha="abc123", message="change"):
        files = [FileStatus(path=p, status="modified") for p in paths]
        return Event(commit=CommitEvent(sha=sha, message=message, files=files, branch=branch))
    return _create


@pytest.fixture
def push_event():
    """Factory for events carrying a push to a ref."""
    def _create(ref, commits=None):
        return Event(push=PushEvent(
            ref=ref,
            before="0000000000000000000000000000000000000000",
            after="abc123",
            commits=commits or [],
        ))
    return _create
