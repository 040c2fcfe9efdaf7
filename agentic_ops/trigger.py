"""Trigger matching: does an event activate a workflow?

A workflow's ``on`` block may declare several trigger kinds at once. The
workflow matches when any one of them matches; a kind the event has no
data for simply doesn't match.

Each declared kind is one `TriggerSpec` value and is evaluated through
`matches()`, which dispatches on the spec's type.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Union

from agentic_ops.config import EXPRESSION_ERROR_POLICIES, ExpressionErrorPolicy, Settings
from agentic_ops.expression import Context, ExpressionError, to_text, validate_expression, validate_template
from agentic_ops.expression.evaluator import TEMPLATE_OPEN
from agentic_ops.git_detection import BRANCH_PREFIX, TAG_PREFIX
from agentic_ops.patterns import match_glob, passes_filters
from agentic_ops.schema import (
    CommitTrigger,
    Event,
    FileStatus,
    FileTrigger,
    HooksTrigger,
    OnConfig,
    PushTrigger,
    ToolTrigger,
    Workflow,
)

logger = logging.getLogger(__name__)

TriggerSpec = Union[HooksTrigger, ToolTrigger, FileTrigger, CommitTrigger, PushTrigger]


class WorkflowValidationError(ValueError):
    """A workflow's trigger expressions don't parse or don't type-check."""

    def __init__(self, workflow_name: str, problems: list[str]):
        self.workflow_name = workflow_name
        self.problems = problems
        super().__init__(f"Workflow '{workflow_name}' has invalid expressions: " + "; ".join(problems))


# --- Ref helpers ---

def extract_branch(ref: str) -> str:
    """Branch name of a ``refs/heads/`` ref, else ''.

    >>> extract_branch("refs/heads/feature/test")
    'feature/test'
    >>> extract_branch("refs/tags/v1.0.0")
    ''
    """
    return ref[len(BRANCH_PREFIX):] if ref.startswith(BRANCH_PREFIX) else ""


def extract_tag(ref: str) -> str:
    """Tag name of a ``refs/tags/`` ref, else ''.

    >>> extract_tag("refs/tags/release-1")
    'release-1'
    >>> extract_tag("v1.0.0")
    ''
    """
    return ref[len(TAG_PREFIX):] if ref.startswith(TAG_PREFIX) else ""


# --- Context ---

def build_context(event: Event, workflow: Optional[Workflow] = None) -> Context:
    """Expression context for one event: ``event`` from the event, ``env`` from the workflow."""
    env = dict(workflow.env) if workflow is not None else {}
    return Context(event=event.to_context(), env=env)


def trigger_specs(on: OnConfig) -> list[TriggerSpec]:
    """Flatten an ``on`` block into the trigger kinds it declares."""
    specs: list[TriggerSpec] = []
    if on.hooks is not None:
        specs.append(on.hooks)
    if on.tool is not None:
        specs.append(on.tool)
    specs.extend(on.tools)
    if on.file is not None:
        specs.append(on.file)
    if on.commit is not None:
        specs.append(on.commit)
    if on.push is not None:
        specs.append(on.push)
    return specs


# --- Per-kind matching ---

def _condition_holds(expression: str, ctx: Context, on_expression_error: ExpressionErrorPolicy) -> bool:
    try:
        return ctx.evaluate_bool(expression)
    except ExpressionError as e:
        # the policy decides which way a broken condition falls
        logger.warning("Trigger condition %r failed (%s), treating as %s", expression, e, on_expression_error)
        return on_expression_error == "match"


def _match_hooks(spec: HooksTrigger, event: Event, ctx: Callable[[], Context], policy: ExpressionErrorPolicy) -> bool:
    hook = event.hook
    if hook is None:
        return False
    if spec.types and hook.type not in spec.types:
        return False
    if spec.tools:
        if hook.tool is None or hook.tool.name not in spec.tools:
            return False
    return True


def _match_tool(spec: ToolTrigger, event: Event, ctx: Callable[[], Context], policy: ExpressionErrorPolicy) -> bool:
    tool = event.tool
    if tool is None or tool.name != spec.name:
        return False
    for arg_name, pattern in spec.args.items():
        value = tool.args.get(arg_name)
        if value is None:
            return False
        if not match_glob(pattern, to_text(value)):
            return False
    if spec.if_:
        return _condition_holds(spec.if_, ctx(), policy)
    return True


def _match_file(spec: FileTrigger, event: Event, ctx: Callable[[], Context], policy: ExpressionErrorPolicy) -> bool:
    file = event.file
    if file is None:
        return False
    if spec.types and file.action not in spec.types:
        return False
    return passes_filters(file.path, spec.paths, spec.paths_ignore)


def _filter_files(files: Iterable[FileStatus], paths: list[str], paths_ignore: list[str]) -> list[FileStatus]:
    return [f for f in files if passes_filters(f.path, paths, paths_ignore)]


def _match_commit(spec: CommitTrigger, event: Event, ctx: Callable[[], Context], policy: ExpressionErrorPolicy) -> bool:
    commit = event.commit
    if commit is None:
        return False
    # Branch filters only apply when the commit says which branch it is on
    if commit.branch is not None and (spec.branches or spec.branches_ignore):
        if not passes_filters(commit.branch, spec.branches, spec.branches_ignore):
            return False
    return bool(_filter_files(commit.files, spec.paths, spec.paths_ignore))


def _ref_passes(spec: PushTrigger, ref: str) -> bool:
    has_branch_filters = bool(spec.branches or spec.branches_ignore)
    has_tag_filters = bool(spec.tags or spec.tags_ignore)
    if not has_branch_filters and not has_tag_filters:
        return True

    branch = extract_branch(ref)
    if branch:
        return has_branch_filters and passes_filters(branch, spec.branches, spec.branches_ignore)
    tag = extract_tag(ref)
    if tag:
        return has_tag_filters and passes_filters(tag, spec.tags, spec.tags_ignore)
    return False


def _match_push(spec: PushTrigger, event: Event, ctx: Callable[[], Context], policy: ExpressionErrorPolicy) -> bool:
    push = event.push
    if push is None:
        return False
    if not _ref_passes(spec, push.ref):
        return False
    # Path filters need file context, which only nested commits provide
    if (spec.paths or spec.paths_ignore) and push.commits:
        files = [f for c in push.commits for f in c.files]
        return bool(_filter_files(files, spec.paths, spec.paths_ignore))
    return True


_MATCHERS: dict[type, Callable[..., bool]] = {
    HooksTrigger: _match_hooks,
    ToolTrigger: _match_tool,
    FileTrigger: _match_file,
    CommitTrigger: _match_commit,
    PushTrigger: _match_push,
}


def matches(
    spec: TriggerSpec,
    event: Event,
    ctx: Union[Context, Callable[[], Context]],
    on_expression_error: ExpressionErrorPolicy = "no-match",
) -> bool:
    """Evaluate a single trigger spec against an event.

    ``ctx`` may be a `Context` or a zero-argument callable producing one, so
    the context is only built for specs that evaluate expressions.
    """
    matcher = _MATCHERS.get(type(spec))
    if matcher is None:
        raise TypeError(f"Unsupported trigger spec: {type(spec).__name__}")
    ctx_factory = ctx if callable(ctx) else (lambda: ctx)
    return matcher(spec, event, ctx_factory, on_expression_error)


# --- Workflow-level matching ---

class Matcher:
    """Matches events against one workflow's triggers.

    ``on_expression_error`` decides what a failing ``if`` expression means:
    "no-match" lets the action through untouched by this workflow,
    "match" runs the workflow (and so fails toward deny for blocking ones).
    """

    def __init__(self, workflow: Workflow, on_expression_error: ExpressionErrorPolicy = "no-match"):
        if on_expression_error not in EXPRESSION_ERROR_POLICIES:
            raise ValueError(f"Invalid expression error policy '{on_expression_error}'")
        self.workflow = workflow
        self.on_expression_error = on_expression_error
        self.specs = trigger_specs(workflow.on)

    @classmethod
    def from_settings(cls, workflow: Workflow, settings: Settings) -> "Matcher":
        return cls(workflow, on_expression_error=settings.on_expression_error)

    def match(self, event: Event) -> bool:
        context: list[Context] = []

        def ctx() -> Context:
            if not context:
                context.append(build_context(event, self.workflow))
            return context[0]

        for spec in self.specs:
            if matches(spec, event, ctx, self.on_expression_error):
                logger.debug("Workflow '%s' matched on %s", self.workflow.name, type(spec).__name__)
                return True
        return False


def match(workflow: Workflow, event: Event, on_expression_error: ExpressionErrorPolicy = "no-match") -> bool:
    """True if any trigger kind declared by the workflow matches the event."""
    return Matcher(workflow, on_expression_error).match(event)


def match_workflows(
    workflows: Iterable[Workflow],
    event: Event,
    on_expression_error: ExpressionErrorPolicy = "no-match",
) -> list[Workflow]:
    """The workflows (in their given order) whose triggers match the event."""
    matched = [w for w in workflows if match(w, event, on_expression_error)]
    logger.debug("%d workflow(s) matched", len(matched))
    return matched


def validate_workflow(workflow: Workflow) -> None:
    """Check every expression in a workflow, reporting all problems at once.

    Trigger and step ``if`` conditions are checked as expressions (a step
    condition may also be written as a ``${{ }}`` template); step ``run``,
    ``with`` and ``env`` values are checked as templates.

    Raises:
        WorkflowValidationError: If any expression fails to parse or names
            an unknown function or wrong arity.
    """
    problems: list[str] = []
    conditions: list[tuple[str, str]] = []
    if workflow.on.tool is not None and workflow.on.tool.if_:
        conditions.append(("on.tool.if", workflow.on.tool.if_))
    for i, tool in enumerate(workflow.on.tools):
        if tool.if_:
            conditions.append((f"on.tools[{i}].if", tool.if_))

    templates: list[tuple[str, str]] = []
    for i, step in enumerate(workflow.steps):
        if step.if_:
            if TEMPLATE_OPEN in step.if_:
                templates.append((f"steps[{i}].if", step.if_))
            else:
                conditions.append((f"steps[{i}].if", step.if_))
        if step.run:
            templates.append((f"steps[{i}].run", step.run))
        for key, value in step.with_.items():
            templates.append((f"steps[{i}].with.{key}", value))
        for key, value in step.env.items():
            templates.append((f"steps[{i}].env.{key}", value))

    for location, expression in conditions:
        try:
            validate_expression(expression)
        except ExpressionError as e:
            problems.append(f"{location}: {e}")
    for location, text in templates:
        try:
            validate_template(text)
        except ExpressionError as e:
            problems.append(f"{location}: {e}")

    if problems:
        raise WorkflowValidationError(workflow.name, problems)
