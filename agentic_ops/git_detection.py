"""Git command detection for shell tool invocations.

When a hook fires for a shell tool the git operation hasn't run yet, so
the only thing to go on is the command text. These helpers decide whether
a command line commits or pushes, and pull out the commit message or the
destination ref.

Pure functions, no I/O: the current branch is supplied by the caller.

>>> is_git_commit_command("cd repo && git commit -m 'test'")
True
>>> is_git_commit_command('echo "git commit"')
False
>>> extract_push_ref("git push origin v1.0.0", "main")
'refs/tags/v1.0.0'
"""

from __future__ import annotations

import logging
import re
import shlex
from typing import Optional

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"

COMMIT_SUBCOMMANDS = ("commit", "ci")
PUSH_SUBCOMMANDS = ("push",)

# Remote names treated as a remote even with no ref after them
WELL_KNOWN_REMOTES = {"origin", "upstream"}

# git push options whose value is the next token
PUSH_VALUE_FLAGS = {"-o", "--push-option", "--repo", "--receive-pack", "--exec"}

# -m "msg", -m 'msg', --message "msg", --message="msg"
_MESSAGE_RE = re.compile(r"""(?:^|\s)(?:-m|--message)(?:=|\s*)(["'])(.*?)\1""", re.DOTALL)
_UNQUOTED_MESSAGE_RE = re.compile(r"""(?:^|\s)(?:-m|--message)(?:=|\s+)([^\s"']+)""")


def split_command_segments(command: str) -> list[str]:
    """Split a compound shell command into its statements.

    Splits on ``&&``, ``||``, ``;``, ``|``, ``&`` and newlines. Separators
    inside quotes, backticks or ``$(...)``, or escaped with a backslash,
    don't split.

    >>> split_command_segments("git add . && git commit -m 'a; b'")
    ['git add .', "git commit -m 'a; b'"]
    >>> split_command_segments('echo "x && git push"')
    ['echo "x && git push"']
    """
    segments: list[str] = []
    current: list[str] = []
    in_single = False
    in_double = False
    in_backtick = False
    depth = 0
    i = 0
    n = len(command)

    while i < n:
        c = command[i]

        if c == "\\" and not in_single:
            current.append(c)
            if i + 1 < n:
                i += 1
                current.append(command[i])
            i += 1
            continue

        if c == "'" and not in_double and not in_backtick:
            in_single = not in_single
        elif c == '"' and not in_single and not in_backtick:
            in_double = not in_double
        elif c == "`" and not in_single:
            in_backtick = not in_backtick
        elif not in_single and not in_backtick:
            if c == "$" and i + 1 < n and command[i + 1] == "(":
                depth += 1
                current.append("$(")
                i += 2
                continue
            if c == ")" and depth > 0:
                depth -= 1
            elif c == "&" and ((current and current[-1] in "<>") or command[i + 1:i + 2] == ">"):
                pass  # redirection (2>&1, &>file), not a separator
            elif not in_double and depth == 0 and c in ";|&\n":
                segments.append("".join(current))
                current = []
                # && and || are one separator
                if c in "|&" and i + 1 < n and command[i + 1] == c:
                    i += 1
                i += 1
                continue

        current.append(c)
        i += 1

    segments.append("".join(current))
    return [s.strip() for s in segments if s.strip()]


def _find_git_segment(command: str, subcommands: tuple[str, ...]) -> Optional[str]:
    """First segment whose leading tokens are ``git <subcommand>``."""
    for segment in split_command_segments(command):
        tokens = segment.split()
        if len(tokens) >= 2 and tokens[0] == "git" and tokens[1] in subcommands:
            return segment
    return None


def is_git_commit_command(command: str) -> bool:
    """True if any statement in the command is ``git commit`` (or ``git ci``).

    >>> is_git_commit_command("git ci -m 'test'")
    True
    >>> is_git_commit_command("git status")
    False
    """
    return _find_git_segment(command, COMMIT_SUBCOMMANDS) is not None


def is_git_push_command(command: str) -> bool:
    """True if any statement in the command is ``git push``.

    >>> is_git_push_command("cd repo && git push origin main")
    True
    >>> is_git_push_command("git pull")
    False
    """
    return _find_git_segment(command, PUSH_SUBCOMMANDS) is not None


def extract_commit_message(command: str) -> str:
    """Return the ``-m`` message of the git commit statement, verbatim.

    Only the commit statement is scanned, so text in neighbouring
    statements never leaks into the message. No ``-m`` gives ``""``.

    >>> extract_commit_message('git add . && git commit -m "done"')
    'done'
    >>> extract_commit_message("git commit --amend")
    ''
    """
    segment = _find_git_segment(command, COMMIT_SUBCOMMANDS)
    if segment is None:
        return ""
    m = _MESSAGE_RE.search(segment)
    if m:
        return m.group(2)
    m = _UNQUOTED_MESSAGE_RE.search(segment)
    if m:
        return m.group(1)
    return ""


def _push_tokens(segment: str) -> list[str]:
    try:
        tokens = shlex.split(segment)
    except ValueError:
        # unbalanced quotes
        tokens = segment.split()
    return tokens[2:]


def _positional_ref(args: list[str]) -> Optional[str]:
    """Pick the ref token out of the arguments following ``git push``."""
    positional: list[str] = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
        elif arg in PUSH_VALUE_FLAGS:
            skip_next = True
        elif not arg.startswith("-"):
            positional.append(arg)
    if not positional:
        return None
    # "git push <remote> <ref>" or a lone well-known remote
    if len(positional) >= 2 or positional[0] in WELL_KNOWN_REMOTES:
        positional = positional[1:]
    if not positional:
        return None
    return positional[0]


def extract_push_ref(command: str, current_branch: str) -> str:
    """Return the full ref a ``git push`` command would update.

    With no ref argument the current branch is pushed. A ref argument equal
    to the current branch is a branch; any other name is assumed to be a
    tag, since the command text alone can't say which refs exist.

    >>> extract_push_ref("git push", "main")
    'refs/heads/main'
    >>> extract_push_ref("git push --tags", "main")
    'refs/heads/main'
    >>> extract_push_ref("git push origin feature/test", "feature/test")
    'refs/heads/feature/test'
    """
    segment = _find_git_segment(command, PUSH_SUBCOMMANDS)
    token = _positional_ref(_push_tokens(segment)) if segment else None
    if token is None:
        return BRANCH_PREFIX + current_branch

    token = token.lstrip("+")
    if ":" in token:
        # refspec src:dst, the destination is what gets updated
        token = token.rsplit(":", 1)[1] or token.split(":", 1)[0]
    if token.startswith(BRANCH_PREFIX) or token.startswith(TAG_PREFIX):
        return token
    if token == "HEAD" or token == current_branch:
        return BRANCH_PREFIX + current_branch

    logger.debug("Push ref %r differs from current branch %r, assuming tag", token, current_branch)
    return TAG_PREFIX + token
