"""Glob matching for paths, branch names and tag names.

`*` stays inside one path segment, `**` spans whole segments. Everything
else is literal (no `?`, no character classes).

>>> match_glob("**/*.js", "deep/nested/test.js")
True
>>> match_glob("*.js", "src/test.js")
False
>>> match_glob("feature/**", "feature/new-thing")
True
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_SEGMENT = "[^/]*"


def _translate(pattern: str) -> str:
    """Translate a glob into a regex source string (unanchored)."""
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        # Trailing "/**": the directory itself or anything below it
        if pattern[i:] == "/**":
            out.append("(?:/.*)?")
            break
        if pattern.startswith("**", i):
            at_segment_start = i == 0 or pattern[i - 1] == "/"
            if at_segment_start and pattern.startswith("/", i + 2):
                out.append("(?:.*/)?")
                i += 3
            else:
                out.append(".*")
                i += 2
            continue
        ch = pattern[i]
        out.append(_SEGMENT if ch == "*" else re.escape(ch))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Optional[re.Pattern]:
    """Compile a glob, or return None if it can't be compiled."""
    try:
        return re.compile(_translate(pattern))
    except (re.error, TypeError) as e:
        logger.warning("Invalid glob pattern %r: %s", pattern, e)
        return None


def match_glob(pattern: str, value: str) -> bool:
    """True if ``value`` matches ``pattern`` in full. Bad patterns match nothing.

    >>> match_glob("src/**/*.go", "src/main.go")
    True
    >>> match_glob("src/**/*.go", "other/main.go")
    False
    >>> match_glob("v*", "V1.0.0")
    False
    """
    regex = compile_glob(pattern)
    if regex is None:
        return False
    return regex.fullmatch(value) is not None


def match_any(patterns: Iterable[str], value: str) -> bool:
    """True if any pattern matches."""
    return any(match_glob(p, value) for p in patterns)


def passes_filters(value: str, include: Iterable[str], ignore: Iterable[str]) -> bool:
    """Include/ignore rule shared by paths, branches and tags.

    Empty ``include`` means everything is included; ``ignore`` always wins.

    >>> passes_filters("src/a.go", [], [])
    True
    >>> passes_filters("src/a_test.go", ["**/*.go"], ["**/*_test.go"])
    False
    """
    include = list(include)
    if include and not match_any(include, value):
        return False
    return not match_any(ignore, value)
