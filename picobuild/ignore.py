"""Exclusion patterns from .picoignore and the config's exclude_paths."""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

IGNORE_FILENAME = ".picoignore"


@dataclass(frozen=True)
class ExcludePattern:
    """One gitignore-style line, compiled once.

    Patterns containing a slash (or starting with one) match the whole
    source-relative path; bare names match any single path segment.
    """

    source: str
    regex: Pattern[str]
    whole_path: bool
    directories_only: bool = False
    reinclude: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["ExcludePattern"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        reinclude = text.startswith("!")
        body = text[1:] if reinclude else text
        directories_only = body.endswith("/")
        body = body.strip("/") if directories_only else body.lstrip("/")
        if not body:
            return None
        whole_path = text.lstrip("!").startswith("/") or "/" in body
        return cls(
            source=text,
            regex=re.compile(fnmatch.translate(body)),
            whole_path=whole_path,
            directories_only=directories_only,
            reinclude=reinclude,
        )

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directories_only and not is_dir:
            return False
        if self.whole_path:
            return self.regex.match(rel_path) is not None
        return any(self.regex.match(segment) for segment in rel_path.split("/"))


class ExcludeSet:
    """Ordered patterns; the last one matching a path decides, as in .gitignore."""

    def __init__(self, patterns: Iterable[ExcludePattern] = ()) -> None:
        self.patterns: List[ExcludePattern] = list(patterns)

    @classmethod
    def from_lines(cls, *sources: Iterable[str]) -> "ExcludeSet":
        patterns: List[ExcludePattern] = []
        for lines in sources:
            for line in lines:
                pattern = ExcludePattern.parse(line)
                if pattern is not None:
                    patterns.append(pattern)
        return cls(patterns)

    def excludes(self, rel_path: str, is_dir: bool) -> bool:
        verdict = False
        for pattern in self.patterns:
            if pattern.matches(rel_path, is_dir):
                verdict = not pattern.reinclude
        return verdict

    def __len__(self) -> int:
        return len(self.patterns)


__all__ = ["ExcludePattern", "ExcludeSet", "IGNORE_FILENAME"]
