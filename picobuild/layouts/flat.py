"""One tab per file directly inside the project root."""

from __future__ import annotations

from typing import List

from ..models import Diagnostic, Severity
from .base import Layout, TabCandidate


class FilePerTabLayout(Layout):
    name = "file-per-tab"

    def discover(self, context) -> List[TabCandidate]:
        directories, files = context.entries(context.root)
        for directory in directories:
            context.emit(
                Diagnostic(
                    severity=Severity.INFO,
                    code="ignored-directory",
                    message=f"{context.rel(directory)}/ is ignored in {self.name} layout",
                    path=context.rel(directory),
                )
            )
        candidates: List[TabCandidate] = []
        for path in files:
            fragment = context.fragment(path, path.name, tab=path.name)
            if fragment is None:
                continue
            candidates.append(TabCandidate(name=path.name, source_path=path, files=[fragment]))
        return candidates
