"""One tab per immediate subdirectory of the project root."""

from __future__ import annotations

from typing import List

from ..models import Diagnostic, Severity
from .base import Layout, TabCandidate


class FolderPerTabLayout(Layout):
    name = "folder-per-tab"

    def discover(self, context) -> List[TabCandidate]:
        directories, files = context.entries(context.root)
        for path in files:
            context.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="loose-file",
                    message=(
                        f"{context.rel(path)} sits directly in the project root and is ignored; "
                        "move it into a tab folder"
                    ),
                    path=context.rel(path),
                )
            )
        return [
            TabCandidate(
                name=directory.name,
                source_path=directory,
                files=context.collect_fragments(directory, tab=directory.name),
            )
            for directory in directories
        ]
