"""Base classes for layout strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List

from ..models import FragmentFile

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from ..scanner import ScanContext


@dataclass
class TabCandidate:
    """A tab discovered on disk, before ordinals are assigned."""

    name: str
    source_path: Path
    files: List[FragmentFile] = field(default_factory=list)


class Layout(ABC):
    """Contract for mapping a directory tree onto tab units."""

    name: str = ""

    @abstractmethod
    def discover(self, context: "ScanContext") -> List[TabCandidate]:
        """Return the tabs found under ``context.root`` in any order."""
