"""Core data models shared across picobuild components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

DEFAULT_MAX_TABS = 16
DEFAULT_ENCODING = "utf-8"

PICO8_HEADER: Tuple[str, ...] = (
    "pico-8 cartridge // http://www.pico-8.com",
    "version 41",
)
PICO8_CODE_SECTION = "__lua__"
PICO8_TAB_DELIMITER = "-->8"


class Severity(str, Enum):
    """How seriously a diagnostic should be taken."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """Structured event emitted while scanning, assembling or validating."""

    severity: Severity
    code: str
    message: str
    tab: Optional[str] = None
    path: Optional[str] = None
    limit: Optional[int] = None
    actual: Optional[int] = None

    def format(self) -> str:
        """Render a single user-facing line."""
        return f"{self.severity.value}: [{self.code}] {self.message}"


@dataclass
class FragmentFile:
    """One on-disk file contributing text to a tab."""

    path: Path
    relative_path: str
    content: Optional[bytes] = None
    valid_encoding: Optional[bool] = None


@dataclass
class TabUnit:
    """One eventual code section of the cart."""

    name: str
    ordinal: int
    source_path: Path
    source_files: List[FragmentFile] = field(default_factory=list)
    assembled_text: Optional[str] = None
    empty: bool = False

    @property
    def is_assembled(self) -> bool:
        return self.assembled_text is not None

    def size_bytes(self, encoding: str = DEFAULT_ENCODING) -> int:
        if self.assembled_text is None:
            raise ValueError(f"Tab '{self.name}' has not been assembled yet")
        return len(self.assembled_text.encode(encoding))


@dataclass(frozen=True)
class ConstraintProfile:
    """Runtime limits a cart must satisfy."""

    max_tabs: int = DEFAULT_MAX_TABS
    max_tab_bytes: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_tabs < 1:
            raise ValueError(f"max_tabs must be at least 1, got {self.max_tabs}")
        if self.max_tab_bytes is not None and self.max_tab_bytes < 1:
            raise ValueError(f"max_tab_bytes must be at least 1, got {self.max_tab_bytes}")


@dataclass(frozen=True)
class CartFormat:
    """Delimiter conventions of the target runtime's cart file.

    ``tab_delimiter`` is a ``str.format`` template that may reference
    ``{ordinal}`` and ``{name}``.
    """

    header: Tuple[str, ...] = PICO8_HEADER
    code_section: str = PICO8_CODE_SECTION
    tab_delimiter: str = PICO8_TAB_DELIMITER
    delimit_first_tab: bool = False
    preserve_assets: bool = True

    def delimiter_for(self, ordinal: int, name: str) -> str:
        return self.tab_delimiter.format(ordinal=ordinal, name=name)


@dataclass
class CartArtifact:
    """Serialized cart: ordered (tab name, content) pairs plus framing."""

    format: CartFormat
    tabs: List[Tuple[str, bytes]]
    header: bytes = b""
    trailer: bytes = b""

    def to_bytes(self) -> bytes:
        parts: List[bytes] = [self.header]
        code_section = self.format.code_section
        if code_section:
            parts.append(code_section.encode("utf-8") + b"\n")
        previous = b""
        for ordinal, (name, content) in enumerate(self.tabs):
            if ordinal > 0 or self.format.delimit_first_tab:
                if previous and not previous.endswith(b"\n"):
                    parts.append(b"\n")
                delimiter = self.format.delimiter_for(ordinal, name)
                parts.append(delimiter.encode("utf-8") + b"\n")
            parts.append(content)
            previous = content
        if self.trailer and previous and not previous.endswith(b"\n"):
            parts.append(b"\n")
        parts.append(self.trailer)
        return b"".join(parts)


class BuildState(str, Enum):
    """Build pipeline states."""

    SCANNING = "scanning"
    ASSEMBLING = "assembling"
    VALIDATING = "validating"
    SERIALIZING = "serializing"
    DONE = "done"
    FAILED = "failed"


class BuildStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class TabSummary:
    """Compact view of an assembled tab for reports."""

    ordinal: int
    name: str
    file_count: int
    size_bytes: int
    empty: bool = False


@dataclass
class BuildReport:
    """Outcome of one build attempt."""

    status: BuildStatus
    state: BuildState
    diagnostics: List[Diagnostic] = field(default_factory=list)
    artifact_path: Optional[Path] = None
    tabs: List[TabSummary] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is BuildStatus.SUCCESS

    @property
    def warnings(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.WARNING]

    @property
    def errors(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.ERROR]


__all__ = [
    "BuildReport",
    "BuildState",
    "BuildStatus",
    "CartArtifact",
    "CartFormat",
    "ConstraintProfile",
    "DEFAULT_ENCODING",
    "DEFAULT_MAX_TABS",
    "Diagnostic",
    "FragmentFile",
    "Severity",
    "TabSummary",
    "TabUnit",
]
