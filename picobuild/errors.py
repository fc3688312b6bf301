"""Exception taxonomy for cart builds."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .models import Diagnostic, Severity


class PicoBuildError(RuntimeError):
    """Base class for failures the build pipeline reports instead of raising."""

    code = "error"

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(severity=Severity.ERROR, code=self.code, message=str(self))


class ScanError(PicoBuildError):
    """Raised when the project structure cannot be discovered."""

    code = "scan-error"

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            path=self.path,
        )


class EncodingError(PicoBuildError):
    """Raised when a fragment is not valid text in the configured encoding."""

    code = "encoding-error"

    def __init__(self, *, tab: str, path: Path | str, encoding: str, reason: str) -> None:
        self.tab = tab
        self.path = str(path)
        self.encoding = encoding
        self.reason = reason
        super().__init__(
            f"Tab '{tab}': file {self.path} is not valid {encoding} text ({reason})"
        )

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            tab=self.tab,
            path=self.path,
        )


class ConstraintViolation(PicoBuildError):
    """A runtime limit the assembled tabs do not satisfy."""

    code = "constraint-violation"


class TooManyTabsError(ConstraintViolation):
    code = "too-many-tabs"

    def __init__(self, *, found: int, limit: int) -> None:
        self.found = found
        self.limit = limit
        super().__init__(f"Project has {found} tabs but the limit is {limit}")

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            limit=self.limit,
            actual=self.found,
        )


class TabTooLargeError(ConstraintViolation):
    code = "tab-too-large"

    def __init__(self, *, tab: str, size: int, limit: int) -> None:
        self.tab = tab
        self.size = size
        self.limit = limit
        super().__init__(
            f"Tab '{tab}' is {size} bytes, {self.overage} over the {limit} byte limit"
        )

    @property
    def overage(self) -> int:
        return self.size - self.limit

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            tab=self.tab,
            limit=self.limit,
            actual=self.size,
        )


class ReservedMarkerError(ConstraintViolation):
    """A tab line reads as a cart section marker, so the runtime would split the cart there."""

    code = "reserved-marker"

    def __init__(self, *, tab: str, line: int, marker: str) -> None:
        self.tab = tab
        self.line = line
        self.marker = marker
        super().__init__(
            f"Tab '{tab}' line {line} is the section marker '{marker}'; "
            "indent it or change the line so the cart keeps one code section"
        )

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            tab=self.tab,
            actual=self.line,
        )


class IoError(PicoBuildError):
    """Raised when the cart cannot be written to its output path."""

    code = "io-error"

    def __init__(self, *, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to write cart to {self.path}: {reason}")

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            path=self.path,
        )


class BuildCancelledError(PicoBuildError):
    code = "cancelled"

    def __init__(self, message: str = "Build cancelled", *, tab: Optional[str] = None) -> None:
        super().__init__(message)
        self.tab = tab

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=str(self),
            tab=self.tab,
        )


__all__ = [
    "BuildCancelledError",
    "ConstraintViolation",
    "EncodingError",
    "IoError",
    "PicoBuildError",
    "ReservedMarkerError",
    "ScanError",
    "TabTooLargeError",
    "TooManyTabsError",
]
