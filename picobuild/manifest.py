"""Line-oriented ordering manifests (``.order`` files)."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

from .models import Diagnostic, Severity

T = TypeVar("T")


def read_manifest(path: Path) -> List[str]:
    """Return the entries of a manifest: one per line, blanks and ``#`` comments skipped."""
    entries: List[str] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line.replace("\\", "/").strip("/"))
    return entries


def apply_manifest_order(
    items: Dict[str, T],
    entries: Sequence[str],
    *,
    manifest_path: str,
    emit: Callable[[Diagnostic], None],
    tab: str | None = None,
) -> List[Tuple[str, T]]:
    """Order ``items`` by manifest entries, then append the unlisted keys lexicographically."""
    ordered: List[Tuple[str, T]] = []
    seen: set[str] = set()
    for entry in entries:
        if entry in seen:
            emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="manifest-duplicate-entry",
                    message=f"{manifest_path} lists '{entry}' more than once; later entries ignored",
                    tab=tab,
                    path=manifest_path,
                )
            )
            continue
        seen.add(entry)
        if entry not in items:
            emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="manifest-missing-entry",
                    message=f"{manifest_path} lists '{entry}' which is not part of the project",
                    tab=tab,
                    path=manifest_path,
                )
            )
            continue
        ordered.append((entry, items[entry]))

    for key in sorted(items):
        if key not in seen:
            ordered.append((key, items[key]))
    return ordered


__all__ = ["apply_manifest_order", "read_manifest"]
