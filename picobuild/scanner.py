"""Project scanning: discovers tab units and their fragment files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, TypeVar

from .config import PicoBuildConfig, default_config
from .diagnostics import DiagnosticSink
from .errors import ScanError
from .ignore import IGNORE_FILENAME, ExcludeSet
from .layouts import TabCandidate, resolve_layout
from .logging import get_logger
from .manifest import apply_manifest_order, read_manifest
from .models import Diagnostic, FragmentFile, Severity, TabUnit

T = TypeVar("T")

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
}

_SNIFF_BYTES = 8192


@dataclass
class ScanResult:
    """Ordered tab units plus the non-fatal diagnostics raised while finding them."""

    root: Path
    tabs: List[TabUnit]
    diagnostics: List[Diagnostic] = field(default_factory=list)


def is_binary(path: Path) -> bool:
    """Return True when the first block of ``path`` contains a NUL byte."""
    with path.open("rb") as handle:
        return b"\x00" in handle.read(_SNIFF_BYTES)


class ScanContext:
    """Filesystem helpers shared with layout strategies during one scan."""

    def __init__(
        self,
        root: Path,
        config: PicoBuildConfig,
        sink: Optional[DiagnosticSink] = None,
    ) -> None:
        self.root = root
        self.config = config
        self.diagnostics: List[Diagnostic] = []
        self._sink = sink
        self._reserved: Set[Path] = {config.cart.resolve()}
        if config.config_file is not None:
            self._reserved.add(config.config_file.resolve())
        self.logger = get_logger("scanner")
        self.excludes = self._load_excludes()

    def _load_excludes(self) -> ExcludeSet:
        """Combine ``.picoignore`` at the root with the configured exclude_paths.

        Raises ScanError when the ignore file exists but cannot be read.
        """
        ignore_file = self.root / IGNORE_FILENAME
        lines: List[str] = []
        if ignore_file.is_file():
            try:
                lines = ignore_file.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as exc:
                raise ScanError(f"Cannot read {IGNORE_FILENAME}: {exc}", path=ignore_file) from exc
        excludes = ExcludeSet.from_lines(lines, self.config.scan.exclude_paths)
        self.logger.debug("Loaded %d exclude patterns", len(excludes))
        return excludes

    def order(
        self, items: Dict[str, T], directory: Path, *, tab: Optional[str] = None
    ) -> List[Tuple[str, T]]:
        """Order ``items`` by the manifest in ``directory``, or lexicographically without one.

        A manifest that cannot be read or decoded is reported and ignored.
        """
        manifest_path = directory / self.config.scan.manifest_name
        if not manifest_path.is_file():
            return sorted(items.items())
        try:
            entries = read_manifest(manifest_path)
        except (OSError, UnicodeDecodeError) as exc:
            self.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="unreadable-manifest",
                    message=f"Cannot read {self.rel(manifest_path)} ({exc}); using lexicographic order",
                    tab=tab,
                    path=self.rel(manifest_path),
                )
            )
            return sorted(items.items())
        return apply_manifest_order(
            items,
            entries,
            manifest_path=self.rel(manifest_path),
            emit=self.emit,
            tab=tab,
        )

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self._sink is not None:
            self._sink(diagnostic)

    def rel(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def entries(self, directory: Path) -> Tuple[List[Path], List[Path]]:
        """Return ``(directories, files)`` of ``directory`` sorted by name, minus excluded entries."""
        try:
            with os.scandir(directory) as iterator:
                raw_entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            if directory == self.root:
                raise ScanError(f"Cannot list project root {directory}: {exc}", path=directory) from exc
            self.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="unreadable-directory",
                    message=f"Cannot list {self.rel(directory)}/: {exc.strerror or exc}",
                    path=self.rel(directory),
                )
            )
            return [], []

        directories: List[Path] = []
        files: List[Path] = []
        for entry in raw_entries:
            name = entry.name
            if name.startswith(".") or name.endswith("~") or name in _EXCLUDED_FILES:
                continue
            if name == self.config.scan.manifest_name:
                continue
            path = Path(entry.path)
            if path.resolve() in self._reserved:
                continue
            is_dir = entry.is_dir(follow_symlinks=False)
            if self.excludes.excludes(self.rel(path), is_dir):
                self.logger.debug("Ignoring %s", self.rel(path))
                continue
            if is_dir:
                directories.append(path)
            elif entry.is_file():
                files.append(path)
        return directories, files

    def fragment(self, path: Path, relative_path: str, *, tab: str) -> Optional[FragmentFile]:
        """Return a FragmentFile for ``path`` or None when it cannot contribute text."""
        extensions = self.config.scan.include_extensions
        if extensions and path.suffix.lower() not in extensions:
            self.logger.debug("Skipping %s: extension not included", self.rel(path))
            return None
        try:
            binary = is_binary(path)
        except OSError as exc:
            self.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="unreadable-file",
                    message=f"Cannot read {self.rel(path)}: {exc.strerror or exc}; file excluded",
                    tab=tab,
                    path=self.rel(path),
                )
            )
            return None
        if binary:
            self.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="binary-file",
                    message=f"{self.rel(path)} looks like a binary file and was excluded from tab '{tab}'",
                    tab=tab,
                    path=self.rel(path),
                )
            )
            return None
        return FragmentFile(path=path, relative_path=relative_path)

    def collect_fragments(self, directory: Path, *, tab: str) -> List[FragmentFile]:
        """Gather a tab folder's fragments in manifest-then-lexicographic order."""
        found: Dict[str, FragmentFile] = {}
        self._walk(directory, directory, tab, found)
        return [fragment for _, fragment in self.order(found, directory, tab=tab)]

    def _walk(self, base: Path, directory: Path, tab: str, found: Dict[str, FragmentFile]) -> None:
        directories, files = self.entries(directory)
        for path in files:
            relative = path.relative_to(base).as_posix()
            fragment = self.fragment(path, relative, tab=tab)
            if fragment is not None:
                found[relative] = fragment
        for child in directories:
            if self.config.scan.recursive:
                self._walk(base, child, tab, found)
            else:
                self.emit(
                    Diagnostic(
                        severity=Severity.INFO,
                        code="ignored-directory",
                        message=f"{self.rel(child)}/ is ignored because scanning is not recursive",
                        tab=tab,
                        path=self.rel(child),
                    )
                )


class FragmentScanner:
    """Walks the project root to produce ordered tab units."""

    def __init__(self) -> None:
        self.logger = get_logger("scanner")

    def scan(
        self,
        root: Path | str,
        config: PicoBuildConfig | None = None,
        sink: Optional[DiagnosticSink] = None,
    ) -> ScanResult:
        """Return the tab units found under ``root``.

        Raises ScanError when the root is missing or is not a directory, when
        the configured layout cannot be loaded, or when .picoignore is
        unreadable. Everything else is reported as a diagnostic and the scan
        carries on.
        """
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise ScanError(f"Project root not found: {root_path}", path=root_path)
        if not root_path.is_dir():
            raise ScanError(f"Project root is not a directory: {root_path}", path=root_path)
        root_path = root_path.resolve()

        if config is None:
            config = default_config(root_path)

        try:
            layout = resolve_layout(config.layout)
        except (ValueError, RuntimeError, TypeError) as exc:
            raise ScanError(f"Cannot use layout '{config.layout}': {exc}", path=root_path) from exc

        context = ScanContext(root_path, config, sink)
        candidates = layout.discover(context)
        self.logger.debug("Layout %s discovered %d tabs under %s", layout.name, len(candidates), root_path)

        by_name: Dict[str, TabCandidate] = {}
        for candidate in candidates:
            if candidate.name in by_name:
                raise ScanError(f"Two tabs share the name '{candidate.name}'", path=candidate.source_path)
            by_name[candidate.name] = candidate

        ordered = context.order(by_name, root_path)

        tabs: List[TabUnit] = []
        for ordinal, (name, candidate) in enumerate(ordered):
            tab = TabUnit(
                name=name,
                ordinal=ordinal,
                source_path=candidate.source_path,
                source_files=list(candidate.files),
                empty=not candidate.files,
            )
            if tab.empty:
                context.emit(
                    Diagnostic(
                        severity=Severity.WARNING,
                        code="empty-tab",
                        message=f"Tab '{name}' has no content files; it will be emitted empty",
                        tab=name,
                        path=context.rel(candidate.source_path),
                    )
                )
            tabs.append(tab)

        if not tabs:
            context.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="no-tabs",
                    message=f"No tabs found under {root_path} using the {layout.name} layout",
                    path=str(root_path),
                )
            )

        return ScanResult(root=root_path, tabs=tabs, diagnostics=context.diagnostics)


__all__ = ["FragmentScanner", "ScanContext", "ScanResult", "is_binary"]
