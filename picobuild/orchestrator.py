"""Build pipeline: scan, assemble, validate, serialize."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assembler import TabAssembler
from .cancel import CancelToken, check_cancelled
from .cart import CartParseError, ParsedCart, parse_cart, reserved_markers
from .config import (
    PicoBuildConfig,
    apply_env_overrides,
    load_config,
    override_constraints,
    resolve_project_dir,
)
from .diagnostics import DiagnosticSink
from .errors import PicoBuildError
from .logging import get_logger
from .models import (
    BuildReport,
    BuildState,
    BuildStatus,
    Diagnostic,
    Severity,
    TabSummary,
    TabUnit,
)
from .scanner import FragmentScanner
from .serializer import CartSerializer
from .validator import ConstraintValidator


class _BuildRun:
    """Mutable bookkeeping for one build: current state and every diagnostic so far."""

    def __init__(self, sink: Optional[DiagnosticSink], logger: logging.Logger) -> None:
        self.state = BuildState.SCANNING
        self.diagnostics: List[Diagnostic] = []
        self.tabs: List[TabUnit] = []
        self._sink = sink
        self._logger = logger

    def enter(self, state: BuildState) -> None:
        self._logger.debug("Build state %s -> %s", self.state.value, state.value)
        self.state = state

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self._sink is not None:
            self._sink(diagnostic)

    def summaries(self, encoding: str) -> List[TabSummary]:
        return [
            TabSummary(
                ordinal=tab.ordinal,
                name=tab.name,
                file_count=len(tab.source_files),
                size_bytes=tab.size_bytes(encoding),
                empty=tab.empty,
            )
            for tab in self.tabs
            if tab.is_assembled
        ]

    def fail(self, encoding: str) -> BuildReport:
        failed_in = self.state
        self.enter(BuildState.FAILED)
        self._logger.info("Build failed during %s with %d errors", failed_in.value, len(self._errors()))
        return BuildReport(
            status=BuildStatus.FAILURE,
            state=BuildState.FAILED,
            diagnostics=list(self.diagnostics),
            artifact_path=None,
            tabs=self.summaries(encoding),
        )

    def finish(self, artifact_path: Optional[Path], encoding: str) -> BuildReport:
        self.enter(BuildState.DONE)
        return BuildReport(
            status=BuildStatus.SUCCESS,
            state=BuildState.DONE,
            diagnostics=list(self.diagnostics),
            artifact_path=artifact_path,
            tabs=self.summaries(encoding),
        )

    def _errors(self) -> List[Diagnostic]:
        return [item for item in self.diagnostics if item.severity is Severity.ERROR]


class BuildOrchestrator:
    """Coordinates one synchronous build per call."""

    def __init__(self, scanner: FragmentScanner | None = None) -> None:
        self.scanner = scanner or FragmentScanner()
        self.logger = get_logger("orchestrator")

    def run_build(
        self,
        path: str | None = None,
        *,
        output: str | None = None,
        max_tabs: int | None = None,
        max_tab_bytes: int | None = None,
        layout: str | None = None,
        encoding: str | None = None,
        workers: int | None = None,
        dry_run: bool = False,
        sink: Optional[DiagnosticSink] = None,
        cancel: Optional[CancelToken] = None,
    ) -> BuildReport:
        """Load picobuild.yml for ``path``, apply overrides and build."""
        config = self.load_project_config(
            path,
            output=output,
            max_tabs=max_tabs,
            max_tab_bytes=max_tab_bytes,
            layout=layout,
            encoding=encoding,
            workers=workers,
        )
        return self.build(config, sink=sink, cancel=cancel, dry_run=dry_run)

    @staticmethod
    def load_project_config(
        path: str | None = None,
        *,
        output: str | None = None,
        max_tabs: int | None = None,
        max_tab_bytes: int | None = None,
        layout: str | None = None,
        encoding: str | None = None,
        workers: int | None = None,
    ) -> PicoBuildConfig:
        """Resolve configuration with precedence file < environment < explicit arguments."""
        project_dir = resolve_project_dir(path)
        config = apply_env_overrides(load_config(project_dir))
        if max_tabs is not None or max_tab_bytes is not None:
            config = override_constraints(config, max_tabs=max_tabs, max_tab_bytes=max_tab_bytes)
        if output:
            config = replace(config, cart=(Path.cwd() / Path(output).expanduser()).resolve())
        if layout:
            config = replace(config, layout=layout)
        if encoding:
            config = replace(config, encoding=encoding)
        if workers:
            config = replace(config, workers=workers)
        return config

    def build(
        self,
        config: PicoBuildConfig,
        *,
        sink: Optional[DiagnosticSink] = None,
        cancel: Optional[CancelToken] = None,
        dry_run: bool = False,
    ) -> BuildReport:
        """Run the pipeline and return its report; never leaves a partial cart behind."""
        run = _BuildRun(sink, self.logger)
        encoding = config.encoding
        self.logger.info("Building %s -> %s", config.src_dir, config.cart)

        try:
            check_cancelled(cancel)
            scan = self.scanner.scan(config.src_dir, config, sink=run.emit)
            run.tabs = scan.tabs

            run.enter(BuildState.ASSEMBLING)
            check_cancelled(cancel)
            TabAssembler(encoding).assemble_all(scan.tabs, workers=config.workers, cancel=cancel)

            run.enter(BuildState.VALIDATING)
            validator = ConstraintValidator(
                config.constraints, encoding, reserved_lines=reserved_markers(config.format)
            )
            violations = validator.validate(scan.tabs)
            if violations:
                for violation in violations:
                    run.emit(violation.to_diagnostic())
                return run.fail(encoding)

            run.enter(BuildState.SERIALIZING)
            check_cancelled(cancel)
            serializer = CartSerializer(config.format, encoding)
            base, previous = self._load_existing_cart(config, run)
            artifact = serializer.render(scan.tabs, base)
            if dry_run:
                self.logger.info("Dry run: %d tabs rendered, nothing written", len(artifact.tabs))
                return run.finish(None, encoding)

            check_cancelled(cancel)
            artifact_path = serializer.write(artifact, config.cart, previous)
        except PicoBuildError as exc:
            self._log_exception(f"Build failed during {run.state.value}", exc)
            run.emit(exc.to_diagnostic())
            return run.fail(encoding)

        return run.finish(artifact_path, encoding)

    def plan(self, config: PicoBuildConfig, *, sink: Optional[DiagnosticSink] = None) -> BuildReport:
        """Scan, assemble and validate without writing anything."""
        return self.build(config, sink=sink, dry_run=True)

    def _load_existing_cart(
        self, config: PicoBuildConfig, run: _BuildRun
    ) -> Tuple[Optional[ParsedCart], Optional[bytes]]:
        path = config.cart
        if not path.is_file():
            return None, None
        try:
            previous = path.read_bytes()
        except OSError as exc:
            run.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="unreadable-cart",
                    message=f"Existing cart {path} could not be read ({exc.strerror or exc}); it will be replaced",
                    path=str(path),
                )
            )
            return None, None
        if not config.format.preserve_assets:
            return None, previous
        try:
            return parse_cart(previous, config.format), previous
        except CartParseError as exc:
            run.emit(
                Diagnostic(
                    severity=Severity.WARNING,
                    code="unparsable-cart",
                    message=f"Existing cart {path} is not a recognised cart ({exc}); it will be replaced wholesale",
                    path=str(path),
                )
            )
            return None, previous

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("%s: %s", message, exc, exc_info=exc)
        else:
            self.logger.info("%s: %s", message, exc)


def summarise(tabs: Sequence[TabSummary]) -> List[str]:
    """Render one line per tab for terminal output."""
    lines = []
    for tab in tabs:
        suffix = " (empty)" if tab.empty else ""
        noun = "file" if tab.file_count == 1 else "files"
        lines.append(f"{tab.ordinal:>2}  {tab.name:<24} {tab.file_count:>3} {noun:<5} {tab.size_bytes:>7} bytes{suffix}")
    return lines


__all__ = ["BuildOrchestrator", "summarise"]
