"""CLI entrypoints for picobuild commands."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Callable, Dict

from .cancel import CancelToken
from .cart import CartParseError, read_cart, split_tabs
from .config import ConfigError
from .diagnostics import LoggingSink
from .layouts import available_layouts
from .logging import configure_logging, get_logger
from .models import BuildReport, Severity
from .orchestrator import BuildOrchestrator, summarise
from .scaffold import create_project


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Project directory holding picobuild.yml (defaults to $PICOBUILD_ROOT, then the current directory).",
    )


def _add_source_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--layout", choices=available_layouts(), help="How directories map onto tabs.")
    parser.add_argument("--encoding", help="Text encoding of fragment files (default utf-8).")
    parser.add_argument("--max-tabs", type=int, help="Maximum number of code tabs allowed in the cart.")
    parser.add_argument("--max-tab-bytes", type=int, help="Maximum size of a single tab in bytes.")
    parser.add_argument("--workers", type=int, help="Assemble tabs on this many threads.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="picobuild",
        description="Compile a directory of source fragments into a single fantasy-console cart.",
    )
    _add_verbose_option(parser)
    parser.add_argument("--log-file", type=Path, help="Also write debug logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_parser = subparsers.add_parser("new", help="Create picobuild.yml and a first tab.")
    _add_verbose_option(new_parser, suppress_default=True)
    new_parser.add_argument("path", nargs="?", default=".", help="Directory to initialise.")
    new_parser.add_argument(
        "--layout", choices=available_layouts(), default="folder-per-tab", help="Directory convention to create."
    )
    new_parser.add_argument("--cart", help="Output cart file name (defaults to <directory>.p8).")

    info_parser = subparsers.add_parser("info", help="Show the tabs a build would produce.")
    _add_verbose_option(info_parser, suppress_default=True)
    _add_path_argument(info_parser)
    _add_source_options(info_parser)

    build_parser = subparsers.add_parser("build", help="Build the cart.")
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    _add_source_options(build_parser)
    build_parser.add_argument("-o", "--output", help="Write the cart here instead of the configured path.")
    build_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scan, assemble and validate without writing the cart.",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for picobuild commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    verbose = bool(getattr(args, "verbose", False))
    configure_logging(verbose=verbose, log_file=args.log_file)

    handlers: Dict[str, Callable[[argparse.ArgumentParser, argparse.Namespace], int]] = {
        "new": _cmd_new,
        "info": _cmd_info,
        "build": _cmd_build,
    }
    handler = handlers.get(args.command)
    if handler is None:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")
    return handler(parser, args)


def _cmd_new(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    try:
        created = create_project(Path(args.path), layout=args.layout, cart=args.cart)
    except (FileExistsError, ValueError) as exc:
        parser.exit(1, f"{exc}\n")
    for path in created:
        print(f"created {_relativize(path)}")
    return 0


def _cmd_info(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    orchestrator = BuildOrchestrator()
    try:
        config = orchestrator.load_project_config(
            args.path,
            max_tabs=args.max_tabs,
            max_tab_bytes=args.max_tab_bytes,
            layout=args.layout,
            encoding=args.encoding,
            workers=args.workers,
        )
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")

    report = orchestrator.plan(config, sink=_event_sink())
    print(f"source: {_relativize(config.src_dir)} ({config.layout})")
    print(f"limits: max_tabs={config.constraints.max_tabs} max_tab_bytes={config.constraints.max_tab_bytes or 'none'}")
    for line in summarise(report.tabs):
        print(line)
    if config.cart.is_file():
        try:
            existing = split_tabs(read_cart(config.cart, config.format), config.format)
        except (OSError, CartParseError) as exc:
            print(f"cart: {_relativize(config.cart)} (unreadable: {exc})")
        else:
            print(f"cart: {_relativize(config.cart)} currently holds {len(existing)} tabs")
    else:
        print(f"cart: {_relativize(config.cart)} (not built yet)")
    _print_diagnostics(report, verbose=bool(getattr(args, "verbose", False)))
    return 0 if report.succeeded else 1


def _cmd_build(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    orchestrator = BuildOrchestrator()
    try:
        config = orchestrator.load_project_config(
            args.path,
            output=args.output,
            max_tabs=args.max_tabs,
            max_tab_bytes=args.max_tab_bytes,
            layout=args.layout,
            encoding=args.encoding,
            workers=args.workers,
        )
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")

    cancel = CancelToken()
    report = _run_cancellable(
        lambda: orchestrator.build(config, sink=_event_sink(), cancel=cancel, dry_run=bool(args.dry_run)),
        cancel,
    )
    _print_diagnostics(report, verbose=bool(getattr(args, "verbose", False)))
    if not report.succeeded:
        print(f"build failed: {len(report.errors)} error(s)", file=sys.stderr)
        return 1
    if report.artifact_path is not None:
        print(f"cart written to {_relativize(report.artifact_path)} ({len(report.tabs)} tabs)")
    else:
        print(f"dry run: {len(report.tabs)} tabs would be written to {_relativize(config.cart)}")
    return 0


def _run_cancellable(target: Callable[[], BuildReport], cancel: CancelToken) -> BuildReport:
    """Run ``target`` on a worker thread so Ctrl-C can cancel it cleanly."""
    outcome: Dict[str, object] = {}

    def _worker() -> None:
        try:
            outcome["report"] = target()
        except BaseException as exc:  # re-raised on the calling thread
            outcome["error"] = exc

    thread = threading.Thread(target=_worker, name="picobuild-build", daemon=True)
    thread.start()
    while thread.is_alive():
        try:
            thread.join(0.1)
        except KeyboardInterrupt:
            if not cancel.cancelled:
                print("cancelling build...", file=sys.stderr)
            cancel.cancel()
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["report"]  # type: ignore[return-value]


def _event_sink() -> LoggingSink:
    return LoggingSink(get_logger("events"), level=logging.DEBUG)


def _print_diagnostics(report: BuildReport, *, verbose: bool) -> None:
    for diagnostic in report.diagnostics:
        if diagnostic.severity is Severity.INFO and not verbose:
            continue
        print(diagnostic.format(), file=sys.stderr)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
