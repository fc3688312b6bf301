"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from picobuild.cli import _build_parser, main


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()

    assert parser.parse_args(["--verbose", "build"]).verbose is True
    assert parser.parse_args(["build", "--verbose"]).verbose is True


def test_cli_build_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["build", "proj", "-o", "out.p8", "--max-tabs", "8", "--max-tab-bytes", "1024", "--dry-run", "--workers", "2"]
    )

    assert args.command == "build"
    assert args.path == "proj"
    assert args.output == "out.p8"
    assert args.max_tabs == 8
    assert args.max_tab_bytes == 1024
    assert args.dry_run is True
    assert args.workers == 2


def test_cli_rejects_unknown_layout() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["build", "--layout", "sideways"])


def test_new_then_build_writes_cart(tmp_path: Path, capsys) -> None:
    project_dir = tmp_path / "game"

    assert main(["new", str(project_dir)]) == 0
    assert main(["build", str(project_dir)]) == 0

    out = capsys.readouterr().out
    assert "created" in out
    assert "cart written to" in out
    assert (project_dir / "game.p8").read_bytes().startswith(b"pico-8 cartridge")


def test_new_refuses_existing_project(tmp_path: Path) -> None:
    main(["new", str(tmp_path)])

    with pytest.raises(SystemExit) as excinfo:
        main(["new", str(tmp_path)])
    assert excinfo.value.code == 1


def test_build_failure_exits_nonzero_and_prints_errors(project, capsys) -> None:
    project.write({"a/x.lua": "1", "b/x.lua": "2"})

    assert main(["build", str(project.root), "--max-tabs", "1"]) == 1

    err = capsys.readouterr().err
    assert "[too-many-tabs]" in err
    assert "build failed: 1 error(s)" in err
    assert not project.cart.exists()


def test_build_dry_run_does_not_write(project, capsys) -> None:
    project.write({"main/a.lua": "a"})

    assert main(["build", str(project.root), "--dry-run"]) == 0

    assert "dry run: 1 tabs" in capsys.readouterr().out
    assert not project.cart.exists()


def test_build_output_override(project, tmp_path: Path) -> None:
    project.write({"main/a.lua": "a"})
    target = tmp_path / "elsewhere" / "custom.p8"

    assert main(["build", str(project.root), "--output", str(target)]) == 0

    assert target.exists()
    assert not project.cart.exists()


def test_invalid_config_exits_with_message(project, capsys) -> None:
    project.write_config("constraints:\n  max_tabs: many\n")

    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(project.root)])

    assert excinfo.value.code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_info_lists_tabs(project, capsys) -> None:
    project.write({"intro/a.lua": "a", "menu/b.lua": "bb"})

    assert main(["info", str(project.root)]) == 0

    out = capsys.readouterr().out
    assert "intro" in out and "menu" in out
    assert "(not built yet)" in out


def test_log_file_receives_debug_output(project, tmp_path: Path) -> None:
    project.write({"main/a.lua": "a"})
    log_file = tmp_path / "build.log"

    assert main(["--log-file", str(log_file), "build", str(project.root)]) == 0

    assert "Assembled tab 0 'main'" in log_file.read_text(encoding="utf-8")
