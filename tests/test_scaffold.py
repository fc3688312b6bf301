"""Tests for picobuild.scaffold."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from picobuild.config import load_config
from picobuild.orchestrator import BuildOrchestrator
from picobuild.scaffold import create_project


def test_create_project_writes_config_and_first_tab(tmp_path: Path) -> None:
    project_dir = tmp_path / "my game"

    created = create_project(project_dir)

    root = project_dir.resolve()
    assert created == [root / "picobuild.yml", root / "src" / "main" / "main.lua", root / "src" / ".order"]
    assert (root / "src" / ".order").read_text(encoding="utf-8").splitlines()[-1] == "main"
    assert "function _draw()" in (root / "src" / "main" / "main.lua").read_text(encoding="utf-8")

    config = load_config(root)
    assert config.cart == root / "my-game.p8"
    assert config.layout == "folder-per-tab"
    assert config.constraints.max_tabs == 16
    assert config.constraints.max_tab_bytes is None


def test_scaffolded_project_builds(tmp_path: Path) -> None:
    create_project(tmp_path / "demo", cart="out.p8")

    report = BuildOrchestrator().run_build(str(tmp_path / "demo"))

    assert report.succeeded
    assert report.diagnostics == []
    assert report.artifact_path == (tmp_path / "demo" / "out.p8").resolve()
    assert [tab.name for tab in report.tabs] == ["main"]


def test_file_per_tab_scaffold_builds(tmp_path: Path) -> None:
    created = create_project(tmp_path / "flat", layout="file-per-tab")

    assert (tmp_path / "flat" / "src" / "main.lua").resolve() in created
    report = BuildOrchestrator().run_build(str(tmp_path / "flat"))
    assert report.succeeded
    assert [tab.name for tab in report.tabs] == ["main.lua"]


def test_create_project_refuses_to_overwrite(tmp_path: Path) -> None:
    create_project(tmp_path)

    with pytest.raises(FileExistsError):
        create_project(tmp_path)


def test_create_project_rejects_unknown_layout(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        create_project(tmp_path, layout="sideways")
    assert not (tmp_path / "picobuild.yml").exists()


@pytest.mark.skipif(os.name == "nt", reason="quotes are not allowed in Windows file names")
def test_quotes_and_colons_are_escaped_in_generated_files(tmp_path: Path) -> None:
    project_dir = tmp_path / 'say "hi"\\now'

    create_project(project_dir, cart="build: final.p8")

    root = project_dir.resolve()
    config = load_config(root)
    assert config.cart == root / "build: final.p8"
    main_lua = (root / "src" / "main" / "main.lua").read_text(encoding="utf-8")
    assert 'print("say \\"hi\\"\\\\now", 4, 4, 7)' in main_lua
