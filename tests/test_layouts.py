"""Tests for layout discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace
from typing import List

import pytest

from picobuild.layouts import (
    FilePerTabLayout,
    FolderPerTabLayout,
    Layout,
    TabCandidate,
    available_layouts,
    resolve_layout,
)
from picobuild.scanner import FragmentScanner


class SingleTabLayout(Layout):
    """Test layout that folds every root file into one tab."""

    name = "single-tab"

    def discover(self, context) -> List[TabCandidate]:
        _, files = context.entries(context.root)
        fragments = [context.fragment(path, path.name, tab="all") for path in files]
        return [TabCandidate(name="all", source_path=context.root, files=[item for item in fragments if item])]


class _EntryPoints(list):
    def select(self, **kwargs):
        if kwargs.get("group") == "picobuild.layouts":
            return self
        return []


def _install_entry_point(monkeypatch) -> None:
    entry = SimpleNamespace(name="single-tab", load=lambda: SingleTabLayout)
    monkeypatch.setattr(
        "picobuild.layouts.metadata.entry_points",
        lambda: _EntryPoints([entry]),
        raising=False,
    )


def test_builtin_layouts_are_available() -> None:
    names = available_layouts()
    assert names[:2] == ["folder-per-tab", "file-per-tab"]
    assert isinstance(resolve_layout("folder-per-tab"), FolderPerTabLayout)
    assert isinstance(resolve_layout(" File-Per-Tab "), FilePerTabLayout)


def test_resolve_layout_loads_entry_points(monkeypatch) -> None:
    _install_entry_point(monkeypatch)

    assert "single-tab" in available_layouts()
    assert isinstance(resolve_layout("single-tab"), SingleTabLayout)


def test_scanner_uses_plugin_layout(monkeypatch, project) -> None:
    _install_entry_point(monkeypatch)
    project.write({"b.lua": "b", "a.lua": "a"})
    config = project.config()
    config.layout = "single-tab"

    result = FragmentScanner().scan(project.src, config)

    assert [tab.name for tab in result.tabs] == ["all"]
    assert [item.relative_path for item in result.tabs[0].source_files] == ["a.lua", "b.lua"]


def test_resolve_layout_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        resolve_layout("nonexistent")


def _install_broken_entry_point(monkeypatch, load) -> None:
    entry = SimpleNamespace(name="broken", load=load)
    monkeypatch.setattr(
        "picobuild.layouts.metadata.entry_points",
        lambda: _EntryPoints([entry]),
        raising=False,
    )


def _fail_import():
    raise ImportError("No module named 'missing_plugin'")


@pytest.mark.parametrize("load", [_fail_import, lambda: object()])
def test_unloadable_plugin_layout_fails_the_build(monkeypatch, project, load) -> None:
    _install_broken_entry_point(monkeypatch, load)
    project.write({"main/a.lua": "a"})

    report = project.build(layout="broken")

    assert not report.succeeded
    [error] = report.errors
    assert error.code == "scan-error"
    assert "broken" in error.message
    assert not project.cart.exists()
