"""Tests for picobuild.ignore."""

from __future__ import annotations

import pytest

from picobuild.ignore import ExcludePattern, ExcludeSet


@pytest.mark.parametrize("line", ["", "   ", "# comment", "/", "!"])
def test_blank_and_comment_lines_yield_no_pattern(line: str) -> None:
    assert ExcludePattern.parse(line) is None


def test_bare_name_matches_any_segment() -> None:
    excludes = ExcludeSet.from_lines(["*.bak"])

    assert excludes.excludes("main/old.bak", False)
    assert excludes.excludes("old.bak", False)
    assert not excludes.excludes("main/old.lua", False)


def test_anchored_pattern_matches_from_the_source_root_only() -> None:
    excludes = ExcludeSet.from_lines(["/scratch"])

    assert excludes.excludes("scratch", True)
    assert not excludes.excludes("main/scratch", True)


def test_directory_pattern_skips_files() -> None:
    excludes = ExcludeSet.from_lines(["build/"])

    assert excludes.excludes("main/build", True)
    assert not excludes.excludes("main/build", False)


def test_last_matching_pattern_wins() -> None:
    excludes = ExcludeSet.from_lines(["*.md"], ["!notes.md"])

    assert len(excludes) == 2
    assert not excludes.excludes("main/notes.md", False)
    assert excludes.excludes("main/readme.md", False)
