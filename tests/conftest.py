from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a throwaway picobuild project rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _clear_picobuild_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("PICOBUILD_ROOT", "PICOBUILD_MAX_TABS", "PICOBUILD_MAX_TAB_BYTES"):
        monkeypatch.delenv(key, raising=False)
