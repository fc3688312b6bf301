"""Layout strategies and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List

from .base import Layout, TabCandidate
from .flat import FilePerTabLayout
from .folder import FolderPerTabLayout

_ENTRY_POINT_GROUP = "picobuild.layouts"

_BUILTIN_FACTORIES: Dict[str, Callable[[], Layout]] = {
    FolderPerTabLayout.name: FolderPerTabLayout,
    FilePerTabLayout.name: FilePerTabLayout,
}


def available_layouts() -> List[str]:
    """Return the names of every built-in and installed layout."""
    names = list(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        if entry.name not in names:
            names.append(entry.name)
    return names


def resolve_layout(name: str) -> Layout:
    """Instantiate the layout registered under ``name``."""
    key = name.strip().lower()
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is not None:
        return factory()

    for entry in _iter_entry_points():
        if entry.name.lower() != key:
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Failed to load layout entry point '{entry.name}': {exc}") from exc
        return _coerce_layout(loaded)

    known = ", ".join(available_layouts())
    raise ValueError(f"Unknown layout '{name}' (available: {known})")


def _coerce_layout(obj: object) -> Layout:
    if isinstance(obj, Layout):
        return obj
    if isinstance(obj, type) and issubclass(obj, Layout):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Layout):
            return instance
    raise TypeError("Layout entry point must be a Layout subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "FilePerTabLayout",
    "FolderPerTabLayout",
    "Layout",
    "TabCandidate",
    "available_layouts",
    "resolve_layout",
]
